import logging
from collections import defaultdict

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from ..config import get_settings
from ..dependencies import require_admin, require_vendor, require_vendor_or_admin
from ..schemas.enums import OrderStatus, PaymentStatus, ProductStatus, SortDirection, VendorStatus
from ..schemas.order import (
    OrderCreate,
    OrderOut,
    OrderStats,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    TrackingUpdate,
)
from ..supabase_client import get_supabase_client
from ..utils.export import csv_response
from ..utils.logging import log_action
from ..utils.queries import apply_search, apply_sort, attach_shop_names, count_by, first
from ..workflow import (
    InvalidTransition,
    check_order_transition,
    compute_order_totals,
    generate_order_number,
    now_iso,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

SORTABLE = {"created_at", "updated_at", "total_amount", "status", "payment_status", "customer_name"}

EXPORT_COLUMNS = [
    ("Order ID", "id"),
    ("Order Number", "order_number"),
    ("Customer", "customer_name"),
    ("Vendor", "shop_name"),
    ("Status", "status"),
    ("Payment Status", "payment_status"),
    ("Total Amount", "total_amount"),
    ("Delivery Address", "delivery_address"),
    ("Created Date", "created_at"),
]


def _get_order(supabase: Client, user: dict, order_id: str) -> dict:
    order = first(supabase.table("orders").select("*").eq("id", order_id).limit(1).execute())
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if user.get("role") == "vendor" and order.get("vendor_id") != user.get("vendor_id"):
        raise HTTPException(status_code=403, detail="Not allowed")
    return order


def _filtered(query, status, payment_status, search):
    if status:
        query = query.eq("status", status.value)
    if payment_status:
        query = query.eq("payment_status", payment_status.value)
    return apply_search(query, "customer_name", search)


@router.post("", response_model=OrderOut)
def create_order(payload: OrderCreate, supabase: Client = Depends(get_supabase_client)):
    """
    Checkout for a single shop. Prices come from the catalogue, never from the client,
    and every product must be approved, in stock and sold by the same approved shop.
    """
    if not payload.items:
        raise HTTPException(status_code=400, detail="Order must contain at least one item")

    product_ids = sorted({item.product_id for item in payload.items})
    products = supabase.table("products").select("*").in_("id", product_ids).execute().data or []
    by_id = {p["id"]: p for p in products}

    missing = [pid for pid in product_ids if pid not in by_id]
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown products: {', '.join(missing)}")

    vendor_ids = {p.get("vendor_id") for p in products}
    if len(vendor_ids) != 1:
        raise HTTPException(status_code=400, detail="An order can only contain products from one shop")
    vendor_id = vendor_ids.pop()

    vendor = first(supabase.table("vendors").select("id, status").eq("id", vendor_id).limit(1).execute())
    if not vendor or vendor.get("status") != VendorStatus.APPROVED.value:
        raise HTTPException(status_code=400, detail="This shop is not accepting orders")

    requested = defaultdict(int)
    for item in payload.items:
        requested[item.product_id] += item.quantity
    for product_id, quantity in requested.items():
        product = by_id[product_id]
        if product.get("status") != ProductStatus.APPROVED.value:
            raise HTTPException(status_code=400, detail=f"{product['name']} is not available")
        if quantity > int(product.get("stock_quantity") or 0):
            raise HTTPException(status_code=400, detail=f"Not enough stock for {product['name']}")

    order_items = []
    for item in payload.items:
        product = by_id[item.product_id]
        price = product.get("sale_price") if product.get("sale_price") is not None else product["price"]
        order_items.append(
            {
                "product_id": item.product_id,
                "product_name": product["name"],
                "quantity": item.quantity,
                "price": float(price),
                "total": round(item.quantity * float(price), 2),
            }
        )

    settings = get_settings()
    totals = compute_order_totals(
        order_items,
        tax_rate=settings.TAX_RATE,
        shipping_amount=settings.DEFAULT_SHIPPING_AMOUNT,
        discount_amount=payload.discount_amount,
    )

    order_payload = {
        "order_number": generate_order_number(),
        "vendor_id": vendor_id,
        "customer_name": payload.customer_name,
        "customer_email": payload.customer_email,
        "customer_phone": payload.customer_phone,
        "delivery_address": payload.delivery_address,
        "order_items": order_items,
        "notes": payload.notes,
        "status": OrderStatus.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
        **totals,
    }
    try:
        response = supabase.table("orders").insert(order_payload).execute()
    except Exception as exc:
        logger.exception("Order insert failed")
        raise HTTPException(status_code=500, detail="Failed to create order") from exc
    if not response.data:
        raise HTTPException(status_code=500, detail="Failed to create order")
    return response.data[0]


@router.get("/mine", response_model=list[OrderOut])
def list_my_orders(
    status: OrderStatus | None = Query(None),
    payment_status: PaymentStatus | None = Query(None),
    search: str | None = Query(None, description="Match against the customer name"),
    sort_by: str = Query("created_at"),
    direction: SortDirection = Query(SortDirection.DESC),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor),
):
    query = supabase.table("orders").select("*").eq("vendor_id", user["vendor_id"])
    query = _filtered(query, status, payment_status, search)
    query = apply_sort(query, sort_by, direction, SORTABLE)
    return query.execute().data or []


@router.get("/stats", response_model=OrderStats)
def order_stats(supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    query = supabase.table("orders").select("id, status, payment_status, total_amount")
    if user.get("role") == "vendor":
        query = query.eq("vendor_id", user["vendor_id"])
    rows = query.execute().data or []
    counts = count_by(rows, "status")
    revenue = sum(float(r.get("total_amount") or 0) for r in rows if r.get("payment_status") == "paid")
    return OrderStats(total=len(rows), revenue=round(revenue, 2), **{s.value: counts.get(s.value, 0) for s in OrderStatus})


@router.get("/export")
def export_orders(
    status: OrderStatus | None = Query(None),
    payment_status: PaymentStatus | None = Query(None),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    query = _filtered(supabase.table("orders").select("*"), status, payment_status, None)
    rows = query.order("created_at", desc=True).execute().data or []
    return csv_response("orders", EXPORT_COLUMNS, attach_shop_names(supabase, rows))


@router.get("", response_model=list[OrderOut])
def list_all_orders(
    status: OrderStatus | None = Query(None),
    payment_status: PaymentStatus | None = Query(None),
    vendor_id: str | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("created_at"),
    direction: SortDirection = Query(SortDirection.DESC),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    query = _filtered(supabase.table("orders").select("*"), status, payment_status, search)
    if vendor_id:
        query = query.eq("vendor_id", vendor_id)
    query = apply_sort(query, sort_by, direction, SORTABLE)
    return query.range(offset, offset + limit - 1).execute().data or []


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    return _get_order(supabase, user, order_id)


def _update(supabase: Client, user: dict, order_id: str, changes: dict, action: str) -> dict:
    response = (
        supabase.table("orders")
        .update({**changes, "updated_at": now_iso()})
        .eq("id", order_id)
        .execute()
    )
    if not response.data:
        raise HTTPException(status_code=404, detail="Order not found")
    log_action(supabase, user, action, "order", order_id, changes)
    return response.data[0]


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor_or_admin),
):
    order = _get_order(supabase, user, order_id)
    try:
        check_order_transition(order.get("status"), payload.status.value, order.get("payment_status"))
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _update(supabase, user, order_id, {"status": payload.status.value}, "update_order_status")


@router.patch("/{order_id}/payment-status", response_model=OrderOut)
def update_payment_status(
    order_id: str,
    payload: PaymentStatusUpdate,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    _get_order(supabase, user, order_id)
    return _update(
        supabase, user, order_id, {"payment_status": payload.payment_status.value}, "update_payment_status"
    )


@router.patch("/{order_id}/tracking", response_model=OrderOut)
def update_tracking(
    order_id: str,
    payload: TrackingUpdate,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor_or_admin),
):
    order = _get_order(supabase, user, order_id)
    if order.get("status") in (OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value):
        raise HTTPException(status_code=409, detail="Cannot add tracking to a closed order")
    return _update(supabase, user, order_id, {"tracking_number": payload.tracking_number}, "update_tracking")
