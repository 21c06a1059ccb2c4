from collections import defaultdict
from datetime import date
from fastapi import APIRouter, Depends, Query
from supabase import Client

from ..dependencies import require_admin, require_vendor
from ..schemas.dashboard import AdminDashboard, AdminReport, VendorDashboard, VendorReport
from ..supabase_client import get_supabase_client
from ..utils.queries import attach_shop_names, count_by
from .payouts import vendor_balance

router = APIRouter(tags=["dashboard"])

RECENT_ORDERS = 5
TOP_PRODUCTS = 5
CLOSED_STATUSES = {"cancelled", "refunded"}


def month_keys(months: int, today: date | None = None) -> list[str]:
    """The last `months` calendar months as YYYY-MM, oldest first, ending with the current month."""
    today = today or date.today()
    year, month = today.year, today.month
    keys = []
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def monthly_series(orders: list[dict], months: int, today: date | None = None) -> list[dict]:
    buckets = {key: {"period": key, "orders": 0, "revenue": 0.0} for key in month_keys(months, today)}
    for order in orders:
        if order.get("status") in CLOSED_STATUSES:
            continue
        bucket = buckets.get((order.get("created_at") or "")[:7])
        if bucket is None:
            continue
        bucket["orders"] += 1
        if order.get("payment_status") == "paid":
            bucket["revenue"] += float(order.get("total_amount") or 0)
    for bucket in buckets.values():
        bucket["revenue"] = round(bucket["revenue"], 2)
    return list(buckets.values())


def top_products(orders: list[dict], limit: int = TOP_PRODUCTS) -> list[dict]:
    totals = defaultdict(lambda: {"product_name": "", "quantity": 0, "revenue": 0.0})
    for order in orders:
        if order.get("status") in CLOSED_STATUSES:
            continue
        for item in order.get("order_items") or []:
            entry = totals[item.get("product_id")]
            entry["product_name"] = item.get("product_name") or entry["product_name"]
            qty = int(item.get("quantity") or 0)
            entry["quantity"] += qty
            entry["revenue"] += qty * float(item.get("price") or 0)

    ranked = [
        {"product_id": pid, "product_name": e["product_name"], "quantity": e["quantity"], "revenue": round(e["revenue"], 2)}
        for pid, e in totals.items()
        if pid
    ]
    ranked.sort(key=lambda x: (x["quantity"], x["revenue"]), reverse=True)
    return ranked[:limit]


def _paid_revenue(orders: list[dict]) -> float:
    return round(sum(float(o.get("total_amount") or 0) for o in orders if o.get("payment_status") == "paid"), 2)


@router.get("/dashboard/vendor", response_model=VendorDashboard)
def vendor_dashboard(supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor)):
    vendor_id = user["vendor_id"]
    products = (
        supabase.table("products")
        .select("id, status, stock_quantity, min_stock_level")
        .eq("vendor_id", vendor_id)
        .execute()
        .data
        or []
    )
    orders = (
        supabase.table("orders")
        .select("*")
        .eq("vendor_id", vendor_id)
        .order("created_at", desc=True)
        .execute()
        .data
        or []
    )
    balance = vendor_balance(supabase, vendor_id)

    product_counts = count_by(products, "status")
    order_counts = count_by(orders, "status")
    approved = product_counts.get("approved", 0)
    return VendorDashboard(
        total_products=len(products),
        approved_products=approved,
        pending_products=len(products) - approved,
        low_stock_products=sum(
            1 for p in products if int(p.get("stock_quantity") or 0) <= int(p.get("min_stock_level") or 0)
        ),
        total_orders=len(orders),
        pending_orders=order_counts.get("pending", 0),
        delivered_orders=order_counts.get("delivered", 0),
        total_revenue=_paid_revenue(orders),
        pending_payout_amount=balance["pending_payouts"],
        available_balance=balance["available_balance"],
        recent_orders=orders[:RECENT_ORDERS],
    )


@router.get("/dashboard/admin", response_model=AdminDashboard)
def admin_dashboard(supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    vendors = supabase.table("vendors").select("id, status").execute().data or []
    products = supabase.table("products").select("id, status").execute().data or []
    orders = supabase.table("orders").select("*").order("created_at", desc=True).execute().data or []
    pending_payouts = supabase.table("payouts").select("id").eq("status", "pending").execute().data or []

    product_counts = count_by(products, "status")
    approved = product_counts.get("approved", 0)
    return AdminDashboard(
        total_vendors=len(vendors),
        pending_vendors=count_by(vendors, "status").get("pending", 0),
        total_products=len(products),
        approved_products=approved,
        pending_products=len(products) - approved,
        awaiting_review_products=product_counts.get("pending", 0),
        total_orders=len(orders),
        total_revenue=_paid_revenue(orders),
        pending_payouts=len(pending_payouts),
        recent_orders=orders[:RECENT_ORDERS],
    )


@router.get("/reports/vendor", response_model=VendorReport)
def vendor_report(
    months: int = Query(6, ge=1, le=24),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor),
):
    orders = supabase.table("orders").select("*").eq("vendor_id", user["vendor_id"]).execute().data or []
    return VendorReport(monthly_sales=monthly_series(orders, months), top_products=top_products(orders))


@router.get("/reports/admin", response_model=AdminReport)
def admin_report(
    months: int = Query(6, ge=1, le=24),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    orders = supabase.table("orders").select("*").execute().data or []

    by_vendor = defaultdict(lambda: {"orders": 0, "revenue": 0.0})
    for order in orders:
        if order.get("status") in CLOSED_STATUSES or not order.get("vendor_id"):
            continue
        stats = by_vendor[order["vendor_id"]]
        stats["orders"] += 1
        if order.get("payment_status") == "paid":
            stats["revenue"] += float(order.get("total_amount") or 0)

    revenue_by_vendor = attach_shop_names(
        supabase,
        [{"vendor_id": vid, "orders": s["orders"], "revenue": round(s["revenue"], 2)} for vid, s in by_vendor.items()],
    )
    for row in revenue_by_vendor:
        row["shop_name"] = row.get("shop_name") or "Unknown Vendor"
    revenue_by_vendor.sort(key=lambda x: x["revenue"], reverse=True)

    return AdminReport(
        monthly_revenue=monthly_series(orders, months),
        revenue_by_vendor=revenue_by_vendor,
        top_products=top_products(orders),
    )
