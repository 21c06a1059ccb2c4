import logging
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from supabase import Client

from ..config import get_settings
from ..dependencies import (
    require_admin,
    require_approved_vendor,
    require_vendor,
    require_vendor_or_admin,
)
from ..schemas.enums import ProductStatus, SortDirection
from ..schemas.product import ProductCreate, ProductDecision, ProductOut, ProductStats, ProductUpdate
from ..supabase_client import get_supabase_client
from ..utils.logging import log_action
from ..utils.queries import apply_search, apply_sort, attach_shop_names, count_by, first
from ..workflow import InvalidTransition, check_product_transition, now_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

SORTABLE = {"created_at", "updated_at", "name", "price", "stock_quantity", "status"}


def _get_product(supabase: Client, product_id: str) -> dict:
    product = first(supabase.table("products").select("*").eq("id", product_id).limit(1).execute())
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _get_owned_product(supabase: Client, user: dict, product_id: str) -> dict:
    product = _get_product(supabase, product_id)
    if user.get("role") == "vendor" and product.get("vendor_id") != user.get("vendor_id"):
        raise HTTPException(status_code=403, detail="You can only manage products from your shop")
    return product


def is_low_stock(product: dict) -> bool:
    return int(product.get("stock_quantity") or 0) <= int(product.get("min_stock_level") or 0)


@router.get("/mine", response_model=list[ProductOut])
def list_my_products(
    status: ProductStatus | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("created_at"),
    direction: SortDirection = Query(SortDirection.DESC),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor),
):
    query = supabase.table("products").select("*").eq("vendor_id", user["vendor_id"])
    if status:
        query = query.eq("status", status.value)
    query = apply_search(query, "name", search)
    query = apply_sort(query, sort_by, direction, SORTABLE)
    return query.execute().data or []


@router.get("/low-stock", response_model=list[ProductOut])
def list_low_stock(supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor)):
    """Products at or below their minimum stock level. PostgREST cannot compare two columns, so filter here."""
    rows = (
        supabase.table("products")
        .select("*")
        .eq("vendor_id", user["vendor_id"])
        .neq("status", ProductStatus.ARCHIVED.value)
        .order("stock_quantity")
        .execute()
        .data
        or []
    )
    return [row for row in rows if is_low_stock(row)]


@router.get("/stats", response_model=ProductStats)
def product_stats(supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    """Admins see the whole catalogue; vendors see their own shop."""
    query = supabase.table("products").select("id, status, stock_quantity, min_stock_level")
    if user.get("role") == "vendor":
        query = query.eq("vendor_id", user["vendor_id"])
    rows = query.execute().data or []
    counts = count_by(rows, "status")
    total = len(rows)
    approved = counts.get("approved", 0)
    return ProductStats(
        total=total,
        approved=approved,
        pending=total - approved,
        awaiting_review=counts.get("pending", 0),
        rejected=counts.get("rejected", 0),
        draft=counts.get("draft", 0),
        archived=counts.get("archived", 0),
        low_stock=sum(1 for row in rows if is_low_stock(row)),
    )


@router.get("", response_model=list[ProductOut])
def list_products(
    status: ProductStatus | None = Query(None),
    vendor_id: str | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("created_at"),
    direction: SortDirection = Query(SortDirection.DESC),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    """Admin moderation queue and catalogue listing."""
    query = supabase.table("products").select("*")
    if status:
        query = query.eq("status", status.value)
    if vendor_id:
        query = query.eq("vendor_id", vendor_id)
    query = apply_search(query, "name", search)
    query = apply_sort(query, sort_by, direction, SORTABLE)
    rows = query.range(offset, offset + limit - 1).execute().data or []
    return attach_shop_names(supabase, rows)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    product = _get_owned_product(supabase, user, product_id)
    return attach_shop_names(supabase, [product])[0]


@router.post("", response_model=ProductOut)
def create_product(
    payload: ProductCreate,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_approved_vendor),
):
    """Create a product in the vendor's shop. It stays out of the catalogue until an admin approves it."""
    product_data = payload.model_dump(exclude={"as_draft"})
    product_data["id"] = str(uuid4())
    product_data["vendor_id"] = user["vendor_id"]
    product_data["status"] = (ProductStatus.DRAFT if payload.as_draft else ProductStatus.PENDING).value

    try:
        response = supabase.table("products").insert(product_data).execute()
    except Exception as exc:
        error_msg = str(exc).lower()
        if "duplicate" in error_msg or "already exists" in error_msg:
            raise HTTPException(status_code=400, detail="A product with this SKU already exists")
        logger.exception("Product insert failed for vendor %s", user["vendor_id"])
        raise HTTPException(status_code=500, detail=f"Failed to create product: {str(exc)}") from exc

    if not response.data:
        raise HTTPException(status_code=500, detail="Failed to create product")

    new_prod = response.data[0]
    log_action(supabase, user, "create_product", "product", new_prod["id"], {"name": new_prod["name"]})
    return new_prod


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_approved_vendor),
):
    """Any edit to a submitted product sends it back to the approval queue."""
    product = _get_owned_product(supabase, user, product_id)
    if product.get("status") == ProductStatus.ARCHIVED.value:
        raise HTTPException(status_code=409, detail="Archived products cannot be edited")

    update_data = payload.model_dump(exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    if product.get("status") != ProductStatus.DRAFT.value:
        update_data["status"] = ProductStatus.PENDING.value
        update_data["approved_at"] = None
        update_data["approved_by"] = None
    update_data["updated_at"] = now_iso()

    response = supabase.table("products").update(update_data).eq("id", product_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Product not found")

    log_action(supabase, user, "update_product", "product", product_id, sorted(update_data))
    return response.data[0]


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor_or_admin),
):
    _get_owned_product(supabase, user, product_id)
    supabase.table("products").delete().eq("id", product_id).execute()
    log_action(supabase, user, "delete_product", "product", product_id)
    return {"status": "deleted", "id": product_id}


def _change_status(supabase: Client, user: dict, product: dict, target: ProductStatus, extra: dict) -> dict:
    try:
        check_product_transition(product.get("status"), target.value)
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    update_data = {"status": target.value, "updated_at": now_iso(), **extra}
    response = supabase.table("products").update(update_data).eq("id", product["id"]).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Product not found")

    log_action(supabase, user, f"set_status_{target.value}", "product", product["id"], extra or None)
    return response.data[0]


@router.post("/{product_id}/submit", response_model=ProductOut)
def submit_product(product_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_approved_vendor)):
    """Moves a draft into the approval queue."""
    product = _get_owned_product(supabase, user, product_id)
    return _change_status(supabase, user, product, ProductStatus.PENDING, {})


@router.post("/{product_id}/approve", response_model=ProductOut)
def approve_product(product_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    product = _get_product(supabase, product_id)
    return _change_status(
        supabase,
        user,
        product,
        ProductStatus.APPROVED,
        {"approved_at": now_iso(), "approved_by": user["id"], "rejection_reason": None},
    )


@router.post("/{product_id}/reject", response_model=ProductOut)
def reject_product(
    product_id: str,
    payload: ProductDecision,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    if not payload.reason:
        raise HTTPException(status_code=400, detail="A rejection reason is required")
    product = _get_product(supabase, product_id)
    return _change_status(supabase, user, product, ProductStatus.REJECTED, {"rejection_reason": payload.reason})


@router.post("/{product_id}/archive", response_model=ProductOut)
def archive_product(product_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    product = _get_owned_product(supabase, user, product_id)
    return _change_status(supabase, user, product, ProductStatus.ARCHIVED, {})


@router.post("/{product_id}/image")
async def upload_product_image(
    product_id: str,
    file: UploadFile,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_approved_vendor),
):
    """Upload a product image. The client attaches the returned URL to the product's images."""
    _get_owned_product(supabase, user, product_id)
    settings = get_settings()
    if not file.filename:
        raise HTTPException(status_code=400, detail="File name missing")

    extension = Path(file.filename).suffix or ".jpg"
    object_key = f"products/{product_id}-{uuid4()}{extension}"
    content = await file.read()

    storage = supabase.storage.from_(settings.PRODUCT_IMAGES_BUCKET)
    try:
        storage.upload(object_key, content, {"content-type": file.content_type or "application/octet-stream"})
    except Exception as exc:
        logger.exception("Upload of %s failed", object_key)
        raise HTTPException(status_code=500, detail="Failed to upload image") from exc

    return {"image_url": storage.get_public_url(object_key), "path": object_key}
