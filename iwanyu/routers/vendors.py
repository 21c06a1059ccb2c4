import logging
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from supabase import Client

from ..config import get_settings
from ..dependencies import get_current_user, require_admin, require_vendor
from ..schemas.enums import SortDirection, VendorStatus
from ..schemas.vendor import (
    DocumentUploadOut,
    VendorDecision,
    VendorOut,
    VendorRegistration,
    VendorStats,
    VendorUpdate,
)
from ..supabase_client import get_supabase_client
from ..utils.export import csv_response
from ..utils.logging import log_action
from ..utils.queries import apply_search, apply_sort, count_by, first
from ..workflow import InvalidTransition, check_vendor_transition, now_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vendors", tags=["vendors"])

DOCUMENT_FOLDERS = {
    "shop_logo": "shop-logos",
    "government_id": "government-ids",
}
SIGNED_URL_TTL_SECONDS = 3600

EXPORT_COLUMNS = [
    ("Vendor ID", "id"),
    ("Owner", "full_name"),
    ("Shop", "shop_name"),
    ("Address", "shop_address"),
    ("Status", "status"),
    ("Registered", "created_at"),
    ("Approved", "approved_at"),
]


def _get_vendor(supabase: Client, vendor_id: str) -> dict:
    vendor = first(supabase.table("vendors").select("*").eq("id", vendor_id).limit(1).execute())
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return vendor


@router.post("/register", response_model=VendorOut)
def register_vendor(
    payload: VendorRegistration,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    """Registers a shop for the signed-in identity. New shops wait for admin approval."""
    if user.get("vendor_id"):
        raise HTTPException(status_code=400, detail="A shop is already registered for this account")
    if user.get("role") == "admin":
        raise HTTPException(status_code=400, detail="Admin accounts cannot register a shop")

    vendor_data = payload.model_dump(mode="json")
    vendor_data["user_id"] = user["id"]
    vendor_data["status"] = VendorStatus.PENDING.value

    try:
        response = supabase.table("vendors").insert(vendor_data).execute()
    except Exception as exc:
        if "duplicate" in str(exc).lower():
            raise HTTPException(status_code=400, detail="A shop is already registered for this account")
        logger.exception("Vendor registration failed for user %s", user["id"])
        raise HTTPException(status_code=500, detail="Failed to register vendor") from exc

    if not response.data:
        raise HTTPException(status_code=500, detail="Failed to register vendor")

    vendor = response.data[0]
    log_action(supabase, user, "register_vendor", "vendor", vendor["id"], {"shop_name": vendor["shop_name"]})
    return vendor


@router.post("/documents", response_model=DocumentUploadOut)
async def upload_vendor_document(
    file: UploadFile,
    kind: str = Query(..., pattern="^(shop_logo|government_id)$"),
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    """Uploads a shop logo or a government ID to the vendor documents bucket."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="File name missing")

    settings = get_settings()
    extension = Path(file.filename).suffix or ".jpg"
    object_key = f"{DOCUMENT_FOLDERS[kind]}/{user['id']}-{uuid4()}{extension}"
    content = await file.read()

    storage = supabase.storage.from_(settings.VENDOR_DOCUMENTS_BUCKET)
    try:
        storage.upload(object_key, content, {"content-type": file.content_type or "application/octet-stream"})
    except Exception as exc:
        logger.exception("Upload of %s failed", object_key)
        raise HTTPException(status_code=500, detail="Failed to upload document") from exc

    if kind == "government_id":
        signed = storage.create_signed_url(object_key, SIGNED_URL_TTL_SECONDS)
        url = signed.get("signedURL") or signed.get("signedUrl") or ""
    else:
        url = storage.get_public_url(object_key)

    return {"kind": kind, "path": object_key, "url": url}


@router.get("/me", response_model=VendorOut)
def get_my_vendor(user=Depends(require_vendor), supabase: Client = Depends(get_supabase_client)):
    return _get_vendor(supabase, user["vendor_id"])


@router.patch("/me", response_model=VendorOut)
def update_my_vendor(
    payload: VendorUpdate,
    user=Depends(require_vendor),
    supabase: Client = Depends(get_supabase_client),
):
    """Vendors edit their own shop details; status fields stay admin-controlled."""
    update_data = payload.model_dump(mode="json", exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    update_data["updated_at"] = now_iso()

    response = supabase.table("vendors").update(update_data).eq("id", user["vendor_id"]).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Vendor not found")

    log_action(supabase, user, "update_vendor", "vendor", user["vendor_id"], sorted(update_data))
    return response.data[0]


@router.get("", response_model=list[VendorOut])
def list_vendors(
    status: VendorStatus | None = Query(None),
    search: str | None = Query(None, description="Match against the shop name"),
    sort_by: str = Query("created_at"),
    direction: SortDirection = Query(SortDirection.DESC),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    query = supabase.table("vendors").select("*")
    if status:
        query = query.eq("status", status.value)
    query = apply_search(query, "shop_name", search)
    query = apply_sort(query, sort_by, direction, {"created_at", "shop_name", "status", "approved_at"})
    response = query.range(offset, offset + limit - 1).execute()
    return response.data or []


@router.get("/stats", response_model=VendorStats)
def vendor_stats(supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    rows = supabase.table("vendors").select("id, status").execute().data or []
    counts = count_by(rows, "status")
    return VendorStats(
        total=len(rows),
        pending=counts.get("pending", 0),
        approved=counts.get("approved", 0),
        rejected=counts.get("rejected", 0),
        suspended=counts.get("suspended", 0),
    )


@router.get("/export")
def export_vendors(
    status: VendorStatus | None = Query(None),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    query = supabase.table("vendors").select("*").order("created_at", desc=True)
    if status:
        query = query.eq("status", status.value)
    return csv_response("vendors", EXPORT_COLUMNS, query.execute().data or [])


@router.get("/{vendor_id}", response_model=VendorOut)
def get_vendor(vendor_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    return _get_vendor(supabase, vendor_id)


def _change_status(
    supabase: Client,
    user: dict,
    vendor_id: str,
    target: VendorStatus,
    extra: dict,
    action: str,
) -> dict:
    vendor = _get_vendor(supabase, vendor_id)
    try:
        check_vendor_transition(vendor.get("status"), target.value)
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    update_data = {"status": target.value, "updated_at": now_iso(), **extra}
    response = supabase.table("vendors").update(update_data).eq("id", vendor_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Vendor not found")

    log_action(supabase, user, action, "vendor", vendor_id, {"from": vendor.get("status"), **extra})
    return response.data[0]


@router.post("/{vendor_id}/approve", response_model=VendorOut)
def approve_vendor(vendor_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    return _change_status(
        supabase,
        user,
        vendor_id,
        VendorStatus.APPROVED,
        {"approved_at": now_iso(), "approved_by": user["id"], "rejection_reason": None},
        "approve_vendor",
    )


@router.post("/{vendor_id}/reject", response_model=VendorOut)
def reject_vendor(
    vendor_id: str,
    payload: VendorDecision,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    if not payload.reason:
        raise HTTPException(status_code=400, detail="A rejection reason is required")
    return _change_status(
        supabase, user, vendor_id, VendorStatus.REJECTED, {"rejection_reason": payload.reason}, "reject_vendor"
    )


@router.post("/{vendor_id}/suspend", response_model=VendorOut)
def suspend_vendor(
    vendor_id: str,
    payload: VendorDecision,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    return _change_status(
        supabase, user, vendor_id, VendorStatus.SUSPENDED, {"rejection_reason": payload.reason}, "suspend_vendor"
    )


@router.post("/{vendor_id}/reinstate", response_model=VendorOut)
def reinstate_vendor(vendor_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    vendor = _get_vendor(supabase, vendor_id)
    if vendor.get("status") != VendorStatus.SUSPENDED.value:
        raise HTTPException(status_code=409, detail="Only suspended vendors can be reinstated")
    return _change_status(
        supabase, user, vendor_id, VendorStatus.APPROVED, {"rejection_reason": None}, "reinstate_vendor"
    )
