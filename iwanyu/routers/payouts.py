import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from ..config import get_settings
from ..dependencies import require_admin, require_approved_vendor, require_vendor
from ..schemas.enums import PaymentStatus, PayoutStatus, SortDirection
from ..schemas.payout import (
    PayoutBalance,
    PayoutMarkPaid,
    PayoutOut,
    PayoutReject,
    PayoutRequest,
    PayoutStats,
)
from ..supabase_client import get_supabase_client
from ..utils.export import csv_response
from ..utils.logging import log_action
from ..utils.queries import apply_sort, attach_shop_names, count_by, first
from ..workflow import (
    InsufficientBalance,
    InvalidTransition,
    check_payout_amount,
    check_payout_transition,
    compute_balance,
    now_iso,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payouts", tags=["payouts"])

SORTABLE = {"created_at", "amount", "status"}

EXPORT_COLUMNS = [
    ("Payout ID", "id"),
    ("Vendor", "shop_name"),
    ("Amount", "amount"),
    ("Status", "status"),
    ("Payment Method", "payment_method"),
    ("Reference", "reference_number"),
    ("Created Date", "created_at"),
    ("Paid Date", "paid_at"),
]


def vendor_balance(supabase: Client, vendor_id: str) -> dict:
    paid_orders = (
        supabase.table("orders")
        .select("total_amount")
        .eq("vendor_id", vendor_id)
        .eq("payment_status", PaymentStatus.PAID.value)
        .execute()
        .data
        or []
    )
    payouts = supabase.table("payouts").select("amount, status").eq("vendor_id", vendor_id).execute().data or []
    return compute_balance(paid_orders, payouts)


@router.get("/balance", response_model=PayoutBalance)
def get_balance(supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor)):
    return PayoutBalance(currency=get_settings().CURRENCY, **vendor_balance(supabase, user["vendor_id"]))


@router.post("", response_model=PayoutOut)
def request_payout(
    payload: PayoutRequest,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_approved_vendor),
):
    balance = vendor_balance(supabase, user["vendor_id"])
    try:
        check_payout_amount(payload.amount, balance["available_balance"])
    except InsufficientBalance as exc:
        raise HTTPException(status_code=400, detail="Amount exceeds available balance") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    details = payload.payment_details.model_dump()
    payout_data = {
        "vendor_id": user["vendor_id"],
        "amount": payload.amount,
        "status": PayoutStatus.PENDING.value,
        "payment_method": details.pop("method"),
        "payment_details": details,
        "notes": payload.notes,
    }
    try:
        response = supabase.table("payouts").insert(payout_data).execute()
    except Exception as exc:
        logger.exception("Payout request failed for vendor %s", user["vendor_id"])
        raise HTTPException(status_code=500, detail="Failed to submit payout request") from exc
    if not response.data:
        raise HTTPException(status_code=500, detail="Failed to submit payout request")

    payout = response.data[0]
    log_action(supabase, user, "request_payout", "payout", payout["id"], {"amount": payload.amount})
    return payout


@router.get("/mine", response_model=list[PayoutOut])
def list_my_payouts(
    status: PayoutStatus | None = Query(None),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor),
):
    query = supabase.table("payouts").select("*").eq("vendor_id", user["vendor_id"]).order("created_at", desc=True)
    if status:
        query = query.eq("status", status.value)
    return query.execute().data or []


@router.get("/stats", response_model=PayoutStats)
def payout_stats(supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    rows = supabase.table("payouts").select("id, amount, status").execute().data or []
    counts = count_by(rows, "status")
    return PayoutStats(
        total=len(rows),
        pending=counts.get("pending", 0),
        approved=counts.get("approved", 0),
        rejected=counts.get("rejected", 0),
        paid=counts.get("paid", 0),
        total_amount=round(sum(float(r.get("amount") or 0) for r in rows), 2),
        pending_amount=round(sum(float(r.get("amount") or 0) for r in rows if r.get("status") == "pending"), 2),
    )


@router.get("/export")
def export_payouts(
    status: PayoutStatus | None = Query(None),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    query = supabase.table("payouts").select("*").order("created_at", desc=True)
    if status:
        query = query.eq("status", status.value)
    rows = attach_shop_names(supabase, query.execute().data or [])
    return csv_response("payouts", EXPORT_COLUMNS, rows)


@router.get("", response_model=list[PayoutOut])
def list_payouts(
    status: PayoutStatus | None = Query(None),
    vendor_id: str | None = Query(None),
    sort_by: str = Query("created_at"),
    direction: SortDirection = Query(SortDirection.DESC),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    query = supabase.table("payouts").select("*")
    if status:
        query = query.eq("status", status.value)
    if vendor_id:
        query = query.eq("vendor_id", vendor_id)
    query = apply_sort(query, sort_by, direction, SORTABLE)
    return attach_shop_names(supabase, query.execute().data or [])


def _process(supabase: Client, user: dict, payout_id: str, target: PayoutStatus, extra: dict, action: str) -> dict:
    payout = first(supabase.table("payouts").select("*").eq("id", payout_id).limit(1).execute())
    if not payout:
        raise HTTPException(status_code=404, detail="Payout not found")
    try:
        check_payout_transition(payout.get("status"), target.value)
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    update_data = {"status": target.value, "updated_at": now_iso(), **extra}
    response = supabase.table("payouts").update(update_data).eq("id", payout_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Payout not found")

    log_action(supabase, user, action, "payout", payout_id, {"amount": payout.get("amount"), **extra})
    return response.data[0]


@router.post("/{payout_id}/approve", response_model=PayoutOut)
def approve_payout(payout_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_admin)):
    return _process(
        supabase,
        user,
        payout_id,
        PayoutStatus.APPROVED,
        {"approved_at": now_iso(), "approved_by": user["id"]},
        "approve_payout",
    )


@router.post("/{payout_id}/reject", response_model=PayoutOut)
def reject_payout(
    payout_id: str,
    payload: PayoutReject,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    return _process(
        supabase,
        user,
        payout_id,
        PayoutStatus.REJECTED,
        {"rejection_reason": payload.notes, "notes": payload.notes},
        "reject_payout",
    )


@router.post("/{payout_id}/mark-paid", response_model=PayoutOut)
def mark_payout_paid(
    payout_id: str,
    payload: PayoutMarkPaid,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    extra = {"paid_at": now_iso()}
    if payload.reference_number:
        extra["reference_number"] = payload.reference_number
    if payload.notes:
        extra["notes"] = payload.notes
    return _process(supabase, user, payout_id, PayoutStatus.PAID, extra, "mark_payout_paid")
