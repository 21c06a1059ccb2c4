from fastapi import APIRouter, Depends, Query
from supabase import Client

from ..dependencies import require_admin
from ..schemas.audit import AuditLogOut, AuditResource
from ..supabase_client import get_supabase_client

router = APIRouter(prefix="/audit", tags=["audit"], dependencies=[Depends(require_admin)])


@router.get("/logs", response_model=list[AuditLogOut])
def list_audit_logs(
    resource_type: AuditResource | None = Query(None),
    resource_id: str | None = Query(None),
    action: str | None = Query(None, description="e.g. approve_vendor, mark_payout_paid"),
    user_id: str | None = Query(None, description="Who performed the action"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    supabase: Client = Depends(get_supabase_client),
):
    """Admin activity trail: vendor approvals, product moderation, payout processing."""
    query = supabase.table("audit_logs").select("*")
    filters = {
        "resource_type": resource_type.value if resource_type else None,
        "resource_id": resource_id,
        "action": action,
        "user_id": user_id,
    }
    for column, value in filters.items():
        if value:
            query = query.eq(column, value)

    rows = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute().data
    return rows or []
