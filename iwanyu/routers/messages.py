import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from ..dependencies import require_admin, require_vendor_or_admin
from ..schemas.message import AnnouncementCreate, AnnouncementResult, MessageCreate, MessageOut, UnreadCount
from ..supabase_client import get_supabase_client
from ..utils.logging import log_action
from ..utils.queries import apply_search, first

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def _default_admin_id(supabase: Client) -> str:
    admin = first(supabase.table("profiles").select("id").eq("role", "admin").eq("is_active", True).limit(1).execute())
    if not admin:
        raise HTTPException(status_code=404, detail="No admin is available to receive messages")
    return admin["id"]


def _inbox_query(supabase: Client, user_id: str, unread_only: bool, announcements_only: bool, search: str | None):
    query = supabase.table("messages").select("*").eq("receiver_id", user_id)
    if unread_only:
        query = query.eq("is_read", False)
    if announcements_only:
        query = query.eq("is_announcement", True)
    return apply_search(query, "message", search)


@router.post("", response_model=MessageOut)
def send_message(
    payload: MessageCreate,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor_or_admin),
):
    """Vendors write to the admins; admins write to a specific vendor."""
    if user["role"] == "vendor":
        receiver_id = payload.receiver_id
        if receiver_id:
            admin = first(
                supabase.table("profiles").select("id").eq("id", receiver_id).eq("role", "admin").limit(1).execute()
            )
            if not admin:
                raise HTTPException(status_code=400, detail="Vendors can only message admins")
        else:
            receiver_id = _default_admin_id(supabase)
        message = {
            "sender_id": user["id"],
            "receiver_id": receiver_id,
            "sender_type": "vendor",
            "receiver_type": "admin",
            "vendor_id": user["vendor_id"],
        }
    else:
        if not payload.receiver_id:
            raise HTTPException(status_code=400, detail="receiver_id is required")
        vendor = first(
            supabase.table("vendors").select("id, user_id").eq("user_id", payload.receiver_id).limit(1).execute()
        )
        if not vendor:
            raise HTTPException(status_code=404, detail="Vendor not found")
        message = {
            "sender_id": user["id"],
            "receiver_id": payload.receiver_id,
            "sender_type": "admin",
            "receiver_type": "vendor",
            "vendor_id": vendor["id"],
        }

    message.update({"message": payload.message, "thread_id": payload.thread_id, "is_read": False, "is_announcement": False})
    try:
        response = supabase.table("messages").insert(message).execute()
    except Exception as exc:
        logger.exception("Message insert failed for sender %s", user["id"])
        raise HTTPException(status_code=500, detail="Failed to send message") from exc
    if not response.data:
        raise HTTPException(status_code=500, detail="Failed to send message")
    return response.data[0]


@router.post("/announcements", response_model=AnnouncementResult)
def send_announcement(
    payload: AnnouncementCreate,
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_admin),
):
    """Broadcasts one announcement message to every registered vendor."""
    vendors = supabase.table("vendors").select("id, user_id").neq("status", "rejected").execute().data or []
    if not vendors:
        return {"recipients": 0}

    rows = [
        {
            "sender_id": user["id"],
            "receiver_id": vendor["user_id"],
            "sender_type": "admin",
            "receiver_type": "vendor",
            "vendor_id": vendor["id"],
            "message": payload.message,
            "is_read": False,
            "is_announcement": True,
        }
        for vendor in vendors
    ]
    try:
        supabase.table("messages").insert(rows).execute()
    except Exception as exc:
        logger.exception("Announcement broadcast failed")
        raise HTTPException(status_code=500, detail="Failed to send announcement") from exc

    log_action(supabase, user, "send_announcement", "message", None, {"recipients": len(rows)})
    return {"recipients": len(rows)}


@router.get("", response_model=list[MessageOut])
def list_messages(
    box: str = Query("inbox", pattern="^(inbox|sent|all)$"),
    unread_only: bool = Query(False),
    announcements_only: bool = Query(False),
    search: str | None = Query(None),
    supabase: Client = Depends(get_supabase_client),
    user=Depends(require_vendor_or_admin),
):
    messages: list[dict] = []
    if box in ("inbox", "all"):
        query = _inbox_query(supabase, user["id"], unread_only, announcements_only, search)
        messages.extend(query.execute().data or [])
    if box in ("sent", "all") and not unread_only:
        query = supabase.table("messages").select("*").eq("sender_id", user["id"])
        if announcements_only:
            query = query.eq("is_announcement", True)
        query = apply_search(query, "message", search)
        seen = {m["id"] for m in messages}
        messages.extend(m for m in query.execute().data or [] if m["id"] not in seen)

    messages.sort(key=lambda m: m.get("created_at") or "", reverse=True)
    return messages


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    rows = (
        supabase.table("messages")
        .select("id, is_announcement")
        .eq("receiver_id", user["id"])
        .eq("is_read", False)
        .execute()
        .data
        or []
    )
    return UnreadCount(unread=len(rows), announcements=sum(1 for r in rows if r.get("is_announcement")))


@router.post("/read-all")
def mark_all_read(supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    response = (
        supabase.table("messages")
        .update({"is_read": True})
        .eq("receiver_id", user["id"])
        .eq("is_read", False)
        .execute()
    )
    return {"updated": len(response.data or [])}


@router.post("/{message_id}/read", response_model=MessageOut)
def mark_read(message_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    message = first(supabase.table("messages").select("*").eq("id", message_id).limit(1).execute())
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.get("receiver_id") != user["id"]:
        raise HTTPException(status_code=403, detail="Only the receiver can mark a message as read")
    response = supabase.table("messages").update({"is_read": True}).eq("id", message_id).execute()
    return response.data[0] if response.data else {**message, "is_read": True}


@router.delete("/{message_id}")
def delete_message(message_id: str, supabase: Client = Depends(get_supabase_client), user=Depends(require_vendor_or_admin)):
    message = first(supabase.table("messages").select("id, sender_id").eq("id", message_id).limit(1).execute())
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.get("sender_id") != user["id"]:
        raise HTTPException(status_code=403, detail="You can only delete messages you sent")
    supabase.table("messages").delete().eq("id", message_id).execute()
    return {"status": "deleted", "id": message_id}
