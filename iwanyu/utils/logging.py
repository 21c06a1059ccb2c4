import logging
from typing import Any, Optional

from supabase import Client

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Console logging for the API process; safe to call more than once."""
    root = logging.getLogger()
    if not any(getattr(h, "_iwanyu", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._iwanyu = True
        root.addHandler(handler)
    root.setLevel(level.upper())


def log_action(
    supabase: Client,
    actor: dict,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Any] = None,
) -> None:
    """
    Appends one row to audit_logs. `actor` is the user dict produced by
    get_current_user; its name and role are copied so the trail survives
    later profile edits.
    """
    entry = {
        "user_id": actor.get("id"),
        "user_name": actor.get("name") or actor.get("email"),
        "user_role": actor.get("role"),
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "details": details,
    }
    try:
        supabase.table("audit_logs").insert(entry).execute()
    except Exception:
        # Audit failures never fail the request.
        logger.exception("Audit write failed: %s on %s %s", action, resource_type, resource_id)
