from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client

from .roles import ADMIN, VENDOR, RoleResolutionError, resolve_role
from .session import SessionClient
from .supabase_client import get_supabase_client

security = HTTPBearer(auto_error=False)


def build_user(supabase: Client, supa_user) -> dict:
    try:
        identity = resolve_role(supabase, supa_user.id, supa_user.email)
    except RoleResolutionError as exc:
        raise HTTPException(status_code=503, detail="Unable to resolve account role. Please try again.") from exc

    profile = identity.profile or {}
    vendor = identity.vendor or {}
    return {
        "id": supa_user.id,
        "email": supa_user.email,
        "phone": profile.get("phone") or supa_user.phone,
        "name": profile.get("full_name") or vendor.get("full_name") or (supa_user.user_metadata or {}).get("full_name") or "",
        "role": identity.role,
        "is_active": identity.is_active,
        "vendor_id": identity.vendor_id,
        "vendor_status": identity.vendor_status,
        "shop_name": vendor.get("shop_name"),
        "created_at": profile.get("created_at") or supa_user.created_at,
    }


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    supabase: Client = Depends(get_supabase_client),
):
    """
    Validates the incoming Supabase access token and returns the user with a resolved role.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    supa_user = SessionClient(supabase).get_user(credentials.credentials)
    if supa_user is None:
        raise HTTPException(status_code=401, detail="Session expired. Please sign in again.")

    user = build_user(supabase, supa_user)
    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return user


def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Security(security),
    supabase: Client = Depends(get_supabase_client),
):
    """
    Returns the user object if authenticated, otherwise returns None.
    Does NOT raise 401.
    """
    if credentials is None:
        return None

    supa_user = SessionClient(supabase).get_user(credentials.credentials)
    if supa_user is None:
        return None
    user = build_user(supabase, supa_user)
    return user if user["is_active"] else None


def require_admin(user=Depends(get_current_user)):
    if user.get("role") != ADMIN:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return user


def _require_shop(user: dict) -> None:
    if not user.get("vendor_id"):
        raise HTTPException(status_code=403, detail="Register a shop first")


def require_vendor(user=Depends(get_current_user)):
    """Vendor role with a registered shop; every vendor query is scoped by its id."""
    if user.get("role") != VENDOR:
        raise HTTPException(status_code=403, detail="Vendor account required")
    _require_shop(user)
    return user


def require_approved_vendor(user=Depends(require_vendor)):
    """Vendors can only sell once an admin has approved their shop."""
    if user.get("vendor_status") != "approved":
        raise HTTPException(
            status_code=403,
            detail=f"Vendor account is {user.get('vendor_status') or 'not registered'}; approval is required",
        )
    return user


def require_vendor_or_admin(user=Depends(get_current_user)):
    if user.get("role") not in (VENDOR, ADMIN):
        raise HTTPException(status_code=403, detail="Vendor or admin privileges required")
    if user["role"] == VENDOR:
        _require_shop(user)
    return user
