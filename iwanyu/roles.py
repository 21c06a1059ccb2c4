import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from supabase import Client

logger = logging.getLogger(__name__)

VENDOR = "vendor"
ADMIN = "admin"
USER = "user"

ROLE_HOME = {
    VENDOR: "/vendor",
    ADMIN: "/admin",
}


class RoleResolutionError(Exception):
    """Raised when the vendor or profile lookup for an identity fails."""


@dataclass
class ResolvedIdentity:
    user_id: str
    role: str
    profile: Optional[dict] = None
    vendor: Optional[dict] = None
    email: Optional[str] = None

    @property
    def is_active(self) -> bool:
        if self.profile is None:
            return True
        return self.profile.get("is_active", True) is not False

    @property
    def vendor_id(self) -> Optional[str]:
        return self.vendor.get("id") if self.vendor else None

    @property
    def vendor_status(self) -> Optional[str]:
        return self.vendor.get("status") if self.vendor else None


def _first_row(supabase: Client, table: str, column: str, value: str) -> Optional[dict]:
    response = supabase.table(table).select("*").eq(column, value).limit(1).execute()
    if response.data:
        return response.data[0]
    return None


def derive_role(vendor: Optional[dict], profile: Optional[dict]) -> str:
    """A vendor record wins over whatever the profile claims."""
    if vendor:
        return VENDOR
    profile_role = (profile or {}).get("role")
    if profile_role in (ADMIN, VENDOR):
        return profile_role
    return USER


def resolve_role(supabase: Client, user_id: str, email: Optional[str] = None) -> ResolvedIdentity:
    """
    Looks up the vendor record and the profile for an identity concurrently and
    derives a single role from them.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        vendor_future = pool.submit(_first_row, supabase, "vendors", "user_id", user_id)
        profile_future = pool.submit(_first_row, supabase, "profiles", "id", user_id)
        try:
            vendor = vendor_future.result()
            profile = profile_future.result()
        except Exception as exc:
            logger.exception("Role lookup failed for user %s", user_id)
            raise RoleResolutionError(str(exc)) from exc

    role = derive_role(vendor, profile)
    logger.debug("Resolved user %s to role %s", user_id, role)
    return ResolvedIdentity(
        user_id=user_id,
        role=role,
        profile=profile,
        vendor=vendor,
        email=email or (profile or {}).get("email"),
    )
