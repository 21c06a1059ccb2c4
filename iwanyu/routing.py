"""
Role-based route resolution for the dashboards.

Three route trees exist: the public auth pages, the vendor dashboard and the
admin dashboard. A request path is either allowed, redirected, or (while the
auth state is still loading) deferred.
"""
from dataclasses import dataclass
from typing import Optional

from .roles import ADMIN, ROLE_HOME, VENDOR

LOGIN_ROUTE = "/login"
FORBIDDEN_ROUTE = "/403"

PUBLIC_AUTH_ROUTES = frozenset({"/login", "/register", "/forgot-password", "/reset-password"})
STATUS_ROUTES = frozenset({"/401", "/403", "/404"})

VENDOR_ROUTES = frozenset(
    {
        "/vendor",
        "/vendor/products",
        "/vendor/orders",
        "/vendor/payouts",
        "/vendor/reports",
        "/vendor/messages",
        "/vendor/profile",
    }
)

ADMIN_ROUTES = frozenset(
    {
        "/admin",
        "/admin/vendors",
        "/admin/products",
        "/admin/orders",
        "/admin/payouts",
        "/admin/reports",
        "/admin/messages",
        "/admin/settings",
        "/admin/profile",
    }
)

ALLOW = "allow"
REDIRECT = "redirect"
WAIT = "wait"


@dataclass(frozen=True)
class RouteDecision:
    action: str
    target: Optional[str] = None
    tree: str = "unauthenticated"


def normalize_path(path: str) -> str:
    path = (path or "/").split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path or "/"


def _in_tree(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def resolve_route(path: str, role: Optional[str], authenticated: bool, loading: bool = False) -> RouteDecision:
    path = normalize_path(path)

    if loading:
        return RouteDecision(WAIT)

    if not authenticated:
        if path in PUBLIC_AUTH_ROUTES or path in STATUS_ROUTES:
            return RouteDecision(ALLOW, path)
        return RouteDecision(REDIRECT, LOGIN_ROUTE)

    if path in STATUS_ROUTES:
        return RouteDecision(ALLOW, path, tree=role or "unauthenticated")

    if role == VENDOR:
        if _in_tree(path, "/admin"):
            return RouteDecision(REDIRECT, FORBIDDEN_ROUTE, tree=VENDOR)
        if path in VENDOR_ROUTES:
            return RouteDecision(ALLOW, path, tree=VENDOR)
        return RouteDecision(REDIRECT, ROLE_HOME[VENDOR], tree=VENDOR)

    if role == ADMIN:
        if _in_tree(path, "/vendor"):
            return RouteDecision(REDIRECT, FORBIDDEN_ROUTE, tree=ADMIN)
        if path in ADMIN_ROUTES:
            return RouteDecision(ALLOW, path, tree=ADMIN)
        return RouteDecision(REDIRECT, ROLE_HOME[ADMIN], tree=ADMIN)

    # Signed in, but neither a vendor nor an admin.
    if _in_tree(path, "/vendor") or _in_tree(path, "/admin"):
        return RouteDecision(REDIRECT, FORBIDDEN_ROUTE)
    if path in PUBLIC_AUTH_ROUTES:
        return RouteDecision(ALLOW, path)
    return RouteDecision(REDIRECT, LOGIN_ROUTE)


def home_route(role: Optional[str]) -> str:
    return ROLE_HOME.get(role, LOGIN_ROUTE)
