from fastapi import APIRouter, Depends, Query

from ..dependencies import get_current_user_optional
from ..routing import normalize_path, resolve_route
from ..schemas.auth import RouteDecisionOut

router = APIRouter(prefix="/navigation", tags=["navigation"])


@router.get("/resolve", response_model=RouteDecisionOut)
def resolve(
    path: str = Query(..., description="Dashboard path the client wants to open"),
    user=Depends(get_current_user_optional),
):
    """Tells a dashboard client whether to render a path or where to redirect."""
    role = user.get("role") if user else None
    decision = resolve_route(path, role, authenticated=user is not None)
    return {
        "path": normalize_path(path),
        "action": decision.action,
        "target": decision.target,
        "tree": decision.tree,
        "role": role,
    }
