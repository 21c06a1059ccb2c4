from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials
from supabase import Client

from ..config import get_settings
from ..dependencies import build_user, get_current_user, security
from ..routing import home_route
from ..schemas.auth import (
    AccountProfile,
    AuthSession,
    AuthUser,
    LoginPayload,
    PasswordResetPayload,
    PasswordUpdatePayload,
    ProfileUpdate,
    SignupPayload,
)
from ..session import SessionClient, SessionError
from ..supabase_client import get_supabase_anon_client, get_supabase_client
from ..utils.queries import first
from ..workflow import now_iso

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_user(user: dict) -> dict:
    return {**user, "home": home_route(user.get("role"))}


@router.post("/login", response_model=AuthSession)
def login(
    payload: LoginPayload,
    anon: Client = Depends(get_supabase_anon_client),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        res = SessionClient(anon).sign_in(payload.email, payload.password)
    except SessionError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user = build_user(supabase, res.user)
    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    return {
        "access_token": res.session.access_token,
        "refresh_token": res.session.refresh_token,
        "user": _auth_user(user),
    }


@router.post("/signup", response_model=AuthSession)
def signup(
    payload: SignupPayload,
    anon: Client = Depends(get_supabase_anon_client),
    supabase: Client = Depends(get_supabase_client),
):
    """
    Creates the auth identity and its profile row. Registering a shop
    (POST /vendors/register) afterwards is what makes the account a vendor.
    """
    try:
        res = SessionClient(anon).sign_up(
            payload.email,
            payload.password,
            {"full_name": payload.full_name, "phone": payload.phone},
        )
    except SessionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    supabase.table("profiles").upsert(
        {
            "id": res.user.id,
            "email": payload.email,
            "full_name": payload.full_name,
            "phone": payload.phone,
            "is_active": True,
        }
    ).execute()

    return {
        "access_token": res.session.access_token if res.session else "",
        "refresh_token": res.session.refresh_token if res.session else None,
        "user": _auth_user(build_user(supabase, res.user)),
    }


@router.post("/logout")
def logout(
    credentials: HTTPAuthorizationCredentials | None = Security(security),
    supabase: Client = Depends(get_supabase_client),
):
    """Revokes the refresh tokens of the presented session."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    try:
        supabase.auth.admin.sign_out(credentials.credentials)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=f"Unable to sign out: {exc}") from exc
    return {"status": "signed_out"}


@router.get("/me", response_model=AuthUser)
def me(user=Depends(get_current_user)):
    return _auth_user(user)


@router.post("/password/reset")
def request_password_reset(
    payload: PasswordResetPayload,
    anon: Client = Depends(get_supabase_anon_client),
):
    redirect_to = payload.redirect_to or get_settings().PASSWORD_RESET_REDIRECT_URL
    try:
        SessionClient(anon).request_password_reset(payload.email, redirect_to)
    except SessionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "sent"}


@router.post("/password/update")
def update_password(
    payload: PasswordUpdatePayload,
    credentials: HTTPAuthorizationCredentials | None = Security(security),
    supabase: Client = Depends(get_supabase_client),
):
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    try:
        SessionClient(supabase).update_password(credentials.credentials, payload.new_password)
    except SessionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "updated"}


def _account_profile(supabase: Client, user: dict) -> dict:
    profile = first(supabase.table("profiles").select("*").eq("id", user["id"]).limit(1).execute()) or {}
    account = {
        "id": user["id"],
        "email": user.get("email"),
        "full_name": profile.get("full_name") or user.get("name") or None,
        "phone": profile.get("phone") or user.get("phone"),
        "avatar_url": profile.get("avatar_url"),
        "is_active": user["is_active"],
        "role": user["role"],
    }
    if user["role"] == "vendor":
        account.update(
            vendor_id=user["vendor_id"],
            vendor_status=user["vendor_status"],
            shop_name=user.get("shop_name"),
        )
    return account


@router.get("/profile", response_model=AccountProfile)
def get_profile(user=Depends(get_current_user), supabase: Client = Depends(get_supabase_client)):
    """The signed-in account; vendor accounts also carry their shop and its approval status."""
    return _account_profile(supabase, user)


@router.patch("/profile", response_model=AccountProfile)
def update_profile(
    payload: ProfileUpdate,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    update_data = payload.model_dump(exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    supabase.table("profiles").upsert(
        {"id": user["id"], "email": user.get("email"), **update_data, "updated_at": now_iso()}
    ).execute()
    return _account_profile(supabase, user)
