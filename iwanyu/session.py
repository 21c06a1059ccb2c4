"""
Thin wrapper over the Supabase auth surface.

Every SDK failure is re-raised as SessionError so routers only have one
exception type to translate into an HTTP response.
"""
import logging
from typing import Any, Callable, Optional

from supabase import Client

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when the auth backend rejects or fails a request."""


class SessionClient:
    def __init__(self, client: Client):
        self.client = client

    def sign_in(self, email: str, password: str):
        try:
            res = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            logger.info("Sign-in failed for %s: %s", email, exc)
            raise SessionError(str(exc)) from exc
        if not res.session or not res.user:
            raise SessionError("Invalid credentials")
        return res

    def sign_up(self, email: str, password: str, metadata: Optional[dict] = None):
        try:
            res = self.client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": metadata or {}},
                }
            )
        except Exception as exc:
            logger.info("Sign-up failed for %s: %s", email, exc)
            raise SessionError(str(exc)) from exc
        if not res.user:
            raise SessionError("Unable to sign up")
        return res

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except Exception as exc:
            raise SessionError(str(exc)) from exc

    def get_session(self):
        try:
            return self.client.auth.get_session()
        except Exception as exc:
            logger.warning("Unable to read current session: %s", exc)
            raise SessionError(str(exc)) from exc

    def get_user(self, access_token: str):
        """Returns the user owning the token, or None when the token is not valid."""
        try:
            res = self.client.auth.get_user(access_token)
        except Exception as exc:
            logger.debug("Token rejected: %s", exc)
            return None
        if not res or not res.user:
            return None
        return res.user

    def request_password_reset(self, email: str, redirect_to: Optional[str] = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            self.client.auth.reset_password_for_email(email, options)
        except Exception as exc:
            logger.warning("Password reset email failed for %s: %s", email, exc)
            raise SessionError(str(exc)) from exc

    def update_password(self, access_token: str, new_password: str) -> Any:
        user = self.get_user(access_token)
        if user is None:
            raise SessionError("Session expired. Please sign in again.")
        try:
            res = self.client.auth.admin.update_user_by_id(user.id, {"password": new_password})
        except Exception as exc:
            raise SessionError(str(exc)) from exc
        return res.user

    def on_auth_state_change(self, callback: Callable[[str, Any], None]):
        """Subscribes to auth events. The returned subscription exposes unsubscribe()."""
        return self.client.auth.on_auth_state_change(callback)
