"""Email/password flows and request-level identity resolution."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..clients import get_remote_store
from ..clients.remote_store import AuthClient, AuthError, Identity, RemoteStore, act_as
from ..config import get_settings
from .session_guard import AdminPolicy

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)

MISSING_CREDENTIALS = "Enter your email and password to continue."
MISSING_RESET_EMAIL = "Enter your email to reset."
RESET_SENT = "Password reset sent."
USER_NOT_FOUND = "auth/user-not-found"


@dataclass(frozen=True)
class AuthOutcome:
    identity: Identity | None = None
    message: str = ""
    created: bool = False
    redirect_to: str | None = None

    @property
    def ok(self) -> bool:
        return self.identity is not None


async def continue_with_email(
    auth: AuthClient,
    email: str | None,
    password: str | None,
    *,
    home_path: str | None = None,
) -> AuthOutcome:
    """Sign in, creating the account only when the platform reports no such user."""

    if not email or not password:
        return AuthOutcome(message=MISSING_CREDENTIALS)

    try:
        identity = await auth.sign_in(email, password)
    except AuthError as exc:
        if exc.code != USER_NOT_FOUND:
            return AuthOutcome(message=exc.message)
        try:
            identity = await auth.sign_up(email, password)
        except AuthError as create_exc:
            return AuthOutcome(message=create_exc.message)
        logger.info("Created account %s", identity.uid)
        return AuthOutcome(identity=identity, created=True, redirect_to=home_path)

    return AuthOutcome(identity=identity, redirect_to=home_path)


async def request_password_reset(auth: AuthClient, email: str | None) -> AuthOutcome:
    if not email:
        return AuthOutcome(message=MISSING_RESET_EMAIL)
    try:
        await auth.send_password_reset(email)
    except AuthError as exc:
        return AuthOutcome(message=exc.message)
    return AuthOutcome(message=RESET_SENT)


async def sign_out(auth: AuthClient, *, sign_in_path: str | None = None) -> str:
    """Sign out and return where to navigate; navigation happens even if sign-out fails."""

    target = sign_in_path or get_settings().sign_in_path
    try:
        await auth.sign_out()
    except AuthError as exc:
        logger.warning("Sign-out failed: %s", exc.describe())
    return target


@lru_cache(maxsize=1)
def get_admin_policy() -> AdminPolicy:
    settings = get_settings()
    return AdminPolicy.from_values(settings.admin_emails, settings.admin_uids)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    store: RemoteStore = Depends(get_remote_store),
) -> Identity:
    """Resolve the caller from a bearer ID token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        identity = await store.auth.verify_token(credentials.credentials)
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    # Remote writes for this request carry the caller's own token.
    act_as(identity)
    return identity


async def require_admin(
    identity: Identity = Depends(get_current_identity),
    policy: AdminPolicy = Depends(get_admin_policy),
) -> Identity:
    if not policy.is_admin(identity):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only.")
    return identity


__all__ = [
    "AuthOutcome",
    "MISSING_CREDENTIALS",
    "MISSING_RESET_EMAIL",
    "RESET_SENT",
    "continue_with_email",
    "request_password_reset",
    "sign_out",
    "get_admin_policy",
    "get_current_identity",
    "require_admin",
]
