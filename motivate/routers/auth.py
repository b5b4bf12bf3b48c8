"""Authentication routes delegating to the remote auth platform."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..clients import get_remote_store
from ..clients.remote_store import Identity, RemoteStore
from ..config import get_settings
from ..schemas import AuthResponse, ContinueRequest, IdentityResponse, MessageResponse, ResetRequest
from ..services import (
    AdminPolicy,
    continue_with_email,
    get_admin_policy,
    get_current_identity,
    request_password_reset,
    sign_out,
)
from ..services.auth_service import MISSING_CREDENTIALS, MISSING_RESET_EMAIL, RESET_SENT

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/continue", response_model=AuthResponse)
async def continue_endpoint(
    payload: ContinueRequest,
    store: RemoteStore = Depends(get_remote_store),
    policy: AdminPolicy = Depends(get_admin_policy),
) -> AuthResponse:
    """Sign in, or create the account when the email is unknown."""

    outcome = await continue_with_email(
        store.auth, payload.email.strip(), payload.password, home_path=get_settings().home_path
    )
    if outcome.identity is None:
        code = (
            status.HTTP_422_UNPROCESSABLE_ENTITY
            if outcome.message == MISSING_CREDENTIALS
            else status.HTTP_401_UNAUTHORIZED
        )
        raise HTTPException(status_code=code, detail=outcome.message)

    identity = outcome.identity
    return AuthResponse(
        access_token=identity.id_token or "",
        user_id=identity.uid,
        email=identity.email,
        created=outcome.created,
        redirect_to=outcome.redirect_to,
        is_admin=policy.is_admin(identity),
    )


@router.post("/reset", response_model=MessageResponse)
async def reset_endpoint(
    payload: ResetRequest,
    store: RemoteStore = Depends(get_remote_store),
) -> MessageResponse:
    outcome = await request_password_reset(store.auth, payload.email.strip())
    if outcome.message == MISSING_RESET_EMAIL:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=outcome.message)
    if outcome.message != RESET_SENT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.message)
    return MessageResponse(message=outcome.message)


@router.post("/logout", response_model=MessageResponse)
async def logout_endpoint(store: RemoteStore = Depends(get_remote_store)) -> MessageResponse:
    target = await sign_out(store.auth)
    return MessageResponse(message="Signed out.", redirect_to=target)


@router.get("/me", response_model=IdentityResponse)
async def me_endpoint(
    identity: Identity = Depends(get_current_identity),
    policy: AdminPolicy = Depends(get_admin_policy),
) -> IdentityResponse:
    return IdentityResponse(user_id=identity.uid, email=identity.email, is_admin=policy.is_admin(identity))


__all__ = ["router"]
