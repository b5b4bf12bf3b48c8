"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ContinueRequest(BaseModel):
    email: str = ""
    password: str = Field(default="", max_length=128)


class ResetRequest(BaseModel):
    email: str = ""


class AuthResponse(BaseModel):
    access_token: str
    user_id: str
    email: str | None = None
    token_type: str = "bearer"
    created: bool = False
    redirect_to: str | None = None
    is_admin: bool = False


class MessageResponse(BaseModel):
    message: str
    redirect_to: str | None = None


class IdentityResponse(BaseModel):
    user_id: str
    email: str | None = None
    is_admin: bool = False
