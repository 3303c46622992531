from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


# Request schemas
class LoginRequest(BaseModel):
    # Format is checked in the route so every failure can share one message
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)


class MagicLinkRequest(BaseModel):
    email: str = Field(..., max_length=255)


# Session
class AdminSession(BaseModel):
    """An authenticated admin session as issued by the credential store."""

    user_id: UUID
    email: str
    access_token: str
    refresh_token: Optional[str] = None  # Only known right after sign-in or refresh
    expires_at: datetime


# Response schemas
class AdminUserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    """Returned after sign-in or refresh. Tokens travel in cookies only."""

    user_id: UUID
    email: str
    expires_at: datetime


class LoginStatusResponse(BaseModel):
    authenticated: bool
    email: Optional[str] = None
    redirect: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
