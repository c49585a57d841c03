"""User and session schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class AuthResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    access_token: str
    token_type: str = "bearer"
    message: str


class CurrentUserResponse(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}
