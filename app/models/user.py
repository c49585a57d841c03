"""User model."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .base import UUIDMixin, timestamp_field


class User(UUIDMixin, SQLModel, table=True):
    __tablename__ = "users"

    name: Optional[str] = None
    email: str = Field(unique=True, index=True, nullable=False)
    password_hash: Optional[str] = Field(default=None)  # bcrypt hash for email/password login
    created_at: datetime = timestamp_field()
