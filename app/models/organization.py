"""Organization model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, max_length=100, index=True)
    description: Optional[str] = Field(default=None, max_length=500)
    # Fixed at creation; the owner always holds an ADMIN membership
    owner_id: uuid.UUID = Field(
        foreign_key="users.id", nullable=False, index=True, ondelete="RESTRICT"
    )
