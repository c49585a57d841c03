"""Organization membership (join table)."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from expensify_shared.schemas.common import MemberRole

from .base import UUIDMixin, timestamp_field


class OrganizationMember(UUIDMixin, SQLModel, table=True):
    __tablename__ = "organization_members"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "organization_id", name="uq_member_user_org"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, ondelete="CASCADE")
    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id", nullable=False, index=True, ondelete="CASCADE"
    )
    role: MemberRole = Field(
        default=MemberRole.MEMBER,
        sa_type=sa.Enum(MemberRole, name="member_role"),
        nullable=False,
    )
    joined_at: datetime = timestamp_field()
