"""
Organization-related Pydantic schemas shared between server and clients.

Covers: org create request, list/detail responses, membership listing,
member removal and the role-gated navigation model.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import MemberRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    description: Optional[str] = Field(
        None,
        max_length=500,
        description="Free-form description shown on the organization dashboard",
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    member_count: int
    user_role: MemberRole  # the requesting user's role in this org


class OrgListResponse(BaseModel):
    data: list[OrgListItem]


class PublicUser(BaseModel):
    """The public identity of a user, as shown to fellow members."""
    id: uuid.UUID
    name: Optional[str] = None
    email: str

    model_config = {"from_attributes": True}


class OrgDetailResponse(OrgResponse):
    owner: PublicUser
    member_count: int
    user_role: MemberRole


class MemberResponse(BaseModel):
    id: uuid.UUID
    role: MemberRole
    joined_at: datetime
    user: PublicUser


class MemberListResponse(BaseModel):
    data: list[MemberResponse]


class MemberRemovedResponse(BaseModel):
    user_id: uuid.UUID
    organization_id: uuid.UUID


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

class NavigationItem(BaseModel):
    name: str
    href: str
    admin_only: bool = False


class NavigationResponse(BaseModel):
    organization_id: uuid.UUID
    user_role: MemberRole
    items: list[NavigationItem]
