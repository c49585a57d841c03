"""
Organization API endpoints.

GET    /api/v1/orgs                                   : List orgs for authenticated user
POST   /api/v1/orgs                                   : Create a new org
GET    /api/v1/orgs/{organizationId}                  : Get org details
GET    /api/v1/orgs/{organizationId}/members          : List org members
DELETE /api/v1/orgs/{organizationId}/members/{userId} : Remove a member
GET    /api/v1/orgs/{organizationId}/navigation       : Sections visible to the caller's role
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OrgContext, get_current_user, require_admin, require_member
from app.core.database import get_session
from app.core.errors import error_responses
from app.models.user import User
from app.services import navigation
from app.services import organizations as org_service
from expensify_shared.schemas.organizations import (
    MemberListResponse,
    MemberRemovedResponse,
    MemberResponse,
    NavigationResponse,
    OrgCreateRequest,
    OrgDetailResponse,
    OrgListResponse,
    OrgResponse,
)

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no organizationId in path)
# ---------------------------------------------------------------------------
router_global = APIRouter(responses=error_responses(401, 422))


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to, newest first."""
    items = await org_service.list_user_orgs(user.id, session)
    return OrgListResponse(data=items)


@router_global.post("/orgs", response_model=OrgResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner and an ADMIN."""
    org = await org_service.create_org(body, user.id, session)
    await session.commit()
    return OrgResponse.model_validate(org)


# ---------------------------------------------------------------------------
# Org-scoped routes (organizationId in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter(responses=error_responses(401, 403, 404, 422))


@router_scoped.get("", response_model=OrgDetailResponse, tags=["Organizations"])
async def get_org(
    ctx: OrgContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Get org details, its owner and member count, and the caller's role."""
    detail = await org_service.get_org_detail(ctx.org, ctx.role, session)
    return OrgDetailResponse(**detail)


@router_scoped.get("/members", response_model=MemberListResponse, tags=["Members"])
async def list_members(
    ctx: OrgContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List all members of the org in join order."""
    items = await org_service.list_members(ctx.org_id, session)
    return MemberListResponse(data=[MemberResponse(**item) for item in items])


@router_scoped.delete(
    "/members/{userId}",
    response_model=MemberRemovedResponse,
    responses=error_responses(400),
    tags=["Members"],
)
async def remove_member(
    userId: uuid.UUID,
    ctx: OrgContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member from the org (Admin only). The owner cannot be removed."""
    removed = await org_service.remove_member(ctx.org, userId, session)
    await session.commit()
    return MemberRemovedResponse(**removed)


@router_scoped.get("/navigation", response_model=NavigationResponse, tags=["Organizations"])
async def get_navigation(
    ctx: OrgContext = Depends(require_member),
):
    """Org sections the caller may navigate to; admin-only sections are hidden from members."""
    return NavigationResponse(
        organization_id=ctx.org_id,
        user_role=ctx.role,
        items=navigation.visible_sections(ctx.org_id, ctx.role),
    )
