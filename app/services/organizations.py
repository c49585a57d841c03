"""
Organization service: business logic for org creation, listing and membership.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import and_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import BadRequest, NotFound
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.user import User
from expensify_shared.schemas.common import MemberRole
from expensify_shared.schemas.organizations import OrgCreateRequest

log = structlog.get_logger()


def _member_counts():
    """Subquery: organization_id -> number of membership rows."""
    return (
        select(
            OrganizationMember.organization_id,
            func.count(OrganizationMember.id).label("member_count"),
        )
        .group_by(OrganizationMember.organization_id)
        .subquery()
    )


async def count_members(organization_id: uuid.UUID, session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count(OrganizationMember.id)).where(
            OrganizationMember.organization_id == organization_id
        )
    )
    return result.scalar_one()


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org owned by the creator and make the creator an ADMIN member.

    Both rows are flushed into the caller's unit of work; they are committed
    together or not at all.
    """
    org = Organization(
        name=req.name,
        description=req.description,
        owner_id=creator_id,
    )
    session.add(org)
    await session.flush()

    await _add_owner_membership(org, session)

    log.info("org.created", org_id=str(org.id), owner=str(creator_id))
    return org


async def _add_owner_membership(org: Organization, session: AsyncSession) -> OrganizationMember:
    membership = OrganizationMember(
        user_id=org.owner_id,
        organization_id=org.id,
        role=MemberRole.ADMIN,
    )
    session.add(membership)
    await session.flush()
    return membership


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """List all orgs a user belongs to, with their role and the member count. Newest first."""
    counts = _member_counts()
    result = await session.execute(
        select(Organization, OrganizationMember.role, counts.c.member_count)
        .join(
            OrganizationMember,
            and_(
                OrganizationMember.organization_id == Organization.id,
                OrganizationMember.user_id == user_id,
            ),
        )
        .join(counts, counts.c.organization_id == Organization.id)
        .order_by(Organization.created_at.desc(), Organization.id)
    )
    return [
        {
            "id": org.id,
            "name": org.name,
            "description": org.description,
            "created_at": org.created_at,
            "updated_at": org.updated_at,
            "member_count": member_count,
            "user_role": MemberRole(role),
        }
        for org, role, member_count in result.all()
    ]


async def get_org_detail(
    org: Organization, user_role: MemberRole, session: AsyncSession
) -> dict:
    """Org details with the owner's public identity, member count and the caller's role."""
    result = await session.execute(select(User).where(User.id == org.owner_id))
    owner = result.scalar_one()
    return {
        "id": org.id,
        "name": org.name,
        "description": org.description,
        "owner_id": org.owner_id,
        "created_at": org.created_at,
        "updated_at": org.updated_at,
        "owner": {"id": owner.id, "name": owner.name, "email": owner.email},
        "member_count": await count_members(org.id, session),
        "user_role": user_role,
    }


async def list_members(
    organization_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """All members of an org with their public identity, earliest joiner first."""
    result = await session.execute(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.joined_at.asc(), OrganizationMember.id)
    )
    return [
        {
            "id": member.id,
            "role": MemberRole(member.role),
            "joined_at": member.joined_at,
            "user": {"id": user.id, "name": user.name, "email": user.email},
        }
        for member, user in result.all()
    ]


async def remove_member(
    org: Organization, user_id: uuid.UUID, session: AsyncSession
) -> dict:
    """Remove a user's membership. The owner can never be removed."""
    if org.owner_id == user_id:
        raise BadRequest("Cannot remove the organization owner")

    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == org.id,
            OrganizationMember.user_id == user_id,
        )
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise NotFound("Member not found in this organization")

    removed = {"user_id": membership.user_id, "organization_id": membership.organization_id}
    await session.delete(membership)
    await session.flush()

    log.info("org.member_removed", org_id=str(org.id), user_id=str(user_id))
    return removed
