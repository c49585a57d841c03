"""
Authentication and Authorization for Expensify.

Supports:
- Email/Password credentials (bcrypt)
- JWT sessions, delivered as a Bearer token or an HttpOnly cookie
- JWT revocation list in Redis
- Per-request membership resolution and role-based authorization dependencies

Roles are never read from the token. Every org-scoped request looks up the
caller's membership row again, so a role change takes effect on the next call.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import SESSION_COOKIE, get_settings
from app.core.database import get_session
from app.core.errors import AccessDenied, NotFound, PermissionDenied, Unauthenticated
from app.core.redis import get_redis, revoked_key
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.user import User
from expensify_shared.schemas.common import MemberRole

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    ttl = ttl_seconds or settings.jwt_expire_minutes * 60
    await redis.setex(revoked_key(jti), ttl, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(revoked_key(jti)) > 0


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

def extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


async def authenticate_token(token: str, session: AsyncSession) -> User:
    """Resolve a session JWT to its user, or raise Unauthenticated."""
    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise Unauthenticated("Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise Unauthenticated("Session has been revoked")

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise Unauthenticated("User not found")
    return user


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Main authentication dependency."""
    token = extract_token(request, authorization)
    if not token:
        raise Unauthenticated("Authentication required")
    user = await authenticate_token(token, session)
    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


# ---------------------------------------------------------------------------
# Access-control resolver
# ---------------------------------------------------------------------------

class OrgContext:
    """Container for an authenticated user + their resolved org membership."""

    def __init__(self, user: User, org: Organization, membership: OrganizationMember):
        self.user = user
        self.org = org
        self.membership = membership
        self.user_id = user.id
        self.org_id = org.id
        self.role = MemberRole(membership.role)

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN


async def resolve_membership(
    organization_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> Optional[OrganizationMember]:
    """Look up the caller's membership row. Not cached across requests."""
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _resolve_org(organization_id: uuid.UUID, session: AsyncSession) -> Organization:
    """Resolve an org by id, raise 404 if it does not exist."""
    result = await session.execute(
        select(Organization).where(Organization.id == organization_id)
    )
    org = result.scalar_one_or_none()
    if not org:
        raise NotFound("Organization not found")
    return org


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

async def require_member(
    organizationId: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OrgContext:
    """Any org member can access this endpoint."""
    org = await _resolve_org(organizationId, session)
    membership = await resolve_membership(org.id, user.id, session)
    if not membership:
        log.info("access.denied", org_id=str(org.id), user_id=str(user.id))
        raise AccessDenied("You do not have access to this organization")
    structlog.contextvars.bind_contextvars(org_id=str(org.id))
    return OrgContext(user=user, org=org, membership=membership)


async def require_admin(
    ctx: OrgContext = Depends(require_member),
) -> OrgContext:
    """Requires the ADMIN role."""
    if ctx.role != MemberRole.ADMIN:
        log.info(
            "access.permission_denied",
            org_id=str(ctx.org_id),
            user_id=str(ctx.user_id),
            role=ctx.role.value,
        )
        raise PermissionDenied("Administrator access required")
    return ctx
