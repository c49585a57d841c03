"""
Shared fixtures: a throwaway SQLite database per test, the real app wired to it,
Redis replaced by a mock, and helpers to seed users, orgs and memberships.
"""

import os

os.environ.setdefault("EXP_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("EXP_LOG_FORMAT", "console")
os.environ.setdefault("EXP_SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_jwt
from app.core.database import build_engine, get_session
from app.main import app as fastapi_app
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.user import User
from expensify_shared.schemas.common import MemberRole


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """A session for seeding and inspecting data outside of requests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_redis():
    redis = AsyncMock()
    redis.exists = AsyncMock(return_value=0)
    redis.setex = AsyncMock()
    with patch("app.core.auth.get_redis", return_value=redis):
        yield redis


@pytest.fixture
def test_app(session_factory, mock_redis):
    async def _get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = _get_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

class Seeder:
    """Inserts rows directly, bypassing the API."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        # Strictly increasing timestamps so ordering assertions are deterministic
        self._clock += timedelta(minutes=1)
        return self._clock

    async def user(self, name: str = "Test User", email: Optional[str] = None) -> User:
        user = User(name=name, email=email or f"{uuid.uuid4().hex[:10]}@example.com")
        self.session.add(user)
        await self.session.commit()
        return user

    async def org(self, owner: User, name: str = "Test Organization", description=None) -> Organization:
        """An org plus the owner's ADMIN membership, as the create operation leaves it."""
        created = self._tick()
        org = Organization(
            name=name,
            description=description,
            owner_id=owner.id,
            created_at=created,
            updated_at=created,
        )
        self.session.add(org)
        await self.session.flush()
        self.session.add(
            OrganizationMember(
                user_id=owner.id,
                organization_id=org.id,
                role=MemberRole.ADMIN,
                joined_at=created,
            )
        )
        await self.session.commit()
        return org

    async def member(
        self, org: Organization, user: User, role: MemberRole = MemberRole.MEMBER
    ) -> OrganizationMember:
        membership = OrganizationMember(
            user_id=user.id,
            organization_id=org.id,
            role=role,
            joined_at=self._tick(),
        )
        self.session.add(membership)
        await self.session.commit()
        return membership


@pytest.fixture
def seed(db):
    return Seeder(db)


def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_jwt(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
