"""
Tests for Authentication and Authorization.

Covers:
- Password hashing
- JWT creation, decoding, revocation
- CSRF middleware and security headers
- Register / login / me / logout endpoints
- Role-based authorization (require_admin) and the error envelope
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import (
    OrgContext,
    create_jwt,
    decode_jwt,
    generate_csrf_token,
    hash_password,
    require_admin,
    verify_password,
)
from app.core.errors import PermissionDenied
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware, SECURITY_HEADERS
from expensify_shared.schemas.common import MemberRole


# ---------------------------------------------------------------------------
# Unit Tests: Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "MySecureP@ssw0rd!"
        hashed = hash_password(password)
        assert hashed != password
        assert verify_password(password, hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("correct-password")
        assert not verify_password("wrong-password", hashed)

    def test_different_hashes_for_same_password(self):
        """bcrypt uses random salt, so hashes differ."""
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2
        assert verify_password("same", h1)
        assert verify_password("same", h2)


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------

class TestJWT:
    def test_create_and_decode(self):
        uid = uuid.uuid4()
        token, jti = create_jwt(uid)
        payload = decode_jwt(token)
        assert payload["sub"] == str(uid)
        assert payload["jti"] == jti

    def test_role_is_not_in_token(self):
        token, _ = create_jwt(uuid.uuid4())
        assert "role" not in decode_jwt(token)

    def test_expired_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4(), expires_delta=timedelta(seconds=-1))
        import jwt as pyjwt
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    def test_tampered_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4())
        tampered = token[:-5] + "XXXXX"
        import jwt as pyjwt
        with pytest.raises(pyjwt.InvalidTokenError):
            decode_jwt(tampered)


class TestCSRFToken:
    def test_generates_unique_tokens(self):
        t1 = generate_csrf_token()
        t2 = generate_csrf_token()
        assert t1 != t2
        assert len(t1) > 20


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value


class TestCSRFMiddleware:
    def _make_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CSRFMiddleware)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        @app.post("/test")
        async def post_test():
            return {"ok": True}

        return app

    def test_get_passes_without_csrf(self):
        client = TestClient(self._make_app())
        resp = client.get("/test")
        assert resp.status_code == 200

    def test_post_with_bearer_skips_csrf(self):
        client = TestClient(self._make_app(), cookies={"exp_session": "some-jwt"})
        resp = client.post("/test", headers={"Authorization": "Bearer some-jwt"})
        assert resp.status_code == 200

    def test_post_without_session_cookie_passes(self):
        client = TestClient(self._make_app())
        resp = client.post("/test")
        assert resp.status_code == 200

    def test_post_with_session_but_no_csrf_fails(self):
        client = TestClient(self._make_app(), cookies={"exp_session": "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "CSRF_VALIDATION_FAILED"

    def test_post_with_matching_csrf_passes(self):
        csrf_token = "test-csrf-token"
        client = TestClient(
            self._make_app(),
            cookies={"exp_session": "some-jwt", "exp_csrf": csrf_token},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": csrf_token})
        assert resp.status_code == 200

    def test_post_with_mismatched_csrf_fails(self):
        client = TestClient(
            self._make_app(),
            cookies={"exp_session": "some-jwt", "exp_csrf": "token-a"},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": "token-b"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Integration Tests: Auth Endpoints
# ---------------------------------------------------------------------------

class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register_then_me(self, client):
        resp = await client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "longenough", "name": "New User"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["email"] == "new@example.com"
        assert any(c.startswith("exp_session=") for c in resp.headers.get_list("set-cookie"))

        me = await client.get(
            "/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["id"] == data["user_id"]
        assert me.json()["name"] == "New User"

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client, seed):
        await seed.user(email="taken@example.com")
        resp = await client.post(
            "/auth/register",
            json={"email": "taken@example.com", "password": "longenough"},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_register_race_on_same_email_is_conflict(self, client, tmp_path):
        """A row committed between the email pre-check and our insert trips the unique index."""
        real_hash = hash_password

        def hash_while_another_request_registers(password):
            conn = sqlite3.connect(tmp_path / "test.db")
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO users (id, email, created_at) VALUES (?, ?, ?)",
                        (uuid.uuid4().hex, "race@example.com", "2026-01-01 00:00:00"),
                    )
            finally:
                conn.close()
            return real_hash(password)

        with patch("app.api.v1.auth.hash_password", hash_while_another_request_registers):
            resp = await client.post(
                "/auth/register", json={"email": "race@example.com", "password": "longenough"}
            )

        assert resp.status_code == 409
        assert resp.json()["error"]["message"] == "Email already registered"

    @pytest.mark.asyncio
    async def test_register_short_password(self, client):
        resp = await client.post(
            "/auth/register", json={"email": "short@example.com", "password": "short"}
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["fields"][0]["field"] == "password"

    @pytest.mark.asyncio
    async def test_login(self, client, seed, db):
        user = await seed.user(email="login@example.com")
        user.password_hash = hash_password("correct-horse")
        db.add(user)
        await db.commit()

        resp = await client.post(
            "/auth/login", json={"email": "login@example.com", "password": "correct-horse"}
        )
        assert resp.status_code == 200
        assert resp.json()["user_id"] == str(user.id)
        assert decode_jwt(resp.json()["access_token"])["sub"] == str(user.id)

    @pytest.mark.asyncio
    async def test_login_bad_password(self, client, seed, db):
        user = await seed.user(email="login@example.com")
        user.password_hash = hash_password("correct-horse")
        db.add(user)
        await db.commit()

        resp = await client.post(
            "/auth/login", json={"email": "login@example.com", "password": "wrong-horse"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHENTICATED"

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, client):
        resp = await client.post(
            "/auth/login", json={"email": "nobody@example.com", "password": "whatever1"}
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, client, seed, mock_redis, headers_for):
        user = await seed.user()
        headers = headers_for(user)
        jti = decode_jwt(headers["Authorization"][7:])["jti"]

        resp = await client.post("/auth/logout", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logged out"
        mock_redis.setex.assert_awaited_once()
        assert mock_redis.setex.await_args.args[0] == f"jwt:revoked:{jti}"

    @pytest.mark.asyncio
    async def test_revoked_token_is_unauthenticated(self, client, seed, mock_redis, headers_for):
        user = await seed.user()
        mock_redis.exists.return_value = 1
        resp = await client.get("/api/v1/orgs", headers=headers_for(user))
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Session has been revoked"

    @pytest.mark.asyncio
    async def test_garbage_token_is_unauthenticated(self, client):
        resp = await client.get("/api/v1/orgs", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_deleted_user_is_unauthenticated(self, client):
        token, _ = create_jwt(uuid.uuid4())
        resp = await client.get("/api/v1/orgs", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_session_cookie_authenticates(self, client, seed):
        user = await seed.user()
        token, _ = create_jwt(user.id)
        client.cookies.set("exp_session", token)
        resp = await client.get("/api/v1/orgs")
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Unit Tests: Role-based auth
# ---------------------------------------------------------------------------

class TestAuthorizationMatrix:
    """Verify that require_admin enforces the ADMIN role on a resolved membership."""

    def _ctx(self, role: MemberRole) -> OrgContext:
        user = MagicMock()
        user.id = uuid.uuid4()
        org = MagicMock()
        org.id = uuid.uuid4()
        membership = MagicMock()
        membership.role = role
        return OrgContext(user=user, org=org, membership=membership)

    @pytest.mark.asyncio
    async def test_admin_allows_admin(self):
        ctx = self._ctx(MemberRole.ADMIN)
        assert ctx.is_admin
        assert await require_admin(ctx) is ctx

    @pytest.mark.asyncio
    async def test_admin_rejects_member(self):
        ctx = self._ctx(MemberRole.MEMBER)
        with pytest.raises(PermissionDenied) as exc_info:
            await require_admin(ctx)
        assert exc_info.value.status_code == 403
        assert exc_info.value.code.value == "PERMISSION_DENIED"


# ---------------------------------------------------------------------------
# Unit Tests: JWT Revocation (mocked Redis)
# ---------------------------------------------------------------------------

class TestJWTRevocation:
    @pytest.mark.asyncio
    async def test_revoke_and_check(self):
        mock_redis = AsyncMock()
        mock_redis.setex = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=1)

        with patch("app.core.auth.get_redis", return_value=mock_redis):
            from app.core.auth import revoke_jwt, is_jwt_revoked

            await revoke_jwt("test-jti-123", ttl_seconds=3600)
            mock_redis.setex.assert_called_once_with("jwt:revoked:test-jti-123", 3600, "1")

            result = await is_jwt_revoked("test-jti-123")
            assert result is True

    @pytest.mark.asyncio
    async def test_non_revoked_jwt(self):
        mock_redis = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=0)

        with patch("app.core.auth.get_redis", return_value=mock_redis):
            from app.core.auth import is_jwt_revoked
            result = await is_jwt_revoked("non-existent-jti")
            assert result is False
