"""
Authentication endpoints.

- Email/Password registration & login
- JWT session management (logout, current user)
"""

from __future__ import annotations

import jwt
import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    create_jwt,
    decode_jwt,
    extract_token,
    generate_csrf_token,
    get_current_user,
    hash_password,
    revoke_jwt,
    verify_password,
)
from app.core.config import CSRF_COOKIE, SESSION_COOKIE, get_settings
from app.core.database import get_session
from app.core.errors import Conflict, Unauthenticated, error_responses
from app.models.user import User
from expensify_shared.schemas.users import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RegisterRequest,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter(responses=error_responses(401, 422))

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


def _issue_session(response: Response, user: User) -> str:
    token, _jti = create_jwt(user.id)
    _set_session_cookies(response, token, generate_csrf_token())
    return token


# ---------------------------------------------------------------------------
# Email/Password
# ---------------------------------------------------------------------------

@router.post(
    "/register", response_model=AuthResponse, status_code=201, responses=error_responses(409)
)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user with email/password and start a session."""
    result = await session.execute(select(User).where(User.email == body.email))
    if result.scalar_one_or_none():
        raise Conflict("Email already registered")

    user = User(
        email=body.email,
        name=body.name,
        password_hash=hash_password(body.password),
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await session.rollback()
        raise Conflict("Email already registered")

    token = _issue_session(response, user)
    log.info("user.registered", user_id=str(user.id), email=body.email)
    return AuthResponse(
        user_id=user.id,
        email=user.email,
        access_token=token,
        message="Registration successful",
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    result = await session.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not user.password_hash:
        log.warning("auth.login_failure", email=body.email, reason="unknown_user")
        raise Unauthenticated("Invalid email or password")

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", email=body.email, reason="bad_password")
        raise Unauthenticated("Invalid email or password")

    token = _issue_session(response, user)
    log.info("auth.login_success", user_id=str(user.id), email=body.email)
    return AuthResponse(
        user_id=user.id,
        email=user.email,
        access_token=token,
        message="Login successful",
    )


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.get("/me", response_model=CurrentUserResponse)
async def me(user: User = Depends(get_current_user)):
    """Return the identity behind the current session."""
    return CurrentUserResponse.model_validate(user)


@router.post("/logout")
async def logout(request: Request, response: Response):
    """Invalidate the current session."""
    token = extract_token(request, request.headers.get("Authorization"))

    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            payload = {}  # Token already invalid, just clear cookies
        jti = payload.get("jti")
        if jti:
            await revoke_jwt(jti)
            log.info("auth.logout", user_id=payload.get("sub"))

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}
