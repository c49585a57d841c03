"""
Error taxonomy and the JSON error envelope.

Every error leaves the API as::

    {"error": {"code": "...", "message": "...", "status": 403}}

which is the same shape the CSRF middleware uses. Request validation
errors additionally carry a ``fields`` list.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from expensify_shared.schemas.common import ErrorCode, ErrorResponse

log = structlog.get_logger()


class AppError(HTTPException):
    """HTTPException with a machine-readable error code."""

    status_code_default: int = 500
    code: ErrorCode

    def __init__(self, message: str, headers: Optional[dict[str, str]] = None):
        super().__init__(status_code=self.status_code_default, detail=message, headers=headers)
        self.message = message


class Unauthenticated(AppError):
    status_code_default = 401
    code = ErrorCode.UNAUTHENTICATED


class AccessDenied(AppError):
    """Authenticated, but holds no membership in the organization."""
    status_code_default = 403
    code = ErrorCode.ACCESS_DENIED


class PermissionDenied(AppError):
    """A member, but the role is not sufficient."""
    status_code_default = 403
    code = ErrorCode.PERMISSION_DENIED


class NotFound(AppError):
    status_code_default = 404
    code = ErrorCode.NOT_FOUND


class BadRequest(AppError):
    status_code_default = 400
    code = ErrorCode.BAD_REQUEST


class Conflict(AppError):
    status_code_default = 409
    code = ErrorCode.CONFLICT


def error_responses(*statuses: int) -> dict:
    """OpenAPI `responses` entries documenting the error envelope."""
    return {status: {"model": ErrorResponse} for status in statuses}


def error_body(code: ErrorCode, message: str, status: int, **extra) -> dict:
    body = {"code": code.value, "message": message, "status": status}
    body.update(extra)
    return {"error": body}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.status_code),
        headers=exc.headers,
    )


# Errors raised by routing itself (unknown path, wrong method)
_ROUTING_CODES = {
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _ROUTING_CODES.get(exc.status_code, ErrorCode.HTTP_ERROR)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail), exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = []
    for err in exc.errors():
        # Drop the "body"/"path"/"query" prefix FastAPI puts in front
        loc = [str(part) for part in err.get("loc", ())[1:]]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "")})
    log.info("request.invalid", path=request.url.path, fields=fields)
    return JSONResponse(
        status_code=422,
        content=error_body(
            ErrorCode.VALIDATION_ERROR, "Invalid request", 422, fields=fields
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
