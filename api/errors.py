"""
api/errors.py -- Translation from DomainError kinds to HTTP responses.

This is the only place that knows about status codes for domain failures.
Services and stores raise DomainError; api/main.py registers
domain_error_handler for it.

Messages are fixed per kind. exc.detail is logged, never returned, since it
can contain driver output.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse
from core.errors import DomainError, ErrorKind

logger = logging.getLogger("sso.api")

# kind -> (status, client message)
_STATUS: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.EMPTY_EMAIL: (400, "email is required"),
    ErrorKind.EMPTY_PASSWORD: (400, "password is required"),
    ErrorKind.PASSWORD_TOO_LONG: (400, "password must be at most 72 bytes"),
    ErrorKind.EMPTY_CODE: (400, "code is required"),
    ErrorKind.EMPTY_EXPIRES_AT: (400, "expiry is required"),
    ErrorKind.INVALID_CREDENTIALS: (401, "invalid email or password"),
    ErrorKind.USER_NOT_FOUND: (404, "user not found"),
    ErrorKind.APP_NOT_FOUND: (404, "app not found"),
    ErrorKind.VERIFICATION_NOT_FOUND: (404, "verification not found"),
    ErrorKind.USER_EXISTS: (409, "user already exists"),
    ErrorKind.PASSWORDS_ARE_EQUAL: (400, "new password must differ from the current one"),
    ErrorKind.CODES_DIFFER: (400, "verification code does not match"),
    ErrorKind.VERIFICATION_EXPIRED: (410, "verification expired"),
    ErrorKind.DELIVERY_ERROR: (502, "failed to send email"),
    ErrorKind.CANCELLED: (503, "request cancelled"),
    ErrorKind.INTERNAL: (500, "internal error"),
}


def status_for(kind: ErrorKind) -> tuple[int, str]:
    return _STATUS.get(kind, _STATUS[ErrorKind.INTERNAL])


def domain_error_response(exc: DomainError) -> JSONResponse:
    status, message = status_for(exc.kind)
    if status >= 500:
        logger.error("%s", exc, exc_info=exc)
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=exc.kind.value, message=message)).model_dump(),
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """FastAPI exception handler for DomainError raised anywhere below a route."""
    response = domain_error_response(exc)
    if request.url.path.endswith("/auth/login"):
        response.headers["Cache-Control"] = "no-store"
    return response
