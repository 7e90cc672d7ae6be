"""
api/routes/v1/auth.py -- Login, registration, verification, and password reset endpoints.

Routes:
  POST /api/v1/auth/login                    -- email/password/app_id -> signed token
  POST /api/v1/auth/register                 -- create user, email a confirmation code
  GET  /api/v1/auth/users/{user_id}/is-admin -- admin flag lookup
  POST /api/v1/auth/verifications            -- issue or re-issue a code
  POST /api/v1/auth/verify-email             -- confirm email with a code (single use)
  POST /api/v1/auth/reset-password           -- code + new password

Every handler is a thin adapter: parse the body, call AccountFlows, wrap the
result. DomainError raised below is turned into a status code by
api/errors.domain_error_handler, so handlers do not catch it.

Handlers are plain `def`: bcrypt and the SQLAlchemy stores are blocking, and
FastAPI runs sync handlers in its threadpool.

Security:
  Login and the two code-consuming endpoints are rate-limited per IP. That is
  the attempt throttle for verification codes.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Request
from fastapi.responses import JSONResponse

from api.flows import AccountFlows
from api.limiter import limiter
from api.models import (
    CreateVerificationRequest,
    CreateVerificationResponse,
    IsAdminResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    ResetPasswordResponse,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from core.config import get_settings

_settings = get_settings()

router = APIRouter()


def _flows(request: Request) -> AccountFlows:
    return request.app.state.flows


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate and return a JWT signed with the requested app's secret.

    Unknown email and wrong password produce the same 401.
    """
    token = _flows(request).auth.login(body.email, body.password, body.app_id)
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an unverified account and email it a confirmation code.

    If the code cannot be stored or sent, the error status is returned but
    the account exists. Clients recover via POST /auth/verifications.
    """
    user_id = _flows(request).register_and_notify(body.email, body.password)
    return RegisterResponse(user_id=user_id)


@router.get("/auth/users/{user_id}/is-admin", response_model=IsAdminResponse)
def is_admin(request: Request, user_id: int = Path(gt=0)) -> IsAdminResponse:
    return IsAdminResponse(is_admin=_flows(request).auth.is_admin(user_id))


@limiter.limit(_settings.verification_rate_limit)
@router.post("/auth/verifications", response_model=CreateVerificationResponse)
def create_verification(request: Request, body: CreateVerificationRequest) -> CreateVerificationResponse:
    """Issue a fresh code for an existing account. Any pending code is replaced."""
    _flows(request).create_verification(body.email, purpose=body.purpose.value)
    return CreateVerificationResponse(success=True)


@limiter.limit(_settings.verification_rate_limit)
@router.post("/auth/verify-email", response_model=VerifyEmailResponse)
def verify_email(request: Request, body: VerifyEmailRequest) -> VerifyEmailResponse:
    result = _flows(request).verify_email(body.email, body.code)
    return VerifyEmailResponse(result=result)


@limiter.limit(_settings.verification_rate_limit)
@router.post("/auth/reset-password", response_model=ResetPasswordResponse)
def reset_password(request: Request, body: ResetPasswordRequest) -> ResetPasswordResponse:
    """Set a new password after proving ownership with a code.

    A rejected password (e.g. equal to the current one) leaves the code valid
    so the client can retry without requesting another.
    """
    user_id = _flows(request).reset_password(body.email, body.code, body.new_password)
    return ResetPasswordResponse(user_id=user_id)
