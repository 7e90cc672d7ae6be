"""
API request and response models for the SSO REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
verification/models.py, which own the domain representation.

Presence checks (min_length=1) happen here first so an empty field is a 422
before any service runs. The services re-validate anyway, since they are
also called from main.py and tests.

Whitespace: email and code are stripped. Passwords are taken byte-for-byte;
"  p1  " and "p1" are different passwords.
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from auth.tokens import PASSWORD_MAX_BYTES

EmailField = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
CodeField = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10)]
PasswordField = Annotated[str, Field(min_length=1)]


def _check_password_bytes(value: str) -> str:
    # bcrypt's limit is 72 bytes, not characters. "é" * 40 is 80 bytes.
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CodePurposeEnum(str, Enum):
    verify = "verify"
    reset = "reset"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailField
    password: PasswordField
    app_id: int = Field(gt=0)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class RegisterRequest(BaseModel):
    email: EmailField
    password: PasswordField

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class CreateVerificationRequest(BaseModel):
    """Request body for POST /api/v1/auth/verifications (issue or re-issue a code)."""

    email: EmailField
    purpose: CodePurposeEnum = CodePurposeEnum.verify


class VerifyEmailRequest(BaseModel):
    email: EmailField
    code: CodeField


class ResetPasswordRequest(BaseModel):
    email: EmailField
    code: CodeField
    new_password: PasswordField

    @field_validator("new_password")
    @classmethod
    def new_password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int


class IsAdminResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_admin: bool


class CreateVerificationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool


class VerifyEmailResponse(BaseModel):
    """result is the verified user's ID, as a string."""

    model_config = ConfigDict(frozen=True)

    result: str


class ResetPasswordResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int


class ErrorDetail(BaseModel):
    """Structured error body. code is machine-readable, message is for humans."""

    code: str
    message: str
    detail: str | None = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every exception handler."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
