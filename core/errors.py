"""
core/errors.py -- Closed error taxonomy shared by stores, services, and the API.

Every failure the core can report is a DomainError carrying one ErrorKind plus
the operation that raised it. Stores translate driver exceptions into
DomainError at the boundary (always `raise ... from exc` so the cause is kept);
services re-raise store errors unchanged; only api/ turns kinds into HTTP
status codes.

Layer rule: no imports from api/, auth/, verification/, or mail/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    USER_EXISTS = "user_exists"
    USER_NOT_FOUND = "user_not_found"
    APP_NOT_FOUND = "app_not_found"
    PASSWORDS_ARE_EQUAL = "passwords_are_equal"
    EMPTY_EMAIL = "empty_email"
    EMPTY_PASSWORD = "empty_password"
    PASSWORD_TOO_LONG = "password_too_long"
    EMPTY_CODE = "empty_code"
    EMPTY_EXPIRES_AT = "empty_expires_at"
    VERIFICATION_NOT_FOUND = "verification_not_found"
    VERIFICATION_EXPIRED = "verification_expired"
    CODES_DIFFER = "codes_differ"
    DELIVERY_ERROR = "delivery_error"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class DomainError(Exception):
    """A categorized failure raised by the core.

    Attributes:
        kind:   The ErrorKind -- callers branch on this, never on the message.
        op:     Dotted operation name, e.g. "VerificationService.verify".
        email:  The email the operation was acting on, when there is one.
        detail: Free-form context for logs. Never shown to API clients.
    """

    def __init__(self, kind: ErrorKind, op: str, email: str | None = None, detail: str = "") -> None:
        self.kind = kind
        self.op = op
        self.email = email
        self.detail = detail
        message = f"{op}: {kind.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    def __repr__(self) -> str:
        return f"DomainError(kind={self.kind.value!r}, op={self.op!r}, email={self.email!r})"
