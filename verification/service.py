"""
verification/service.py -- Lifecycle of one-time verification codes.

Per-email state machine:

    NoRecord --store_verification--> Pending
    Pending  --verify(delete=True)--------------------> NoRecord
    Pending  --verify(delete=False)--> Pending --delete_verification--> NoRecord
    Pending  --verify() after expires_at--------------> NoRecord (VERIFICATION_EXPIRED)
    Pending  --delete_verification--------------------> NoRecord
    any      --store_verification--> Pending (replaces the old code)

Expiry is a read-time check against the injected Clock. There is no sweeper:
an expired row lingers until the next verify() for that email removes it.

The service does not generate codes (verification/codes.py does, called from
api/flows.py) and does not check that the email has an account; the users
foreign key in the store does.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime

from auth.store import UserStore
from core.clock import Clock
from core.errors import DomainError, ErrorKind
from verification.models import VerificationRecord
from verification.store import VerificationStore

logger = logging.getLogger("sso.verification")


class VerificationService:
    def __init__(self, verification_store: VerificationStore, user_store: UserStore, clock: Clock) -> None:
        self._verifications = verification_store
        self._users = user_store
        self._clock = clock

    def store_verification(self, email: str, code: str, expires_at: datetime | None) -> VerificationRecord:
        """Persist code for email until expires_at, superseding any pending code."""
        op = "VerificationService.store_verification"
        logger.info("op=%s email=%s storing verification", op, email)

        if not email:
            logger.error("op=%s empty email", op)
            raise DomainError(ErrorKind.EMPTY_EMAIL, op)
        if not code:
            logger.error("op=%s email=%s empty code", op, email)
            raise DomainError(ErrorKind.EMPTY_CODE, op, email=email)
        if expires_at is None or _is_zero_time(expires_at):
            logger.error("op=%s email=%s empty expires_at", op, email)
            raise DomainError(ErrorKind.EMPTY_EXPIRES_AT, op, email=email)

        try:
            return self._verifications.upsert_verification(email, code, expires_at)
        except DomainError as exc:
            logger.error("op=%s email=%s failed to save verification data: %s", op, email, exc)
            raise

    def verify(self, email: str, code: str, delete_after_attempt: bool) -> str:
        """Match code against the pending record and mark the user verified.

        Returns the verified user's ID as a string.

        Check order matters:
          1. wrong code   -> CODES_DIFFER, record kept so the user can retry
          2. expired      -> record deleted, VERIFICATION_EXPIRED
          3. match        -> user marked verified; record deleted only when
                             delete_after_attempt is True

        The password-reset flow passes delete_after_attempt=False so the proof
        of ownership survives until the password change has succeeded.
        """
        op = "VerificationService.verify"

        if not email:
            logger.error("op=%s empty email", op)
            raise DomainError(ErrorKind.EMPTY_EMAIL, op)
        if not code:
            logger.error("op=%s email=%s empty code", op, email)
            raise DomainError(ErrorKind.EMPTY_CODE, op, email=email)

        record = self._verifications.find_verification(email)

        if not hmac.compare_digest(record.code.encode("utf-8"), code.encode("utf-8")):
            logger.info("op=%s email=%s codes differ", op, email)
            raise DomainError(ErrorKind.CODES_DIFFER, op, email=email)

        if record.expires_at < self._clock.now():
            self._discard_expired(op, email)
            raise DomainError(ErrorKind.VERIFICATION_EXPIRED, op, email=email)

        user_id = self._users.mark_user_verified(email)

        if delete_after_attempt:
            self._verifications.delete_verification(email)

        logger.info("op=%s email=%s user_id=%d verified", op, email, user_id)
        return str(user_id)

    def delete_verification(self, email: str) -> None:
        """Remove the pending record for email. A missing record is not an error."""
        op = "VerificationService.delete_verification"
        logger.info("op=%s email=%s deleting verification", op, email)

        if not email:
            logger.error("op=%s empty email", op)
            raise DomainError(ErrorKind.EMPTY_EMAIL, op)

        if not self._verifications.delete_verification(email):
            logger.debug("op=%s email=%s no pending verification", op, email)

    def _discard_expired(self, op: str, email: str) -> None:
        # Best effort: the caller is told about the expiry either way.
        try:
            self._verifications.delete_verification(email)
        except DomainError as exc:
            logger.warning("op=%s email=%s failed to delete expired verification: %s", op, email, exc)
        else:
            logger.info("op=%s email=%s verification expired and deleted", op, email)


def _is_zero_time(value: datetime) -> bool:
    # datetime.min is the "unset" sentinel, aware or naive.
    return value.replace(tzinfo=None) == datetime.min
