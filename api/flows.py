"""
api/flows.py -- Composite account flows that sequence Auth + Verification + Mail.

AuthService and VerificationService each do one thing. The request-facing
sequences that combine them live here so route handlers stay thin and the
sequencing can be tested without HTTP.

Partial-failure contracts:
  register_and_notify: if storing the code or sending the email fails, the
      user row already exists and stays (unverified). The error still
      propagates. The client recovers with create_verification(), not by
      registering again.
  reset_password: if update_user fails (e.g. PASSWORDS_ARE_EQUAL) the
      verification record is left pending so the client can retry with a
      different password using the same code.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from auth.service import AuthService
from core.clock import Clock
from mail.render import PASSWORD_RESET_SUBJECT, VERIFICATION_SUBJECT, render_verification_email
from mail.sender import EmailSender
from verification.codes import generate_code
from verification.service import VerificationService

logger = logging.getLogger("sso.api.flows")


class AccountFlows:
    def __init__(
        self,
        auth: AuthService,
        verification: VerificationService,
        mailer: EmailSender,
        clock: Clock,
        code_length: int = 6,
        code_ttl: timedelta = timedelta(hours=3),
    ) -> None:
        self.auth = auth
        self.verification = verification
        self._mailer = mailer
        self._clock = clock
        self._code_length = code_length
        self._code_ttl = code_ttl

    def register_and_notify(self, email: str, password: str) -> int:
        """Register a user, then issue and email a confirmation code. Returns the user ID."""
        user_id = self.auth.register_new_user(email, password)
        self._issue_code(email, purpose="verify")
        return user_id

    def create_verification(self, email: str, purpose: str = "verify") -> None:
        """Issue a fresh code for an existing account, superseding any pending one."""
        self._issue_code(email, purpose=purpose)

    def verify_email(self, email: str, code: str) -> str:
        """Confirm email ownership. The code is single-use."""
        return self.verification.verify(email, code, delete_after_attempt=True)

    def reset_password(self, email: str, code: str, new_password: str) -> int:
        """Verify ownership with code, set new_password, then consume the code.

        The record is deleted only after the password change has succeeded.
        """
        self.verification.verify(email, code, delete_after_attempt=False)
        user_id = self.auth.update_user(email, new_password)
        self.verification.delete_verification(email)
        logger.info("email=%s user_id=%d password reset completed", email, user_id)
        return user_id

    def _issue_code(self, email: str, purpose: str) -> None:
        code = generate_code(self._code_length)
        expires_at = self._clock.now() + self._code_ttl
        self.verification.store_verification(email, code, expires_at)

        subject = PASSWORD_RESET_SUBJECT if purpose == "reset" else VERIFICATION_SUBJECT
        hours = int(self._code_ttl.total_seconds() // 3600)
        body = render_verification_email(code, expires_in_hours=hours, purpose=purpose)
        self._mailer.send_email(subject, [email], body)
        logger.info("email=%s purpose=%s verification code sent", email, purpose)
