"""
auth/service.py -- Credential validation, token issuance, and password updates.

AuthService answers "is this login valid" and "may this password be changed".
It owns no state: the UserStore, the Clock, and the token TTL are handed in
by whoever builds it (api/main.py lifespan, or a test).

Error policy:
  - Store errors are re-raised unchanged; they already carry a kind and op.
  - login() collapses "no such user" and "wrong password" into
    INVALID_CREDENTIALS so callers cannot enumerate accounts.
  - update_user() does not check verification codes. Callers must confirm
    ownership first (see api/flows.py reset_password).

Layer rule: no imports from api/, verification/, or mail/.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from auth.store import UserStore
from auth.tokens import DUMMY_HASH, PASSWORD_MAX_BYTES, create_access_token, hash_password, verify_password
from core.clock import Clock
from core.errors import DomainError, ErrorKind

logger = logging.getLogger("sso.auth")


class AuthService:
    def __init__(self, user_store: UserStore, clock: Clock, token_ttl: timedelta) -> None:
        self._users = user_store
        self._clock = clock
        self._token_ttl = token_ttl

    def login(self, email: str, password: str, app_id: int) -> str:
        """Check email/password and return a JWT signed with the app's secret.

        bcrypt runs whether or not the email exists: an unknown email is
        checked against DUMMY_HASH so both failure paths cost the same.
        """
        op = "AuthService.login"
        logger.info("op=%s email=%s app_id=%s attempting to login user", op, email, app_id)

        try:
            user = self._users.find_user_by_email(email)
        except DomainError as exc:
            if exc.kind is not ErrorKind.USER_NOT_FOUND:
                raise
            verify_password(password, DUMMY_HASH)
            logger.warning("op=%s email=%s user not found", op, email)
            raise DomainError(ErrorKind.INVALID_CREDENTIALS, op, email=email) from exc

        if not verify_password(password, user.password_hash):
            logger.info("op=%s email=%s invalid credentials", op, email)
            raise DomainError(ErrorKind.INVALID_CREDENTIALS, op, email=email)

        app = self._users.find_app_by_id(app_id)
        token = create_access_token(user, app, self._clock.now() + self._token_ttl)

        logger.info("op=%s email=%s user logged in successfully", op, email)
        return token

    def register_new_user(self, email: str, password: str) -> int:
        """Create an unverified user and return its ID.

        Does not issue a verification code; api/flows.py sequences that so a
        failed code send can be retried without re-registering.
        """
        op = "AuthService.register_new_user"
        if not email:
            raise DomainError(ErrorKind.EMPTY_EMAIL, op)
        if not password:
            raise DomainError(ErrorKind.EMPTY_PASSWORD, op, email=email)
        _check_password_length(op, email, password)

        logger.info("op=%s email=%s registering user", op, email)
        user_id = self._users.insert_user(email, hash_password(password))
        logger.info("op=%s email=%s user_id=%d user registered", op, email, user_id)
        return user_id

    def is_admin(self, user_id: int) -> bool:
        user = self._users.find_user_by_id(user_id)
        logger.info("op=AuthService.is_admin user_id=%d is_admin=%s", user_id, user.is_admin)
        return user.is_admin

    def update_user(self, email: str, new_password: str) -> int:
        """Set a new password for email and mark the account verified.

        Rejects a "new" password that matches the stored one so a reset is
        never a silent no-op.
        """
        op = "AuthService.update_user"
        if not email:
            raise DomainError(ErrorKind.EMPTY_EMAIL, op)
        if not new_password:
            raise DomainError(ErrorKind.EMPTY_PASSWORD, op, email=email)
        _check_password_length(op, email, new_password)

        user = self._users.find_user_by_email(email)
        if verify_password(new_password, user.password_hash):
            logger.info("op=%s email=%s new password equals the current one", op, email)
            raise DomainError(ErrorKind.PASSWORDS_ARE_EQUAL, op, email=email)

        user_id = self._users.update_user_password(email, hash_password(new_password))
        logger.info("op=%s email=%s user_id=%d password updated", op, email, user_id)
        return user_id


def _check_password_length(op: str, email: str, password: str) -> None:
    # bcrypt cannot hash past PASSWORD_MAX_BYTES; reject instead of truncating.
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise DomainError(ErrorKind.PASSWORD_TOO_LONG, op, email=email)
