"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      outer layers (api/, main.py) call it; the auth and verification services
      receive plain values through their constructors.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_ttl_seconds -> TOKEN_TTL_SECONDS).

  @model_validator(mode="after"): Cross-field validation once all fields are
      resolved. Dev mode (DEBUG=true) may run without SMTP credentials;
      production mode refuses to start without them.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
verification/, or mail/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'sso.db'}"

# verifications.code is VARCHAR(10); anything shorter than 4 is guessable.
_MIN_CODE_LENGTH = 4
_MAX_CODE_LENGTH = 10


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens and verification codes
    # ------------------------------------------------------------------

    token_ttl_seconds: int = 3600
    verification_code_length: int = 6
    verification_ttl_hours: int = 3

    # ------------------------------------------------------------------
    # Email sender (SMTP with STARTTLS)
    # ------------------------------------------------------------------

    email_sender_name: str = "SSO"
    email_sender_address: str = ""
    email_sender_password: str = ""
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    login_rate_limit: str = "10/minute"
    verification_rate_limit: str = "5/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_policy(self) -> "Settings":
        """Reject settings that would make codes, tokens, or email delivery unsafe.

        Dev mode (DEBUG=true): missing SMTP credentials only produce a warning.
            Registration and code re-issue will fail with a delivery error
            until credentials are set.

        Production mode: refuse to start without SMTP sender credentials,
            since every registration depends on delivering a code.
        """
        if not _MIN_CODE_LENGTH <= self.verification_code_length <= _MAX_CODE_LENGTH:
            raise ValueError(
                f"VERIFICATION_CODE_LENGTH must be between {_MIN_CODE_LENGTH} and {_MAX_CODE_LENGTH}."
            )
        if self.token_ttl_seconds <= 0:
            raise ValueError("TOKEN_TTL_SECONDS must be positive.")
        if self.verification_ttl_hours <= 0:
            raise ValueError("VERIFICATION_TTL_HOURS must be positive.")
        if not (self.email_sender_address and self.email_sender_password):
            if self.debug:
                logger.warning("WARNING: SMTP sender credentials are not set. Verification emails will fail.")
            else:
                raise ValueError(
                    "EMAIL_SENDER_ADDRESS and EMAIL_SENDER_PASSWORD are required in production mode. "
                    "To run in development mode, set DEBUG=true."
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
