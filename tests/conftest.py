"""
tests/conftest.py -- Shared test fixtures for the SSO service.

This module provides:
  - FrozenClock / clock: a controllable Clock for expiry tests
  - engine, user_store, verification_store: an isolated in-memory SQLite DB
  - auth_service, verification_service, flows: the real services on that DB
  - sender: a RecordingSender standing in for SMTP
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the api_client fixture uses a named shared-memory SQLite URI (not
plain :memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and each worker thread would see a
blank schema. The named URI shares one in-memory instance across threads.

DEBUG and ALLOWED_HOSTS must be set before any api/ import: get_settings()
refuses to start without SMTP credentials unless DEBUG=true, and
TrustedHostMiddleware must accept TestClient's "testserver" host.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["*"]')

import pytest
from fastapi.testclient import TestClient

from api.flows import AccountFlows
from api.limiter import limiter
from api.main import app
from auth.models import App
from auth.service import AuthService
from auth.store import UserStore
from core.db import create_db_engine
from core.errors import DomainError, ErrorKind
from verification.service import VerificationService
from verification.store import VerificationStore

TEST_APP_SECRET = "test-app-secret-0123456789abcdef0123456789"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime.now(timezone.utc).replace(microsecond=0)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingSender:
    """EmailSender that keeps messages in memory. Set fail=True to simulate SMTP failure."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send_email(self, subject, to, html_body, cc=(), bcc=(), attachments=()) -> None:
        if self.fail:
            raise DomainError(ErrorKind.DELIVERY_ERROR, "RecordingSender.send_email")
        self.sent.append({"subject": subject, "to": list(to), "html": html_body})

    def last_code(self, store: VerificationStore, email: str) -> str:
        """Return the code currently pending for email (read from the store, not the HTML)."""
        return store.find_verification(email).code


# ---------------------------------------------------------------------------
# Unit-level fixtures -- fresh DB per test
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite:///:memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def verification_store(engine) -> VerificationStore:
    return VerificationStore(engine)


@pytest.fixture
def signing_app(user_store: UserStore) -> App:
    app_id = user_store.create_app("test-app", TEST_APP_SECRET)
    return user_store.find_app_by_id(app_id)


@pytest.fixture
def auth_service(user_store: UserStore, clock: FrozenClock) -> AuthService:
    return AuthService(user_store, clock, timedelta(hours=1))


@pytest.fixture
def verification_service(
    verification_store: VerificationStore, user_store: UserStore, clock: FrozenClock
) -> VerificationService:
    return VerificationService(verification_store, user_store, clock)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def flows(
    auth_service: AuthService,
    verification_service: VerificationService,
    sender: RecordingSender,
    clock: FrozenClock,
) -> AccountFlows:
    return AccountFlows(auth_service, verification_service, sender, clock, code_length=6, code_ttl=timedelta(hours=3))


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module
# ---------------------------------------------------------------------------


def _patch_lifespan(engine, flows: AccountFlows):
    """Return a lifespan that wires pre-built test collaborators into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.flows = flows
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, RecordingSender, VerificationStore, int], None, None]:
    """Yield (client, sender, verification_store, app_id) for API integration tests.

    The rate limiter is disabled so the number of login attempts across a
    module does not matter.
    """
    db_name = request.module.__name__.replace(".", "_")
    eng = create_db_engine(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    users = UserStore(eng)
    verifications = VerificationStore(eng)
    clk = FrozenClock()
    sender = RecordingSender()
    flows = AccountFlows(
        AuthService(users, clk, timedelta(hours=1)),
        VerificationService(verifications, users, clk),
        sender,
        clk,
    )
    app_id = users.create_app("api-test-app", TEST_APP_SECRET)

    app.router.lifespan_context = _patch_lifespan(eng, flows)
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, sender, verifications, app_id

    limiter.enabled = True
    eng.dispose()
