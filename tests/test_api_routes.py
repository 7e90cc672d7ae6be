"""
tests/test_api_routes.py -- Integration tests for the /api/v1/auth routes.

These tests exercise the full stack: FastAPI routing -> request model
validation -> AccountFlows -> stores on a shared-memory SQLite DB ->
DomainError handler -> response model serialization.

Coverage:
  - register: 201 with user_id, 409 on duplicate, code emailed, 72-byte
    password limit, passwords kept byte-for-byte while email is stripped
  - login: 200 with a verifiable token and no-store, 401 for wrong password and
    unknown email (same body), 404 for unknown app
  - is-admin: false by default, 404 for unknown id, 422 for non-positive id
  - verifications / verify-email: happy path, 400 on wrong code, 404 after use,
    410 after expiry
  - reset-password: happy path, 400 when the new password equals the old one
  - request validation: 422 with the error envelope

Fixtures used (from conftest.py):
  - api_client: (client, sender, verification_store, app_id). Module-scoped,
    so every test registers its own email address.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from auth.store import UserStore
from auth.tokens import decode_access_token

_PASSWORD = "correct-horse-1"


def _register(client: TestClient, email: str, password: str = _PASSWORD) -> int:
    resp = client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return resp.json()["user_id"]


class TestRegisterRoute:
    def test_register_returns_201_and_emails_code(self, api_client) -> None:
        client, sender, verifications, _app_id = api_client
        user_id = _register(client, "reg-happy@x.com")

        assert user_id > 0
        assert sender.sent[-1]["to"] == ["reg-happy@x.com"]
        code = verifications.find_verification("reg-happy@x.com").code
        assert code in sender.sent[-1]["html"]

    def test_duplicate_register_returns_409(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        _register(client, "reg-dup@x.com")
        resp = client.post("/api/v1/auth/register", json={"email": "reg-dup@x.com", "password": "other"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "user_exists"

    def test_delivery_failure_returns_502_but_user_exists(self, api_client) -> None:
        client, sender, _v, app_id = api_client
        sender.fail = True
        try:
            resp = client.post("/api/v1/auth/register", json={"email": "reg-smtp@x.com", "password": _PASSWORD})
        finally:
            sender.fail = False
        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "delivery_error"

        login = client.post(
            "/api/v1/auth/login", json={"email": "reg-smtp@x.com", "password": _PASSWORD, "app_id": app_id}
        )
        assert login.status_code == 200

    def test_empty_password_is_rejected(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        resp = client.post("/api/v1/auth/register", json={"email": "reg-empty@x.com", "password": ""})
        assert resp.status_code == 422
        assert "error" in resp.json()

    def test_multibyte_password_over_72_bytes_is_rejected(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        resp = client.post("/api/v1/auth/register", json={"email": "reg-long@x.com", "password": "\u00e9" * 40})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_multibyte_password_of_72_bytes_is_accepted(self, api_client) -> None:
        client, _sender, _v, app_id = api_client
        _register(client, "reg-72@x.com", password="\u00e9" * 36)
        resp = client.post(
            "/api/v1/auth/login", json={"email": "reg-72@x.com", "password": "\u00e9" * 36, "app_id": app_id}
        )
        assert resp.status_code == 200

    def test_password_whitespace_is_kept_and_email_is_stripped(self, api_client) -> None:
        client, _sender, _v, app_id = api_client
        _register(client, "  reg-spaces@x.com  ", password="  p1  ")

        exact = client.post(
            "/api/v1/auth/login", json={"email": "reg-spaces@x.com", "password": "  p1  ", "app_id": app_id}
        )
        trimmed = client.post(
            "/api/v1/auth/login", json={"email": "reg-spaces@x.com", "password": "p1", "app_id": app_id}
        )

        assert exact.status_code == 200
        assert trimmed.status_code == 401


class TestLoginRoute:
    def test_login_returns_token_signed_with_app_secret(self, api_client) -> None:
        client, _sender, verifications, app_id = api_client
        user_id = _register(client, "login-ok@x.com")

        resp = client.post(
            "/api/v1/auth/login", json={"email": "login-ok@x.com", "password": _PASSWORD, "app_id": app_id}
        )

        assert resp.status_code == 200, resp.text
        assert resp.headers["cache-control"] == "no-store"
        secret = UserStore(verifications.engine).find_app_by_id(app_id).secret
        claims = decode_access_token(resp.json()["token"], secret)
        assert claims is not None
        assert claims["uid"] == user_id
        assert claims["email"] == "login-ok@x.com"

    def test_wrong_password_and_unknown_email_look_the_same(self, api_client) -> None:
        client, _sender, _v, app_id = api_client
        _register(client, "login-bad@x.com")

        wrong = client.post(
            "/api/v1/auth/login", json={"email": "login-bad@x.com", "password": "nope", "app_id": app_id}
        )
        unknown = client.post(
            "/api/v1/auth/login", json={"email": "login-ghost@x.com", "password": "nope", "app_id": app_id}
        )

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.headers["cache-control"] == "no-store"

    def test_unknown_app_returns_404(self, api_client) -> None:
        client, _sender, _v, app_id = api_client
        _register(client, "login-app@x.com")
        resp = client.post(
            "/api/v1/auth/login", json={"email": "login-app@x.com", "password": _PASSWORD, "app_id": app_id + 100}
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "app_not_found"

    def test_missing_fields_return_422_envelope(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        resp = client.post("/api/v1/auth/login", json={"email": "x@x.com"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestIsAdminRoute:
    def test_new_user_is_not_admin(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        user_id = _register(client, "admin-no@x.com")
        resp = client.get(f"/api/v1/auth/users/{user_id}/is-admin")
        assert resp.status_code == 200
        assert resp.json() == {"is_admin": False}

    def test_unknown_user_returns_404(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        resp = client.get("/api/v1/auth/users/999999/is-admin")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "user_not_found"

    def test_non_positive_id_is_rejected(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        assert client.get("/api/v1/auth/users/0/is-admin").status_code == 422


class TestVerificationRoutes:
    def test_verify_email_with_emailed_code(self, api_client) -> None:
        client, _sender, verifications, _app_id = api_client
        user_id = _register(client, "verify-ok@x.com")
        code = verifications.find_verification("verify-ok@x.com").code

        resp = client.post("/api/v1/auth/verify-email", json={"email": "verify-ok@x.com", "code": code})
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"result": str(user_id)}

        again = client.post("/api/v1/auth/verify-email", json={"email": "verify-ok@x.com", "code": code})
        assert again.status_code == 404
        assert again.json()["error"]["code"] == "verification_not_found"

    def test_wrong_code_returns_400_and_keeps_code(self, api_client) -> None:
        client, _sender, verifications, _app_id = api_client
        _register(client, "verify-bad@x.com")
        code = verifications.find_verification("verify-bad@x.com").code
        wrong = "000000" if code != "000000" else "111111"

        resp = client.post("/api/v1/auth/verify-email", json={"email": "verify-bad@x.com", "code": wrong})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "codes_differ"
        assert verifications.find_verification("verify-bad@x.com").code == code

    def test_expired_code_returns_410(self, api_client) -> None:
        client, _sender, verifications, _app_id = api_client
        _register(client, "verify-old@x.com")
        record = verifications.find_verification("verify-old@x.com")
        verifications.upsert_verification(
            "verify-old@x.com", record.code, datetime(2000, 1, 1, tzinfo=timezone.utc)
        )

        resp = client.post("/api/v1/auth/verify-email", json={"email": "verify-old@x.com", "code": record.code})
        assert resp.status_code == 410
        assert resp.json()["error"]["code"] == "verification_expired"

    def test_reissue_for_unknown_email_returns_404(self, api_client) -> None:
        client, _sender, _v, _app_id = api_client
        resp = client.post("/api/v1/auth/verifications", json={"email": "nobody@x.com"})
        assert resp.status_code == 404

    def test_reissue_sends_new_email(self, api_client) -> None:
        client, sender, _v, _app_id = api_client
        _register(client, "verify-again@x.com")
        before = len(sender.sent)

        resp = client.post("/api/v1/auth/verifications", json={"email": "verify-again@x.com", "purpose": "reset"})

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert len(sender.sent) == before + 1


class TestResetPasswordRoute:
    def test_reset_then_login_with_new_password(self, api_client) -> None:
        client, _sender, verifications, app_id = api_client
        user_id = _register(client, "reset-ok@x.com")
        client.post("/api/v1/auth/verifications", json={"email": "reset-ok@x.com", "purpose": "reset"})
        code = verifications.find_verification("reset-ok@x.com").code

        resp = client.post(
            "/api/v1/auth/reset-password",
            json={"email": "reset-ok@x.com", "code": code, "new_password": "brand-new-2"},
        )
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"user_id": user_id}

        login = client.post(
            "/api/v1/auth/login", json={"email": "reset-ok@x.com", "password": "brand-new-2", "app_id": app_id}
        )
        assert login.status_code == 200

    def test_same_password_returns_400(self, api_client) -> None:
        client, _sender, verifications, _app_id = api_client
        _register(client, "reset-same@x.com")
        code = verifications.find_verification("reset-same@x.com").code

        resp = client.post(
            "/api/v1/auth/reset-password",
            json={"email": "reset-same@x.com", "code": code, "new_password": _PASSWORD},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "passwords_are_equal"
        assert verifications.find_verification("reset-same@x.com").code == code

    def test_over_long_new_password_returns_422(self, api_client) -> None:
        client, _sender, verifications, _app_id = api_client
        _register(client, "reset-long@x.com")
        code = verifications.find_verification("reset-long@x.com").code

        resp = client.post(
            "/api/v1/auth/reset-password",
            json={"email": "reset-long@x.com", "code": code, "new_password": "\u00e9" * 40},
        )
        assert resp.status_code == 422
        assert verifications.find_verification("reset-long@x.com").code == code
