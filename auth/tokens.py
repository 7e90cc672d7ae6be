"""
auth/tokens.py -- Password hashing and JWT issue/verify helpers.

Security design decisions:
  JWT: python-jose with HS256. Each token is signed with the secret of the App
       the user logged in to, and carries uid, email, app_id and exp. Any
       downstream service holding the same App secret can verify it with
       decode_access_token(). Verification returns None on any failure.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       enables timing equalization in AuthService.login() so response time
       does not reveal whether an email is registered.

Layer rule: no imports from api/, verification/, or mail/.
"""

from __future__ import annotations

from datetime import datetime

import bcrypt
from jose import JWTError, jwt

from auth.models import App, User

_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes; bcrypt>=5 raises ValueError past that.
PASSWORD_MAX_BYTES = 72

# Claims every token issued here carries. decode_access_token() rejects
# tokens missing any of them even if the signature is valid.
_REQUIRED_CLAIMS = ("uid", "email", "app_id", "exp")

# ---------------------------------------------------------------------------
# Password hashing (bcrypt)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Callers must keep plain within PASSWORD_MAX_BYTES of UTF-8. AuthService
    and the API request models both enforce it.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash is
    treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash. Computed once at module load so the first
# login attempt for an unknown email costs the same as every later one.
DUMMY_HASH: str = hash_password("sso_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user: User, app: App, expires_at: datetime) -> str:
    """Encode a JWT for user, signed with app.secret, valid until expires_at."""
    payload = {
        "uid": user.id,
        "email": user.email,
        "app_id": app.id,
        "exp": expires_at,
    }
    return jwt.encode(payload, app.secret, algorithm=_ALGORITHM)


def decode_access_token(token: str, secret: str) -> dict | None:
    """Verify a token against an App secret. Returns the claims or None.

    Expiry is checked by python-jose against the wall clock.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if any(claim not in payload for claim in _REQUIRED_CLAIMS):
        return None
    return payload
