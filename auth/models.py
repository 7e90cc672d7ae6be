"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these only carry shape.

Layer rule: no imports from api/, verification/, or mail/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An account identity.

    email is the unique, case-sensitive login key. password_hash is a bcrypt
    hash and is never empty once the row exists. is_verified flips to True
    when the owner proves control of the email (verification code match or
    a completed password reset).
    """

    email: str
    password_hash: str
    id: int | None = None
    is_admin: bool = False
    is_verified: bool = False
    created_at: str | None = None


@dataclass
class App:
    """A token-signing scope.

    secret is the HS256 key for tokens issued against this app_id. Apps are
    read-only to the services; main.py add-app is the only writer.
    """

    id: int
    name: str
    secret: str
