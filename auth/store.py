"""
auth/store.py -- SQLAlchemy Core persistence layer for users and apps.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user / _row_to_app are the mappers. Services never touch SQL.

Every method either returns a domain object or raises DomainError:
  - "no such row" becomes USER_NOT_FOUND / APP_NOT_FOUND
  - a UNIQUE(email) violation on insert becomes USER_EXISTS
  - any other driver error goes through core.db.store_failure()

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, verification/, or mail/.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import App, User
from core.db import apps, now_iso, store_failure, users
from core.errors import DomainError, ErrorKind


class UserStore:
    """Repository for User and App entities.

    Usage:
        engine = create_db_engine("sqlite:///sso.db")
        store = UserStore(engine)
        user_id = store.insert_user("a@x.com", hash_password("secret"))
        user = store.find_user_by_email("a@x.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def find_user_by_email(self, email: str) -> User:
        """Look up a user by exact email (case-sensitive)."""
        op = "UserStore.find_user_by_email"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(users.select().where(users.c.email == email)).fetchone()
        except SQLAlchemyError as exc:
            raise store_failure(exc, op, email) from exc
        if row is None:
            raise DomainError(ErrorKind.USER_NOT_FOUND, op, email=email)
        return _row_to_user(row)

    def find_user_by_id(self, user_id: int) -> User:
        op = "UserStore.find_user_by_id"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            raise store_failure(exc, op) from exc
        if row is None:
            raise DomainError(ErrorKind.USER_NOT_FOUND, op, detail=f"id={user_id}")
        return _row_to_user(row)

    def insert_user(self, email: str, password_hash: str) -> int:
        """Insert a new unverified, non-admin user and return its ID.

        The UNIQUE constraint on email is the only duplicate check. There is
        no read-before-write, so two concurrent registrations for the same
        email resolve to exactly one row and one USER_EXISTS.
        """
        op = "UserStore.insert_user"
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    users.insert().values(
                        email=email,
                        pass_hash=password_hash,
                        is_admin=0,
                        is_verified=0,
                        created_at=now_iso(),
                    )
                )
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DomainError(ErrorKind.USER_EXISTS, op, email=email) from exc
        except SQLAlchemyError as exc:
            raise store_failure(exc, op, email) from exc

    def update_user_password(self, email: str, password_hash: str) -> int:
        """Replace the password hash and mark the user verified. Returns the user ID.

        A completed reset implies the caller already proved ownership of the
        email, so is_verified is set in the same statement.
        """
        return self._update_by_email("UserStore.update_user_password", email, pass_hash=password_hash, is_verified=1)

    def mark_user_verified(self, email: str) -> int:
        return self._update_by_email("UserStore.mark_user_verified", email, is_verified=1)

    def set_admin(self, email: str, is_admin: bool = True) -> int:
        """Grant or revoke the admin flag. Only main.py grant-admin calls this."""
        return self._update_by_email("UserStore.set_admin", email, is_admin=1 if is_admin else 0)

    def _update_by_email(self, op: str, email: str, **fields) -> int:
        # The id lookup and the UPDATE share one transaction so the returned
        # id always belongs to the row that was changed.
        try:
            with self.engine.begin() as conn:
                user_id = conn.execute(select(users.c.id).where(users.c.email == email)).scalar()
                if user_id is None:
                    raise DomainError(ErrorKind.USER_NOT_FOUND, op, email=email)
                conn.execute(users.update().where(users.c.id == user_id).values(**fields))
        except SQLAlchemyError as exc:
            raise store_failure(exc, op, email) from exc
        return user_id

    # ------------------------------------------------------------------
    # App queries
    # ------------------------------------------------------------------

    def find_app_by_id(self, app_id: int) -> App:
        op = "UserStore.find_app_by_id"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(apps.select().where(apps.c.id == app_id)).fetchone()
        except SQLAlchemyError as exc:
            raise store_failure(exc, op) from exc
        if row is None:
            raise DomainError(ErrorKind.APP_NOT_FOUND, op, detail=f"app_id={app_id}")
        return _row_to_app(row)

    def create_app(self, name: str, secret: str) -> int:
        """Register a signing scope and return its ID. Raises ValueError on a duplicate name."""
        op = "UserStore.create_app"
        try:
            with self.engine.begin() as conn:
                result = conn.execute(apps.insert().values(name=name, secret=secret))
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ValueError(f"An app named {name!r} already exists.") from exc
        except SQLAlchemyError as exc:
            raise store_failure(exc, op) from exc


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.pass_hash,
        is_admin=bool(row.is_admin),
        is_verified=bool(row.is_verified),
        created_at=row.created_at,
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=row.secret)
