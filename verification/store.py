"""
verification/store.py -- SQLAlchemy Core persistence for pending verification codes.

Pattern: Repository + Data Mapper (same as auth/store.py).

Invariant: at most one row per email. verifications.email is the primary key,
and upsert_verification() is a single INSERT ... ON CONFLICT DO UPDATE, so
two concurrent writers for the same email leave exactly one row (last writer
wins) and never zero.

The email column is a foreign key into users.email. Storing a code for an
email with no account fails the constraint and surfaces as USER_NOT_FOUND.

Layer rule: no imports from api/ or mail/.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.db import from_iso, store_failure, to_iso, verifications
from core.errors import DomainError, ErrorKind
from verification.models import VerificationRecord

# Dialects with a native single-statement upsert.
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class VerificationStore:
    """Repository for VerificationRecord entities.

    Usage:
        store = VerificationStore(engine)
        store.upsert_verification("a@x.com", "Ab12Cd", expires_at)
        record = store.find_verification("a@x.com")
        store.delete_verification("a@x.com")
    """

    def __init__(self, engine: Engine) -> None:
        dialect = engine.dialect.name
        if dialect not in _UPSERT_INSERTS:
            raise ValueError(f"Unsupported database dialect for verification upsert: {dialect!r}")
        self.engine = engine
        self._insert = _UPSERT_INSERTS[dialect]

    def upsert_verification(self, email: str, code: str, expires_at: datetime) -> VerificationRecord:
        """Create the pending record for email, replacing any existing one."""
        op = "VerificationStore.upsert_verification"
        stmt = self._insert(verifications).values(email=email, code=code, expires_at=to_iso(expires_at))
        stmt = stmt.on_conflict_do_update(
            index_elements=[verifications.c.email],
            set_={"code": stmt.excluded.code, "expires_at": stmt.excluded.expires_at},
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except IntegrityError as exc:
            # The only constraint an upsert can still violate is the users FK.
            raise DomainError(ErrorKind.USER_NOT_FOUND, op, email=email) from exc
        except SQLAlchemyError as exc:
            raise store_failure(exc, op, email) from exc
        return VerificationRecord(email=email, code=code, expires_at=from_iso(to_iso(expires_at)))

    def find_verification(self, email: str) -> VerificationRecord:
        op = "VerificationStore.find_verification"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(verifications.select().where(verifications.c.email == email)).fetchone()
        except SQLAlchemyError as exc:
            raise store_failure(exc, op, email) from exc
        if row is None:
            raise DomainError(ErrorKind.VERIFICATION_NOT_FOUND, op, email=email)
        return _row_to_record(row)

    def delete_verification(self, email: str) -> bool:
        """Delete the pending record for email. Returns False if there was none.

        Absence is not an error: two Verify calls racing on one record both
        reach this point and the second delete is a no-op.
        """
        op = "VerificationStore.delete_verification"
        try:
            with self.engine.begin() as conn:
                result = conn.execute(verifications.delete().where(verifications.c.email == email))
        except SQLAlchemyError as exc:
            raise store_failure(exc, op, email) from exc
        return result.rowcount > 0


def _row_to_record(row) -> VerificationRecord:
    return VerificationRecord(email=row.email, code=row.code, expires_at=from_iso(row.expires_at))
