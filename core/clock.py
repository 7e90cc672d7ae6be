"""
core/clock.py -- Injectable time source.

Services never call datetime.now() themselves; they ask the Clock they were
constructed with. Production code uses SystemClock; tests pass a frozen clock
and move it forward to cross expiry boundaries deterministically.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)
