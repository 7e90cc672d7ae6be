from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class VerificationRecord:
    """The single pending proof for one email.

    expires_at is timezone-aware UTC. A record past expires_at is treated as
    absent by VerificationService.verify() and deleted on that read.
    """

    email: str
    code: str
    expires_at: datetime
