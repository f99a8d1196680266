"""
Session component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionConfig:
    """Session lifecycle configuration."""

    ttl_minutes: int = 30


@dataclass(frozen=True)
class Session:
    """A browsing session with a sliding inactivity window."""

    id: str
    created_at: datetime
    last_seen_at: datetime

    def to_record(self) -> dict[str, str]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "last_seen_at": self.last_seen_at.isoformat(),
        }
