"""
Offline queue component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pagetrack.core.entities import Event


@dataclass(frozen=True)
class QueueConfig:
    """Offline queue bounds."""

    capacity: int = 50
    max_retries: int = 5


@dataclass(frozen=True)
class QueuedEvent:
    """An event awaiting replay."""

    event: Event
    enqueued_at: str
    retry_count: int = 0

    @property
    def event_id(self) -> str:
        return self.event.event_id

    def to_record(self) -> dict[str, Any]:
        return {
            "event": self.event.to_payload(),
            "enqueuedAt": self.enqueued_at,
            "retryCount": self.retry_count,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> QueuedEvent:
        """
        Rebuild a queued entry from storage.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        retry_count = int(record.get("retryCount", 0))
        if retry_count < 0:
            raise ValueError("retryCount must not be negative")
        return cls(
            event=Event.from_payload(record["event"]),
            enqueued_at=str(record["enqueuedAt"]),
            retry_count=retry_count,
        )
