"""
Retry component models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryConfig:
    """Replay timing."""

    initial_delay_seconds: float = 5.0
    interval_seconds: float = 300.0
    backoff_base_seconds: float = 30.0
    backoff_max_seconds: float = 1800.0
    online_grace_seconds: float = 2.0


@dataclass
class DrainResult:
    """Result of one replay pass over the offline queue."""

    delivered: int = 0
    rejected: int = 0
    retried: int = 0
    dropped: int = 0
    skipped: bool = False

    @property
    def total_processed(self) -> int:
        return self.delivered + self.rejected + self.retried + self.dropped

    @property
    def had_transient_failures(self) -> bool:
        return self.retried > 0 or self.dropped > 0
