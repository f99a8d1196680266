"""
Dispatcher component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# --- Enums ---


class DeliveryStatus(str, Enum):
    """Delivery outcome classification."""

    DELIVERED = "delivered"
    REJECTED = "rejected"  # Payload is the problem; never retried
    TRANSIENT_FAILURE = "transient_failure"  # Network/server problem; retry


# --- Configuration ---


@dataclass(frozen=True)
class DispatcherConfig:
    """Collector delivery configuration."""

    base_url: str = "http://localhost:5000/api/analytics"
    track_path: str = "/track"
    pageview_path: str = "/pageview"
    timeout_seconds: float = 10.0
    analytics_version: str = "2.0.0"

    # Delivered idempotency keys remembered
    idempotency_window: int = 500


# --- Outcome ---


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt."""

    status: DeliveryStatus
    reason: str | None = None
    status_code: int | None = None
    duplicate: bool = False

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    @property
    def retryable(self) -> bool:
        return self.status == DeliveryStatus.TRANSIENT_FAILURE

    @classmethod
    def success(cls, status_code: int | None = None, duplicate: bool = False) -> DeliveryOutcome:
        return cls(DeliveryStatus.DELIVERED, status_code=status_code, duplicate=duplicate)

    @classmethod
    def rejected(cls, reason: str, status_code: int | None = None) -> DeliveryOutcome:
        return cls(DeliveryStatus.REJECTED, reason=reason, status_code=status_code)

    @classmethod
    def transient(cls, reason: str, status_code: int | None = None) -> DeliveryOutcome:
        return cls(DeliveryStatus.TRANSIENT_FAILURE, reason=reason, status_code=status_code)
