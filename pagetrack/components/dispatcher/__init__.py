"""
Dispatcher component - Event delivery to the collector.
"""

from .component import (
    DeliveredKeySet,
    Dispatcher,
    classify_status,
    idempotency_key,
    response_detail,
)
from .models import DeliveryOutcome, DeliveryStatus, DispatcherConfig

__all__ = [
    "Dispatcher",
    "DeliveredKeySet",
    "DeliveryOutcome",
    "DeliveryStatus",
    "DispatcherConfig",
    "classify_status",
    "idempotency_key",
    "response_detail",
]
