"""
Offline queue component - Bounded, persisted FIFO of undelivered events.
"""

from .component import OfflineQueue, parse_queue
from .models import QueueConfig, QueuedEvent

__all__ = [
    "OfflineQueue",
    "QueueConfig",
    "QueuedEvent",
    "parse_queue",
]
