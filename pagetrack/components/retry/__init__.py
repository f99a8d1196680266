"""
Retry component - Timer-driven replay of the offline queue.
"""

from .component import RetryScheduler, calculate_backoff
from .models import DrainResult, RetryConfig
from .ports import DeliveryPort, ReplayQueuePort

__all__ = [
    "DeliveryPort",
    "DrainResult",
    "ReplayQueuePort",
    "RetryConfig",
    "RetryScheduler",
    "calculate_backoff",
]
