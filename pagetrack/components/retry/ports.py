"""
Retry component ports.
"""

from __future__ import annotations

from typing import Protocol

from pagetrack.components.dispatcher.models import DeliveryOutcome
from pagetrack.components.offline_queue.models import QueuedEvent
from pagetrack.core.entities import Event


class DeliveryPort(Protocol):
    """Sends one event to the collector."""

    async def send(self, event: Event) -> DeliveryOutcome:
        ...


class ReplayQueuePort(Protocol):
    """Queue operations used during replay."""

    def __len__(self) -> int:
        ...

    def drain(self) -> tuple[QueuedEvent, ...]:
        ...

    def remove(self, item: QueuedEvent) -> bool:
        ...

    def bump(self, item: QueuedEvent) -> bool:
        ...
