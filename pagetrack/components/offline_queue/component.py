"""
Offline queue component - Bounded, persisted FIFO of undelivered events.

Invariants:
- Never holds more than capacity entries
- A full queue evicts its single oldest entry; the newest event is never refused
- retry_count only grows; an entry is dropped once it reaches max_retries
- drain() is a snapshot and never mutates the queue
- Every mutation is persisted; a failed write degrades to memory for the
  rest of the process
- An entry that cannot be serialized is refused before the queue changes
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace

from pagetrack.core.entities import Event
from pagetrack.ports.clock import ClockPort
from pagetrack.ports.storage import (
    OFFLINE_QUEUE_KEY,
    KeyValueStorePort,
    StorageUnavailableError,
)

from .models import QueueConfig, QueuedEvent

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = QueueConfig()


def parse_queue(raw: str | None, capacity: int) -> list[QueuedEvent]:
    """
    Parse a stored queue. Malformed entries are skipped; a malformed document
    yields an empty queue. Only the newest capacity entries are kept.
    """
    if not raw:
        return []

    try:
        records = json.loads(raw)
    except ValueError:
        logger.warning("Discarding unreadable offline queue")
        return []

    if not isinstance(records, list):
        logger.warning("Discarding offline queue with unexpected shape")
        return []

    entries: list[QueuedEvent] = []
    for record in records:
        try:
            entries.append(QueuedEvent.from_record(record))
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.debug("Skipping malformed offline queue entry")

    return entries[-capacity:]


class OfflineQueue:
    """
    Offline queue.

    Exclusively owns the set of queued events.
    """

    def __init__(
        self,
        store: KeyValueStorePort,
        clock: ClockPort,
        config: QueueConfig | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._config = config or DEFAULT_CONFIG
        self._degraded = False
        self.evicted = 0
        self.dropped = 0
        self._entries: list[QueuedEvent] = self._load()

    @property
    def durable(self) -> bool:
        """False once storage has failed and entries live in memory only."""
        return not self._degraded

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, (str, Event, QueuedEvent)):
            return False
        return self._index_of(item) is not None

    def enqueue(self, event: Event) -> QueuedEvent:
        """
        Add an undelivered event.

        Evicts the oldest entry when full. Re-enqueueing an event that is
        already queued returns the existing entry.

        Raises:
            ValueError: If the event cannot be serialized; the queue is left
                unchanged
        """
        index = self._index_of(event)
        if index is not None:
            return self._entries[index]

        entry = QueuedEvent(
            event=event,
            enqueued_at=self._clock.now_utc().isoformat(),
        )
        entries = [*self._entries, entry]
        overflow = max(0, len(entries) - self._config.capacity)
        evicted = entries[:overflow]

        self._commit(entries[overflow:])

        for oldest in evicted:
            self.evicted += 1
            logger.warning(
                "Offline queue full (%d), evicted oldest event %s",
                self._config.capacity,
                oldest.event.event_name,
            )
        logger.info("Event %s stored offline. Total: %d", event.event_name, len(self._entries))
        return entry

    def drain(self) -> tuple[QueuedEvent, ...]:
        """Snapshot of queued entries, oldest first."""
        return tuple(self._entries)

    def remove(self, item: str | Event | QueuedEvent) -> bool:
        """Remove an entry. Returns True if it was queued."""
        index = self._index_of(item)
        if index is None:
            return False
        self._commit(self._entries[:index] + self._entries[index + 1 :])
        return True

    def bump(self, item: str | Event | QueuedEvent) -> bool:
        """
        Record one more failed replay.

        Returns:
            True if the entry is still queued, False if it reached the retry
            ceiling and was dropped (or was not queued).
        """
        index = self._index_of(item)
        if index is None:
            return False

        entry = self._entries[index]
        bumped = replace(entry, retry_count=entry.retry_count + 1)

        if bumped.retry_count >= self._config.max_retries:
            self._commit(self._entries[:index] + self._entries[index + 1 :])
            self.dropped += 1
            logger.info(
                "Dropping event %s after %d failed retries",
                entry.event.event_name,
                bumped.retry_count,
            )
            return False

        self._commit([*self._entries[:index], bumped, *self._entries[index + 1 :]])
        return True

    def clear(self) -> None:
        """Remove every entry."""
        self._entries = []
        if self._degraded:
            return
        try:
            self._store.delete(OFFLINE_QUEUE_KEY)
        except StorageUnavailableError as e:
            self._degrade(e)

    def _index_of(self, item: str | Event | QueuedEvent) -> int | None:
        if isinstance(item, QueuedEvent):
            event_id = item.event_id
        elif isinstance(item, Event):
            event_id = item.event_id
        else:
            event_id = item

        for index, entry in enumerate(self._entries):
            if entry.event_id == event_id:
                return index
        return None

    def _load(self) -> list[QueuedEvent]:
        try:
            raw = self._store.get(OFFLINE_QUEUE_KEY)
        except StorageUnavailableError as e:
            self._degrade(e)
            return []
        entries = parse_queue(raw, self._config.capacity)
        if entries:
            logger.info("Restored %d offline events", len(entries))
        return entries

    def _commit(self, entries: list[QueuedEvent]) -> None:
        """Serialize entries, then make them current and write them."""
        try:
            document = json.dumps([entry.to_record() for entry in entries], allow_nan=False)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Offline queue entry cannot be serialized: {e}") from e

        self._entries = entries
        if self._degraded:
            return
        try:
            self._store.set(OFFLINE_QUEUE_KEY, document)
        except StorageUnavailableError as e:
            self._degrade(e)

    def _degrade(self, error: StorageUnavailableError) -> None:
        if not self._degraded:
            logger.warning(
                "Offline queue storage unavailable, holding events in memory: %s",
                error.reason,
            )
        self._degraded = True
