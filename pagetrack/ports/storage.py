"""
Key/value storage port.

Protocol-based interface for the browsing-context storage the pipeline
persists its records in (consent flag, session, attribution, offline queue).
Implementations: in-memory (tests, degraded mode) and JSON files on disk.

Invariants:
- Values are opaque strings; callers own their encoding (JSON)
- Each record lives under its own namespaced key, so clearing one key never
  corrupts another
- Adapters raise StorageUnavailableError instead of leaking OS errors
"""

from __future__ import annotations

from typing import Protocol

KEY_PREFIX = "pagetrack."

CONSENT_KEY = f"{KEY_PREFIX}consent"
SESSION_KEY = f"{KEY_PREFIX}session"
ATTRIBUTION_KEY = f"{KEY_PREFIX}attribution"
OFFLINE_QUEUE_KEY = f"{KEY_PREFIX}offline_queue"


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class StorageUnavailableError(StorageError):
    """Raised when the backing store cannot be read or written."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Storage unavailable for {key}: {reason}")


class KeyValueStorePort(Protocol):
    """
    Key/value store port interface.

    Mirrors the small surface of browser storage: get, set, delete.
    """

    def get(self, key: str) -> str | None:
        """
        Read the value stored under key.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageUnavailableError: If the store cannot be read
        """
        ...

    def set(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            StorageUnavailableError: If the store cannot be written (quota,
                private mode, read-only filesystem)
        """
        ...

    def delete(self, key: str) -> None:
        """
        Remove key if present. Missing keys are not an error.

        Raises:
            StorageUnavailableError: If the store cannot be written
        """
        ...
