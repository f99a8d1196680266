"""
Key/value store adapters.

Implements KeyValueStorePort in memory and on the local filesystem.

The file adapter keeps one JSON document per key so that a broken or
deleted record never affects the others:
{base_path}/{key}.json -> {"key": ..., "value": ...}
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pagetrack.ports.storage import StorageUnavailableError

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore:
    """In-memory store for tests and process-lifetime storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Get stored keys (for testing)."""
        return sorted(self._data)


class JsonFileKeyValueStore:
    """
    Local filesystem implementation of KeyValueStorePort.

    Survives process restarts, the equivalent of a page reload.
    """

    def __init__(
        self,
        base_path: str | Path,
        *,
        create_dirs: bool = True,
    ) -> None:
        """
        Initialize file store.

        Args:
            base_path: Directory holding one file per key
            create_dirs: Whether to create the directory if it doesn't exist
        """
        self.base_path = Path(base_path)

        if create_dirs:
            try:
                self.base_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageUnavailableError(str(self.base_path), str(e)) from e

    def _key_to_path(self, key: str) -> Path:
        """Convert storage key to a file path."""
        # Sanitize key to prevent directory traversal
        safe_key = key.replace("..", "").replace("/", "_").lstrip(".")
        return self.base_path / f"{safe_key}.json"

    def get(self, key: str) -> str | None:
        path = self._key_to_path(key)

        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                doc = json.load(f)
        except OSError as e:
            raise StorageUnavailableError(key, str(e)) from e
        except ValueError as e:
            # A corrupt record reads as missing; the next set() overwrites it
            logger.warning("Ignoring unreadable record %s: %s", path.name, e)
            return None

        value = doc.get("value") if isinstance(doc, dict) else None
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        path = self._key_to_path(key)
        tmp_path = path.with_suffix(".json.tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({"key": key, "value": value}, f)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageUnavailableError(key, str(e)) from e

    def delete(self, key: str) -> None:
        path = self._key_to_path(key)

        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageUnavailableError(key, str(e)) from e


def create_json_file_store(
    base_path: str | Path | None = None,
    *,
    env_var: str = "PAGETRACK_STORAGE_PATH",
    default_path: str = "./.pagetrack",
) -> JsonFileKeyValueStore:
    """
    Factory function to create JsonFileKeyValueStore from config.

    Args:
        base_path: Explicit base path (overrides env var)
        env_var: Environment variable name for storage path
        default_path: Default path if not configured

    Returns:
        Configured JsonFileKeyValueStore instance
    """
    if base_path is None:
        base_path = os.environ.get(env_var, default_path)

    return JsonFileKeyValueStore(base_path)
