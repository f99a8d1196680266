"""
Session component - Stable session id with a sliding expiry window.

Invariants:
- A session expires when now - last_seen_at exceeds the TTL
- Expiry mints a new id; an expired id is never reused
- Every tracked action touches the session (bumps last_seen_at)
- Storage failure degrades to an in-process session that does not survive
  a reload; it is never fatal
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from pagetrack.ports.clock import ClockPort
from pagetrack.ports.storage import (
    SESSION_KEY,
    KeyValueStorePort,
    StorageUnavailableError,
)

from .models import Session, SessionConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = SessionConfig()


def new_session_id(now: datetime) -> str:
    """Time-based prefix plus random suffix."""
    return f"session_{int(now.timestamp() * 1000)}_{uuid4().hex[:9]}"


def is_expired(session: Session, now: datetime, config: SessionConfig = DEFAULT_CONFIG) -> bool:
    """Check whether the inactivity window has elapsed."""
    return now - session.last_seen_at > timedelta(minutes=config.ttl_minutes)


def parse_session(raw: str | None) -> Session | None:
    """Parse a stored session record. Corrupt records are treated as absent."""
    if not raw:
        return None

    try:
        doc = json.loads(raw)
        created_at = datetime.fromisoformat(doc["created_at"])
        last_seen_at = datetime.fromisoformat(doc["last_seen_at"])
        session_id = doc["id"]
    except (ValueError, KeyError, TypeError):
        logger.debug("Discarding unreadable session record")
        return None

    if not isinstance(session_id, str) or not session_id:
        return None

    # Ensure timezone aware
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    if last_seen_at.tzinfo is None:
        last_seen_at = last_seen_at.replace(tzinfo=UTC)

    return Session(id=session_id, created_at=created_at, last_seen_at=last_seen_at)


class SessionManager:
    """
    Session manager.

    Exclusively owns the persisted session record.
    """

    def __init__(
        self,
        store: KeyValueStorePort,
        clock: ClockPort,
        config: SessionConfig | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._config = config or DEFAULT_CONFIG
        self._memory: Session | None = None
        self._degraded = False

    @property
    def degraded(self) -> bool:
        """True once storage has failed and the session lives in memory only."""
        return self._degraded

    def current_session_id(self) -> str:
        """Get the live session id, minting or touching as needed."""
        session, _ = self.touch()
        return session.id

    def touch(self) -> tuple[Session, bool]:
        """
        Renew the session for a tracked action.

        Returns:
            Tuple of (session, is_new). is_new is True when a new id was minted.
        """
        now = self._clock.now_utc()
        session = self._load()

        if session is None or is_expired(session, now, self._config):
            session = Session(id=new_session_id(now), created_at=now, last_seen_at=now)
            is_new = True
            logger.info("New session %s", session.id[:20])
        else:
            session = replace(session, last_seen_at=now)
            is_new = False

        self._save(session)
        return session, is_new

    def peek(self) -> Session | None:
        """Get the live session without touching it. None if absent or expired."""
        session = self._load()
        if session is None or is_expired(session, self._clock.now_utc(), self._config):
            return None
        return session

    def clear(self) -> None:
        """Forget the current session."""
        self._memory = None
        if self._degraded:
            return
        try:
            self._store.delete(SESSION_KEY)
        except StorageUnavailableError as e:
            self._degrade(e)

    def _load(self) -> Session | None:
        if self._degraded:
            return self._memory
        try:
            return parse_session(self._store.get(SESSION_KEY))
        except StorageUnavailableError as e:
            self._degrade(e)
            return self._memory

    def _save(self, session: Session) -> None:
        self._memory = session
        if self._degraded:
            return
        try:
            self._store.set(SESSION_KEY, json.dumps(session.to_record()))
        except StorageUnavailableError as e:
            self._degrade(e)

    def _degrade(self, error: StorageUnavailableError) -> None:
        if not self._degraded:
            logger.warning(
                "Session storage unavailable, using in-memory session: %s",
                error.reason,
            )
        self._degraded = True
