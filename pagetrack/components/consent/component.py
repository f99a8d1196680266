"""
Consent component - Tracking permission gate.

Answers "is tracking permitted right now" from a persisted flag.

Invariants:
- Default is no consent (opt-in tracking)
- has_consent() has no side effects
- An unreadable or corrupt record means no consent
- A decision that could not be persisted still holds for this process
"""

from __future__ import annotations

import json
import logging

from pagetrack.ports.clock import ClockPort
from pagetrack.ports.storage import (
    CONSENT_KEY,
    KeyValueStorePort,
    StorageUnavailableError,
)

from .models import ConsentDecision

logger = logging.getLogger(__name__)


def parse_decision(raw: str | None) -> ConsentDecision:
    """Parse a stored consent record. Anything unexpected is a denial."""
    if raw is None:
        return ConsentDecision(granted=False)

    try:
        doc = json.loads(raw)
    except ValueError:
        return ConsentDecision(granted=False)

    if not isinstance(doc, dict):
        return ConsentDecision(granted=False)

    return ConsentDecision(
        granted=doc.get("granted") is True,
        decided_at=doc.get("decided_at"),
    )


class ConsentGate:
    """Consent gate backed by the key/value store."""

    def __init__(self, store: KeyValueStorePort, clock: ClockPort) -> None:
        self._store = store
        self._clock = clock
        # Set only when a decision could not be written
        self._in_memory: ConsentDecision | None = None

    def decision(self) -> ConsentDecision:
        """Get the current decision."""
        if self._in_memory is not None:
            return self._in_memory

        try:
            raw = self._store.get(CONSENT_KEY)
        except StorageUnavailableError as e:
            logger.warning("Consent flag unreadable, treating as denied: %s", e.reason)
            return ConsentDecision(granted=False)
        return parse_decision(raw)

    def has_consent(self) -> bool:
        """Check whether tracking is permitted."""
        return self.decision().granted

    def grant(self) -> ConsentDecision:
        """Record an opt-in."""
        return self._record(True)

    def revoke(self) -> ConsentDecision:
        """Record an opt-out."""
        return self._record(False)

    def _record(self, granted: bool) -> ConsentDecision:
        decision = ConsentDecision(
            granted=granted,
            decided_at=self._clock.now_utc().isoformat(),
        )
        try:
            self._store.set(
                CONSENT_KEY,
                json.dumps({"granted": decision.granted, "decided_at": decision.decided_at}),
            )
            self._in_memory = None
        except StorageUnavailableError as e:
            logger.warning("Consent decision held in memory only: %s", e.reason)
            self._in_memory = decision
        return decision
