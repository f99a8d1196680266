"""
Tests for ConsentGate.
"""

from __future__ import annotations

import json

from pagetrack.adapters.kv_store import InMemoryKeyValueStore
from pagetrack.components.consent import ConsentGate, parse_decision
from pagetrack.ports.storage import CONSENT_KEY


class TestParseDecision:
    """Test stored record parsing."""

    def test_missing_record_is_denial(self) -> None:
        assert parse_decision(None).granted is False

    def test_granted_record(self) -> None:
        decision = parse_decision(json.dumps({"granted": True, "decided_at": "2025-03-01"}))
        assert decision.granted is True
        assert decision.decided_at == "2025-03-01"

    def test_corrupt_record_is_denial(self) -> None:
        assert parse_decision("{not json").granted is False

    def test_truthy_non_bool_is_denial(self) -> None:
        """Only a literal true grants consent."""
        assert parse_decision(json.dumps({"granted": "yes"})).granted is False
        assert parse_decision(json.dumps([True])).granted is False


class TestConsentGate:
    """Test consent decisions."""

    def test_default_is_no_consent(self, memory_store, clock) -> None:
        gate = ConsentGate(memory_store, clock)
        assert gate.has_consent() is False

    def test_grant_persists(self, memory_store, clock) -> None:
        ConsentGate(memory_store, clock).grant()

        # A fresh gate over the same store sees the decision (page reload)
        assert ConsentGate(memory_store, clock).has_consent() is True

    def test_revoke_after_grant(self, memory_store, clock) -> None:
        gate = ConsentGate(memory_store, clock)
        gate.grant()
        gate.revoke()
        assert gate.has_consent() is False

    def test_has_consent_has_no_side_effects(self, clock) -> None:
        store = InMemoryKeyValueStore()
        gate = ConsentGate(store, clock)

        gate.has_consent()
        gate.has_consent()

        assert store.keys() == []

    def test_decision_records_time(self, memory_store, clock) -> None:
        decision = ConsentGate(memory_store, clock).grant()
        assert decision.decided_at == clock.now_utc().isoformat()
        assert json.loads(memory_store.get(CONSENT_KEY))["granted"] is True

    def test_unreadable_store_means_no_consent(self, failing_store, clock) -> None:
        assert ConsentGate(failing_store, clock).has_consent() is False

    def test_unwritable_grant_holds_in_memory(self, failing_store, clock) -> None:
        gate = ConsentGate(failing_store, clock)

        decision = gate.grant()

        assert decision.granted is True
        assert gate.has_consent() is True
