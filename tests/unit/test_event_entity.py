"""
Tests for the Event record.
"""

from __future__ import annotations

import pytest

from pagetrack.core.entities import Event


@pytest.fixture
def event() -> Event:
    return Event(
        event_id="e1",
        event_name="page_view",
        event_type="pageview",
        session_id="session_1_abc",
        timestamp="2025-03-01T12:00:00.000Z",
        page="/",
        metadata={"nested": {"x": 1}},
        utm_source="twitter",
    )


class TestEventPayload:
    """Test wire form."""

    def test_camel_case_fields(self, event) -> None:
        payload = event.to_payload()

        assert payload["eventName"] == "page_view"
        assert payload["eventType"] == "pageview"
        assert payload["sessionId"] == "session_1_abc"
        assert payload["utm_source"] == "twitter"

    def test_absent_fields_omitted(self, event) -> None:
        payload = event.to_payload()
        assert "referrer" not in payload
        assert "utm_medium" not in payload

    def test_payload_is_a_copy(self, event) -> None:
        event.to_payload()["metadata"]["nested"]["x"] = 99
        assert event.metadata["nested"]["x"] == 1

    def test_from_payload(self, event) -> None:
        assert Event.from_payload(event.to_payload()) == event

    def test_from_payload_requires_identity(self, event) -> None:
        payload = event.to_payload()
        del payload["sessionId"]
        with pytest.raises(KeyError):
            Event.from_payload(payload)

    def test_is_pageview(self, event) -> None:
        assert event.is_pageview is True
