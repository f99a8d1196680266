"""
Canonical event record shared by the pipeline components.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# --- Enums ---


class EventType(str, Enum):
    """Coarse event categories. Callers may also use their own strings."""

    PAGEVIEW = "pageview"
    CLICK = "click"
    CONVERSION = "conversion"
    ERROR = "error"
    ENGAGEMENT = "engagement"
    PERFORMANCE = "performance"
    CUSTOM = "custom"


# Wire name -> attribute name, in wire order
_PAYLOAD_FIELDS: tuple[tuple[str, str], ...] = (
    ("eventId", "event_id"),
    ("eventName", "event_name"),
    ("eventType", "event_type"),
    ("sessionId", "session_id"),
    ("page", "page"),
    ("url", "url"),
    ("referrer", "referrer"),
    ("title", "title"),
    ("timestamp", "timestamp"),
    ("userAgent", "user_agent"),
    ("screenResolution", "screen_resolution"),
    ("language", "language"),
    ("utm_source", "utm_source"),
    ("utm_medium", "utm_medium"),
    ("utm_campaign", "utm_campaign"),
    ("utm_content", "utm_content"),
    ("utm_term", "utm_term"),
)


# --- Event Model ---


@dataclass(frozen=True)
class Event:
    """
    Normalized event.

    Immutable once built: retries resend this exact record, including the
    timestamp of occurrence.
    """

    event_id: str
    event_name: str
    event_type: str
    session_id: str
    timestamp: str
    page: str | None = None
    url: str | None = None
    referrer: str | None = None
    title: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    user_agent: str | None = None
    screen_resolution: str | None = None
    language: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_content: str | None = None
    utm_term: str | None = None

    @property
    def is_pageview(self) -> bool:
        return self.event_type == EventType.PAGEVIEW.value

    def to_payload(self) -> dict[str, Any]:
        """
        JSON body sent to the collector.

        Absent optional fields are omitted rather than sent as null.
        """
        payload: dict[str, Any] = {}
        for wire_name, attr in _PAYLOAD_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                payload[wire_name] = value
        payload["metadata"] = copy.deepcopy(self.metadata)
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Event:
        """
        Rebuild an event from its wire form.

        Raises:
            KeyError: If a required field is missing
        """
        values: dict[str, Any] = {
            attr: payload.get(wire_name) for wire_name, attr in _PAYLOAD_FIELDS
        }
        for required in ("eventId", "eventName", "eventType", "sessionId", "timestamp"):
            if not payload.get(required):
                raise KeyError(required)
        metadata = payload.get("metadata")
        values["metadata"] = copy.deepcopy(metadata) if isinstance(metadata, dict) else {}
        return cls(**values)
