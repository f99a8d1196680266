"""
pagetrack - Consent-gated, offline-tolerant event tracking client.
"""

from pagetrack.adapters.kv_store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    create_json_file_store,
)
from pagetrack.adapters.page import StaticPageContext
from pagetrack.components.normalizer import RawEvent, TrackingValidationError
from pagetrack.components.retry import DrainResult
from pagetrack.context import TrackingContext
from pagetrack.core.entities import Event, EventType
from pagetrack.ports.page import ClientEnvironment, PageLocation
from pagetrack.rules.loader import load_rules
from pagetrack.rules.models import TrackingRules
from pagetrack.tracker import (
    TrackingStatus,
    TrackResult,
    Tracker,
    TrackStatus,
    create_tracker,
)

__all__ = [
    "ClientEnvironment",
    "DrainResult",
    "Event",
    "EventType",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "PageLocation",
    "RawEvent",
    "StaticPageContext",
    "TrackResult",
    "TrackStatus",
    "Tracker",
    "TrackingContext",
    "TrackingRules",
    "TrackingStatus",
    "TrackingValidationError",
    "create_json_file_store",
    "create_tracker",
    "load_rules",
]
