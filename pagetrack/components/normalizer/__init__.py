"""
Normalizer component - Raw event validation and shaping.
"""

from .component import (
    EventNormalizer,
    clean_text,
    format_timestamp,
    normalize_language_code,
    raw_event_from_mapping,
    resolve_event_type,
    validate_event_name,
    validate_metadata,
)
from .models import NormalizerConfig, RawEvent, TrackingValidationError
from .ports import AttributionSourcePort, SessionSourcePort

__all__ = [
    # Service
    "EventNormalizer",
    # Pure functions
    "clean_text",
    "format_timestamp",
    "normalize_language_code",
    "raw_event_from_mapping",
    "resolve_event_type",
    "validate_event_name",
    "validate_metadata",
    # Models
    "NormalizerConfig",
    "RawEvent",
    "TrackingValidationError",
    # Ports
    "AttributionSourcePort",
    "SessionSourcePort",
]
