"""
Normalizer component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# --- Validation Error ---


@dataclass(frozen=True)
class TrackingValidationError:
    """Event validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class NormalizerConfig:
    """Event normalization configuration."""

    pageview_event_names: frozenset[str] = frozenset({"page_view", "pageview"})
    supported_languages: frozenset[str] = frozenset(
        {"en", "es", "fr", "de", "it", "pt", "ru", "ja", "ko", "zh", "ar", "hi", "sw"}
    )
    default_language: str = "en"

    # Field length limits
    max_user_agent_length: int = 500
    max_referrer_length: int = 1000
    max_url_length: int = 2000


# --- Input Model ---


@dataclass(frozen=True)
class RawEvent:
    """Caller-supplied event description, before validation."""

    event_name: Any
    event_type: Any = None
    metadata: Any = None
    page: str | None = None
    url: str | None = None
    referrer: str | None = None
    title: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
