"""
Normalizer component - Raw event validation and shaping.

Turns a caller's event description into the canonical Event record.

Invariants:
- Fails closed: an invalid event never reaches the network
- The session is only touched once the caller's input is valid
- eventType defaults to "pageview" for page-view names, otherwise "custom"
- Every event carries a session id; a pageview also carries a page
- timestamp is stamped once, here, and never changes afterwards
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from pagetrack.core.entities import Event, EventType
from pagetrack.ports.clock import ClockPort
from pagetrack.ports.page import PageContextPort

from .models import NormalizerConfig, RawEvent, TrackingValidationError
from .ports import AttributionSourcePort, SessionSourcePort

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = NormalizerConfig()

# Accepted spellings for each RawEvent field when given a plain mapping
_MAPPING_ALIASES: dict[str, tuple[str, ...]] = {
    "event_name": ("event_name", "eventName"),
    "event_type": ("event_type", "eventType"),
    "metadata": ("metadata", "eventData"),
    "page": ("page",),
    "url": ("url",),
    "referrer": ("referrer",),
    "title": ("title",),
}


# --- Pure Functions ---


def raw_event_from_mapping(data: Mapping[str, Any]) -> RawEvent:
    """
    Build a RawEvent from a plain mapping.

    Accepts snake_case and camelCase keys. Unrecognized keys are kept as extra
    and folded into metadata.
    """
    values: dict[str, Any] = {}
    consumed: set[str] = set()

    for attr, aliases in _MAPPING_ALIASES.items():
        for alias in aliases:
            if alias in data:
                values.setdefault(attr, data[alias])
                consumed.add(alias)

    extra = {k: v for k, v in data.items() if k not in consumed}
    return RawEvent(
        event_name=values.get("event_name"),
        event_type=values.get("event_type"),
        metadata=values.get("metadata"),
        page=values.get("page"),
        url=values.get("url"),
        referrer=values.get("referrer"),
        title=values.get("title"),
        extra=extra,
    )


def validate_event_name(event_name: Any) -> list[TrackingValidationError]:
    """Validate the event name is a non-empty string."""
    if not isinstance(event_name, str) or not event_name.strip():
        return [
            TrackingValidationError(
                code="event_name_required",
                message="Event name is required",
                field_name="event_name",
            )
        ]
    return []


def resolve_event_type(
    event_name: str,
    event_type: Any,
    config: NormalizerConfig = DEFAULT_CONFIG,
) -> tuple[str | None, list[TrackingValidationError]]:
    """
    Resolve the event type, applying the default when omitted.

    Unknown categories are accepted so custom instrumentation is never
    blocked by an incomplete taxonomy.
    """
    if event_type is None:
        if event_name in config.pageview_event_names:
            return EventType.PAGEVIEW.value, []
        return EventType.CUSTOM.value, []

    if isinstance(event_type, EventType):
        return event_type.value, []

    if not isinstance(event_type, str) or not event_type.strip():
        return None, [
            TrackingValidationError(
                code="invalid_event_type",
                message="Event type must be a non-empty string",
                field_name="event_type",
            )
        ]

    return event_type.strip(), []


def validate_metadata(
    metadata: Any,
    extra: Mapping[str, Any] | None = None,
) -> tuple[dict[str, Any], list[TrackingValidationError]]:
    """
    Validate metadata and merge extra keys into it.

    Metadata must be a string-keyed mapping whose merged values encode as
    JSON, since it is sent and persisted as-is.
    """
    merged: dict[str, Any] = {}

    if extra:
        merged.update(extra)

    if metadata is not None and (
        not isinstance(metadata, Mapping)
        or not all(isinstance(k, str) for k in metadata)
    ):
        return {}, [
            TrackingValidationError(
                code="invalid_metadata",
                message="Metadata must be a mapping with string keys",
                field_name="metadata",
            )
        ]

    merged.update(metadata or {})

    try:
        json.dumps(merged, allow_nan=False)
    except (TypeError, ValueError):
        return {}, [
            TrackingValidationError(
                code="invalid_metadata",
                message="Metadata values must be JSON-serializable",
                field_name="metadata",
            )
        ]

    return copy.deepcopy(merged), []


def normalize_language_code(
    language: str | None,
    config: NormalizerConfig = DEFAULT_CONFIG,
) -> str:
    """
    Reduce a locale to its two-letter language code.

    "en-US" -> "en". Unsupported or missing languages fall back to the default.
    """
    if not language or not isinstance(language, str):
        return config.default_language

    code = language.strip().lower().replace("_", "-").split("-")[0]
    if code in config.supported_languages:
        return code
    return config.default_language


def clean_text(value: Any, max_length: int | None = None) -> str | None:
    """Trim a string field. Empty or non-string values become None."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if max_length is not None and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    return cleaned


def format_timestamp(now: datetime) -> str:
    """ISO 8601 UTC with millisecond precision and a Z suffix."""
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# --- Event Normalizer ---


class EventNormalizer:
    """
    Event normalizer.

    Validates raw input, then stamps timestamp, session, attribution and the
    client fingerprint.
    """

    def __init__(
        self,
        sessions: SessionSourcePort,
        attribution: AttributionSourcePort,
        page_context: PageContextPort,
        clock: ClockPort,
        config: NormalizerConfig | None = None,
    ) -> None:
        self._sessions = sessions
        self._attribution = attribution
        self._page_context = page_context
        self._clock = clock
        self._config = config or DEFAULT_CONFIG

    def normalize(
        self,
        raw: RawEvent | Mapping[str, Any],
    ) -> tuple[Event | None, list[TrackingValidationError]]:
        """
        Normalize a raw event.

        Returns:
            Tuple of (event, errors). Event is None if validation fails.
        """
        if not isinstance(raw, RawEvent):
            if not isinstance(raw, Mapping):
                return None, [
                    TrackingValidationError(
                        code="invalid_event",
                        message="Event must be a RawEvent or a mapping",
                    )
                ]
            raw = raw_event_from_mapping(raw)

        errors: list[TrackingValidationError] = []

        errors.extend(validate_event_name(raw.event_name))
        if errors:
            self._log_rejection(raw, errors)
            return None, errors

        event_name = raw.event_name.strip()

        event_type, type_errors = resolve_event_type(event_name, raw.event_type, self._config)
        errors.extend(type_errors)

        metadata, metadata_errors = validate_metadata(raw.metadata, raw.extra)
        errors.extend(metadata_errors)

        if errors or event_type is None:
            self._log_rejection(raw, errors)
            return None, errors

        location = self._page_context.location()
        page = clean_text(raw.page) or clean_text(location.path)

        # Checked before touching the session: a pageview without a path is
        # never sent and must not renew the session either
        if event_type == EventType.PAGEVIEW.value and not page:
            errors.append(
                TrackingValidationError(
                    code="page_required",
                    message="Page is required for pageview events",
                    field_name="page",
                )
            )
            self._log_rejection(raw, errors)
            return None, errors

        session_id = clean_text(self._sessions.current_session_id())
        if not session_id:
            errors.append(
                TrackingValidationError(
                    code="session_id_required",
                    message="Session id is required",
                    field_name="session_id",
                )
            )
            self._log_rejection(raw, errors)
            return None, errors

        limits = self._config
        environment = self._page_context.environment()
        utm = self._attribution.current()
        referrer = raw.referrer if raw.referrer is not None else location.referrer

        event = Event(
            event_id=uuid4().hex,
            event_name=event_name,
            event_type=event_type,
            session_id=session_id,
            timestamp=format_timestamp(self._clock.now_utc()),
            page=page,
            url=clean_text(raw.url or location.url, limits.max_url_length),
            referrer=clean_text(referrer, limits.max_referrer_length),
            title=clean_text(raw.title or location.title),
            metadata=metadata,
            user_agent=clean_text(environment.user_agent, limits.max_user_agent_length),
            screen_resolution=environment.screen_resolution,
            language=normalize_language_code(environment.language, self._config),
            utm_source=utm.source,
            utm_medium=utm.medium,
            utm_campaign=utm.campaign,
            utm_content=utm.content,
            utm_term=utm.term,
        )

        return event, []

    def _log_rejection(
        self,
        raw: RawEvent,
        errors: list[TrackingValidationError],
    ) -> None:
        logger.warning(
            "Event %r rejected: %s",
            raw.event_name,
            ", ".join(e.code for e in errors),
        )
