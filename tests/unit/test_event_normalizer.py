"""
Tests for EventNormalizer.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pagetrack.adapters.page import StaticPageContext
from pagetrack.components.attribution import AttributionStore
from pagetrack.components.normalizer import (
    EventNormalizer,
    NormalizerConfig,
    RawEvent,
    clean_text,
    format_timestamp,
    normalize_language_code,
    raw_event_from_mapping,
    resolve_event_type,
    validate_event_name,
    validate_metadata,
)
from pagetrack.components.session import SessionManager
from pagetrack.ports.page import ClientEnvironment, PageLocation
from pagetrack.ports.storage import SESSION_KEY


@pytest.fixture
def sessions(memory_store, clock) -> SessionManager:
    return SessionManager(memory_store, clock)


@pytest.fixture
def attribution(memory_store) -> AttributionStore:
    return AttributionStore(memory_store)


@pytest.fixture
def normalizer(sessions, attribution, page, clock) -> EventNormalizer:
    return EventNormalizer(sessions, attribution, page, clock)


class _NoSession:
    def current_session_id(self) -> str:
        return ""


class _BlankPage:
    def location(self) -> PageLocation:
        return PageLocation(path="", url="")

    def environment(self) -> ClientEnvironment:
        return ClientEnvironment()


# --- Pure Function Tests ---


class TestValidateEventName:
    """Test event name validation."""

    @pytest.mark.parametrize("name", [None, "", "   ", 42])
    def test_invalid_names(self, name) -> None:
        errors = validate_event_name(name)
        assert [e.code for e in errors] == ["event_name_required"]

    def test_valid_name(self) -> None:
        assert validate_event_name("signup") == []


class TestResolveEventType:
    """Test event type defaulting."""

    @pytest.mark.parametrize("name", ["page_view", "pageview"])
    def test_page_view_names_default_to_pageview(self, name) -> None:
        assert resolve_event_type(name, None) == ("pageview", [])

    def test_other_names_default_to_custom(self) -> None:
        assert resolve_event_type("newsletter_signup", None) == ("custom", [])

    def test_explicit_type_kept(self) -> None:
        assert resolve_event_type("page_view", "click") == ("click", [])

    def test_unknown_type_accepted(self) -> None:
        assert resolve_event_type("share", "social") == ("social", [])

    def test_blank_type_rejected(self) -> None:
        event_type, errors = resolve_event_type("share", "  ")
        assert event_type is None
        assert errors[0].code == "invalid_event_type"


class TestValidateMetadata:
    """Test metadata validation."""

    def test_none_is_empty(self) -> None:
        assert validate_metadata(None) == ({}, [])

    def test_non_mapping_rejected(self) -> None:
        _, errors = validate_metadata(["a"])
        assert errors[0].code == "invalid_metadata"

    def test_extra_merged_under_metadata(self) -> None:
        merged, _ = validate_metadata({"a": 1}, {"b": 2, "a": 0})
        assert merged == {"a": 1, "b": 2}

    def test_copied(self) -> None:
        original = {"nested": {"x": 1}}
        merged, _ = validate_metadata(original)
        original["nested"]["x"] = 2
        assert merged["nested"]["x"] == 1

    @pytest.mark.parametrize(
        "value",
        [datetime(2025, 3, 1, tzinfo=UTC), {1, 2}, object(), float("nan")],
    )
    def test_unencodable_values_rejected(self, value) -> None:
        merged, errors = validate_metadata({"ok": 1, "bad": value})

        assert merged == {}
        assert errors[0].code == "invalid_metadata"
        assert errors[0].field_name == "metadata"

    def test_unencodable_extra_rejected(self) -> None:
        _, errors = validate_metadata(None, {"when": datetime(2025, 3, 1, tzinfo=UTC)})
        assert errors[0].code == "invalid_metadata"


class TestHelpers:
    """Test small helpers."""

    @pytest.mark.parametrize(
        "language,expected",
        [("en-US", "en"), ("fr_FR", "fr"), ("DE", "de"), ("xx-YY", "en"), (None, "en"), ("", "en")],
    )
    def test_normalize_language_code(self, language, expected) -> None:
        assert normalize_language_code(language) == expected

    def test_clean_text(self) -> None:
        assert clean_text("  hi ") == "hi"
        assert clean_text("   ") is None
        assert clean_text(5) is None
        assert clean_text("abcdef", 3) == "abc"

    def test_format_timestamp(self) -> None:
        ts = format_timestamp(datetime(2025, 3, 1, 12, 0, 0, 123456, tzinfo=UTC))
        assert ts == "2025-03-01T12:00:00.123Z"

    def test_raw_event_from_mapping(self) -> None:
        raw = raw_event_from_mapping(
            {"eventName": "click", "eventType": "click", "eventData": {"a": 1}, "button": "cta"}
        )
        assert raw.event_name == "click"
        assert raw.metadata == {"a": 1}
        assert raw.extra == {"button": "cta"}


# --- Normalizer Tests ---


class TestEventNormalizer:
    """Test event shaping."""

    def test_page_view(self, normalizer, sessions) -> None:
        event, errors = normalizer.normalize(RawEvent(event_name="page_view"))

        assert errors == []
        assert event is not None
        assert event.event_type == "pageview"
        assert event.page == "/posts/hello"
        assert event.url == "https://blog.example.com/posts/hello"
        assert event.referrer == "https://www.google.com/"
        assert event.title == "Hello"
        assert event.session_id == sessions.peek().id

    def test_client_fingerprint(self, normalizer) -> None:
        event, _ = normalizer.normalize({"eventName": "signup"})

        assert event.user_agent == "Mozilla/5.0 (X11; Linux x86_64)"
        assert event.screen_resolution == "1920x1080"
        assert event.language == "en"

    def test_timestamp_from_clock(self, normalizer, clock) -> None:
        event, _ = normalizer.normalize({"eventName": "signup"})
        assert event.timestamp == "2025-03-01T12:00:00.000Z"

    def test_unique_event_ids(self, normalizer) -> None:
        first, _ = normalizer.normalize({"eventName": "signup"})
        second, _ = normalizer.normalize({"eventName": "signup"})
        assert first.event_id != second.event_id

    def test_attribution_merged(self, normalizer, attribution) -> None:
        attribution.capture_from_url("?utm_source=twitter&utm_campaign=launch")

        event, _ = normalizer.normalize({"eventName": "signup"})

        assert event.utm_source == "twitter"
        assert event.utm_campaign == "launch"
        assert event.to_payload()["utm_source"] == "twitter"

    def test_missing_name_rejected_without_touching_session(
        self, normalizer, memory_store
    ) -> None:
        event, errors = normalizer.normalize({"eventType": "click"})

        assert event is None
        assert errors[0].code == "event_name_required"
        assert memory_store.get(SESSION_KEY) is None

    def test_non_mapping_rejected(self, normalizer) -> None:
        event, errors = normalizer.normalize("page_view")
        assert event is None
        assert errors[0].code == "invalid_event"

    def test_unencodable_metadata_rejected_without_touching_session(
        self, normalizer, memory_store
    ) -> None:
        event, errors = normalizer.normalize(
            RawEvent(event_name="signup", metadata={"tags": {"a", "b"}})
        )

        assert event is None
        assert errors[0].code == "invalid_metadata"
        assert memory_store.get(SESSION_KEY) is None

    def test_pageview_without_page_rejected(self, sessions, attribution, clock) -> None:
        normalizer = EventNormalizer(sessions, attribution, _BlankPage(), clock)

        event, errors = normalizer.normalize(RawEvent(event_name="page_view"))

        assert event is None
        assert errors[0].code == "page_required"
        assert sessions.peek() is None

    def test_missing_session_rejected(self, attribution, page, clock) -> None:
        normalizer = EventNormalizer(_NoSession(), attribution, page, clock)

        event, errors = normalizer.normalize({"eventName": "signup"})

        assert event is None
        assert errors[0].code == "session_id_required"

    def test_field_limits(self, sessions, attribution, clock) -> None:
        page = StaticPageContext(
            "https://blog.example.com/" + "a" * 3000,
            environment=ClientEnvironment(user_agent="U" * 800),
        )
        normalizer = EventNormalizer(sessions, attribution, page, clock)

        event, _ = normalizer.normalize({"eventName": "signup", "referrer": "r" * 1500})

        assert len(event.url) == 2000
        assert len(event.user_agent) == 500
        assert len(event.referrer) == 1000

    def test_unsupported_language_uses_configured_default(
        self, sessions, attribution, clock
    ) -> None:
        page = StaticPageContext("/", environment=ClientEnvironment(language="nl-NL"))
        config = NormalizerConfig(default_language="de")
        normalizer = EventNormalizer(sessions, attribution, page, clock, config)

        event, _ = normalizer.normalize({"eventName": "signup"})

        assert event.language == "de"

    def test_explicit_page_overrides_location(self, normalizer) -> None:
        event, _ = normalizer.normalize(RawEvent(event_name="page_view", page="/about"))
        assert event.page == "/about"
