from __future__ import annotations

import json
from collections import deque
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from pagetrack.adapters.kv_store import InMemoryKeyValueStore
from pagetrack.adapters.page import StaticPageContext
from pagetrack.ports.page import ClientEnvironment
from pagetrack.ports.storage import StorageUnavailableError
from pagetrack.rules.models import CollectorRules, RetryRules, TrackingRules
from pagetrack.tracker import Tracker, create_tracker

COLLECTOR_BASE = "http://collector.test/api/analytics"


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FailingStore:
    """Store that behaves like a full or disabled browser storage."""

    def __init__(self, fail_reads: bool = True) -> None:
        self.fail_reads = fail_reads
        self.writes = 0

    def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageUnavailableError(key, "storage disabled")
        return None

    def set(self, key: str, value: str) -> None:
        self.writes += 1
        raise StorageUnavailableError(key, "quota exceeded")

    def delete(self, key: str) -> None:
        raise StorageUnavailableError(key, "storage disabled")


class CollectorStub:
    """
    Scripted collector behind httpx.MockTransport.

    Each request consumes the next scripted reply: a status code, or an
    httpx exception class to raise. When the script runs out, default_status
    is returned.
    """

    def __init__(self, default_status: int = 200) -> None:
        self.default_status = default_status
        self.requests: list[httpx.Request] = []
        self._script: deque[Any] = deque()

    def respond_with(self, *replies: Any) -> None:
        self._script.extend(replies)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self._script.popleft() if self._script else self.default_status

        if isinstance(reply, type) and issubclass(reply, httpx.HTTPError):
            raise reply("scripted failure", request=request)

        if reply == 204:
            return httpx.Response(204)
        return httpx.Response(reply, json={"success": 200 <= reply < 300})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def event_names(self) -> list[str]:
        return [p["eventName"] for p in self.payloads]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def page() -> StaticPageContext:
    return StaticPageContext(
        "https://blog.example.com/posts/hello",
        referrer="https://www.google.com/",
        title="Hello",
        environment=ClientEnvironment(
            user_agent="Mozilla/5.0 (X11; Linux x86_64)",
            screen_width=1920,
            screen_height=1080,
            language="en-US",
        ),
    )


@pytest.fixture
def collector() -> CollectorStub:
    return CollectorStub()


@pytest.fixture
def rules() -> TrackingRules:
    """Rules pointed at the stub collector, lifecycle events off for exact counts."""
    return TrackingRules(
        collector=CollectorRules(base_url=COLLECTOR_BASE),
        retry=RetryRules(
            initial_delay_seconds=0.01,
            interval_seconds=0.01,
            backoff_base_seconds=0.01,
            backoff_max_seconds=0.05,
            online_grace_seconds=0,
        ),
        lifecycle_events=False,
    )


@pytest.fixture
def make_tracker(rules, memory_store, page, clock, collector):
    """Factory for trackers sharing the fixture store, page, clock and collector."""

    def _make(consent: bool = True, **overrides: Any) -> Tracker:
        options: dict[str, Any] = {
            "rules": rules,
            "store": memory_store,
            "page": page,
            "clock": clock,
            "transport": collector.transport,
        }
        options.update(overrides)
        tracker = create_tracker(options.pop("rules"), **options)
        if consent:
            tracker.grant_consent()
        return tracker

    return _make


@pytest.fixture
def tracker(make_tracker) -> Tracker:
    return make_tracker()
