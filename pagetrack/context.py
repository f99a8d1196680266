"""
Tracking context - Builds the pipeline components from rules.

Replaces module-level globals with one explicit object that owns every
component and adapter.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from pagetrack.adapters.clock import SystemClock
from pagetrack.adapters.kv_store import create_json_file_store
from pagetrack.adapters.page import StaticPageContext
from pagetrack.components.attribution import AttributionStore
from pagetrack.components.consent import ConsentGate
from pagetrack.components.dispatcher import Dispatcher, DispatcherConfig
from pagetrack.components.normalizer import EventNormalizer, NormalizerConfig
from pagetrack.components.offline_queue import OfflineQueue, QueueConfig
from pagetrack.components.retry import RetryConfig, RetryScheduler
from pagetrack.components.session import SessionConfig, SessionManager
from pagetrack.ports.clock import ClockPort
from pagetrack.ports.page import PageContextPort
from pagetrack.ports.storage import KeyValueStorePort
from pagetrack.rules.loader import apply_env_overrides
from pagetrack.rules.models import TrackingRules

# --- Config Builders ---


def session_config_from_rules(rules: TrackingRules) -> SessionConfig:
    return SessionConfig(ttl_minutes=rules.session.ttl_minutes)


def queue_config_from_rules(rules: TrackingRules) -> QueueConfig:
    return QueueConfig(
        capacity=rules.queue.capacity,
        max_retries=rules.queue.max_retries,
    )


def retry_config_from_rules(rules: TrackingRules) -> RetryConfig:
    return RetryConfig(
        initial_delay_seconds=rules.retry.initial_delay_seconds,
        interval_seconds=rules.retry.interval_seconds,
        backoff_base_seconds=rules.retry.backoff_base_seconds,
        backoff_max_seconds=rules.retry.backoff_max_seconds,
        online_grace_seconds=rules.retry.online_grace_seconds,
    )


def normalizer_config_from_rules(rules: TrackingRules) -> NormalizerConfig:
    normalizer = rules.normalizer
    return NormalizerConfig(
        pageview_event_names=frozenset(normalizer.pageview_event_names),
        supported_languages=frozenset(normalizer.supported_languages),
        default_language=normalizer.default_language,
        max_user_agent_length=normalizer.field_limits.user_agent,
        max_referrer_length=normalizer.field_limits.referrer,
        max_url_length=normalizer.field_limits.url,
    )


def dispatcher_config_from_rules(rules: TrackingRules) -> DispatcherConfig:
    collector = rules.collector
    return DispatcherConfig(
        base_url=collector.base_url,
        track_path=collector.track_path,
        pageview_path=collector.pageview_path,
        timeout_seconds=collector.timeout_seconds,
        analytics_version=collector.analytics_version,
        idempotency_window=rules.dispatcher.idempotency_window,
    )


# --- Context ---


@dataclass
class TrackingContext:
    rules: TrackingRules
    store: KeyValueStorePort
    clock: ClockPort
    page: PageContextPort
    consent: ConsentGate
    sessions: SessionManager
    attribution: AttributionStore
    normalizer: EventNormalizer
    dispatcher: Dispatcher
    queue: OfflineQueue
    scheduler: RetryScheduler

    @classmethod
    def create(
        cls,
        rules: TrackingRules | None = None,
        *,
        store: KeyValueStorePort | None = None,
        page: PageContextPort | None = None,
        clock: ClockPort | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> TrackingContext:
        """
        Wire the pipeline.

        Args:
            rules: Tracking rules (defaults, with env overrides applied)
            store: Key/value store (JSON files under PAGETRACK_STORAGE_PATH)
            page: Page context (a static "/" page)
            clock: Clock (system UTC clock)
            client: Shared HTTP client, closed by the caller
            transport: Transport for the owned HTTP client
        """
        rules = rules or apply_env_overrides(TrackingRules())
        store = store if store is not None else create_json_file_store()
        page = page or StaticPageContext()
        clock = clock or SystemClock()

        consent = ConsentGate(store, clock)
        sessions = SessionManager(store, clock, session_config_from_rules(rules))
        attribution = AttributionStore(store)
        normalizer = EventNormalizer(
            sessions,
            attribution,
            page,
            clock,
            normalizer_config_from_rules(rules),
        )
        dispatcher = Dispatcher(
            dispatcher_config_from_rules(rules),
            client=client,
            transport=transport,
        )
        queue = OfflineQueue(store, clock, queue_config_from_rules(rules))
        scheduler = RetryScheduler(dispatcher, queue, retry_config_from_rules(rules))

        return cls(
            rules=rules,
            store=store,
            clock=clock,
            page=page,
            consent=consent,
            sessions=sessions,
            attribution=attribution,
            normalizer=normalizer,
            dispatcher=dispatcher,
            queue=queue,
            scheduler=scheduler,
        )
