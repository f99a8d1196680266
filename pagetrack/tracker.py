"""
Tracker - Public tracking API.

Runs every call through consent, normalization and delivery, queueing
transient failures for the retry scheduler.

Invariants:
- Nothing raises into the host; unexpected errors become status "failed"
- Without consent nothing is normalized, stored or sent
- An invalid event never reaches the network
- A transiently failed event is queued exactly once
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import urlparse

import httpx

from pagetrack.components.dispatcher import DeliveryOutcome
from pagetrack.components.normalizer import RawEvent, TrackingValidationError
from pagetrack.components.retry import DrainResult
from pagetrack.context import TrackingContext
from pagetrack.core.entities import Event, EventType
from pagetrack.ports.clock import ClockPort
from pagetrack.ports.page import PageContextPort
from pagetrack.ports.storage import KeyValueStorePort
from pagetrack.rules.models import TrackingRules

logger = logging.getLogger(__name__)

TrackStatus = Literal["delivered", "queued", "rejected", "invalid", "skipped", "failed"]

SESSION_START_EVENT = "session_start"
UTM_ACQUISITION_EVENT = "utm_acquisition"
PAGE_VIEW_EVENT = "page_view"

MAX_ERROR_MESSAGE_LENGTH = 500
MAX_SHARE_CONTENT_LENGTH = 200
MIN_VISIBLE_SECONDS = 1.0


# --- Results ---


@dataclass(frozen=True)
class TrackResult:
    """Result of a track call."""

    status: TrackStatus
    event: Event | None = None
    errors: list[TrackingValidationError] = field(default_factory=list)
    outcome: DeliveryOutcome | None = None
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        """True if the pipeline took ownership of the event."""
        return self.status in ("delivered", "queued")


@dataclass(frozen=True)
class TrackingStatus:
    """Snapshot of the pipeline state, for diagnostics."""

    initialized: bool
    has_consent: bool
    session_id: str | None
    queued_events: int
    online: bool
    scheduler_running: bool
    durable_storage: bool
    collector_url: str
    language: str | None


def _compact(values: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


# --- Tracker ---


class Tracker:
    """
    Client-side tracker.

    Use create_tracker() to build one with default adapters.
    """

    def __init__(self, context: TrackingContext) -> None:
        self._ctx = context
        self._initialized = False
        self._visible = True
        self._visible_since = context.clock.now_utc()

    @property
    def context(self) -> TrackingContext:
        return self._ctx

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def init_tracking(self, entry_url: str | None = None) -> bool:
        """
        Start tracking for this page.

        Idempotent. Without consent nothing is started and False is returned;
        call again once consent is granted.

        Args:
            entry_url: URL the visitor landed on (defaults to the current page)

        Returns:
            True if tracking is active
        """
        if self._initialized:
            return True

        try:
            if not self._ctx.consent.has_consent():
                logger.info("Tracking not initialized: no consent")
                return False

            url = entry_url if entry_url is not None else self._ctx.page.location().url
            utm, captured = self._ctx.attribution.capture_from_url(url)

            self._initialized = True
            self._visible_since = self._ctx.clock.now_utc()
            self._ctx.scheduler.start()
            logger.info("Tracking initialized (collector %s)", self._ctx.rules.collector.base_url)

            if captured and self._ctx.rules.lifecycle_events:
                await self._emit(
                    RawEvent(
                        event_name=UTM_ACQUISITION_EVENT,
                        event_type=EventType.CONVERSION.value,
                        metadata=utm.to_fields(),
                    )
                )
            return True
        except Exception:
            logger.exception("Tracking initialization failed")
            return False

    # --- Consent ---

    def grant_consent(self) -> None:
        """Record an opt-in. Call init_tracking() afterwards to start."""
        self._ctx.consent.grant()

    async def revoke_consent(self) -> None:
        """
        Record an opt-out.

        Stops replay and forgets the session and any queued events.
        """
        try:
            self._ctx.consent.revoke()
            await self._ctx.scheduler.stop()
            self._ctx.sessions.clear()
            self._ctx.queue.clear()
            self._initialized = False
        except Exception:
            logger.exception("Consent revocation cleanup failed")

    def has_consent(self) -> bool:
        return self._ctx.consent.has_consent()

    # --- Tracking ---

    async def track(self, raw: RawEvent | Mapping[str, Any]) -> TrackResult:
        """
        Track an event.

        Accepts a RawEvent or a mapping with eventName/eventType/eventData
        (or snake_case) keys.
        """
        try:
            return await self._track(raw)
        except Exception:
            logger.exception("Unexpected error while tracking")
            return TrackResult(status="failed", reason="internal_error")

    async def track_page_view(self, path: str | None = None) -> TrackResult:
        """Track a page view of path (defaults to the current page)."""
        return await self.track(
            RawEvent(
                event_name=PAGE_VIEW_EVENT,
                event_type=EventType.PAGEVIEW.value,
                page=path,
            )
        )

    async def track_event(
        self,
        event_name: str,
        event_type: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> TrackResult:
        """Track a named event. The type defaults from the name."""
        return await self.track(
            RawEvent(
                event_name=event_name,
                event_type=event_type,
                metadata=dict(metadata) if metadata is not None else None,
            )
        )

    async def track_affiliate_click(
        self,
        url: str,
        product: str | None = None,
        position: str | None = None,
        **details: Any,
    ) -> TrackResult:
        return await self.track(
            RawEvent(
                event_name="affiliate_click",
                event_type=EventType.CLICK.value,
                url=url,
                metadata=_compact({"product": product, "position": position, **details}),
            )
        )

    async def track_outbound_click(
        self,
        url: str,
        text: str | None = None,
        link_type: str = "general",
        is_affiliate: bool = False,
        **details: Any,
    ) -> TrackResult:
        return await self.track(
            RawEvent(
                event_name="outbound_click",
                event_type=EventType.CLICK.value,
                metadata=_compact(
                    {
                        "targetUrl": url,
                        "destination": urlparse(url).hostname,
                        "text": text,
                        "linkType": link_type,
                        "isAffiliate": is_affiliate,
                        "isExternal": True,
                        **details,
                    }
                ),
            )
        )

    async def track_user_interaction(
        self,
        element: str,
        action: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> TrackResult:
        return await self.track(
            RawEvent(
                event_name="user_interaction",
                event_type=EventType.CLICK.value,
                metadata={"element": element, "action": action, **(metadata or {})},
            )
        )

    async def track_error(
        self,
        error: BaseException | str,
        context: Mapping[str, Any] | None = None,
    ) -> TrackResult:
        """Track an application error. Messages are truncated."""
        if isinstance(error, BaseException):
            message, error_type = str(error), type(error).__name__
        else:
            message, error_type = str(error), "Error"

        return await self.track(
            RawEvent(
                event_name="application_error",
                event_type=EventType.ERROR.value,
                metadata={
                    "errorMessage": message[:MAX_ERROR_MESSAGE_LENGTH],
                    "errorType": error_type,
                    **(context or {}),
                },
            )
        )

    async def track_performance(self, metrics: Mapping[str, float | int | None]) -> TrackResult:
        """Track page timing metrics (milliseconds). Missing metrics are dropped."""
        return await self.track(
            RawEvent(
                event_name="page_performance",
                event_type=EventType.PERFORMANCE.value,
                metadata=_compact(metrics),
            )
        )

    async def track_scroll_depth(self, depth: int) -> TrackResult:
        return await self.track(
            RawEvent(
                event_name="scroll_depth",
                event_type=EventType.ENGAGEMENT.value,
                metadata={"depth": depth},
            )
        )

    async def track_social_share(self, platform: str, content: str | None = None) -> TrackResult:
        return await self.track(
            RawEvent(
                event_name="social_share",
                event_type="social",
                metadata=_compact(
                    {
                        "platform": platform,
                        "content": content[:MAX_SHARE_CONTENT_LENGTH] if content else None,
                    }
                ),
            )
        )

    async def track_ecommerce_event(
        self,
        action: str,
        data: Mapping[str, Any] | None = None,
    ) -> TrackResult:
        """Track a shop event such as "purchase" as ecommerce_<action>."""
        return await self.track(
            RawEvent(
                event_name=f"ecommerce_{action}",
                event_type=EventType.CONVERSION.value,
                metadata=dict(data) if data is not None else None,
            )
        )

    async def track_email_click(
        self,
        url: str,
        email_type: str | None = None,
        subject: str | None = None,
        position: str | None = None,
        campaign: str = "newsletter",
        content: str | None = None,
        term: str | None = None,
    ) -> TrackResult:
        """Track a click on a link in an email."""
        return await self.track(
            RawEvent(
                event_name="email_click",
                event_type=EventType.CLICK.value,
                url=url,
                metadata=_compact(
                    {
                        "emailType": email_type,
                        "subject": subject,
                        "linkPosition": position,
                        "medium": "email",
                        "campaign": campaign,
                        "content": content,
                        "term": term,
                    }
                ),
            )
        )

    async def track_visibility(self, hidden: bool) -> TrackResult:
        """
        Report a page visibility change from the host.

        Going hidden sends how long the page was visible, unless that was
        under a second. Becoming visible again after being hidden is sent too.
        """
        try:
            now = self._ctx.clock.now_utc()
            was_visible = self._visible
            self._visible = not hidden

            if not hidden:
                self._visible_since = now
                if was_visible:
                    return TrackResult(status="skipped", reason="visibility_unchanged")
                return await self._track(
                    RawEvent(
                        event_name="page_visibility",
                        event_type=EventType.ENGAGEMENT.value,
                        metadata={"action": "visible"},
                    )
                )

            if not was_visible:
                return TrackResult(status="skipped", reason="visibility_unchanged")

            visible_seconds = (now - self._visible_since).total_seconds()
            if visible_seconds < MIN_VISIBLE_SECONDS:
                return TrackResult(status="skipped", reason="below_threshold")

            return await self._track(
                RawEvent(
                    event_name="page_visibility",
                    event_type=EventType.ENGAGEMENT.value,
                    metadata={"action": "hidden", "visibleTime": round(visible_seconds)},
                )
            )
        except Exception:
            logger.exception("Unexpected error while tracking visibility")
            return TrackResult(status="failed", reason="internal_error")

    def get_session_id(self) -> str | None:
        """Current session id without renewing it. None if there is no live session."""
        try:
            session = self._ctx.sessions.peek()
        except Exception:
            logger.exception("Session lookup failed")
            return None
        return session.id if session else None

    # --- Connectivity and replay ---

    def set_online(self, online: bool) -> None:
        """Report a connectivity change from the host."""
        self._ctx.scheduler.set_online(online)

    async def flush(self) -> DrainResult:
        """Replay the offline queue now."""
        try:
            return await self._ctx.scheduler.run_once()
        except Exception:
            logger.exception("Offline queue flush failed")
            return DrainResult(skipped=True)

    async def reset(self) -> None:
        """Forget session, attribution and queued events, and stop replay."""
        try:
            await self._ctx.scheduler.stop()
            self._ctx.sessions.clear()
            self._ctx.attribution.clear()
            self._ctx.queue.clear()
            self._initialized = False
            logger.info("Tracking reset")
        except Exception:
            logger.exception("Tracking reset failed")

    def status(self) -> TrackingStatus:
        ctx = self._ctx
        return TrackingStatus(
            initialized=self._initialized,
            has_consent=ctx.consent.has_consent(),
            session_id=self.get_session_id(),
            queued_events=len(ctx.queue),
            online=ctx.scheduler.online,
            scheduler_running=ctx.scheduler.is_running,
            durable_storage=ctx.queue.durable and not ctx.sessions.degraded,
            collector_url=ctx.rules.collector.base_url,
            language=ctx.page.environment().language,
        )

    async def aclose(self) -> None:
        """Stop replay and release the HTTP client."""
        await self._ctx.scheduler.stop()
        await self._ctx.dispatcher.aclose()

    # --- Internals ---

    async def _track(self, raw: RawEvent | Mapping[str, Any]) -> TrackResult:
        if not self._ctx.consent.has_consent():
            logger.debug("Event skipped: no consent")
            return TrackResult(status="skipped", reason="no_consent")

        return await self._emit(raw)

    async def _emit(
        self,
        raw: RawEvent | Mapping[str, Any],
        announce_session: bool = True,
    ) -> TrackResult:
        had_session = self._ctx.sessions.peek() is not None

        event, errors = self._ctx.normalizer.normalize(raw)
        if event is None:
            return TrackResult(
                status="invalid",
                errors=errors,
                reason=errors[0].code if errors else None,
            )

        # session_start goes out ahead of the event that opened the session
        if announce_session and not had_session and self._ctx.rules.lifecycle_events:
            await self._emit(
                RawEvent(
                    event_name=SESSION_START_EVENT,
                    event_type="session",
                    metadata={"trigger": event.event_name},
                ),
                announce_session=False,
            )

        return await self._deliver(event)

    async def _deliver(self, event: Event) -> TrackResult:
        if not self._ctx.scheduler.online:
            self._ctx.queue.enqueue(event)
            return TrackResult(status="queued", event=event, reason="offline")

        outcome = await self._ctx.dispatcher.send(event)

        if outcome.delivered:
            return TrackResult(status="delivered", event=event, outcome=outcome)

        if outcome.retryable:
            self._ctx.queue.enqueue(event)
            return TrackResult(
                status="queued",
                event=event,
                outcome=outcome,
                reason=outcome.reason,
            )

        return TrackResult(
            status="rejected",
            event=event,
            outcome=outcome,
            reason=outcome.reason,
        )


def create_tracker(
    rules: TrackingRules | None = None,
    *,
    store: KeyValueStorePort | None = None,
    page: PageContextPort | None = None,
    clock: ClockPort | None = None,
    client: httpx.AsyncClient | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Tracker:
    """
    Create a tracker.

    Args:
        rules: Tracking rules
        store: Key/value store for consent, session, attribution and queue
        page: Page context
        clock: Clock
        client: Shared HTTP client
        transport: Transport for the owned HTTP client, e.g. httpx.MockTransport

    Returns:
        Configured Tracker
    """
    context = TrackingContext.create(
        rules,
        store=store,
        page=page,
        clock=clock,
        client=client,
        transport=transport,
    )
    return Tracker(context)
