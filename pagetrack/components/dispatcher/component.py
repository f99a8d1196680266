"""
Dispatcher component - Event delivery to the collector.

Sends one normalized event per request and classifies the outcome.

Invariants:
- Every attempt is bounded by the configured timeout
- Success is decided by the status line, never by the body shape
- 2xx is delivered, even with an empty or non-JSON body
- 429, 5xx, timeouts and connection errors are transient
- Any other 4xx, or a body that cannot be encoded, is a permanent rejection
- An event whose idempotency key was already delivered is not sent again
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections import deque
from uuid import uuid4

import httpx

from pagetrack.core.entities import Event

from .models import DeliveryOutcome, DispatcherConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = DispatcherConfig()

TOO_MANY_REQUESTS = 429


# --- Pure Functions ---


def idempotency_key(event: Event) -> str:
    """
    Generate the idempotency key for an event.

    Stable across retries because the event record itself never changes.
    """
    parts = [event.event_id, event.event_name, event.session_id, event.timestamp]
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:32]


def classify_status(status_code: int) -> DeliveryOutcome:
    """Classify a collector response by its status code."""
    if 200 <= status_code < 300:
        return DeliveryOutcome.success(status_code=status_code)

    if status_code == TOO_MANY_REQUESTS:
        return DeliveryOutcome.transient("rate_limited", status_code=status_code)

    if 500 <= status_code < 600:
        return DeliveryOutcome.transient("server_error", status_code=status_code)

    if 400 <= status_code < 500:
        return DeliveryOutcome.rejected("client_error", status_code=status_code)

    # 1xx/3xx: the collector is misconfigured for this client; retrying won't help
    return DeliveryOutcome.rejected("unexpected_status", status_code=status_code)


def response_detail(response: httpx.Response) -> str:
    """Best-effort description of a failed response body, for logs."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]

    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            if data.get(key):
                return str(data[key])[:200]
    return str(data)[:200]


# --- Delivered Key Set ---


class DeliveredKeySet:
    """Bounded set of delivered idempotency keys; oldest forgotten first."""

    def __init__(self, max_size: int = 500) -> None:
        self._max_size = max_size
        self._order: deque[str] = deque()
        self._keys: set[str] = set()

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def add(self, key: str) -> None:
        if key in self._keys:
            return
        self._order.append(key)
        self._keys.add(key)
        while len(self._order) > self._max_size:
            self._keys.discard(self._order.popleft())

    def clear(self) -> None:
        self._order.clear()
        self._keys.clear()


# --- Dispatcher ---


class Dispatcher:
    """
    Collector dispatcher.

    Owns its httpx.AsyncClient unless one is injected.
    """

    def __init__(
        self,
        config: DispatcherConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            config: Collector configuration
            client: Shared client (caller closes it)
            transport: Transport for an owned client, e.g. httpx.MockTransport
        """
        self._config = config or DEFAULT_CONFIG
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            transport=transport,
        )
        self._delivered = DeliveredKeySet(self._config.idempotency_window)
        self.attempts = 0

    def endpoint_for(self, event: Event) -> str:
        """Collector URL for an event."""
        path = self._config.pageview_path if event.is_pageview else self._config.track_path
        return f"{self._config.base_url.rstrip('/')}{path}"

    def was_delivered(self, event: Event) -> bool:
        return idempotency_key(event) in self._delivered

    async def send(self, event: Event) -> DeliveryOutcome:
        """
        Attempt one delivery.

        Never raises for network or collector failures; they are returned as
        outcomes.
        """
        key = idempotency_key(event)
        if key in self._delivered:
            logger.debug("Event %s already delivered, not resending", event.event_id)
            return DeliveryOutcome.success(duplicate=True)

        url = self.endpoint_for(event)
        headers = {
            "Accept": "application/json",
            "X-Request-ID": f"req_{uuid4().hex[:16]}",
            "X-Analytics-Version": self._config.analytics_version,
            "Idempotency-Key": key,
        }

        self.attempts += 1
        try:
            response = await asyncio.wait_for(
                self._client.post(url, json=event.to_payload(), headers=headers),
                timeout=self._config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("Collector timeout for %s (%s)", event.event_name, url)
            return DeliveryOutcome.transient("timeout")
        except httpx.InvalidURL as e:
            logger.error("Collector URL %s is invalid: %s", url, e)
            return DeliveryOutcome.rejected("invalid_url")
        except (TypeError, ValueError) as e:
            logger.error("Event %s cannot be encoded: %s", event.event_name, e)
            return DeliveryOutcome.rejected("unencodable_payload")
        except httpx.HTTPError as e:
            logger.warning("Collector unreachable for %s: %s", event.event_name, e)
            return DeliveryOutcome.transient("connection_error")

        outcome = classify_status(response.status_code)

        if outcome.delivered:
            self._delivered.add(key)
            logger.debug("Delivered %s (%d)", event.event_name, response.status_code)
        elif outcome.retryable:
            logger.warning(
                "Collector returned %d for %s, will retry",
                response.status_code,
                event.event_name,
            )
        else:
            logger.error(
                "Collector rejected %s with %d: %s",
                event.event_name,
                response.status_code,
                response_detail(response),
            )

        return outcome

    async def aclose(self) -> None:
        """Close the owned HTTP client."""
        if self._owns_client:
            await self._client.aclose()
