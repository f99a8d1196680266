"""
Attribution component - First-touch campaign capture.

Extracts utm_* parameters from the entry URL and keeps them for every later
event in the same browsing context.
Pure helpers tag and clean outbound links.

Invariants:
- First touch wins: once captured, the context is never overwritten
- A later URL without UTM parameters never erases a captured campaign
- Only cleared explicitly
- Storage failure degrades to an in-memory context
"""

from __future__ import annotations

import json
import logging
from urllib.parse import parse_qs, parse_qsl, urlencode, urljoin, urlparse, urlunparse

from pagetrack.ports.storage import (
    ATTRIBUTION_KEY,
    KeyValueStorePort,
    StorageUnavailableError,
)

from .models import TRACKING_QUERY_PARAMS, UTM_FIELDS, UTMParams

logger = logging.getLogger(__name__)


def parse_utm_query(query_or_url: str | None) -> UTMParams:
    """
    Parse UTM parameters from a query string or full URL.

    Accepts "utm_source=x", "?utm_source=x" or "https://host/p?utm_source=x".
    Values are trimmed; empty values are ignored.
    """
    if not query_or_url:
        return UTMParams()

    if "?" in query_or_url and not query_or_url.startswith("?"):
        query = urlparse(query_or_url).query
    else:
        query = query_or_url.split("#", 1)[0].lstrip("?")

    parsed = parse_qs(query, keep_blank_values=False)
    first_values = {key: values[0] for key, values in parsed.items() if key in UTM_FIELDS}
    return UTMParams.from_fields(first_values)


def add_utm_params(
    url: str,
    params: UTMParams,
    *,
    base_url: str | None = None,
    campaign_id: str | None = None,
) -> str:
    """
    Tag a link with campaign parameters.

    Parameters already on the URL are kept; only missing ones are added and
    the rest of the query is preserved. Relative URLs are resolved against
    base_url when given.

    Args:
        url: Link to tag
        params: Campaign parameters to add
        base_url: Site URL for relative links
        campaign_id: Sent as utm_id (e.g. the session id)

    Returns:
        Tagged URL, or url unchanged if it is empty or unparseable
    """
    if not url or not isinstance(url, str):
        return url

    try:
        if base_url and not urlparse(url).scheme:
            url = urljoin(base_url, url)
        parsed = urlparse(url)
    except ValueError:
        logger.warning("Cannot add campaign parameters to invalid URL %r", url)
        return url

    wanted = params.to_fields()
    if campaign_id:
        wanted["utm_id"] = campaign_id

    existing = parse_qsl(parsed.query, keep_blank_values=True)
    present = {key for key, _ in existing}
    additions = [(key, value) for key, value in wanted.items() if key not in present]
    if not additions:
        return url

    return urlunparse(parsed._replace(query=urlencode(existing + additions)))


def remove_utm_params(url: str) -> str:
    """Strip campaign and ad-click tracking parameters from a URL."""
    if not url or not isinstance(url, str):
        return url

    try:
        parsed = urlparse(url)
    except ValueError:
        logger.warning("Cannot clean invalid URL %r", url)
        return url

    existing = parse_qsl(parsed.query, keep_blank_values=True)
    kept = [(key, value) for key, value in existing if key not in TRACKING_QUERY_PARAMS]
    if len(kept) == len(existing):
        return url

    return urlunparse(parsed._replace(query=urlencode(kept)))


def parse_attribution(raw: str | None) -> UTMParams:
    """Parse a stored attribution record. Corrupt records are treated as empty."""
    if not raw:
        return UTMParams()

    try:
        doc = json.loads(raw)
    except ValueError:
        logger.debug("Discarding unreadable attribution record")
        return UTMParams()

    if not isinstance(doc, dict):
        return UTMParams()

    return UTMParams.from_fields(doc)


class AttributionStore:
    """
    Attribution store.

    Exclusively owns the persisted attribution record.
    """

    def __init__(self, store: KeyValueStorePort) -> None:
        self._store = store
        self._memory = UTMParams()
        self._degraded = False

    def capture_from_url(self, query_or_url: str | None) -> tuple[UTMParams, bool]:
        """
        Capture campaign parameters from the entry URL.

        Idempotent: calling it again, with or without UTM parameters, leaves
        an already captured context untouched.

        Returns:
            Tuple of (current context, captured). captured is True only when
            this call stored a new context.
        """
        existing = self.current()
        if existing.has_any():
            return existing, False

        params = parse_utm_query(query_or_url)
        if not params.has_any():
            return existing, False

        self._save(params)
        logger.info("Captured campaign attribution: %s", params.to_fields())
        return params, True

    def current(self) -> UTMParams:
        """Get the captured context (empty if none)."""
        if self._degraded:
            return self._memory
        try:
            return parse_attribution(self._store.get(ATTRIBUTION_KEY))
        except StorageUnavailableError as e:
            self._degrade(e)
            return self._memory

    def clear(self) -> None:
        """Forget the captured context."""
        self._memory = UTMParams()
        if self._degraded:
            return
        try:
            self._store.delete(ATTRIBUTION_KEY)
        except StorageUnavailableError as e:
            self._degrade(e)

    def _save(self, params: UTMParams) -> None:
        self._memory = params
        if self._degraded:
            return
        try:
            self._store.set(ATTRIBUTION_KEY, json.dumps(params.to_fields()))
        except StorageUnavailableError as e:
            self._degrade(e)

    def _degrade(self, error: StorageUnavailableError) -> None:
        if not self._degraded:
            logger.warning(
                "Attribution storage unavailable, keeping context in memory: %s",
                error.reason,
            )
        self._degraded = True
