"""
Static page context adapter.

Holds the current location and client environment in memory. The host calls
navigate() on client-side route changes; the pipeline reads it through
PageContextPort.
"""

from __future__ import annotations

from urllib.parse import urlparse

from pagetrack.ports.page import ClientEnvironment, PageLocation


class StaticPageContext:
    """In-memory implementation of PageContextPort."""

    def __init__(
        self,
        url: str = "/",
        *,
        referrer: str | None = None,
        title: str | None = None,
        environment: ClientEnvironment | None = None,
    ) -> None:
        self._location = _location_for(url, referrer, title)
        self._environment = environment or ClientEnvironment()

    def location(self) -> PageLocation:
        return self._location

    def environment(self) -> ClientEnvironment:
        return self._environment

    def navigate(self, url: str, *, title: str | None = None) -> PageLocation:
        """
        Move to a new URL. The previous URL becomes the referrer.

        Returns:
            The new location
        """
        self._location = _location_for(url, self._location.url, title)
        return self._location


def _location_for(url: str, referrer: str | None, title: str | None) -> PageLocation:
    path = urlparse(url).path or "/"
    return PageLocation(path=path, url=url, referrer=referrer, title=title)
