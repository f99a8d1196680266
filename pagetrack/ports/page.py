"""
Page environment ports.

The host page owns navigation and the client environment; the pipeline only
reads them. Both are supplied by the embedding application.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PageLocation:
    """Where the visitor currently is."""

    path: str
    url: str
    referrer: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class ClientEnvironment:
    """Coarse client fingerprint attached to every event."""

    user_agent: str | None = None
    screen_width: int | None = None
    screen_height: int | None = None
    language: str | None = None

    @property
    def screen_resolution(self) -> str | None:
        if self.screen_width is None or self.screen_height is None:
            return None
        return f"{self.screen_width}x{self.screen_height}"


class PageContextPort(Protocol):
    """Read access to the current page and client."""

    def location(self) -> PageLocation:
        """Get the current page location."""
        ...

    def environment(self) -> ClientEnvironment:
        """Get the client environment."""
        ...
