"""
Normalizer component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from pagetrack.components.attribution.models import UTMParams


class SessionSourcePort(Protocol):
    """Supplies (and renews) the session id."""

    def current_session_id(self) -> str:
        """Get the live session id."""
        ...


class AttributionSourcePort(Protocol):
    """Supplies the captured campaign context."""

    def current(self) -> UTMParams:
        """Get the captured context."""
        ...
