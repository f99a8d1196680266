"""
Consent component models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ConsentDecision:
    """Persisted consent decision."""

    granted: bool
    decided_at: str | None = None
