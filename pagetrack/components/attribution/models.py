"""
Attribution component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

UTM_FIELDS: tuple[str, ...] = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
)

# Stripped by remove_utm_params
TRACKING_QUERY_PARAMS: frozenset[str] = frozenset(
    {*UTM_FIELDS, "utm_id", "gclid", "fbclid", "msclkid"}
)


@dataclass(frozen=True)
class UTMParams:
    """First-touch campaign parameters."""

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    content: str | None = None
    term: str | None = None

    def has_any(self) -> bool:
        """Check if any UTM parameter is present."""
        return any(
            [
                self.source,
                self.medium,
                self.campaign,
                self.content,
                self.term,
            ]
        )

    def to_fields(self) -> dict[str, str]:
        """Wire representation: utm_* keys, present values only."""
        values = (self.source, self.medium, self.campaign, self.content, self.term)
        return {name: value for name, value in zip(UTM_FIELDS, values) if value}

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> UTMParams:
        def get_param(key: str) -> str | None:
            value = data.get(key)
            if value and isinstance(value, str):
                return value.strip() or None
            return None

        return cls(
            source=get_param("utm_source"),
            medium=get_param("utm_medium"),
            campaign=get_param("utm_campaign"),
            content=get_param("utm_content"),
            term=get_param("utm_term"),
        )
