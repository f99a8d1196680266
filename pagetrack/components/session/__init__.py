"""
Session component - Stable session id with a sliding expiry window.
"""

from .component import (
    SessionManager,
    is_expired,
    new_session_id,
    parse_session,
)
from .models import Session, SessionConfig

__all__ = [
    "SessionManager",
    "Session",
    "SessionConfig",
    "is_expired",
    "new_session_id",
    "parse_session",
]
