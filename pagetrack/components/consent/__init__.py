"""
Consent component - Tracking permission gate.
"""

from .component import ConsentGate, parse_decision
from .models import ConsentDecision

__all__ = [
    "ConsentGate",
    "ConsentDecision",
    "parse_decision",
]
