"""
Attribution component - First-touch campaign capture.
"""

from .component import (
    AttributionStore,
    add_utm_params,
    parse_attribution,
    parse_utm_query,
    remove_utm_params,
)
from .models import TRACKING_QUERY_PARAMS, UTM_FIELDS, UTMParams

__all__ = [
    "AttributionStore",
    "TRACKING_QUERY_PARAMS",
    "UTMParams",
    "UTM_FIELDS",
    "add_utm_params",
    "parse_attribution",
    "parse_utm_query",
    "remove_utm_params",
]
