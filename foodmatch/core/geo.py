"""Great-circle distance between listing locations."""
from __future__ import annotations

import logging
import math
from typing import Optional

from foodmatch.core.types import GeoPoint

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Return the haversine distance in kilometres between *a* and *b*."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lon - a.lon)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def safe_distance_km(a: Optional[GeoPoint], b: Optional[GeoPoint]) -> float:
    """Distance that never raises: missing or invalid points are unreachable."""
    if a is None or b is None:
        return math.inf
    try:
        dist = haversine_km(a, b)
    except (TypeError, ValueError, AttributeError) as exc:
        logger.warning("Invalid coordinates %r / %r: %s", a, b, exc)
        return math.inf
    if math.isnan(dist):
        return math.inf
    return dist
