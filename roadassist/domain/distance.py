"""
Great-circle distance between a garage and a breakdown.

Haversine distance, not road distance.  The pending feed only reports it;
nothing is ranked or filtered by it.
"""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def garage_distance_km(
    garage_lat: Optional[float],
    garage_lng: Optional[float],
    request_lat: float,
    request_lng: float,
) -> Optional[float]:
    """
    Distance from a garage to a request, rounded to 0.1 km.

    ``None`` when the garage never captured its position or the request was
    submitted with a typed address only (stored as 0, 0).
    """
    if garage_lat is None or garage_lng is None:
        return None
    if request_lat == 0 and request_lng == 0:
        return None
    return round(haversine_km(garage_lat, garage_lng, request_lat, request_lng), 1)
