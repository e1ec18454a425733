"""
Geographic utility functions.

Used to filter live vehicle positions around a map viewport centre.
"""

from math import asin, cos, radians, sin, sqrt
from typing import Any, Dict, Iterable, List

EARTH_RADIUS_METERS = 6371000


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in meters (Haversine).

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * asin(sqrt(a)) * EARTH_RADIUS_METERS


def within_radius(
    items: Iterable[Dict[str, Any]],
    lat: float,
    lng: float,
    radius_meters: float,
) -> List[Dict[str, Any]]:
    """Keep the items (dicts with ``lat``/``lng``) within ``radius_meters``, nearest first.

    Each kept item gets a ``distance`` key in meters.
    """
    nearby = []
    for item in items:
        distance = calculate_distance(lat, lng, item["lat"], item["lng"])
        if distance <= radius_meters:
            nearby.append({**item, "distance": round(distance, 1)})
    nearby.sort(key=lambda item: item["distance"])
    return nearby
