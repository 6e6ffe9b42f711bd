"""Great-circle distance helpers.

A tiny geometry layer so arrival detection and the nearby scan can compare
positions without pulling in a GIS stack.
"""
from __future__ import annotations

from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt
from typing import Any

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


def as_point(value: Any) -> GeoPoint:
    """Coerce a ``GeoPoint``, ``(lat, lng)`` pair or any object with ``lat``/``lng``."""
    if isinstance(value, GeoPoint):
        return value
    if isinstance(value, (tuple, list)):
        lat, lng = value
        return GeoPoint(float(lat), float(lng))
    return GeoPoint(float(value.lat), float(value.lng))


def distance_km(a: Any, b: Any) -> float:
    """Haversine distance in kilometres on a 6371 km sphere.

    The radicand is clamped to ``[0, 1]`` so rounding can never push
    ``asin(sqrt(h))`` into NaN for identical or antipodal points.
    """
    p, q = as_point(a), as_point(b)
    lat1, lat2 = radians(p.lat), radians(q.lat)
    dlat = lat2 - lat1
    dlng = radians(q.lng - p.lng)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * asin(sqrt(h))
