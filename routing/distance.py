"""
Purpose: Great-circle distance math shared by live tracking and routing.
What it does:
- haversine_m: raw Haversine between two (lat, lng) pairs, in meters
- haversine_meters: same thing for samples or (lat, lng) tuples
- accumulate: total distance over an ordered history
- running_total: the reducer the tracker applies per accepted sample

Rule: pure functions only. No I/O, no clocks.
"""

from __future__ import annotations

import math
from typing import Any, Optional, Sequence, Tuple

LatLon = Tuple[float, float]

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius


def as_latlon(point: Any) -> LatLon:
    """Accept a LocationSample-like object (.lat/.lng) or a (lat, lng) tuple."""
    if isinstance(point, (tuple, list)):
        return float(point[0]), float(point[1])
    return float(point.lat), float(point.lng)


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # clamp: rounding can push a a hair above 1.0 for antipodal points
    a = min(1.0, a)
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def haversine_meters(a: Any, b: Any) -> float:
    """
    Great-circle distance between two points in meters.

    Symmetric, and exactly 0.0 for identical coordinates.
    """
    lat1, lng1 = as_latlon(a)
    lat2, lng2 = as_latlon(b)
    if lat1 == lat2 and lng1 == lng2:
        return 0.0
    return haversine_m(lat1, lng1, lat2, lng2)


def accumulate(history: Sequence[Any]) -> float:
    """
    Sum of pairwise distances over consecutive entries.
    Empty and single-entry histories are 0.
    """
    total = 0.0
    for index in range(1, len(history)):
        total += haversine_meters(history[index - 1], history[index])
    return total


def running_total(total: float, previous: Optional[Any], sample: Any) -> float:
    """Fold one more sample into a running distance total."""
    if previous is None:
        return total
    return total + haversine_meters(previous, sample)
