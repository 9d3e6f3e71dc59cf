"""
Purpose: Normalized shapes returned by the routing layer.
What it does:
- RouteSegment: one start -> end path from a provider or the geometric fallback
- RouteResult: a multi-point route stitched from segments (or built from GPS)
- RouteSource / Confidence tags so callers can see how a route was obtained

Rule: No HTTP here. Providers normalize their payloads into these shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

LatLon = Tuple[float, float]


class RouteSource(str, Enum):
    OSRM = "osrm"
    OPENROUTESERVICE = "openrouteservice"
    STRAIGHT_LINE = "straight-line"
    GPS = "gps"

    # aggregate tags for stitched routes
    ROAD_API = "road-api"
    ROAD_MIXED = "road-mixed"
    GPS_FALLBACK = "gps-fallback"

    @property
    def is_road(self) -> bool:
        return self in (RouteSource.OSRM, RouteSource.OPENROUTESERVICE, RouteSource.ROAD_API)


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class RouteSegment:
    """
    A path between two waypoints.
    coordinates are (lat, lng) in travel order and always include both ends.
    """

    coordinates: List[LatLon]
    distance_m: float
    duration_s: float
    source: RouteSource
    confidence: Confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coordinates": [list(coordinate) for coordinate in self.coordinates],
            "distance": self.distance_m,
            "duration": self.duration_s,
            "source": self.source.value,
            "confidence": self.confidence.value,
        }


@dataclass
class RouteResult:
    """
    Output of RoutingResolver.resolve_route / build_gps_route.

    distance_m here is a display estimate. It is never written back into a
    tracking session's live distance.
    """

    coordinates: List[LatLon] = field(default_factory=list)
    distance_m: float = 0.0
    duration_s: float = 0.0
    segments: List[RouteSegment] = field(default_factory=list)
    source: RouteSource = RouteSource.GPS_FALLBACK
    confidence: Confidence = Confidence.LOW

    @classmethod
    def empty(cls) -> RouteResult:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.coordinates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coordinates": [list(coordinate) for coordinate in self.coordinates],
            "totalDistance": self.distance_m,
            "duration": self.duration_s,
            "segments": [segment.to_dict() for segment in self.segments],
            "source": self.source.value,
            "confidence": self.confidence.value,
        }
