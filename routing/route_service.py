#Purpose: Route computation for display/enrichment of recorded sessions.
#Returns the "best route" information needed by:
#map display / polyline geometry
#distance breakdowns (segments)
#Walks an ordered provider chain (OSRM, then OpenRouteService), and ends in a
#straight-line fallback that cannot fail, so resolve_segment is total.
#The distances produced here are road-network estimates. They are never
#written back into a tracking session's live distance.

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

import requests

from .distance import as_latlon, haversine_meters
from .errors import RoutingProviderError
from .models import Confidence, RouteResult, RouteSegment, RouteSource
from .ors_client import ORSClient
from .osrm_client import OSRMClient
from .policy import RoutingPolicy, default_routing_policy
from .route_cache import RouteCache

logger = logging.getLogger(__name__)

LatLon = Tuple[float, float]

# GPS cleaning thresholds
MIN_POINT_SPACING_M = 5.0
OUTLIER_DISTANCE_M = 200.0
OUTLIER_WINDOW_S = 10.0


def straight_line_segment(start: Any, end: Any, speed_mps: float = 13.89) -> RouteSegment:
    """
    Geometric fallback: a two-point line between start and end.
    Distance via Haversine, duration from an assumed average speed.
    """
    start_coord = as_latlon(start)
    end_coord = as_latlon(end)
    distance = haversine_meters(start_coord, end_coord)
    return RouteSegment(
        coordinates=[start_coord, end_coord],
        distance_m=distance,
        duration_s=distance / speed_mps,
        source=RouteSource.STRAIGHT_LINE,
        confidence=Confidence.MEDIUM if distance < 100 else Confidence.LOW,
    )


def select_key_points(points: Sequence[Any], max_points: int) -> List[Any]:
    """
    Thin a long point list while keeping its shape: always the first and
    last point, evenly spaced points in between.
    """
    if len(points) <= max_points:
        return list(points)
    if max_points <= 2:
        return [points[0], points[-1]]

    last_index = len(points) - 1
    indices = [round(step * last_index / (max_points - 1)) for step in range(max_points)]
    return [points[index] for index in indices]


def _timestamp_of(point: Any) -> Optional[datetime]:
    timestamp = getattr(point, "timestamp", None)
    return timestamp if isinstance(timestamp, datetime) else None


def clean_gps_points(points: Sequence[Any]) -> List[Any]:
    """
    Drop near-duplicates (< 5 m from the last kept point) and implausible
    jumps (> 200 m in under 10 s). If cleaning leaves fewer than two points
    the original list is returned unchanged.
    """
    if len(points) <= 2:
        return list(points)

    cleaned = [points[0]]
    for current in points[1:]:
        previous = cleaned[-1]
        distance = haversine_meters(previous, current)

        if distance < MIN_POINT_SPACING_M:
            continue

        previous_at = _timestamp_of(previous)
        current_at = _timestamp_of(current)
        if previous_at is not None and current_at is not None:
            gap_s = (current_at - previous_at).total_seconds()
            if 0 < gap_s < OUTLIER_WINDOW_S and distance > OUTLIER_DISTANCE_M:
                logger.warning("Skipping GPS outlier: %dm in %.1fs", round(distance), gap_s)
                continue

        cleaned.append(current)

    return cleaned if len(cleaned) >= 2 else list(points)


def assess_gps_quality(kept_count: int, original_count: int) -> Confidence:
    density = kept_count / original_count if original_count else 0.0
    if kept_count >= 10 and density > 0.7:
        return Confidence.HIGH
    if kept_count >= 5 and density > 0.5:
        return Confidence.MEDIUM
    return Confidence.LOW


class RoutingResolver:
    """
    Resolves road-following paths through an ordered provider chain.

    Providers are any objects with a `name` and
    `compute_route(List[LatLon]) -> RouteSegment` that raise on failure.
    Each attempt runs on the resolver's worker pool with a hard deadline,
    so one slow provider cannot hold up the rest of the chain.
    """

    def __init__(self,
                 providers: Optional[List[Any]] = None,
                 cache: Optional[RouteCache] = None,
                 policy: Optional[RoutingPolicy] = None):
        self.policy = policy or default_routing_policy()
        self.policy.validate()

        if providers is None:
            providers = [
                OSRMClient(timeout=self.policy.provider_timeout_s),
                ORSClient(timeout=self.policy.provider_timeout_s),
            ]
        self.providers = list(providers)
        self.cache = cache if cache is not None else RouteCache(
            capacity=self.policy.cache_capacity,
            ttl_s=self.policy.cache_ttl_s,
            precision=self.policy.cache_precision,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.policy.max_workers,
            thread_name_prefix="route-provider",
        )

    #----------------
    # provider chain
    #----------------
    def _attempt(self, provider: Any, start: LatLon, end: LatLon) -> Optional[RouteSegment]:
        name = getattr(provider, "name", type(provider).__name__)
        future = self._executor.submit(provider.compute_route, [start, end])
        try:
            segment = future.result(timeout=self.policy.provider_timeout_s)
        except FuturesTimeout:
            future.cancel()
            logger.warning("%s routing timed out after %.1fs", name, self.policy.provider_timeout_s)
            return None
        except (RoutingProviderError, requests.RequestException, ValueError) as exc:
            logger.warning("%s routing failed: %s", name, exc)
            return None
        except Exception:
            # third-party providers may raise anything; the chain must go on
            logger.exception("%s routing raised unexpectedly", name)
            return None

        if not isinstance(segment, RouteSegment) or len(segment.coordinates) < 2:
            logger.warning("%s routing returned an unusable result", name)
            return None
        return segment

    def resolve_segment(self, start: Any, end: Any) -> RouteSegment:
        """
        Road path between two points; never raises for valid coordinates.

        Order: cache -> short-distance direct line -> providers in order ->
        straight-line fallback.
        """
        start_coord = as_latlon(start)
        end_coord = as_latlon(end)

        cached = self.cache.get(start_coord, end_coord)
        if cached is not None:
            logger.debug("route cache hit %s -> %s", start_coord, end_coord)
            return cached

        straight_distance = haversine_meters(start_coord, end_coord)

        # Very short hops: the straight line is as good as any road path.
        if straight_distance < self.policy.direct_line_threshold_m:
            segment = straight_line_segment(start_coord, end_coord, self.policy.fallback_speed_mps)
            return RouteSegment(
                coordinates=segment.coordinates,
                distance_m=segment.distance_m,
                duration_s=segment.duration_s,
                source=segment.source,
                confidence=Confidence.HIGH,
            )

        segment = None
        for provider in self.providers:
            segment = self._attempt(provider, start_coord, end_coord)
            if segment is not None:
                break

        if segment is None:
            logger.warning(
                "All road routing providers failed for %dm segment; using straight line",
                round(straight_distance),
            )
            segment = straight_line_segment(start_coord, end_coord, self.policy.fallback_speed_mps)

        self.cache.put(start_coord, end_coord, segment)
        return segment

    def resolve_route(self, points: Sequence[Any]) -> RouteResult:
        """
        Stitch a multi-point route from per-pair segments.

        The junction coordinate shared by consecutive segments is kept once.
        """
        if len(points) < 2:
            return RouteResult.empty()

        key_points = list(points)
        if self.policy.max_segments is not None and len(key_points) > self.policy.max_segments + 1:
            key_points = select_key_points(key_points, self.policy.max_segments + 1)
            logger.info("Routing %d key points (from %d GPS points)", len(key_points), len(points))

        segments: List[RouteSegment] = []
        coordinates: List[LatLon] = []
        total_distance = 0.0
        total_duration = 0.0

        for index in range(len(key_points) - 1):
            segment = self.resolve_segment(key_points[index], key_points[index + 1])
            segments.append(segment)
            if index == 0:
                coordinates.extend(segment.coordinates)
            else:
                # skip the junction, it is the previous segment's last point
                coordinates.extend(segment.coordinates[1:])
            total_distance += segment.distance_m
            total_duration += segment.duration_s

        road_count = sum(1 for segment in segments if segment.source.is_road)
        road_ratio = road_count / len(segments)
        if road_ratio >= 0.8:
            source, confidence = RouteSource.ROAD_API, Confidence.HIGH
        elif road_ratio >= 0.5:
            source, confidence = RouteSource.ROAD_MIXED, Confidence.MEDIUM
        else:
            source, confidence = RouteSource.GPS_FALLBACK, Confidence.LOW

        logger.info(
            "Route complete: %d coordinates, %.2fkm, %d/%d road segments",
            len(coordinates), total_distance / 1000.0, road_count, len(segments),
        )

        return RouteResult(
            coordinates=coordinates,
            distance_m=total_distance,
            duration_s=total_duration,
            segments=segments,
            source=source,
            confidence=confidence,
        )

    def build_gps_route(self, points: Sequence[Any]) -> RouteResult:
        return build_gps_route(points, self.policy.fallback_speed_mps)

    def clear_cache(self) -> None:
        self.cache.clear()

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def __enter__(self) -> RoutingResolver:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def build_gps_route(points: Sequence[Any], speed_mps: float = 13.89) -> RouteResult:
    """
    Route made from the recorded samples themselves, no providers involved.
    Preferred over road routing whenever real GPS data is available.
    """
    if len(points) < 2:
        return RouteResult(source=RouteSource.GPS, confidence=Confidence.HIGH)

    cleaned = clean_gps_points(points)
    coordinates = [as_latlon(point) for point in cleaned]

    distance = 0.0
    for index in range(1, len(cleaned)):
        distance += haversine_meters(cleaned[index - 1], cleaned[index])

    first_at = _timestamp_of(cleaned[0])
    last_at = _timestamp_of(cleaned[-1])
    if first_at is not None and last_at is not None:
        duration = (last_at - first_at).total_seconds()
    else:
        duration = distance / speed_mps

    confidence = assess_gps_quality(len(cleaned), len(points))
    logger.info(
        "GPS route: %d/%d points, %.2fkm, %s confidence",
        len(cleaned), len(points), distance / 1000.0, confidence.value,
    )

    return RouteResult(
        coordinates=coordinates,
        distance_m=distance,
        duration_s=duration,
        segments=[],
        source=RouteSource.GPS,
        confidence=confidence,
    )
