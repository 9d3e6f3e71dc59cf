"""
Purpose: Central configuration for route resolution.
What it does:

Stores all tunable thresholds/caps for the routing resolver:

CACHE_CAPACITY = 100
CACHE_TTL_S = 1800
PROVIDER_TIMEOUT_S = 10
FALLBACK_SPEED_MPS = 13.89 (~50 km/h)

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RoutingPolicy:
    """
    Central configuration for RoutingResolver.
    """

    # --- Segment cache ---
    # Max cached (start, end) segments. Oldest insertion is evicted first.
    cache_capacity: int = 100

    # Entries older than this are ignored on lookup and recomputed.
    cache_ttl_s: float = 30 * 60

    # Cache keys round coordinates to this many decimals (~1 m at 5).
    cache_precision: int = 5

    # --- Provider calls ---
    # Hard deadline per provider attempt. A timed-out call counts as a failure.
    provider_timeout_s: float = 10.0

    # Worker threads used to enforce provider deadlines.
    max_workers: int = 4

    # --- Geometric fallback ---
    # Used to estimate duration for straight-line segments.
    fallback_speed_mps: float = 13.89

    # Segments shorter than this skip the providers entirely.
    direct_line_threshold_m: float = 50.0

    # --- Multi-point routes ---
    # If set, long point lists are thinned to this many segments before
    # resolving to keep provider traffic bounded.
    max_segments: Optional[int] = None

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.cache_capacity <= 0:
            raise ValueError("cache_capacity must be > 0")

        if self.cache_ttl_s <= 0:
            raise ValueError("cache_ttl_s must be > 0")

        if self.provider_timeout_s <= 0:
            raise ValueError("provider_timeout_s must be > 0")

        if self.max_workers <= 0:
            raise ValueError("max_workers must be > 0")

        if self.fallback_speed_mps <= 0:
            raise ValueError("fallback_speed_mps must be > 0")

        if self.direct_line_threshold_m < 0:
            raise ValueError("direct_line_threshold_m must be >= 0")

        if self.max_segments is not None and self.max_segments < 1:
            raise ValueError("max_segments must be >= 1 when set")


def default_routing_policy() -> RoutingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = RoutingPolicy()
    p.validate()
    return p
