"""
Purpose: Central configuration for live tracking.
What it does:

Stores all tunable thresholds/caps for a tracking session:

MIN_SAMPLE_INTERVAL_S = 10
PUSH_RETRY_DELAY_S = 3
MAX_CONSECUTIVE_PUSH_FAILURES = 3

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .geolocation import PositionOptions


@dataclass(frozen=True)
class TrackingPolicy:
    """
    Central configuration for the tracking session manager.
    """

    # --- Rate limiting ---
    # Samples arriving sooner than this after the last accepted one are dropped.
    min_sample_interval_s: float = 10.0

    # --- Session start ---
    # Bounded wait for the first fix. The session starts either way.
    initial_fix_timeout_s: float = 15.0

    # --- Elapsed-time ticker ---
    # Observation only; never touches route or distance.
    ticker_interval_s: float = 1.0

    # --- Push failure containment ---
    # One retry after this delay, for transient network errors only.
    push_retry_delay_s: float = 3.0

    # After this many consecutive counted failures the session is force-stopped.
    max_consecutive_push_failures: int = 3

    # --- Position source ---
    position_options: PositionOptions = field(default_factory=PositionOptions)

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.min_sample_interval_s < 0:
            raise ValueError("min_sample_interval_s must be >= 0")

        if self.initial_fix_timeout_s <= 0:
            raise ValueError("initial_fix_timeout_s must be > 0")

        if self.ticker_interval_s <= 0:
            raise ValueError("ticker_interval_s must be > 0")

        if self.push_retry_delay_s < 0:
            raise ValueError("push_retry_delay_s must be >= 0")

        if self.max_consecutive_push_failures < 1:
            raise ValueError("max_consecutive_push_failures must be >= 1")


def default_tracking_policy() -> TrackingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = TrackingPolicy()
    p.validate()
    return p
