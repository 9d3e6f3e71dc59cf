"""
Purpose: Rate limiter in front of the route log.
What it does:
Accepts or discards incoming samples based on the time elapsed since the last
*accepted* sample arrived. Arrival time comes from the caller's clock, so a
device that buffers fixes and flushes them in a burst is still held to the
minimum interval. Samples stamped earlier than the last accepted one are
dropped rather than reordered, so distance accumulation stays monotonic.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from .models import LocationSample


class FilterDecision(str, Enum):
    ACCEPTED = "accepted"
    RATE_LIMITED = "rate_limited"
    OUT_OF_ORDER = "out_of_order"

    @property
    def accepted(self) -> bool:
        return self is FilterDecision.ACCEPTED


class SampleFilter:
    def __init__(self, min_interval_s: float = 10.0, last_accepted_at: Optional[datetime] = None):
        self.min_interval_s = min_interval_s
        # arrival time of the last accepted sample
        self.last_accepted_at = last_accepted_at
        # device timestamp of the last accepted sample
        self.last_stamp: Optional[datetime] = last_accepted_at

    def offer(self, sample: LocationSample, now: Optional[datetime] = None) -> FilterDecision:
        """
        Decide on one sample and, if accepted, move the reference time forward.
        `now` is the arrival time; without it the sample's own timestamp is used.
        The first sample ever offered is always accepted.
        """
        arrived_at = now if now is not None else sample.timestamp

        if self.last_accepted_at is None:
            self._accept(sample, arrived_at)
            return FilterDecision.ACCEPTED

        if self.last_stamp is not None and sample.timestamp < self.last_stamp:
            return FilterDecision.OUT_OF_ORDER

        elapsed = (arrived_at - self.last_accepted_at).total_seconds()
        if elapsed < self.min_interval_s:
            return FilterDecision.RATE_LIMITED

        self._accept(sample, arrived_at)
        return FilterDecision.ACCEPTED

    def _accept(self, sample: LocationSample, arrived_at: datetime) -> None:
        self.last_accepted_at = arrived_at
        self.last_stamp = sample.timestamp

    def remaining_s(self, at: datetime) -> float:
        """Seconds until a sample arriving at `at` would be accepted."""
        if self.last_accepted_at is None:
            return 0.0
        elapsed = (at - self.last_accepted_at).total_seconds()
        return max(0.0, self.min_interval_s - elapsed)

    def reset(self, last_accepted_at: Optional[datetime] = None, last_stamp: Optional[datetime] = None) -> None:
        self.last_accepted_at = last_accepted_at
        self.last_stamp = last_stamp if last_stamp is not None else last_accepted_at
