from datetime import datetime, timedelta, timezone

import pytest

from routing.models import Confidence, RouteSegment, RouteSource
from tracking.models import LocationSample

T0 = datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock the tests move by hand."""

    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now

    def set(self, seconds_after_start):
        self.now = T0 + timedelta(seconds=seconds_after_start)
        return self.now


class NullTicker:
    """Stands in for ElapsedTicker so no background thread runs in tests."""

    def __init__(self, interval_s, callback):
        self.interval_s = interval_s
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self, wait=True):
        self.cancelled = True


class CountingProvider:
    """Routing provider that records every call and returns a fixed road path."""

    def __init__(self, name="fake-road", source=RouteSource.OSRM, fail=False):
        self.name = name
        self.source = source
        self.fail = fail
        self.calls = []

    def compute_route(self, coordinates):
        from routing.errors import RoutingProviderError

        self.calls.append(list(coordinates))
        if self.fail:
            raise RoutingProviderError(self.name, "simulated outage")
        start, end = coordinates[0], coordinates[-1]
        middle = ((start[0] + end[0]) / 2 + 0.0005, (start[1] + end[1]) / 2)
        return RouteSegment(
            coordinates=[start, middle, end],
            distance_m=1234.0,
            duration_s=150.0,
            source=self.source,
            confidence=Confidence.HIGH,
        )


def sample_at(seconds, lat, lng, accuracy=8.0):
    return LocationSample.at(lat, lng, timestamp=T0 + timedelta(seconds=seconds), accuracy=accuracy)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def delhi_points():
    # Connaught Place -> ITO -> Kashmere Gate area
    return [
        sample_at(0, 28.6139, 77.2090),
        sample_at(10, 28.6200, 77.2100),
        sample_at(20, 28.6300, 77.2150),
    ]
