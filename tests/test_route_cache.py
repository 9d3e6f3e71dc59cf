from routing.models import Confidence, RouteSegment, RouteSource
from routing.route_cache import RouteCache, cache_key


class TickClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_segment(distance=100.0):
    return RouteSegment(
        coordinates=[(0.0, 0.0), (0.001, 0.0)],
        distance_m=distance,
        duration_s=10.0,
        source=RouteSource.OSRM,
        confidence=Confidence.HIGH,
    )


def test_cache_key_absorbs_sub_meter_jitter():
    assert cache_key((28.613901, 77.209001), (28.62, 77.21)) == cache_key((28.613899, 77.208999), (28.62, 77.21))
    assert cache_key((28.61390, 77.2090), (28.62, 77.21)) != cache_key((28.61391, 77.2090), (28.62, 77.21))


def test_get_returns_what_was_put():
    cache = RouteCache(capacity=10)
    segment = make_segment()
    cache.put((1.0, 2.0), (3.0, 4.0), segment)
    assert cache.get((1.0, 2.0), (3.0, 4.0)) is segment
    # direction matters
    assert cache.get((3.0, 4.0), (1.0, 2.0)) is None


def test_capacity_evicts_oldest_inserted():
    cache = RouteCache(capacity=2)
    cache.put((0, 0), (0, 1), make_segment(1))
    cache.put((0, 0), (0, 2), make_segment(2))
    cache.put((0, 0), (0, 3), make_segment(3))

    assert len(cache) == 2
    assert cache.get((0, 0), (0, 1)) is None
    assert cache.get((0, 0), (0, 2)).distance_m == 2
    assert cache.get((0, 0), (0, 3)).distance_m == 3


def test_reading_does_not_refresh_insertion_order():
    cache = RouteCache(capacity=2)
    cache.put((0, 0), (0, 1), make_segment(1))
    cache.put((0, 0), (0, 2), make_segment(2))
    cache.get((0, 0), (0, 1))
    cache.put((0, 0), (0, 3), make_segment(3))
    assert cache.get((0, 0), (0, 1)) is None


def test_stale_entries_ignored_on_lookup():
    clock = TickClock()
    cache = RouteCache(capacity=10, ttl_s=1800, clock=clock)
    cache.put((0, 0), (0, 1), make_segment())

    clock.now = 1799
    assert cache.get((0, 0), (0, 1)) is not None

    clock.now = 1800
    assert cache.get((0, 0), (0, 1)) is None
    # dropped lazily on that read
    assert len(cache) == 0


def test_staleness_uses_each_entrys_own_insertion_time():
    clock = TickClock()
    cache = RouteCache(capacity=10, ttl_s=100, clock=clock)
    cache.put((0, 0), (0, 1), make_segment(1))
    clock.now = 60
    cache.put((0, 0), (0, 2), make_segment(2))
    clock.now = 120

    assert cache.get((0, 0), (0, 1)) is None
    assert cache.get((0, 0), (0, 2)) is not None


def test_clear():
    cache = RouteCache(capacity=10)
    cache.put((0, 0), (0, 1), make_segment())
    cache.clear()
    assert len(cache) == 0
