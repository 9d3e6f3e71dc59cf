import pytest

from routing.distance import accumulate, haversine_m, haversine_meters, running_total
from tracking.models import LocationSample

NEW_DELHI = (28.6139, 77.2090)
DELHI_NORTH = (28.7041, 77.1025)


def test_haversine_zero_for_same_point():
    for point in [NEW_DELHI, DELHI_NORTH, (0.0, 0.0), (-33.8688, 151.2093)]:
        assert haversine_meters(point, point) == 0.0


def test_haversine_is_symmetric():
    assert haversine_meters(NEW_DELHI, DELHI_NORTH) == haversine_meters(DELHI_NORTH, NEW_DELHI)


def test_haversine_known_distance():
    """
    New Delhi (28.6139, 77.2090) -> North Delhi (28.7041, 77.1025).
    Great-circle distance for these coordinates is ~14.44 km.
    """
    distance = haversine_meters(NEW_DELHI, DELHI_NORTH)
    assert distance == pytest.approx(14_440, rel=0.01)


def test_haversine_one_thousandth_degree_north():
    # 0.001 deg of latitude is ~111 m everywhere
    distance = haversine_m(41.0, 29.0, 41.001, 29.0)
    assert 110 < distance < 112


def test_haversine_accepts_samples_and_tuples():
    sample = LocationSample.at(*NEW_DELHI)
    assert haversine_meters(sample, DELHI_NORTH) == haversine_meters(NEW_DELHI, DELHI_NORTH)


def test_triangle_inequality(delhi_points):
    a, b, c = delhi_points
    assert haversine_meters(a, c) <= haversine_meters(a, b) + haversine_meters(b, c)


def test_accumulate_empty_and_single():
    assert accumulate([]) == 0
    assert accumulate([LocationSample.at(*NEW_DELHI)]) == 0


def test_accumulate_equals_pairwise_sum(delhi_points):
    for n in range(len(delhi_points) + 1):
        history = delhi_points[:n]
        expected = sum(haversine_meters(history[i - 1], history[i]) for i in range(1, n))
        assert accumulate(history) == pytest.approx(expected)


def test_running_total_matches_accumulate(delhi_points):
    total = 0.0
    previous = None
    for sample in delhi_points:
        total = running_total(total, previous, sample)
        previous = sample
    assert total == pytest.approx(accumulate(delhi_points))
