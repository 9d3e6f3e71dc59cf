from datetime import timedelta

import pytest

from conftest import T0, sample_at

from tracking.formatting import accuracy_label, format_distance, format_duration
from tracking.models import LocationSample, SessionId, SessionState, TrackingSession
from tracking.policy import TrackingPolicy, default_tracking_policy
from tracking.state_machine import (
    TrackingStateException,
    close_session,
    open_session,
    record_sample,
)


def test_session_id_renders_employee_and_millis():
    session_id = SessionId("emp-42", T0)
    assert str(session_id) == f"session_emp-42_{int(T0.timestamp() * 1000)}"


def test_session_id_parse_handles_underscored_employee_ids():
    session_id = SessionId("field_team_7", T0)
    parsed = SessionId.parse(str(session_id))
    assert parsed.employee_id == "field_team_7"
    assert parsed.started_at == T0


@pytest.mark.parametrize("value", ["", "session_", "sess_emp_123", "session_emp_abc"])
def test_session_id_parse_rejects_garbage(value):
    with pytest.raises(ValueError):
        SessionId.parse(value)


def test_sample_default_address_is_coordinates():
    sample = LocationSample.at(28.6139, 77.209, timestamp=T0)
    assert sample.address == "28.613900, 77.209000"
    assert not sample.is_placeholder


def test_session_dict_uses_wire_names(delhi_points):
    session = open_session("emp-42", T0)
    for sample in delhi_points:
        record_sample(session, sample)
    close_session(session, T0 + timedelta(seconds=25))

    data = session.to_dict()

    assert data["id"] == str(session.id)
    assert data["employeeId"] == "emp-42"
    assert data["status"] == "completed"
    assert data["startTime"] == "2024-03-04T09:00:00Z"
    assert data["endTime"] == "2024-03-04T09:00:25Z"
    assert data["duration"] == 25
    assert len(data["route"]) == 3
    assert data["endLocation"] == delhi_points[-1].to_dict()


def test_session_from_dict_rejects_mismatched_id():
    data = open_session("emp-42", T0).to_dict()
    data["id"] = "session_someone-else_1"
    with pytest.raises(ValueError):
        TrackingSession.from_dict(data)


def test_open_session_with_known_start():
    start = sample_at(0, 28.6139, 77.2090)
    session = open_session("emp-42", T0, start_location=start)
    assert session.state == SessionState.ACTIVE
    assert session.start_location == start
    assert not session.start_location_pending


def test_record_sample_returns_leg_distance(delhi_points):
    session = open_session("emp-42", T0)
    assert record_sample(session, delhi_points[0]) == 0
    leg = record_sample(session, delhi_points[1])
    assert leg > 0
    assert session.total_distance_m == pytest.approx(leg)


def test_completed_session_is_frozen(delhi_points):
    session = open_session("emp-42", T0)
    close_session(session, T0)

    with pytest.raises(TrackingStateException):
        record_sample(session, delhi_points[0])
    with pytest.raises(TrackingStateException):
        close_session(session, T0)


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0s"), (59, "59s"), (61, "1m 1s"), (3600, "1h 0m 0s"), (3725, "1h 2m 5s"), (-4, "0s")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_distance():
    assert format_distance(850.4) == "850 m"
    assert format_distance(1234.0) == "1.23 km"


@pytest.mark.parametrize(
    "accuracy, label",
    [(None, "Unknown"), (0, "Unknown"), (5, "High"), (10, "High"), (35, "Medium"), (120, "Low")],
)
def test_accuracy_label(accuracy, label):
    assert accuracy_label(accuracy) == label


def test_default_tracking_policy():
    policy = default_tracking_policy()
    assert policy.min_sample_interval_s == 10
    assert policy.push_retry_delay_s == 3
    assert policy.max_consecutive_push_failures == 3
    assert policy.position_options.enable_high_accuracy
    assert policy.position_options.timeout_s == 30
    assert policy.position_options.maximum_age_s == 60


def test_tracking_policy_rejects_zero_failure_budget():
    with pytest.raises(ValueError):
        TrackingPolicy(max_consecutive_push_failures=0).validate()
