from datetime import datetime
from typing import Optional

from routing.distance import running_total

from .models import LocationSample, SessionId, SessionState, TrackingSession


class TrackingStateException(Exception):
    """Raised when an invalid session transition is attempted."""
    pass


class SessionAlreadyActiveError(TrackingStateException):
    """Raised when start is requested while a session is still Active."""
    pass


def open_session(employee_id: str, now: datetime, start_location: Optional[LocationSample] = None) -> TrackingSession:
    """
    Idle -> Active. Always a brand new session id; completed sessions are
    never reopened.
    If no start location is known yet a placeholder is used and flagged as
    pending, to be corrected by the first accepted sample.
    """
    pending = start_location is None
    return TrackingSession(
        id=SessionId(employee_id=employee_id, started_at=now),
        employee_id=employee_id,
        start_time=now,
        start_location=start_location or LocationSample.placeholder(now),
        state=SessionState.ACTIVE,
        route=[],
        total_distance_m=0.0,
        start_location_pending=pending,
    )


def record_sample(session: TrackingSession, sample: LocationSample) -> float:
    """
    Append an accepted sample and fold its leg into the running total.
    Returns the leg distance in meters (0 for the first sample).
    """
    if session.state != SessionState.ACTIVE:
        raise TrackingStateException(f"Cannot record a sample into {session.id} while {session.state.value}")

    previous = session.last_sample
    before = session.total_distance_m
    session.total_distance_m = running_total(before, previous, sample)
    session.route.append(sample)

    if session.start_location_pending:
        correct_start_location(session, sample)

    return session.total_distance_m - before


def correct_start_location(session: TrackingSession, sample: LocationSample) -> None:
    """Replace the placeholder start location with the first real fix."""
    if not session.start_location_pending:
        return
    session.start_location = sample
    session.start_location_pending = False


def close_session(session: TrackingSession, now: datetime) -> TrackingSession:
    """
    Active -> Completed. End location is the last accepted sample, falling
    back to the start location for an empty route.
    """
    if session.state != SessionState.ACTIVE:
        raise TrackingStateException(f"Cannot complete {session.id} from {session.state.value}")

    session.end_time = now
    session.end_location = session.last_sample or session.start_location
    session.duration_s = (now - session.start_time).total_seconds()
    session.state = SessionState.COMPLETED
    return session
