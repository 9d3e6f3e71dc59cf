"""
Purpose: Core data models for the tracking domain.
What it does:
Defines the structure of a location sample and a tracking session without
relying on any database schema. The database collaborator consumes
TrackingSession.to_dict() once a session is completed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .formatting import format_distance, format_duration

LatLon = Tuple[float, float]

PENDING_ADDRESS = "Location pending"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def from_rfc3339(value: str) -> datetime:
    # fromisoformat() before 3.11 does not take a trailing Z
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SessionState(str, Enum):
    """
    Idle -> Active -> Completed. Completed is terminal for a session;
    a new start always creates a new session.
    """
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class LocationSample:
    """
    A single GPS fix. Immutable once created.
    """
    lat: float
    lng: float
    address: str
    timestamp: datetime
    accuracy: Optional[float] = None

    @classmethod
    def at(
        cls,
        lat: float,
        lng: float,
        timestamp: Optional[datetime] = None,
        accuracy: Optional[float] = None,
        address: Optional[str] = None,
    ) -> LocationSample:
        return cls(
            lat=lat,
            lng=lng,
            address=address or f"{lat:.6f}, {lng:.6f}",
            timestamp=timestamp or utcnow(),
            accuracy=accuracy,
        )

    @classmethod
    def placeholder(cls, timestamp: Optional[datetime] = None) -> LocationSample:
        """Stand-in for a start/end location when no fix is available."""
        return cls(lat=0.0, lng=0.0, address=PENDING_ADDRESS, timestamp=timestamp or utcnow())

    @property
    def is_placeholder(self) -> bool:
        return self.address == PENDING_ADDRESS

    @property
    def coordinates(self) -> LatLon:
        return (self.lat, self.lng)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "lat": self.lat,
            "lng": self.lng,
            "address": self.address,
            "timestamp": to_rfc3339(self.timestamp),
        }
        if self.accuracy is not None:
            data["accuracy"] = self.accuracy
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> LocationSample:
        accuracy = data.get("accuracy")
        return cls(
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            address=str(data.get("address") or f"{float(data['lat']):.6f}, {float(data['lng']):.6f}"),
            timestamp=from_rfc3339(data["timestamp"]),
            accuracy=float(accuracy) if accuracy is not None else None,
        )


@dataclass(frozen=True)
class SessionId:
    """
    Typed session identifier: owning employee + session start time.
    Renders as session_{employee_id}_{epoch_millis}.
    """
    employee_id: str
    started_at: datetime

    def __str__(self) -> str:
        return f"session_{self.employee_id}_{int(self.started_at.timestamp() * 1000)}"

    @classmethod
    def parse(cls, value: str) -> SessionId:
        prefix, _, millis = value.rpartition("_")
        if not prefix.startswith("session_") or not millis.isdigit():
            raise ValueError(f"Not a session id: {value!r}")
        employee_id = prefix[len("session_"):]
        started_at = datetime.fromtimestamp(int(millis) / 1000.0, tz=timezone.utc)
        return cls(employee_id=employee_id, started_at=started_at)


@dataclass
class TrackingSession:
    """
    One continuous tracked interval for one employee.

    route is append-only while Active and total_distance_m always equals the
    sum of consecutive Haversine legs over route. Only the session manager
    mutates either of them.
    """
    id: SessionId
    employee_id: str
    start_time: datetime
    start_location: LocationSample
    state: SessionState = SessionState.IDLE
    route: List[LocationSample] = field(default_factory=list)
    total_distance_m: float = 0.0
    end_time: Optional[datetime] = None
    end_location: Optional[LocationSample] = None
    duration_s: Optional[float] = None

    # live annotations, surfaced to observers
    start_location_pending: bool = False
    failure_count: int = 0
    last_error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def last_sample(self) -> Optional[LocationSample]:
        return self.route[-1] if self.route else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "employeeId": self.employee_id,
            "status": self.state.value,
            "startTime": to_rfc3339(self.start_time),
            "endTime": to_rfc3339(self.end_time) if self.end_time else None,
            "startLocation": self.start_location.to_dict(),
            "endLocation": self.end_location.to_dict() if self.end_location else None,
            "route": [sample.to_dict() for sample in self.route],
            "totalDistance": self.total_distance_m,
            "duration": self.duration_s,
            "startLocationPending": self.start_location_pending,
            "failureCount": self.failure_count,
            "lastError": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TrackingSession:
        end_time = data.get("endTime")
        end_location = data.get("endLocation")
        employee_id = str(data["employeeId"])
        start_time = from_rfc3339(data["startTime"])
        session_id = SessionId(employee_id=employee_id, started_at=start_time)
        if "id" in data and str(session_id) != data["id"]:
            raise ValueError(f"Session id {data['id']!r} does not match employee and start time")
        return cls(
            id=session_id,
            employee_id=employee_id,
            state=SessionState(data.get("status", SessionState.ACTIVE.value)),
            start_time=start_time,
            start_location=LocationSample.from_dict(data["startLocation"]),
            route=[LocationSample.from_dict(item) for item in data.get("route", [])],
            total_distance_m=float(data.get("totalDistance", 0.0)),
            end_time=from_rfc3339(end_time) if end_time else None,
            end_location=LocationSample.from_dict(end_location) if end_location else None,
            duration_s=data.get("duration"),
            start_location_pending=bool(data.get("startLocationPending", False)),
            failure_count=int(data.get("failureCount", 0)),
            last_error=data.get("lastError"),
        )


@dataclass(frozen=True)
class TrackingProgress:
    """Live progress event handed to observers while a session is Active."""
    session_id: SessionId
    sample: Optional[LocationSample]
    total_distance_m: float
    elapsed_s: float
    status: Optional[str] = None

    def summary(self) -> str:
        """Display line, e.g. "12m 5s, 1.23 km (Last update failed, retrying: ...)"."""
        text = f"{format_duration(self.elapsed_s)}, {format_distance(self.total_distance_m)}"
        if self.status:
            text += f" ({self.status})"
        return text
