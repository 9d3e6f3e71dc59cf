"""
Tracking domain package.

Public API:
- Domain models: LocationSample, TrackingSession, SessionId, SessionState, TrackingProgress
- Orchestrator: TrackingSessionManager (+ TrackingListener hooks)
- Collaborator boundaries: PositionSource, KeyValueStore, LocationPushClient
"""
from .geolocation import (
    PositionError,
    PositionErrorKind,
    PositionOptions,
    PositionSource,
    ScriptedPositionSource,
)
from .manager import TrackingListener, TrackingSessionManager
from .models import LocationSample, SessionId, SessionState, TrackingProgress, TrackingSession
from .persistence import FileKeyValueStore, InMemoryKeyValueStore, KeyValueStore, SessionSnapshotStore
from .policy import TrackingPolicy, default_tracking_policy
from .sample_filter import FilterDecision, SampleFilter
from .state_machine import SessionAlreadyActiveError, TrackingStateException
from .uplink import (
    LocationPushClient,
    LocationUplink,
    PushError,
    PushNetworkError,
    PushOutcome,
    PushRejectedError,
)

__all__ = ["LocationSample",
           "TrackingSession",
             "SessionId",
               "SessionState",
               "TrackingProgress",
               "TrackingListener",
               "TrackingSessionManager",
               "PositionError",
               "PositionErrorKind",
               "PositionOptions",
               "PositionSource",
               "ScriptedPositionSource",
               "KeyValueStore",
               "InMemoryKeyValueStore",
               "FileKeyValueStore",
               "SessionSnapshotStore",
               "TrackingPolicy",
               "default_tracking_policy",
               "FilterDecision",
               "SampleFilter",
               "TrackingStateException",
               "SessionAlreadyActiveError",
               "LocationPushClient",
               "LocationUplink",
               "PushError",
               "PushNetworkError",
               "PushOutcome",
               "PushRejectedError",
               ]
