"""
Purpose: Orchestrator for one employee's live tracking session (the "glue").
What it does:
Owns the Idle -> Active -> Completed state machine and wires the position
source through the sample filter into the route log and running distance.
Persists a snapshot on every accepted sample so a restart resumes the Active
session, pushes each accepted sample upstream with failure containment, and
hands the finalized session to the caller on stop.

Concurrency: the watch callback, the elapsed ticker and push outcomes all
arrive on their own threads. Every read-modify-write of the session, the
filter and the failure counter happens under one RLock. Network work (the
initial fix, pushes) runs outside the lock and re-checks the session id and
state before applying anything, so nothing lands in a Completed session.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, List, Optional

from .formatting import format_distance, format_duration
from .geolocation import PositionError, PositionSource
from .models import SessionId, SessionState, TrackingProgress, TrackingSession, utcnow
from .persistence import KeyValueStore, SessionSnapshotStore
from .policy import TrackingPolicy, default_tracking_policy
from .sample_filter import FilterDecision, SampleFilter
from .state_machine import SessionAlreadyActiveError, close_session, open_session, record_sample
from .ticker import ElapsedTicker
from .uplink import LocationUplink, PushOutcome

logger = logging.getLogger(__name__)


class TrackingListener:
    """
    Observer hooks. Subclass and override what you need; all are no-ops.
    Hooks are called outside the session lock; exceptions are logged.
    """

    def on_session_start(self, session: TrackingSession) -> None:
        pass

    def on_progress(self, progress: TrackingProgress) -> None:
        pass

    def on_error(self, session: TrackingSession, message: str) -> None:
        pass

    def on_session_end(self, session: TrackingSession) -> None:
        pass


class TrackingSessionManager:
    """
    Coordinates a tracking session from start to stop.
    """

    def __init__(self,
                 position_source: PositionSource,
                 store: KeyValueStore,
                 uplink: Optional[LocationUplink] = None,
                 policy: Optional[TrackingPolicy] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 listeners: Optional[List[TrackingListener]] = None,
                 ticker_factory: Optional[Callable[[float, Callable[[], None]], Any]] = None):
        self.policy = policy or default_tracking_policy()
        self.policy.validate()
        self.position_source = position_source
        self.snapshots = SessionSnapshotStore(store)
        self.uplink = uplink
        self._clock = clock or utcnow
        self._listeners: List[TrackingListener] = list(listeners or [])
        self._ticker_factory = ticker_factory or ElapsedTicker

        self._lock = threading.RLock()
        self._session: Optional[TrackingSession] = None
        self._filter = SampleFilter(self.policy.min_sample_interval_s)
        self._watch_handle: Optional[int] = None
        self._ticker: Optional[Any] = None

        self.last_completed: Optional[TrackingSession] = None
        self.acquisition_failures = 0

    # --- Observers ---

    def add_listener(self, listener: TrackingListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TrackingListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, hook: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, hook)(*args)
            except Exception:
                logger.exception("Tracking listener %s.%s failed", type(listener).__name__, hook)

    # --- Read-only views ---

    @property
    def session(self) -> Optional[TrackingSession]:
        return self._session

    @property
    def is_tracking(self) -> bool:
        session = self._session
        return session is not None and session.is_active

    @property
    def state(self) -> SessionState:
        if self.is_tracking:
            return SessionState.ACTIVE
        if self.last_completed is not None:
            return SessionState.COMPLETED
        return SessionState.IDLE

    def elapsed_seconds(self) -> float:
        session = self._session
        if session is None or not session.is_active:
            return 0.0
        return max(0.0, (self._clock() - session.start_time).total_seconds())

    # --- Lifecycle ---

    def start(self, employee_id: str) -> TrackingSession:
        """
        Idle/Completed -> Active with a fresh session.

        Raises SessionAlreadyActiveError if a session is still Active; the
        running one is left untouched.
        """
        with self._lock:
            current = self._session
            if current is not None and current.is_active:
                raise SessionAlreadyActiveError(
                    f"Tracking session {current.id} is still active for {current.employee_id}"
                )

            session = open_session(employee_id, self._clock())
            self._session = session
            self._filter.reset()
            self.acquisition_failures = 0

            # persist before anything can fail so a restart finds the session
            self.snapshots.save(session)
            self._subscribe()
            self._start_ticker()
            logger.info("Tracking session %s started", session.id)

        self._notify("on_session_start", session)
        self._seed_start_location(session.id)
        return session

    def stop(self) -> Optional[TrackingSession]:
        """
        Active -> Completed. Returns the finalized session, or None when
        there was nothing to end.
        """
        return self._finish(expected_id=None)

    def restore(self, employee_id: str) -> Optional[TrackingSession]:
        """
        Rehydrate an Active session left behind by a previous process.
        Returns None when there is nothing (usable) to resume.
        """
        with self._lock:
            current = self._session
            if current is not None and current.is_active:
                raise SessionAlreadyActiveError(
                    f"Tracking session {current.id} is already active"
                )

            if not self.snapshots.is_enabled(employee_id):
                return None

            session = self.snapshots.load(employee_id)
            if session is None:
                # flag without a usable snapshot: clear it so we stop retrying
                self.snapshots.clear(employee_id)
                return None

            self._session = session
            last = session.last_sample
            # arrival times are not persisted; the last fix time stands in for both
            self._filter.reset(last.timestamp if last else None)
            self.acquisition_failures = 0
            self._subscribe()
            self._start_ticker()
            logger.info(
                "Resumed tracking session %s (%d points, %.1fm, %.0fs elapsed)",
                session.id, len(session.route), session.total_distance_m, self.elapsed_seconds(),
            )

        self._notify("on_session_start", session)
        if session.start_location_pending and not session.route:
            self._seed_start_location(session.id)
        self.tick()
        return session

    def _finish(self, expected_id: Optional[SessionId]) -> Optional[TrackingSession]:
        with self._lock:
            session = self._session
            if session is None or not session.is_active:
                logger.info("No active tracking session to end")
                return None
            if expected_id is not None and session.id != expected_id:
                return None

            self._unsubscribe()
            ticker = self._ticker
            self._ticker = None
            if ticker is not None:
                ticker.cancel(wait=False)

            close_session(session, self._clock())
            self.snapshots.clear(session.employee_id)
            self._filter.reset()
            self.last_completed = session
            logger.info(
                "Tracking session %s completed: %d points, %s in %s",
                session.id, len(session.route),
                format_distance(session.total_distance_m), format_duration(session.duration_s),
            )

        self._notify("on_session_end", session)
        return session

    # --- Position source wiring ---

    def _subscribe(self) -> None:
        self._unsubscribe()
        self._watch_handle = self.position_source.watch_position(
            self.ingest,
            self._on_position_error,
            self.policy.position_options,
        )

    def _unsubscribe(self) -> None:
        if self._watch_handle is not None:
            self.position_source.clear_watch(self._watch_handle)
            self._watch_handle = None

    def _start_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel(wait=False)
        self._ticker = self._ticker_factory(self.policy.ticker_interval_s, self.tick)
        self._ticker.start()

    def _seed_start_location(self, session_id: SessionId) -> None:
        options = self.policy.position_options
        options = replace(options, timeout_s=min(options.timeout_s, self.policy.initial_fix_timeout_s))
        try:
            sample = self.position_source.get_current_position(options)
        except PositionError as exc:
            logger.warning("Initial position unavailable (%s); starting with a pending location", exc.message)
            self._on_position_error(exc)
            return
        self._ingest(sample, expected_id=session_id)

    def _on_position_error(self, error: PositionError) -> None:
        with self._lock:
            session = self._session
            if session is None or not session.is_active:
                return
            self.acquisition_failures += 1
            session.last_error = error.message
        self._notify("on_error", session, error.message)

    # --- Sample ingestion ---

    def ingest(self, sample) -> bool:
        """
        Watch callback. Returns True if the sample was accepted.
        """
        return self._ingest(sample, expected_id=None)

    def _ingest(self, sample, expected_id: Optional[SessionId]) -> bool:
        with self._lock:
            session = self._session
            if session is None or not session.is_active:
                logger.debug("Dropping sample: no active session")
                return False
            if expected_id is not None and session.id != expected_id:
                return False

            now = self._clock()
            decision = self._filter.offer(sample, now)
            if decision is FilterDecision.RATE_LIMITED:
                logger.debug(
                    "Rate limited: %.0fs remaining",
                    self._filter.remaining_s(now),
                )
                return False
            if decision is FilterDecision.OUT_OF_ORDER:
                logger.debug("Dropping out-of-order sample stamped %s", sample.timestamp)
                return False

            record_sample(session, sample)
            self.snapshots.save(session)

            progress = TrackingProgress(
                session_id=session.id,
                sample=sample,
                total_distance_m=session.total_distance_m,
                elapsed_s=self.elapsed_seconds(),
                status=session.last_error,
            )
            session_id = session.id
            employee_id = session.employee_id

        logger.debug("Session %s: %s", session_id, progress.summary())
        self._notify("on_progress", progress)

        if self.uplink is not None:
            outcome = self.uplink.push(employee_id, sample)
            self._record_push(session_id, outcome)
        return True

    def tick(self) -> Optional[TrackingProgress]:
        """Elapsed-time heartbeat. Never touches route or distance."""
        with self._lock:
            session = self._session
            if session is None or not session.is_active:
                return None
            progress = TrackingProgress(
                session_id=session.id,
                sample=None,
                total_distance_m=session.total_distance_m,
                elapsed_s=self.elapsed_seconds(),
                status=session.last_error,
            )
        self._notify("on_progress", progress)
        return progress

    # --- Push failure containment ---

    def _record_push(self, session_id: SessionId, outcome: PushOutcome) -> None:
        force_stop = False
        with self._lock:
            session = self._session
            if session is None or not session.is_active or session.id != session_id:
                return
            if outcome.ok:
                if session.failure_count or session.last_error:
                    session.failure_count = 0
                    session.last_error = None
                    self.snapshots.save(session)
                return

            session.failure_count += 1
            force_stop = session.failure_count >= self.policy.max_consecutive_push_failures
            if force_stop:
                message = f"Tracking stopped after {session.failure_count} failed updates: {outcome.error}"
            else:
                message = f"Last update failed, retrying: {outcome.error}"
            session.last_error = message
            # the snapshot was written before this push finished
            if not force_stop:
                self.snapshots.save(session)

        self._notify("on_error", session, message)

        if force_stop:
            logger.warning("Disabling tracking for %s due to repeated failures", session.employee_id)
            self._finish(expected_id=session_id)
