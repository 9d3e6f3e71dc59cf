"""
Purpose: Boundary to the device position source.
What it does:
- PositionOptions: accuracy / timeout / max-age knobs passed to the source
- PositionError: the three acquisition failure kinds, kept distinct
- PositionSource: the protocol the session manager consumes
- ScriptedPositionSource: an in-process source fed by code (tests, replays)

Rule: No tracking logic here. The source only delivers fixes and errors.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Protocol, Tuple

from .models import LocationSample


SampleCallback = Callable[[LocationSample], None]
ErrorCallback = Callable[["PositionError"], None]


@dataclass(frozen=True)
class PositionOptions:
    enable_high_accuracy: bool = True
    timeout_s: float = 30.0
    maximum_age_s: float = 60.0


class PositionErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"


DEFAULT_MESSAGES = {
    PositionErrorKind.PERMISSION_DENIED: "Location access denied by user",
    PositionErrorKind.POSITION_UNAVAILABLE: "Location information unavailable",
    PositionErrorKind.TIMEOUT: "Location request timed out",
}


class PositionError(Exception):
    """Raised (or delivered to watchers) when a fix cannot be acquired."""

    def __init__(self, kind: PositionErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)


class PositionSource(Protocol):
    def get_current_position(self, options: PositionOptions) -> LocationSample:
        """Block for at most options.timeout_s; raise PositionError on failure."""
        ...

    def watch_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: PositionOptions,
    ) -> int:
        ...

    def clear_watch(self, handle: int) -> None:
        ...


class ScriptedPositionSource:
    """
    Position source driven from code.

    set_current()/fail_current() decide what get_current_position returns;
    emit()/emit_error() push into every active watch, on the caller's thread.
    """

    def __init__(self, current: Optional[LocationSample] = None):
        self._current = current
        self._current_error: Optional[PositionError] = None
        self._watchers: Dict[int, Tuple[SampleCallback, ErrorCallback]] = {}
        self._handles = itertools.count(1)
        self._lock = threading.Lock()

    def set_current(self, sample: Optional[LocationSample]) -> None:
        self._current = sample
        self._current_error = None

    def fail_current(self, kind: PositionErrorKind, message: Optional[str] = None) -> None:
        self._current = None
        self._current_error = PositionError(kind, message)

    def get_current_position(self, options: Optional[PositionOptions] = None) -> LocationSample:
        if self._current_error is not None:
            raise self._current_error
        if self._current is None:
            raise PositionError(PositionErrorKind.TIMEOUT)
        return self._current

    def watch_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: Optional[PositionOptions] = None,
    ) -> int:
        with self._lock:
            handle = next(self._handles)
            self._watchers[handle] = (on_sample, on_error)
        return handle

    def clear_watch(self, handle: int) -> None:
        with self._lock:
            self._watchers.pop(handle, None)

    @property
    def watcher_count(self) -> int:
        with self._lock:
            return len(self._watchers)

    def emit(self, sample: LocationSample) -> None:
        with self._lock:
            callbacks = [on_sample for on_sample, _ in self._watchers.values()]
        for on_sample in callbacks:
            on_sample(sample)

    def emit_error(self, kind: PositionErrorKind, message: Optional[str] = None) -> None:
        error = PositionError(kind, message)
        with self._lock:
            callbacks = [on_error for _, on_error in self._watchers.values()]
        for on_error in callbacks:
            on_error(error)
