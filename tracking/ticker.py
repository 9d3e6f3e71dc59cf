from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ElapsedTicker:
    """
    Calls `callback` roughly every `interval_s` seconds on a daemon thread
    until cancel(). Used for the elapsed-time display only.
    """

    def __init__(self, interval_s: float, callback: Callable[[], None], name: str = "elapsed-ticker"):
        self.interval_s = interval_s
        self.callback = callback
        self.name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def cancel(self, wait: bool = True) -> None:
        """
        Stop ticking. No callback starts after this returns; with wait=False
        a callback already running may still finish on the ticker thread.
        """
        self._stop_event.set()
        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval_s * 2)

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_s):
            try:
                self.callback()
            except Exception:
                logger.exception("Ticker callback failed")
