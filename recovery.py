"""Consecutive-failure tracking and cancellable restart scheduling."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import RecognizerInvocationError

logger = logging.getLogger(__name__)

RestartCallback = Callable[[], None]


class RecoverySupervisor:
    def __init__(
        self,
        on_restart: Optional[RestartCallback] = None,
        max_consecutive_errors: int = 3,
    ) -> None:
        self._on_restart = on_restart
        self._max_errors = max_consecutive_errors
        self._lock = threading.Lock()
        self._error_count = 0

    @property
    def error_count(self) -> int:
        return self._error_count

    def set_restart_callback(self, on_restart: Optional[RestartCallback]) -> None:
        self._on_restart = on_restart

    def record_success(self) -> None:
        with self._lock:
            self._error_count = 0

    def record_failure(self, error: RecognizerInvocationError) -> bool:
        """Count a failed invocation; returns True when a restart was triggered."""
        with self._lock:
            self._error_count += 1
            logger.warning("recognizer failure %d: %s", self._error_count, error)
            if self._error_count <= self._max_errors:
                return False
            self._error_count = 0
        if self._on_restart is not None:
            self._on_restart()
        return True

    def reset(self) -> None:
        with self._lock:
            self._error_count = 0


class RestartHandle:
    """Pending delayed call that a stop can cancel."""

    def __init__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self._timer = threading.Timer(delay_s, self._fire)
        self._timer.daemon = True
        self._callback = callback
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> "RestartHandle":
        self._timer.start()
        return self

    def cancel(self) -> None:
        self._cancelled.set()
        self._timer.cancel()

    def _fire(self) -> None:
        if self._cancelled.is_set():
            return
        self._callback()


def schedule_restart(delay_s: float, callback: Callable[[], None]) -> RestartHandle:
    return RestartHandle(delay_s, callback).start()
