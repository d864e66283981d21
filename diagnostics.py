"""Timestamped diagnostic events for the debug view and the log."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

logger = logging.getLogger("transcriber")

DiagnosticCallback = Callable[[str], None]


class DiagnosticsReporter:
    def __init__(
        self,
        sink: Optional[DiagnosticCallback] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._sink = sink
        self._clock = clock

    def emit(self, message: str, level: int = logging.INFO) -> str:
        line = f"[{self._clock().strftime('%H:%M:%S')}] {message}"
        logger.log(level, message)
        if self._sink:
            try:
                self._sink(line)
            except Exception:  # pragma: no cover - observational only
                logger.exception("diagnostics sink failed")
        return line

    def warning(self, message: str) -> str:
        return self.emit(message, logging.WARNING)
