"""Single-flight submission of audio windows to the recognizer."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from audio_buffer import AudioWindow
from diagnostics import DiagnosticsReporter
from errors import ASR_PROTOCOL_ERROR, RecognizerInvocationError
from interfaces import SpeechRecognizer
from models import TranscribeOptions
from recovery import RecoverySupervisor

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = TranscribeOptions()


class TranscriptionWindowManager:
    def __init__(
        self,
        recognizer: SpeechRecognizer,
        supervisor: RecoverySupervisor,
        options: TranscribeOptions = DEFAULT_OPTIONS,
        diagnostics: Optional[DiagnosticsReporter] = None,
    ) -> None:
        self._recognizer = recognizer
        self._supervisor = supervisor
        self._options = options
        self._diagnostics = diagnostics or DiagnosticsReporter()
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    @property
    def options(self) -> TranscribeOptions:
        return self._options

    def submit(self, window: AudioWindow) -> Optional[str]:
        """Transcribe ``window``.

        Returns the trimmed text (possibly empty) on success. Returns None when
        the recognizer failed or another submission is still in flight; a
        failure is reported as a ``Transcription error`` diagnostic before it
        is counted.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.debug("submission already in flight, skipping window")
            return None
        try:
            try:
                text = self._recognizer.transcribe(window.samples, self._options)
            except RecognizerInvocationError as exc:
                self._report_failure(exc)
                return None
            except Exception as exc:
                self._report_failure(
                    RecognizerInvocationError(str(exc) or type(exc).__name__, code=ASR_PROTOCOL_ERROR)
                )
                return None
            self._supervisor.record_success()
            return (text or "").strip()
        finally:
            self._in_flight.release()

    def _report_failure(self, error: RecognizerInvocationError) -> None:
        self._diagnostics.warning(f"Transcription error: {error.message}")
        self._supervisor.record_failure(error)
