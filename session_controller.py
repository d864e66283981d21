"""State-machine based recording session orchestration.

Audio blocks arrive on the capture thread and are only appended to the live
buffer. When the flush cadence elapses a single worker thread snapshots the
buffer, runs the recognizer, and pushes the text through the artifact filter
and the deduplication engine before it reaches the transcript.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

import numpy as np

from artifact_filter import is_artifact
from audio_buffer import AudioIngestBuffer
from dedup import DeduplicationEngine
from diagnostics import DiagnosticCallback, DiagnosticsReporter
from errors import (
    CAPTURE_UNAVAILABLE,
    RECOGNIZER_UNAVAILABLE,
    CaptureError,
    CapturePreconditionError,
    RepetitionLoopError,
    RestartExhaustedError,
    TranscriberError,
)
from interfaces import CaptureSource, SpeechRecognizer
from models import DedupDecision, PipelineSettings, RecordingState, TranscribeOptions
from recovery import RecoverySupervisor, RestartHandle, schedule_restart
from transcript import TranscriptAssembler
from window_manager import TranscriptionWindowManager

logger = logging.getLogger(__name__)

StateCallback = Callable[[RecordingState, RecordingState], None]
TranscriptCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]

_ACTIVE_STATES = (RecordingState.RECORDING, RecordingState.RESTARTING)


class SessionController:
    def __init__(
        self,
        capture: Optional[CaptureSource],
        recognizer: Optional[SpeechRecognizer],
        settings: Optional[PipelineSettings] = None,
        options: TranscribeOptions = TranscribeOptions(),
        stop_timeout_s: float = 30.0,
        on_state_change: Optional[StateCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_diagnostic: Optional[DiagnosticCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._capture = capture
        self._recognizer = recognizer
        self._settings = settings or PipelineSettings()
        self._options = options
        self._stop_timeout_s = stop_timeout_s
        self._on_state_change = on_state_change
        self._on_error = on_error
        self._clock = clock

        self._lock = threading.RLock()
        self._dispatch_lock = threading.Lock()
        self._state = RecordingState.IDLE
        self._session_id = 0
        self._active = False
        self._stop_requested = False
        self._restart_handle: Optional[RestartHandle] = None
        self._flush_thread: Optional[threading.Thread] = None
        # bumped by stop; a flush that started under an older epoch is discarded
        self._flush_epoch = 0

        self._diagnostics = DiagnosticsReporter(on_diagnostic)
        self._buffer = self._new_buffer()
        self._supervisor: RecoverySupervisor
        self._window_manager: Optional[TranscriptionWindowManager]
        self._rebuild_pipeline()
        self._dedup = DeduplicationEngine(
            history_size=self._settings.history_size,
            repetition_break_threshold=self._settings.repetition_break_threshold,
        )
        self._assembler = TranscriptAssembler(on_update=on_transcript)

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def transcript(self) -> str:
        return self._assembler.text

    @property
    def error_count(self) -> int:
        return self._supervisor.error_count

    @property
    def repetition_streak(self) -> int:
        return self._dedup.repetition_streak

    @property
    def history(self) -> List[str]:
        return self._dedup.history

    @property
    def buffered_samples(self) -> int:
        return self._buffer.sample_count

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._state not in (RecordingState.IDLE, RecordingState.STOPPED):
                return
            if self._capture is None:
                raise CapturePreconditionError(code=CAPTURE_UNAVAILABLE)
            if self._recognizer is None or not self._recognizer.is_ready():
                raise CapturePreconditionError(code=RECOGNIZER_UNAVAILABLE)

            self._session_id += 1
            self._stop_requested = False
            self._buffer = self._new_buffer()
            self._rebuild_pipeline()
            self._dedup.reset()
            self._transition(RecordingState.STARTING)
            self._active = True
            try:
                self._capture.start(self._on_samples)
            except Exception as exc:
                self._active = False
                self._fail(CaptureError(f"start failed: {exc}"))
                return
            self._transition(RecordingState.RECORDING)
            self._diagnostics.emit("Recording started")

    def stop(self, drain: bool = True) -> None:
        """Stop recording.

        With ``drain`` the in-flight window is awaited (up to the stop timeout)
        and the remaining audio is transcribed before the session ends. A flush
        still running afterwards has its result discarded.
        """
        with self._lock:
            if self._state not in _ACTIVE_STATES:
                return
            self._stop_requested = True
            self._active = False
            self._cancel_restart()
        self._diagnostics.emit("Stopping recording...")
        self._safe_stop_capture()

        with self._dispatch_lock:
            worker = self._flush_thread
        if worker is threading.current_thread():
            worker = None
        if drain and worker is not None:
            worker.join(timeout=self._stop_timeout_s)
        if worker is not None and worker.is_alive():
            self._diagnostics.warning("Transcription still running, its result will be discarded")
        with self._lock:
            self._flush_epoch += 1

        if drain:
            self._diagnostics.emit("Processing remaining audio before stopping...")
            self._flush_safely()

        with self._lock:
            if self._state not in _ACTIVE_STATES:
                return
            self._buffer = self._new_buffer()
            self._dedup.reset()
            self._transition(RecordingState.STOPPED)
        self._diagnostics.emit("Recording stopped")

    def clear(self) -> None:
        with self._lock:
            self._assembler.clear()
            self._dedup.reset()
        self._diagnostics.emit("Transcription cleared")

    def replace_recognizer(self, recognizer: Optional[SpeechRecognizer]) -> None:
        with self._lock:
            self._recognizer = recognizer
            self._window_manager = self._new_window_manager(recognizer)

    # ------------------------------------------------------------------
    # Flush pipeline
    # ------------------------------------------------------------------

    def flush(self) -> Optional[DedupDecision]:
        """Transcribe the buffered window, if it passes the minimum-length gate."""
        with self._lock:
            buffer = self._buffer
            manager = self._window_manager
            epoch = self._flush_epoch
        if manager is None:
            return None

        window = buffer.take_window(self._settings.min_window_samples)
        if window is None:
            self._diagnostics.emit("Not enough audio data, skipping...")
            return None

        seconds = len(window) / float(self._settings.sample_rate)
        self._diagnostics.emit(f"Processing {seconds:.1f}s of accumulated audio...")
        text = manager.submit(window)
        if text is None:
            return None

        buffer.retain_overlap(window, self._settings.overlap_samples)
        return self._handle_candidate(text, buffer, epoch)

    def _handle_candidate(
        self, text: str, buffer: AudioIngestBuffer, epoch: int
    ) -> Optional[DedupDecision]:
        if not text:
            self._diagnostics.emit("Recognizer returned no text")
            return None
        if is_artifact(text):
            self._diagnostics.emit(f'Filtered artifact: "{text}"')
            return None

        with self._lock:
            if epoch != self._flush_epoch:
                self._diagnostics.emit(f'Discarded result from a stopped session: "{text}"')
                return None
            decision = self._dedup.evaluate(text)
            if decision.accepted:
                self._dedup.accept(text)
                self._assembler.accept(text)

        if decision.accepted:
            self._diagnostics.emit(f'Transcribed: "{text}"')
            return decision

        self._diagnostics.emit(
            f'Rejected {decision.verdict.value} ({decision.reason}, '
            f'{decision.similarity * 100:.1f}% similar): "{text}"'
        )
        if decision.clear_buffer:
            buffer.clear_all()
            loop = RepetitionLoopError()
            self._diagnostics.warning(f"{loop.code}: {loop}")
        return decision

    def _on_samples(self, samples: np.ndarray) -> None:
        if not self._active:
            return
        buffer = self._buffer
        buffer.push(samples)
        if buffer.cadence_due():
            buffer.mark_tick()
            self._dispatch_flush()

    def _dispatch_flush(self) -> None:
        with self._dispatch_lock:
            if not self._active:
                return
            worker = self._flush_thread
            if worker is not None and worker.is_alive():
                self._diagnostics.emit("Recognizer still busy, skipping this tick")
                return
            self._flush_thread = threading.Thread(
                target=self._flush_safely,
                name="transcribe-flush",
                daemon=True,
            )
            self._flush_thread.start()

    def _flush_safely(self) -> None:
        try:
            self.flush()
        except Exception:
            logger.exception("flush cycle failed")

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def _begin_restart(self, session: int) -> None:
        with self._lock:
            if (
                self._state != RecordingState.RECORDING
                or session != self._session_id
                or self._stop_requested
            ):
                return
            self._active = False
            self._transition(RecordingState.RESTARTING)
            session = self._session_id
        self._diagnostics.warning("Too many transcription errors, restarting...")
        self._safe_stop_capture()

        with self._lock:
            if (
                self._state != RecordingState.RESTARTING
                or session != self._session_id
                or self._stop_requested
            ):
                return
            self._buffer = self._new_buffer()
            delay_s = self._settings.restart_delay_ms / 1000.0
            self._restart_handle = schedule_restart(delay_s, lambda: self._resume(session))

    def _resume(self, session: int) -> None:
        with self._lock:
            if (
                self._state != RecordingState.RESTARTING
                or session != self._session_id
                or self._stop_requested
            ):
                return
            self._restart_handle = None
            self._active = True
            try:
                self._capture.start(self._on_samples)
            except Exception as exc:
                self._active = False
                self._fail(RestartExhaustedError(f"Failed to restart recording: {exc}"))
                return
            self._transition(RecordingState.RECORDING)
        self._diagnostics.emit("Recording restarted successfully")

    def _cancel_restart(self) -> None:
        handle = self._restart_handle
        self._restart_handle = None
        if handle is not None:
            handle.cancel()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fail(self, error: TranscriberError) -> None:
        self._active = False
        self._flush_epoch += 1
        self._cancel_restart()
        self._diagnostics.warning(f"{error.code}: {error}")
        self._safe_stop_capture()
        self._dedup.reset()
        self._transition(RecordingState.STOPPED)
        if self._on_error:
            self._on_error(error.code, error.message)

    def _safe_stop_capture(self) -> None:
        capture = self._capture
        if capture is None:
            return
        try:
            capture.stop()
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("capture stop failed: %s", exc)

    def _new_buffer(self) -> AudioIngestBuffer:
        return AudioIngestBuffer(
            flush_interval_ms=self._settings.flush_interval_ms,
            clock=self._clock,
        )

    def _new_window_manager(
        self, recognizer: Optional[SpeechRecognizer]
    ) -> Optional[TranscriptionWindowManager]:
        if recognizer is None:
            return None
        return TranscriptionWindowManager(
            recognizer, self._supervisor, self._options, diagnostics=self._diagnostics
        )

    def _rebuild_pipeline(self) -> None:
        # per-session supervisor and window manager, so a straggling flush
        # cannot count failures against or hold the lock of a later session
        session = self._session_id
        self._supervisor = RecoverySupervisor(
            on_restart=lambda: self._begin_restart(session),
            max_consecutive_errors=self._settings.max_consecutive_errors,
        )
        self._window_manager = self._new_window_manager(self._recognizer)

    def _transition(self, to_state: RecordingState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("state %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
