"""Microphone capture adapter delivering float32 mono sample blocks."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Union

from errors import CaptureError
from interfaces import SampleCallback

logger = logging.getLogger(__name__)

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        blocksize: int = 4096,
        device: Optional[Union[int, str]] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.blocksize = blocksize
        self.device = device
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._on_samples: Optional[SampleCallback] = None
        self.status_warnings = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self, on_samples: SampleCallback) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise CaptureError("sounddevice is not installed")
            self._on_samples = on_samples
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.blocksize,
                device=self.device,
                callback=self._on_audio,
            )
            stream.start()
            self._stream = stream
            self._running = True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            stream = self._stream
            self._stream = None
            self._on_samples = None
        if stream is not None:
            stream.stop()
            stream.close()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        callback = self._on_samples
        if not self._running or callback is None:
            return
        if np is None:
            return
        if status:
            self.status_warnings += 1
            logger.warning("audio input status (%d so far): %s", self.status_warnings, status)
        samples = np.asarray(indata, dtype=np.float32)
        if samples.ndim > 1:
            samples = samples[:, 0]
        callback(samples.copy())
