"""Live sample accumulation with flush cadence and overlap retention."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np


@dataclass
class AudioWindow:
    """Private snapshot of the buffer handed to the recognizer."""

    samples: np.ndarray
    generation: int

    def __len__(self) -> int:
        return int(self.samples.shape[0])


class AudioIngestBuffer:
    def __init__(
        self,
        flush_interval_ms: int = 8000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._flush_interval_s = flush_interval_ms / 1000.0
        self._clock = clock
        self._lock = threading.Lock()
        self._chunks: List[np.ndarray] = []
        self._count = 0
        self._generation = 0
        self._last_tick = clock()

    def __len__(self) -> int:
        return self._count

    @property
    def sample_count(self) -> int:
        return self._count

    def push(self, samples: object) -> None:
        block = np.asarray(samples, dtype=np.float32).reshape(-1)
        if block.size == 0:
            return
        with self._lock:
            self._chunks.append(block.copy())
            self._count += int(block.size)

    def cadence_due(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return (now - self._last_tick) >= self._flush_interval_s

    def mark_tick(self, now: Optional[float] = None) -> None:
        self._last_tick = self._clock() if now is None else now

    def take_window(self, min_samples: int) -> Optional[AudioWindow]:
        """Snapshot the buffer, or None when below the minimum window.

        Data below the gate is kept for the next cadence tick.
        """
        with self._lock:
            if self._count == 0 or self._count < min_samples:
                return None
            samples = self._consolidate()
            return AudioWindow(samples=samples.copy(), generation=self._generation)

    def retain_overlap(self, window: AudioWindow, overlap_samples: int) -> None:
        """Replace the flushed window with its tail, keeping newer samples."""
        with self._lock:
            if window.generation != self._generation:
                return
            data = self._consolidate()
            consumed = len(window)
            keep = min(max(overlap_samples, 0), consumed)
            tail = data[consumed - keep:consumed]
            newer = data[consumed:]
            merged = np.concatenate([tail, newer]) if newer.size else tail.copy()
            self._chunks = [merged] if merged.size else []
            self._count = int(merged.size)

    def clear_all(self) -> None:
        with self._lock:
            self._chunks = []
            self._count = 0
            self._generation += 1

    def _consolidate(self) -> np.ndarray:
        if not self._chunks:
            return np.zeros(0, dtype=np.float32)
        if len(self._chunks) > 1:
            self._chunks = [np.concatenate(self._chunks)]
        return self._chunks[0]
