"""Core data models for the transcriber."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RecordingState(str, Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    RECORDING = "RECORDING"
    RESTARTING = "RESTARTING"
    STOPPED = "STOPPED"


class Verdict(str, Enum):
    ACCEPT = "accept"
    REJECT_DUPLICATE = "duplicate"
    REJECT_REPETITIVE = "repetitive"


@dataclass(frozen=True)
class TranscribeOptions:
    chunk_length_s: int = 30
    stride_length_s: int = 5
    language: str = "english"
    task: str = "transcribe"


@dataclass
class PipelineSettings:
    sample_rate: int = 16000
    flush_interval_ms: int = 8000
    min_window_s: float = 1.0
    overlap_s: float = 0.5
    max_consecutive_errors: int = 3
    restart_delay_ms: int = 1000
    history_size: int = 5
    repetition_break_threshold: int = 2

    @property
    def min_window_samples(self) -> int:
        return int(self.sample_rate * self.min_window_s)

    @property
    def overlap_samples(self) -> int:
        return int(self.sample_rate * self.overlap_s)


@dataclass
class DedupDecision:
    verdict: Verdict
    similarity: float = 0.0
    clear_buffer: bool = False
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.verdict == Verdict.ACCEPT


@dataclass
class ClipboardResult:
    success: bool
    reason: str
    clipboard_restored: bool = True
