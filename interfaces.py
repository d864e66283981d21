"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from typing import Callable, Protocol

import numpy as np

from models import PipelineSettings, TranscribeOptions

SampleCallback = Callable[[np.ndarray], None]


class CaptureSource(Protocol):
    def start(self, on_samples: SampleCallback) -> None: ...

    def stop(self) -> None: ...


class SpeechRecognizer(Protocol):
    def is_ready(self) -> bool: ...

    def transcribe(self, samples: np.ndarray, options: TranscribeOptions) -> str: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_backend(self) -> str: ...

    def get_model_size(self) -> str: ...

    def get_pipeline_settings(self) -> PipelineSettings: ...
