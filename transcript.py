"""Durable transcript text."""

from __future__ import annotations

import threading
from typing import Callable, Optional

TranscriptCallback = Callable[[str], None]


class TranscriptAssembler:
    def __init__(self, on_update: Optional[TranscriptCallback] = None) -> None:
        self._on_update = on_update
        self._lock = threading.Lock()
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def accept(self, text: str) -> str:
        with self._lock:
            self._text += text + " "
            current = self._text
        self._notify(current)
        return current

    def clear(self) -> None:
        with self._lock:
            self._text = ""
        self._notify("")

    def _notify(self, text: str) -> None:
        if self._on_update:
            self._on_update(text)
