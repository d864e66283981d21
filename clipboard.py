"""Copy the transcript to the clipboard or paste it into the focused app."""

from __future__ import annotations

import sys
import time

from models import ClipboardResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore


class TranscriptClipboard:
    def __init__(self, restore_delay_s: float = 0.1) -> None:
        self._restore_delay_s = restore_delay_s

    def copy(self, text: str) -> ClipboardResult:
        if not text.strip():
            return ClipboardResult(success=False, reason="transcript is empty")
        if pyperclip is None:
            return ClipboardResult(success=False, reason="pyperclip is not installed")
        try:
            pyperclip.copy(text.strip())
        except Exception as exc:
            return ClipboardResult(success=False, reason=str(exc))
        return ClipboardResult(success=True, reason="ok")

    def paste(self, text: str) -> ClipboardResult:
        """Paste into the active window, restoring the previous clipboard."""
        if not text.strip():
            return ClipboardResult(success=False, reason="transcript is empty")
        if pyperclip is None or Controller is None or Key is None:
            return ClipboardResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        previous: str | None = None
        try:
            previous = pyperclip.paste()
            pyperclip.copy(text.strip())
            modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
            keyboard = Controller()
            with keyboard.pressed(modifier):
                keyboard.press("v")
                keyboard.release("v")
            time.sleep(self._restore_delay_s)
            pyperclip.copy(previous)
            return ClipboardResult(success=True, reason="ok")
        except Exception as exc:
            restored = False
            if previous is not None:
                try:
                    pyperclip.copy(previous)
                    restored = True
                except Exception:
                    restored = False
            return ClipboardResult(success=False, reason=str(exc), clipboard_restored=restored)
