"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
import threading

from clipboard import TranscriptClipboard
from config import JsonConfigStore
from errors import ERROR_MESSAGES, CapturePreconditionError, RecognizerInvocationError
from hotkey import ToggleHotkey
from interfaces import ConfigStore
from models import RecordingState
from overlay import TranscriptOverlay
from recognizer import DashscopeRecognizer, WhisperPipelineRecognizer, build_recognizer
from recorder import SoundDeviceRecorder
from session_controller import SessionController

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"      # grey
ICON_RECORDING = "#FF4444"  # red
ICON_RESTARTING = "#FF8800"  # orange

STATUS_TEXT = {
    RecordingState.IDLE.value: "Ready",
    RecordingState.STARTING.value: "Starting recording...",
    RecordingState.RECORDING.value: "Recording... Speak now",
    RecordingState.RESTARTING.value: "Restarting audio capture...",
    RecordingState.STOPPED.value: "Recording stopped",
}


class UIBridge(QObject):
    transcript_signal = Signal(str)
    error_signal = Signal(str)
    state_signal = Signal(str, str)  # from_state, to_state
    status_signal = Signal(str)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store: ConfigStore = JsonConfigStore()
        self.clipboard = TranscriptClipboard()
        self.overlay = TranscriptOverlay()
        self.ui = UIBridge()
        self.ui.transcript_signal.connect(self.overlay.set_transcript)
        self.ui.error_signal.connect(self.overlay.show_error)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.status_signal.connect(self.overlay.set_status)

        settings = self.config_store.get_pipeline_settings()
        self.recognizer = build_recognizer(
            backend=self.config_store.get_backend(),
            model_size=self.config_store.get_model_size(),
            api_key=self.config_store.get_api_key(),
            sample_rate=settings.sample_rate,
        )
        self.controller = SessionController(
            capture=SoundDeviceRecorder(
                sample_rate=settings.sample_rate,
                device=self.config_store.get_input_device(),
            ),
            recognizer=self.recognizer,
            settings=settings,
            on_state_change=self._on_state_change,
            on_transcript=self.ui.transcript_signal.emit,
            on_error=self._on_error,
        )
        self.hotkey = ToggleHotkey(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Live Transcriber — Initializing...")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()
        for label, handler in (
            ("Start", self._start),
            ("Stop", self._stop_async),
            ("Clear Transcript", self.controller.clear),
            ("Copy Transcript", self._copy_transcript),
            ("Paste Transcript", self._paste_transcript),
        ):
            action = QAction(label, menu)
            action.triggered.connect(handler)
            menu.addAction(action)

        menu.addSeparator()
        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _load_model(self) -> None:
        if isinstance(self.recognizer, WhisperPipelineRecognizer):
            self.ui.status_signal.emit(f"Loading Whisper {self.recognizer.model_size}...")
            try:
                self.recognizer.load()
            except RecognizerInvocationError as exc:
                self.ui.error_signal.emit(str(exc))
                return
        self.ui.status_signal.emit("Ready - press the hotkey or Start")

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        if isinstance(self.recognizer, DashscopeRecognizer):
            self.recognizer = DashscopeRecognizer(api_key=value)
            self.controller.replace_recognizer(self.recognizer)
        QMessageBox.information(None, "Saved", "API Key saved.")

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def _start(self) -> None:
        try:
            self.controller.start()
        except CapturePreconditionError as exc:
            self.overlay.show_error(ERROR_MESSAGES.get(exc.code, str(exc)))

    def _stop_async(self) -> None:
        # stop drains the remaining audio through the recognizer
        threading.Thread(target=self.controller.stop, daemon=True).start()

    def _copy_transcript(self) -> None:
        result = self.clipboard.copy(self.controller.transcript)
        if not result.success:
            self.overlay.show_error(result.reason)

    def _paste_transcript(self) -> None:
        result = self.clipboard.paste(self.controller.transcript)
        if not result.success:
            self.overlay.show_error(result.reason)

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: RecordingState, to_state: RecordingState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_error(self, code: str, message: str) -> None:
        self.ui.error_signal.emit(f"{code}: {message}")

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        self.overlay.set_status(STATUS_TEXT.get(to_state, to_state))
        if to_state == RecordingState.RECORDING.value:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip("Live Transcriber — Recording...")
            self.overlay.set_transcript(self.controller.transcript)
        elif to_state == RecordingState.RESTARTING.value:
            self.tray.setIcon(_create_icon(ICON_RESTARTING))
        else:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Live Transcriber — Ready")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        threading.Thread(target=self._load_model, daemon=True).start()
        try:
            self.hotkey.start(on_toggle=self._toggle_from_hotkey)
        except Exception as exc:
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def _toggle_from_hotkey(self) -> None:
        # pynput calls back on its listener thread
        if self.controller.state in (RecordingState.RECORDING, RecordingState.RESTARTING):
            self._stop_async()
            return
        try:
            self.controller.start()
        except CapturePreconditionError as exc:
            self.ui.error_signal.emit(ERROR_MESSAGES.get(exc.code, str(exc)))

    def quit(self) -> None:
        self.hotkey.stop()
        # no drain on quit: an in-flight window is abandoned
        self.controller.stop(drain=False)
        self.app.quit()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
