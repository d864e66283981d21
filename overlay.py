"""Overlay window showing the live transcript and recording status."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

PLACEHOLDER = "Transcribed text will appear here..."
TRANSCRIPT_TAIL_CHARS = 400

_TEXT_STYLE = (
    "color: white; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,190); border-radius: 12px;"
)
_STATUS_STYLE = "color: #BBBBBB; font-size: 13px; padding: 4px 16px;"
_ERROR_STYLE = "color: #FF6B6B; font-size: 13px; padding: 4px 16px;"


class TranscriptOverlay(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(640)

        self._status = QLabel("")
        self._status.setStyleSheet(_STATUS_STYLE)
        self._label = QLabel(PLACEHOLDER)
        self._label.setWordWrap(True)
        self._label.setStyleSheet(_TEXT_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._status)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._error_timer: QTimer | None = None

    def _center_bottom(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + geom.height() - self.height() - 60
        self.move(x, y)

    def set_transcript(self, text: str) -> None:
        """Show the tail of the transcript, or the placeholder when empty."""
        text = text.strip()
        if len(text) > TRANSCRIPT_TAIL_CHARS:
            text = "…" + text[-TRANSCRIPT_TAIL_CHARS:]
        self._label.setText(text or PLACEHOLDER)
        self._center_bottom()
        self.show()

    def set_status(self, message: str) -> None:
        self._status.setStyleSheet(_STATUS_STYLE)
        self._status.setText(f"Status: {message}")

    def show_error(self, text: str, reset_after_ms: int = 4000) -> None:
        self._status.setStyleSheet(_ERROR_STYLE)
        self._status.setText(f"⚠️ {text}")
        self._center_bottom()
        self.show()
        self._cancel_error_timer()
        if QTimer is not None:
            self._error_timer = QTimer()
            self._error_timer.setSingleShot(True)
            self._error_timer.timeout.connect(lambda: self._status.setStyleSheet(_STATUS_STYLE))
            self._error_timer.start(reset_after_ms)

    def _cancel_error_timer(self) -> None:
        if self._error_timer is not None:
            self._error_timer.stop()
            self._error_timer = None
