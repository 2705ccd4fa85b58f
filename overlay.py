"""Overlay window showing recording status, timer and errors."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QPushButton, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QPushButton = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

_STATUS_STYLE = (
    "color: white; font-size: 16px; padding: 12px 16px 4px 16px;"
    "background: rgba(0,0,0,190); border-top-left-radius: 12px; border-top-right-radius: 12px;"
)
_TIMER_STYLE = (
    "color: white; font-size: 28px; font-family: monospace; padding: 4px 16px;"
    "background: rgba(0,0,0,190);"
)
_ERROR_STYLE = (
    "color: #FF6B6B; font-size: 14px; padding: 4px 16px 12px 16px;"
    "background: rgba(0,0,0,210); border-bottom-left-radius: 12px; border-bottom-right-radius: 12px;"
)


class OverlayWindow(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(520)

        self._status = QLabel("")
        self._status.setWordWrap(True)
        self._status.setStyleSheet(_STATUS_STYLE)

        self._timer = QLabel("00:00")
        self._timer.setAlignment(Qt.AlignCenter)
        self._timer.setStyleSheet(_TIMER_STYLE)

        self._error = QLabel("")
        self._error.setWordWrap(True)
        self._error.setStyleSheet(_ERROR_STYLE)
        self._error.hide()

        # shown when response audio is waiting for manual playback
        self.play_button = QPushButton("Play response")
        self.play_button.hide()

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addWidget(self._status)
        layout.addWidget(self._timer)
        layout.addWidget(self._error)
        layout.addWidget(self.play_button)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40
        self.move(x, y)

    def set_status(self, text: str) -> None:
        self._cancel_hide_timer()
        self._status.setText(text)
        self._center_top()
        self.show()

    def set_timer(self, text: str) -> None:
        self._timer.setText(text)

    def show_error(self, text: str) -> None:
        self._error.setText(f"⚠️ {text}")
        self._error.show()
        self.set_status(self._status.text())

    def hide_error(self) -> None:
        self._error.hide()
        self._error.setText("")

    def set_play_available(self, available: bool) -> None:
        self.play_button.setVisible(available)

    def hide_with_delay(self, delay_ms: int = 4000) -> None:
        self._cancel_hide_timer()
        if QTimer is not None:
            self._hide_timer = QTimer()
            self._hide_timer.setSingleShot(True)
            self._hide_timer.timeout.connect(self.hide)
            self._hide_timer.start(delay_ms)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
