"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import threading
from typing import Any, Coroutine, Optional

from config import JsonConfigStore
from encoder import SoundFileClipEncoder
from hotkey import GlobalHotkeyAdapter
from models import Clip, SessionState, format_duration
from overlay import OverlayWindow
from player import SoundDevicePlayer
from recorder import SoundDeviceCaptureSource
from session_controller import STATUS_READY, SessionController
from transfer import HttpxWebhookTransport

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


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
ICON_BUSY = "#3399FF"      # blue
ICON_DISABLED = "#FF8800"  # orange


class UIBridge(QObject):
    status_signal = Signal(str)
    error_signal = Signal(str)
    state_signal = Signal(str, str)  # from_state, to_state
    timer_signal = Signal(str)
    preview_signal = Signal(str)


class LoopThread:
    """Runs the controller's event loop off the Qt thread."""

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def submit(self, coro: Coroutine[Any, Any, Any]) -> None:
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        future.add_done_callback(self._log_failure)

    def call(self, fn: Any, *args: Any) -> None:
        self.loop.call_soon_threadsafe(fn, *args)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=2)

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    @staticmethod
    def _log_failure(future: Any) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("controller task failed: %s", exc)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.status_signal.connect(self._on_status_ui)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.timer_signal.connect(self.overlay.set_timer)
        self.ui.preview_signal.connect(self._on_preview_ui)
        self.overlay.play_button.clicked.connect(self._play_response)

        self.loop_thread = LoopThread()
        self.preview_player = SoundDevicePlayer()
        self._last_clip: Optional[Clip] = None
        self.transport = HttpxWebhookTransport(timeout=self.config_store.get_request_timeout_s())
        self.controller = SessionController(
            capture_source=SoundDeviceCaptureSource(),
            encoder=SoundFileClipEncoder(),
            transport=self.transport,
            audio_sink=SoundDevicePlayer(),
            destination=self.config_store.get_webhook_url,
            on_state_change=self._on_state_change,
            on_status=self.ui.status_signal.emit,
            on_error=self._on_error,
            on_timer=self.ui.timer_signal.emit,
            on_preview=self._on_preview,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip(f"Voice Webhook — {STATUS_READY}")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        self.record_action = QAction("Start Recording", menu)
        self.record_action.triggered.connect(self._toggle)
        menu.addAction(self.record_action)

        self.preview_action = QAction("Play Last Recording", menu)
        self.preview_action.setEnabled(False)
        self.preview_action.triggered.connect(self._play_preview)
        menu.addAction(self.preview_action)

        menu.addSeparator()
        url_action = QAction("Set Webhook URL", menu)
        url_action.triggered.connect(self._set_webhook_url)
        menu.addAction(url_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_webhook_url(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Webhook URL", "Destination URL", text=self.config_store.get_webhook_url()
        )
        if not ok:
            return
        self.config_store.set_webhook_url(value)
        QMessageBox.information(None, "Saved", "Webhook URL saved.")

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Hotkey", "Use pynput key format, e.g. Key.f9"
        )
        if not ok or not value:
            return
        self.config_store.set_hotkey(value)
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Controller callbacks (loop thread → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_error(self, code: str, message: str) -> None:
        logger.info("%s: %s", code, message)
        self.ui.error_signal.emit(message)

    def _on_preview(self, clip: Clip) -> None:
        self._last_clip = clip
        self.ui.preview_signal.emit(f"Recorded {format_duration(clip.duration_ms)}")

    # ------------------------------------------------------------------
    # UI thread handlers
    # ------------------------------------------------------------------

    def _on_status_ui(self, text: str) -> None:
        self.overlay.set_status(text)
        self.tray.setToolTip(f"Voice Webhook — {text}")

    def _on_error_ui(self, msg: str) -> None:
        self.overlay.show_error(msg)

    def _on_preview_ui(self, label: str) -> None:
        self.preview_action.setEnabled(True)
        self.preview_action.setText(f"Play Last Recording ({label})")

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.REQUESTING.value:
            self.overlay.hide_error()
            self.overlay.set_play_available(False)
        elif to_state == SessionState.RECORDING.value:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.record_action.setText("Stop Recording")
        elif to_state in (SessionState.PROCESSING.value, SessionState.SENDING.value, SessionState.PLAYING.value):
            self.tray.setIcon(_create_icon(ICON_BUSY))
            self.record_action.setText("Processing...")
            self.record_action.setEnabled(False)
        elif to_state == SessionState.IDLE.value:
            self.tray.setIcon(_create_icon(ICON_IDLE if self.controller.supported else ICON_DISABLED))
            self.record_action.setText("Start Recording")
            self.record_action.setEnabled(self.controller.supported)
            self.overlay.set_play_available(self.controller.last_response is not None)
            self.overlay.hide_with_delay()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def _toggle(self) -> None:
        self.loop_thread.submit(self.controller.toggle_recording())

    def _play_response(self) -> None:
        self.overlay.set_play_available(False)
        self.loop_thread.submit(self.controller.play_response())

    def _play_preview(self) -> None:
        clip = self._last_clip
        if clip is None:
            return
        self.loop_thread.submit(self.preview_player.play(clip.data, clip.mime_type, lambda _err: None))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        self.loop_thread.start()
        self.loop_thread.call(self._check_support)
        try:
            self.hotkey.start(on_toggle=self._toggle)
        except Exception as exc:
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        self.overlay.set_status(STATUS_READY)
        self.overlay.hide_with_delay()
        return self.app.exec()

    def _check_support(self) -> None:
        if not self.controller.check_support():
            self.ui.state_signal.emit(SessionState.IDLE.value, SessionState.IDLE.value)

    async def _shutdown(self) -> None:
        self.controller.cancel_session("app quit")
        await self.transport.aclose()

    def quit(self) -> None:
        self.hotkey.stop()
        future = asyncio.run_coroutine_threadsafe(self._shutdown(), self.loop_thread.loop)
        try:
            future.result(timeout=2)
        except Exception as exc:
            logger.warning("shutdown incomplete: %s", exc)
        self.loop_thread.stop()
        self.app.quit()


def configure_logging() -> None:
    level = os.getenv("VOICE_WEBHOOK_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> int:
    configure_logging()
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
