"""Microphone capture adapter."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from errors import AccessDeniedError, CaptureError, DeviceUnsupportedError
from interfaces import ChunkCallback, StopCallback
from models import CaptureConstraints

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

_DENIED_MARKERS = ("permission", "denied", "not allowed", "unauthorized")


class SoundDeviceCaptureDevice:
    """One opened input device, owned by a single recording session.

    PortAudio delivers blocks on its own thread; every callback is handed
    back to the event loop that opened the device. Stopping and closing the
    stream block until PortAudio drains, so both run in order on a private
    worker thread instead of the loop.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        sample_rate: int,
        channels: int,
        device: Any = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._loop = loop
        self._device = device
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="capture-stream")
        self._on_chunk: Optional[ChunkCallback] = None
        self._on_stop: Optional[StopCallback] = None
        self.chunk_count = 0

    def start(
        self,
        flush_interval_ms: int,
        on_chunk: ChunkCallback,
        on_stop: StopCallback,
    ) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise DeviceUnsupportedError("sounddevice is not installed")
            self._on_chunk = on_chunk
            self._on_stop = on_stop
            blocksize = int(self.sample_rate * (flush_interval_ms / 1000.0))
            try:
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    device=self._device,
                    callback=self._on_audio,
                )
                self._stream.start()
            except Exception as exc:
                self._stream = None
                raise _classify_portaudio_error(exc) from exc
            self._running = True

    def stop(self) -> None:
        """Finalize capture: drain the stream, then fire the stop callback.

        Returns immediately; the stop callback is scheduled on the loop once
        the stream has drained.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            stream = self._stream
            on_stop = self._on_stop
        self._worker.submit(self._drain, stream, on_stop)

    def release_tracks(self) -> None:
        with self._lock:
            self._running = False
            stream, self._stream = self._stream, None
        if stream is not None:
            self._worker.submit(self._close, stream)
        self._worker.shutdown(wait=False)

    def _drain(self, stream: Any, on_stop: Optional[StopCallback]) -> None:
        if stream is not None:
            try:
                # stop() waits for pending buffers, so queued chunks land first
                stream.stop()
            except Exception as exc:
                logger.warning("input stream failed to stop: %s", exc)
        if on_stop is not None:
            self._loop.call_soon_threadsafe(on_stop)

    @staticmethod
    def _close(stream: Any) -> None:
        try:
            stream.close()
        except Exception as exc:
            logger.warning("input stream failed to close: %s", exc)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("input stream status: %s", status)
        if np is None or self._on_chunk is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        if not payload:
            return
        self.chunk_count += 1
        self._loop.call_soon_threadsafe(self._on_chunk, payload)


class SoundDeviceCaptureSource:
    def __init__(self, device: Any = None) -> None:
        self._device = device

    def is_available(self) -> bool:
        if sd is None or np is None:
            return False
        try:
            sd.query_devices(self._device, kind="input")
        except Exception:
            return False
        return True

    async def request_access(self, constraints: CaptureConstraints) -> SoundDeviceCaptureDevice:
        """Open the input device with the requested format.

        PortAudio has no echo-cancellation or noise-suppression switches; those
        constraints are honoured only where the host audio stack applies them.
        """
        if sd is None or np is None:
            raise DeviceUnsupportedError("sounddevice is not installed")
        loop = asyncio.get_running_loop()
        try:
            await asyncio.to_thread(
                sd.check_input_settings,
                device=self._device,
                channels=constraints.channels,
                dtype="int16",
                samplerate=constraints.sample_rate,
            )
        except Exception as exc:
            raise _classify_portaudio_error(exc) from exc
        logger.debug(
            "input granted: %d Hz, %d ch, echo_cancellation=%s, noise_suppression=%s",
            constraints.sample_rate,
            constraints.channels,
            constraints.echo_cancellation,
            constraints.noise_suppression,
        )
        return SoundDeviceCaptureDevice(
            loop,
            sample_rate=constraints.sample_rate,
            channels=constraints.channels,
            device=self._device,
        )


def _classify_portaudio_error(exc: Exception) -> Exception:
    message = str(exc)
    low = message.lower()
    if any(marker in low for marker in _DENIED_MARKERS):
        return AccessDeniedError(message)
    if "no default input" in low or "invalid device" in low or "device unavailable" in low:
        return DeviceUnsupportedError(message)
    return CaptureError(message)
