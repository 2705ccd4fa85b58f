"""Speaker playback for webhook response audio."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, Optional

from errors import PlaybackBlockedError, PlaybackError
from interfaces import PlaybackDoneCallback

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

try:
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDevicePlayer:
    def __init__(self, device: Any = None) -> None:
        self._device = device
        self._watch: Optional[asyncio.Task[None]] = None

    async def play(self, data: bytes, mime_type: str, on_done: PlaybackDoneCallback) -> None:
        """Decode ``data`` and start playback; returns once audio is playing.

        Raises PlaybackBlockedError when no output device can be used and
        PlaybackError when the payload cannot be decoded.
        """
        if sd is None or sf is None:
            raise PlaybackBlockedError("sounddevice is not installed")
        try:
            samples, sample_rate = await asyncio.to_thread(_decode, data)
        except Exception as exc:
            raise PlaybackError(f"cannot decode {mime_type or 'response'}: {exc}") from exc

        self.stop()
        try:
            sd.play(samples, sample_rate, device=self._device)
        except Exception as exc:
            raise PlaybackBlockedError(str(exc)) from exc
        logger.info("playing %s response, %d Hz", mime_type, sample_rate)
        self._watch = asyncio.get_running_loop().create_task(self._wait_done(on_done))

    def stop(self) -> None:
        watch = self._watch
        self._watch = None
        if watch is None:
            return
        if not watch.done():
            watch.cancel()
        if sd is not None:
            sd.stop()

    async def _wait_done(self, on_done: PlaybackDoneCallback) -> None:
        try:
            await asyncio.to_thread(sd.wait, False)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            on_done(PlaybackError(str(exc)))
            return
        on_done(None)


def _decode(data: bytes) -> tuple[Any, int]:
    samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32")
    return samples, int(sample_rate)
