"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from models import CaptureConstraints, Clip, TransferResult

ChunkCallback = Callable[[bytes], None]
StopCallback = Callable[[], None]
PlaybackDoneCallback = Callable[[Optional[Exception]], None]


class CaptureDevice(Protocol):
    sample_rate: int
    channels: int

    def start(
        self,
        flush_interval_ms: int,
        on_chunk: ChunkCallback,
        on_stop: StopCallback,
    ) -> None: ...

    def stop(self) -> None: ...

    def release_tracks(self) -> None: ...


class CaptureSource(Protocol):
    def is_available(self) -> bool: ...

    async def request_access(self, constraints: CaptureConstraints) -> CaptureDevice: ...


class ClipEncoder(Protocol):
    def is_type_supported(self, mime_type: str, sample_rate: int) -> bool: ...

    def encode(self, pcm: bytes, sample_rate: int, channels: int, mime_type: str) -> bytes: ...


class WebhookTransport(Protocol):
    async def send(self, clip: Clip, url: str) -> TransferResult: ...


class AudioSink(Protocol):
    async def play(self, data: bytes, mime_type: str, on_done: PlaybackDoneCallback) -> None: ...

    def stop(self) -> None: ...

