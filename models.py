"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class SessionState(str, Enum):
    IDLE = "IDLE"
    REQUESTING = "REQUESTING"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    SENDING = "SENDING"
    PLAYING = "PLAYING"


class FailureKind(str, Enum):
    HTTP_ERROR = "HTTP_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"


@dataclass(frozen=True)
class CaptureConstraints:
    echo_cancellation: bool = True
    noise_suppression: bool = True
    sample_rate: int = 44100
    channels: int = 1


@dataclass
class Session:
    session_id: int
    state: SessionState = SessionState.IDLE
    started_at: Optional[int] = None
    chunks: list[bytes] = field(default_factory=list)
    mime_type: str = ""
    sample_rate: int = 44100
    channels: int = 1

    def append_chunk(self, chunk: bytes) -> None:
        if chunk:
            self.chunks.append(chunk)

    @property
    def total_bytes(self) -> int:
        return sum(len(c) for c in self.chunks)


@dataclass(frozen=True)
class Clip:
    data: bytes
    mime_type: str
    duration_ms: int

    @property
    def file_extension(self) -> str:
        return file_extension_for(self.mime_type)

    @property
    def filename(self) -> str:
        return f"recording.{self.file_extension}"


@dataclass(frozen=True)
class AudioResponse:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class TextResponse:
    body: str


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str


TransferResult = Union[AudioResponse, TextResponse, Failure]


def file_extension_for(mime_type: str) -> str:
    """Map a negotiated mime type to the extension used for upload filenames."""
    for ext in ("ogg", "flac", "wav", "webm", "mp4"):
        if ext in mime_type:
            return ext
    return "audio"


def format_duration(ms: int) -> str:
    seconds = max(int(ms), 0) // 1000
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes:02d}:{remaining:02d}"
