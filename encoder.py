"""Clip encoding and mime-type negotiation backed by soundfile."""

from __future__ import annotations

import io
from typing import Sequence

from errors import AssemblyError
from interfaces import ClipEncoder
from models import file_extension_for

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore

MIME_PREFERENCES: tuple[str, ...] = (
    "audio/ogg;codecs=opus",
    "audio/ogg",
    "audio/flac",
    "audio/wav",
)

# mime type -> (soundfile format, subtype)
_SF_FORMATS: dict[str, tuple[str, str]] = {
    "audio/ogg;codecs=opus": ("OGG", "OPUS"),
    "audio/ogg": ("OGG", "VORBIS"),
    "audio/flac": ("FLAC", "PCM_16"),
    "audio/wav": ("WAV", "PCM_16"),
}
_DEFAULT_FORMAT = ("WAV", "PCM_16")

# libsndfile only encodes Opus at these rates
_OPUS_SAMPLE_RATES = frozenset({8000, 12000, 16000, 24000, 48000})


def get_supported_mime_type(
    encoder: ClipEncoder,
    sample_rate: int,
    preferences: Sequence[str] = MIME_PREFERENCES,
) -> str:
    """Return the first preferred type the encoder handles, or "" if none."""
    for mime_type in preferences:
        if encoder.is_type_supported(mime_type, sample_rate):
            return mime_type
    return ""


def get_file_extension(mime_type: str) -> str:
    return file_extension_for(mime_type)


class SoundFileClipEncoder:
    def is_type_supported(self, mime_type: str, sample_rate: int) -> bool:
        if sf is None:
            return False
        fmt = _SF_FORMATS.get(mime_type)
        if fmt is None:
            return False
        if fmt[1] == "OPUS" and sample_rate not in _OPUS_SAMPLE_RATES:
            return False
        try:
            return bool(sf.check_format(fmt[0], fmt[1]))
        except Exception:
            return False

    def encode(self, pcm: bytes, sample_rate: int, channels: int, mime_type: str) -> bytes:
        """Encode raw int16 PCM into the container named by ``mime_type``.

        An empty ``mime_type`` selects the encoder default (16-bit WAV).
        """
        if sf is None or np is None:
            raise AssemblyError("soundfile is not installed")
        if not pcm:
            raise AssemblyError("No audio data was captured")
        fmt, subtype = _SF_FORMATS.get(mime_type, _DEFAULT_FORMAT) if mime_type else _DEFAULT_FORMAT
        samples = np.frombuffer(pcm, dtype=np.int16)
        if channels > 1:
            usable = len(samples) - (len(samples) % channels)
            samples = samples[:usable].reshape(-1, channels)
        buf = io.BytesIO()
        try:
            sf.write(buf, samples, sample_rate, format=fmt, subtype=subtype)
        except Exception as exc:
            raise AssemblyError(f"encoding to {mime_type or 'default'} failed: {exc}") from exc
        return buf.getvalue()

