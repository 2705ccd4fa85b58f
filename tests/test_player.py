"""Tests for SoundDevicePlayer."""

from __future__ import annotations

from typing import Optional
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from errors import PlaybackBlockedError, PlaybackError
from player import SoundDevicePlayer


def _decoded() -> tuple[np.ndarray, int]:
    return np.zeros(100, dtype=np.float32), 22050


@pytest.mark.asyncio
@patch("player.sf")
@patch("player.sd")
async def test_play_starts_and_reports_end(mock_sd: MagicMock, mock_sf: MagicMock) -> None:
    mock_sf.read.return_value = _decoded()
    done: list[Optional[Exception]] = []

    player = SoundDevicePlayer()
    await player.play(b"RIFF", "audio/wav", done.append)
    await player._watch

    samples, rate = mock_sd.play.call_args.args
    assert rate == 22050
    assert len(samples) == 100
    assert done == [None]


@pytest.mark.asyncio
@patch("player.sf")
@patch("player.sd")
async def test_undecodable_payload_is_playback_error(mock_sd: MagicMock, mock_sf: MagicMock) -> None:
    mock_sf.read.side_effect = RuntimeError("Format not recognised")

    with pytest.raises(PlaybackError, match="Format not recognised"):
        await SoundDevicePlayer().play(b"junk", "audio/mpeg", lambda _e: None)
    mock_sd.play.assert_not_called()


@pytest.mark.asyncio
@patch("player.sf")
@patch("player.sd")
async def test_unusable_output_is_blocked(mock_sd: MagicMock, mock_sf: MagicMock) -> None:
    mock_sf.read.return_value = _decoded()
    mock_sd.play.side_effect = Exception("Error querying device -1")

    with pytest.raises(PlaybackBlockedError):
        await SoundDevicePlayer().play(b"RIFF", "audio/wav", lambda _e: None)


@pytest.mark.asyncio
@patch("player.sf")
@patch("player.sd")
async def test_stream_failure_reported_through_callback(mock_sd: MagicMock, mock_sf: MagicMock) -> None:
    mock_sf.read.return_value = _decoded()
    mock_sd.wait.side_effect = Exception("output underflow")
    done: list[Optional[Exception]] = []

    player = SoundDevicePlayer()
    await player.play(b"RIFF", "audio/wav", done.append)
    await player._watch

    assert len(done) == 1
    assert isinstance(done[0], PlaybackError)


@pytest.mark.asyncio
async def test_play_without_sounddevice_is_blocked(monkeypatch) -> None:  # noqa: ANN001
    import player as player_mod
    monkeypatch.setattr(player_mod, "sd", None)

    with pytest.raises(PlaybackBlockedError):
        await SoundDevicePlayer().play(b"RIFF", "audio/wav", lambda _e: None)


def test_stop_without_playback_is_noop() -> None:
    SoundDevicePlayer().stop()
