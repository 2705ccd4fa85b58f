from __future__ import annotations

import pytest

from models import SessionState
from state_machine import TRANSITIONS, SessionEvent, next_state

S = SessionState
E = SessionEvent


@pytest.mark.parametrize(
    "state, event, expected",
    [
        (S.IDLE, E.TOGGLE, S.REQUESTING),
        (S.REQUESTING, E.ACCESS_GRANTED, S.RECORDING),
        (S.REQUESTING, E.ACCESS_FAILED, S.IDLE),
        (S.RECORDING, E.TOGGLE, S.PROCESSING),
        (S.PROCESSING, E.CLIP_READY, S.SENDING),
        (S.PROCESSING, E.NO_DESTINATION, S.IDLE),
        (S.SENDING, E.AUDIO_RECEIVED, S.PLAYING),
        (S.SENDING, E.TEXT_RECEIVED, S.IDLE),
        (S.PLAYING, E.PLAYBACK_ENDED, S.IDLE),
        (S.IDLE, E.REPLAY, S.PLAYING),
    ],
)
def test_valid_transitions(state: SessionState, event: SessionEvent, expected: SessionState) -> None:
    assert next_state(state, event) == expected


@pytest.mark.parametrize("state", [S.REQUESTING, S.PROCESSING, S.SENDING, S.PLAYING])
def test_toggle_ignored_outside_idle_and_recording(state: SessionState) -> None:
    assert next_state(state, E.TOGGLE) is None


def test_cancel_reaches_idle_from_every_busy_state() -> None:
    for state in SessionState:
        expected = None if state == S.IDLE else S.IDLE
        assert next_state(state, E.CANCEL) == expected


def test_every_failure_path_ends_idle() -> None:
    failures = {E.ACCESS_FAILED, E.ASSEMBLY_FAILED, E.TRANSFER_FAILED, E.PLAYBACK_FAILED, E.PLAYBACK_BLOCKED}
    for (state, event), target in TRANSITIONS.items():
        if event in failures:
            assert target == S.IDLE, (state, event)


def test_recording_only_entered_from_requesting() -> None:
    sources = {state for (state, _), target in TRANSITIONS.items() if target == S.RECORDING}
    assert sources == {S.REQUESTING}
