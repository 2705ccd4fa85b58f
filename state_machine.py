"""Pure transition table for a recording session."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from models import SessionState


class SessionEvent(str, Enum):
    TOGGLE = "toggle"
    ACCESS_GRANTED = "access_granted"
    ACCESS_FAILED = "access_failed"
    CLIP_READY = "clip_ready"
    NO_DESTINATION = "no_destination"
    ASSEMBLY_FAILED = "assembly_failed"
    AUDIO_RECEIVED = "audio_received"
    TEXT_RECEIVED = "text_received"
    TRANSFER_FAILED = "transfer_failed"
    PLAYBACK_ENDED = "playback_ended"
    PLAYBACK_FAILED = "playback_failed"
    PLAYBACK_BLOCKED = "playback_blocked"
    REPLAY = "replay"
    CANCEL = "cancel"


_S = SessionState
_E = SessionEvent

TRANSITIONS: dict[tuple[SessionState, SessionEvent], SessionState] = {
    (_S.IDLE, _E.TOGGLE): _S.REQUESTING,
    (_S.IDLE, _E.REPLAY): _S.PLAYING,
    (_S.REQUESTING, _E.ACCESS_GRANTED): _S.RECORDING,
    (_S.REQUESTING, _E.ACCESS_FAILED): _S.IDLE,
    (_S.RECORDING, _E.TOGGLE): _S.PROCESSING,
    (_S.PROCESSING, _E.CLIP_READY): _S.SENDING,
    (_S.PROCESSING, _E.NO_DESTINATION): _S.IDLE,
    (_S.PROCESSING, _E.ASSEMBLY_FAILED): _S.IDLE,
    (_S.SENDING, _E.AUDIO_RECEIVED): _S.PLAYING,
    (_S.SENDING, _E.TEXT_RECEIVED): _S.IDLE,
    (_S.SENDING, _E.TRANSFER_FAILED): _S.IDLE,
    (_S.PLAYING, _E.PLAYBACK_ENDED): _S.IDLE,
    (_S.PLAYING, _E.PLAYBACK_FAILED): _S.IDLE,
    (_S.PLAYING, _E.PLAYBACK_BLOCKED): _S.IDLE,
}


def next_state(state: SessionState, event: SessionEvent) -> Optional[SessionState]:
    """Return the state reached from ``state`` on ``event``, or None if ignored.

    CANCEL leads to IDLE from every state except IDLE itself.
    """
    if event == SessionEvent.CANCEL:
        return None if state == SessionState.IDLE else SessionState.IDLE
    return TRANSITIONS.get((state, event))
