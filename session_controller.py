"""State-machine based session orchestration.

Everything here runs on one asyncio event loop. Capture, transfer and
playback adapters suspend the controller or call back into the loop; they
never mutate session state from another thread.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Callable, Optional, Sequence

from encoder import MIME_PREFERENCES, get_supported_mime_type
from errors import (
    ASSEMBLY_ERROR,
    CAPTURE_ERROR,
    DEVICE_UNSUPPORTED,
    HTTP_ERROR,
    NETWORK_ERROR,
    PLAYBACK_BLOCKED,
    PLAYBACK_ERROR,
    AssemblyError,
    PlaybackBlockedError,
    VoiceWebhookError,
    describe,
)
from interfaces import AudioSink, CaptureDevice, CaptureSource, ClipEncoder, WebhookTransport
from models import (
    AudioResponse,
    CaptureConstraints,
    Clip,
    Failure,
    FailureKind,
    Session,
    SessionState,
    TextResponse,
    format_duration,
)
from state_machine import SessionEvent, next_state
from timer import RecordingTimer, now_ms

logger = logging.getLogger(__name__)

STATUS_READY = "Ready to record"
STATUS_REQUESTING = "Requesting microphone access..."
STATUS_RECORDING = "Recording..."
STATUS_PROCESSING = "Processing..."
STATUS_NO_DESTINATION = "Recording complete. Enter webhook URL to send audio."
STATUS_SENDING = "Sending audio to webhook..."
STATUS_TEXT_RESPONSE = "Audio sent successfully. Response: {body}"
STATUS_RESPONSE_RECEIVED = "Response received - playing audio..."
STATUS_PLAYING = "Response audio playing"
STATUS_PLAYBACK_FAILED = "Response received but could not play"

StateCallback = Callable[[SessionState, SessionState], None]
StatusCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
TimerCallback = Callable[[str], None]
PreviewCallback = Callable[[Clip], None]


class SessionController:
    def __init__(
        self,
        capture_source: CaptureSource,
        encoder: ClipEncoder,
        transport: WebhookTransport,
        audio_sink: AudioSink,
        destination: Callable[[], str],
        constraints: CaptureConstraints = CaptureConstraints(),
        mime_preferences: Sequence[str] = MIME_PREFERENCES,
        flush_interval_ms: int = 100,
        timer_interval_ms: int = 100,
        clock: Callable[[], int] = now_ms,
        on_state_change: Optional[StateCallback] = None,
        on_status: Optional[StatusCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_timer: Optional[TimerCallback] = None,
        on_preview: Optional[PreviewCallback] = None,
    ) -> None:
        self._capture = capture_source
        self._encoder = encoder
        self._transport = transport
        self._sink = audio_sink
        self._destination = destination
        self._constraints = constraints
        self._mime_preferences = tuple(mime_preferences)
        self._flush_interval_ms = flush_interval_ms
        self._clock = clock
        self._on_state_change = on_state_change
        self._on_status = on_status
        self._on_error = on_error
        self._on_timer = on_timer
        self._on_preview = on_preview

        self._session = Session(session_id=0)
        self._device: Optional[CaptureDevice] = None
        self._timer = RecordingTimer(on_tick=on_timer, interval_ms=timer_interval_ms, clock=clock)
        self._pipeline: Optional[asyncio.Task[None]] = None
        self._clip: Optional[Clip] = None
        self._last_response: Optional[AudioResponse] = None
        self._supported = True

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def session(self) -> Session:
        return self._session

    @property
    def is_recording(self) -> bool:
        return self._session.state == SessionState.RECORDING

    @property
    def timer_active(self) -> bool:
        return self._timer.active

    @property
    def supported(self) -> bool:
        return self._supported

    @property
    def last_clip(self) -> Optional[Clip]:
        return self._clip

    @property
    def last_response(self) -> Optional[AudioResponse]:
        return self._last_response

    def check_support(self) -> bool:
        """Disable recording entirely when no capture device is usable."""
        if self._capture.is_available():
            self._supported = True
            return True
        self._supported = False
        self._emit_error(DEVICE_UNSUPPORTED, describe(DEVICE_UNSUPPORTED))
        return False

    async def toggle_recording(self) -> None:
        state = self.state
        if state == SessionState.RECORDING:
            self.stop_recording()
        elif state == SessionState.IDLE:
            await self.start_recording()
        else:
            logger.debug("toggle ignored while %s", state.value)

    async def start_recording(self) -> None:
        if not self._supported:
            self._emit_error(DEVICE_UNSUPPORTED, describe(DEVICE_UNSUPPORTED))
            return
        if self.state != SessionState.IDLE:
            self.cancel_session("new recording requested")

        session = Session(session_id=self._session.session_id + 1)
        self._session = session
        self._clip = None
        self._last_response = None
        self._apply(SessionEvent.TOGGLE)
        self._emit_status(STATUS_REQUESTING)

        try:
            device = await self._capture.request_access(self._constraints)
        except Exception as exc:
            if self._is_current(session, SessionState.REQUESTING):
                self._fail_start(exc)
            return

        if not self._is_current(session, SessionState.REQUESTING):
            # cancelled while waiting for the device
            self._release(device)
            return

        session.sample_rate = device.sample_rate
        session.channels = device.channels
        session.mime_type = get_supported_mime_type(
            self._encoder, device.sample_rate, self._mime_preferences
        )
        logger.debug("session %d negotiated mime type %r", session.session_id, session.mime_type)

        try:
            device.start(
                self._flush_interval_ms,
                partial(self._handle_chunk, session),
                partial(self._handle_capture_stopped, session),
            )
        except Exception as exc:
            self._release(device)
            self._fail_start(exc)
            return

        self._device = device
        session.started_at = self._clock()
        self._apply(SessionEvent.ACCESS_GRANTED)
        self._timer.start(session.started_at)
        self._emit_status(STATUS_RECORDING)

    def stop_recording(self) -> None:
        device = self._device
        if device is None or self.state != SessionState.RECORDING:
            return
        session = self._session
        self._timer.cancel()
        self._apply(SessionEvent.TOGGLE)
        self._emit_status(STATUS_PROCESSING)
        try:
            device.stop()
        except Exception as exc:
            logger.warning("capture device failed to finalize: %s", exc)
            self._handle_capture_stopped(session)

    def cancel_session(self, reason: str) -> None:
        """Force IDLE from any state, aborting capture, transfer and playback."""
        if self.state == SessionState.IDLE:
            return
        logger.info("cancelling session %d in %s: %s", self._session.session_id, self.state.value, reason)
        self._timer.cancel()
        device, self._device = self._device, None
        self._release(device)

        pipeline, self._pipeline = self._pipeline, None
        if pipeline is not None and not pipeline.done() and pipeline is not _current_task():
            pipeline.cancel()
        try:
            self._sink.stop()
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("audio sink failed to stop: %s", exc)

        self._apply(SessionEvent.CANCEL)
        # stale callbacks from the cancelled session must not match any more
        self._session = Session(session_id=self._session.session_id + 1)
        self._emit_status(reason)

    async def play_response(self) -> None:
        """Replay the retained response audio on demand."""
        response = self._last_response
        if response is None or self.state != SessionState.IDLE:
            return
        self._apply(SessionEvent.REPLAY)
        await self.play_response_audio(response.data, response.mime_type)

    async def wait_for_pipeline(self) -> None:
        pipeline = self._pipeline
        if pipeline is None:
            return
        try:
            await pipeline
        except asyncio.CancelledError:
            pass

    # ------------------------------------------------------------------
    # Processing / transfer / playback
    # ------------------------------------------------------------------

    async def process_recording(self, session: Session) -> None:
        device, self._device = self._device, None
        self._release(device)

        try:
            clip = self._assemble_clip(session)
        except Exception as exc:
            logger.warning("assembly failed for session %d: %s", session.session_id, exc)
            self._emit_error(ASSEMBLY_ERROR, describe(ASSEMBLY_ERROR, str(exc)))
            self._apply(SessionEvent.ASSEMBLY_FAILED)
            return

        self._clip = clip
        logger.info(
            "session %d assembled %d chunks into %d bytes (%s)",
            session.session_id,
            len(session.chunks),
            len(clip.data),
            clip.mime_type or "default",
        )
        if self._on_preview:
            self._on_preview(clip)

        url = (self._destination() or "").strip()
        if not url:
            self._emit_status(STATUS_NO_DESTINATION)
            self._apply(SessionEvent.NO_DESTINATION)
            return

        self._apply(SessionEvent.CLIP_READY)
        await self.send_to_webhook(clip, url)

    async def send_to_webhook(self, clip: Clip, url: str) -> None:
        session = self._session
        self._emit_status(STATUS_SENDING)
        try:
            result = await self._transport.send(clip, url)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            result = Failure(FailureKind.NETWORK_ERROR, str(exc))

        if not self._is_current(session, SessionState.SENDING):
            logger.debug("dropping transfer result for stale session %d", session.session_id)
            return

        if isinstance(result, Failure):
            code = HTTP_ERROR if result.kind == FailureKind.HTTP_ERROR else NETWORK_ERROR
            self._emit_error(code, describe(code, result.message))
            self._apply(SessionEvent.TRANSFER_FAILED)
            return
        if isinstance(result, TextResponse):
            self._emit_status(STATUS_TEXT_RESPONSE.format(body=result.body))
            self._apply(SessionEvent.TEXT_RECEIVED)
            return

        self._last_response = result
        self._apply(SessionEvent.AUDIO_RECEIVED)
        await self.play_response_audio(result.data, result.mime_type)

    async def play_response_audio(self, data: bytes, mime_type: str) -> None:
        session = self._session
        self._emit_status(STATUS_RESPONSE_RECEIVED)
        try:
            await self._sink.play(data, mime_type, partial(self._handle_playback_done, session))
        except asyncio.CancelledError:
            raise
        except PlaybackBlockedError as exc:
            if not self._is_current(session, SessionState.PLAYING):
                return
            logger.info("autoplay unavailable, waiting for manual play: %s", exc)
            self._emit_status(describe(PLAYBACK_BLOCKED))
            self._apply(SessionEvent.PLAYBACK_BLOCKED)
            return
        except Exception as exc:
            if self._is_current(session, SessionState.PLAYING):
                self._fail_playback(exc)
            return

        if self._is_current(session, SessionState.PLAYING):
            self._emit_status(STATUS_PLAYING)

    # ------------------------------------------------------------------
    # Device / sink callbacks (always on the loop thread)
    # ------------------------------------------------------------------

    def _handle_chunk(self, session: Session, chunk: bytes) -> None:
        if session is not self._session or self._clip is not None:
            return
        if session.state not in (SessionState.RECORDING, SessionState.PROCESSING):
            return
        session.append_chunk(chunk)

    def _handle_capture_stopped(self, session: Session) -> None:
        if not self._is_current(session, SessionState.PROCESSING):
            return
        if self._pipeline is not None and not self._pipeline.done():
            return
        loop = asyncio.get_running_loop()
        self._pipeline = loop.create_task(self._run_pipeline(session))

    def _handle_playback_done(self, session: Session, error: Optional[Exception]) -> None:
        if not self._is_current(session, SessionState.PLAYING):
            return
        if error is not None:
            self._fail_playback(error)
            return
        self._emit_status(STATUS_READY)
        self._apply(SessionEvent.PLAYBACK_ENDED)

    async def _run_pipeline(self, session: Session) -> None:
        try:
            await self.process_recording(session)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("session %d pipeline failed", session.session_id)
            self._emit_error(CAPTURE_ERROR, str(exc))
            self.cancel_session(STATUS_READY)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _assemble_clip(self, session: Session) -> Clip:
        if not session.chunks:
            raise AssemblyError("No audio data was captured")
        started_at = session.started_at if session.started_at is not None else self._clock()
        duration_ms = max(self._clock() - started_at, 0)
        data = self._encoder.encode(
            b"".join(session.chunks),
            session.sample_rate,
            session.channels,
            session.mime_type,
        )
        return Clip(data=data, mime_type=session.mime_type, duration_ms=duration_ms)

    def _fail_start(self, exc: Exception) -> None:
        code = exc.code if isinstance(exc, VoiceWebhookError) else CAPTURE_ERROR
        if code == DEVICE_UNSUPPORTED:
            self._supported = False
        logger.warning("could not start recording: %s", exc)
        self._emit_error(code, describe(code, str(exc)))
        self._apply(SessionEvent.ACCESS_FAILED)

    def _fail_playback(self, exc: Exception) -> None:
        logger.warning("response playback failed: %s", exc)
        self._emit_error(PLAYBACK_ERROR, describe(PLAYBACK_ERROR, str(exc)))
        self._emit_status(STATUS_PLAYBACK_FAILED)
        self._apply(SessionEvent.PLAYBACK_FAILED)

    def _release(self, device: Optional[CaptureDevice]) -> None:
        if device is None:
            return
        try:
            device.release_tracks()
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("capture device release failed: %s", exc)

    def _is_current(self, session: Session, state: SessionState) -> bool:
        return session is self._session and session.state == state

    def _apply(self, event: SessionEvent) -> bool:
        to_state = next_state(self.state, event)
        if to_state is None:
            logger.debug("event %s ignored in %s", event.value, self.state.value)
            return False
        self._transition(to_state)
        return True

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._session.state
        if from_state == to_state:
            return
        self._session.state = to_state
        logger.debug("session %d: %s -> %s", self._session.session_id, from_state.value, to_state.value)
        if to_state == SessionState.IDLE:
            self._timer.cancel()
            self._session.chunks.clear()
            if self._on_timer:
                self._on_timer(format_duration(0))
        if self._on_state_change:
            self._on_state_change(from_state, to_state)

    def _emit_status(self, message: str) -> None:
        if self._on_status:
            self._on_status(message)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
