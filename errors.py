"""Shared error codes, user-facing messages and seam exceptions."""

from __future__ import annotations

ACCESS_DENIED = "ACCESS_DENIED"
DEVICE_UNSUPPORTED = "DEVICE_UNSUPPORTED"
CAPTURE_ERROR = "CAPTURE_ERROR"
ASSEMBLY_ERROR = "ASSEMBLY_ERROR"
HTTP_ERROR = "HTTP_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
PLAYBACK_BLOCKED = "PLAYBACK_BLOCKED"
PLAYBACK_ERROR = "PLAYBACK_ERROR"

ERROR_MESSAGES = {
    ACCESS_DENIED: "Microphone access denied. Please allow microphone access and try again.",
    DEVICE_UNSUPPORTED: "Your system does not support audio recording.",
    CAPTURE_ERROR: "Error starting recording",
    ASSEMBLY_ERROR: "Error processing recording",
    HTTP_ERROR: "Error sending to webhook",
    NETWORK_ERROR: "Error sending to webhook",
    PLAYBACK_BLOCKED: "Response received - press play to hear audio",
    PLAYBACK_ERROR: "Error playing response audio",
}


def describe(code: str, detail: str = "") -> str:
    """Build the message shown to the user for ``code``."""
    base = ERROR_MESSAGES.get(code, code)
    if code in (ACCESS_DENIED, DEVICE_UNSUPPORTED, PLAYBACK_BLOCKED) or not detail:
        return base
    return f"{base}: {detail}"


class VoiceWebhookError(Exception):
    code = CAPTURE_ERROR


class AccessDeniedError(VoiceWebhookError):
    code = ACCESS_DENIED


class DeviceUnsupportedError(VoiceWebhookError):
    code = DEVICE_UNSUPPORTED


class CaptureError(VoiceWebhookError):
    code = CAPTURE_ERROR


class AssemblyError(VoiceWebhookError):
    code = ASSEMBLY_ERROR


class PlaybackBlockedError(VoiceWebhookError):
    code = PLAYBACK_BLOCKED


class PlaybackError(VoiceWebhookError):
    code = PLAYBACK_ERROR
