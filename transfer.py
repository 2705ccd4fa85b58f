"""Webhook transfer: multipart upload and response classification."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

import httpx

from models import AudioResponse, Clip, Failure, FailureKind, TextResponse, TransferResult

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "audio/*, application/json, text/plain"


def utc_timestamp() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def classify_response(response: httpx.Response) -> TransferResult:
    """Turn an HTTP response into the result the controller acts on."""
    if not response.is_success:
        return Failure(
            FailureKind.HTTP_ERROR,
            f"HTTP {response.status_code}: {response.reason_phrase}",
        )
    content_type = response.headers.get("content-type", "")
    if content_type.lower().startswith("audio/"):
        mime_type = content_type.split(";", 1)[0].strip()
        return AudioResponse(data=response.content, mime_type=mime_type)
    return TextResponse(body=response.text)


class HttpxWebhookTransport:
    def __init__(
        self,
        *,
        timeout: float = 30.0,
        field_name: str = "audio",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.field_name = field_name
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, clip: Clip, url: str) -> TransferResult:
        """POST ``clip`` to ``url`` once. Never raises for HTTP or network failures."""
        files = {self.field_name: (clip.filename, clip.data, clip.mime_type or "application/octet-stream")}
        data = {"timestamp": utc_timestamp()}
        logger.info("sending %d bytes (%s) to %s", len(clip.data), clip.mime_type, url)
        try:
            response = await self._client.post(
                url,
                files=files,
                data=data,
                headers={"Accept": ACCEPT_HEADER},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning("webhook unreachable: %s", message)
            return Failure(FailureKind.NETWORK_ERROR, message)
        result = classify_response(response)
        if isinstance(result, Failure):
            logger.warning("webhook rejected upload: %s", result.message)
        return result

    async def aclose(self) -> None:
        await self._client.aclose()
