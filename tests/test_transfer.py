from __future__ import annotations

import datetime as dt
import re

import httpx
import pytest

from models import AudioResponse, Clip, Failure, FailureKind, TextResponse
from transfer import ACCEPT_HEADER, HttpxWebhookTransport

URL = "https://relay.example.com/webhook/test"
CLIP = Clip(data=b"RIFF-clip-bytes", mime_type="audio/wav", duration_ms=1200)


async def send_with(handler, clip: Clip = CLIP, **kwargs):  # noqa: ANN001, ANN201
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpxWebhookTransport(client=client, **kwargs)
    try:
        return await transport.send(clip, URL)
    finally:
        await transport.aclose()


@pytest.mark.asyncio
async def test_single_multipart_post_with_clip_and_timestamp() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="ok")

    await send_with(handler)

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["accept"] == ACCEPT_HEADER
    assert request.headers["content-type"].startswith("multipart/form-data")

    body = request.content.decode("latin-1")
    assert 'name="audio"; filename="recording.wav"' in body
    assert "Content-Type: audio/wav" in body
    assert "RIFF-clip-bytes" in body
    match = re.search(r'name="timestamp"\r\n\r\n([^\r]+)\r\n', body)
    assert match is not None
    parsed = dt.datetime.fromisoformat(match.group(1))
    assert parsed.tzinfo is not None


@pytest.mark.asyncio
async def test_field_name_is_configurable() -> None:
    bodies: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content.decode("latin-1"))
        return httpx.Response(200, text="ok")

    await send_with(handler, field_name="voice_message")

    assert 'name="voice_message"; filename="recording.wav"' in bodies[0]


@pytest.mark.asyncio
async def test_audio_content_type_is_audio_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"OggS...", headers={"content-type": "audio/ogg; codecs=opus"})

    result = await send_with(handler)

    assert result == AudioResponse(data=b"OggS...", mime_type="audio/ogg")


@pytest.mark.asyncio
async def test_json_content_type_is_text_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b'{"msg":"ok"}', headers={"content-type": "application/json"})

    result = await send_with(handler)

    assert result == TextResponse(body='{"msg":"ok"}')


@pytest.mark.asyncio
async def test_missing_content_type_is_text_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"plain")

    assert await send_with(handler) == TextResponse(body="plain")


@pytest.mark.asyncio
async def test_non_2xx_is_http_failure_even_with_audio_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, content=b"RIFF", headers={"content-type": "audio/wav"})

    result = await send_with(handler)

    assert isinstance(result, Failure)
    assert result.kind == FailureKind.HTTP_ERROR
    assert result.message == "HTTP 502: Bad Gateway"


@pytest.mark.asyncio
async def test_transport_error_is_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    result = await send_with(handler)

    assert result == Failure(FailureKind.NETWORK_ERROR, "Connection refused")


@pytest.mark.asyncio
async def test_empty_mime_type_sent_as_octet_stream() -> None:
    bodies: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content.decode("latin-1"))
        return httpx.Response(200, text="ok")

    await send_with(handler, clip=Clip(data=b"raw", mime_type="", duration_ms=0))

    assert 'filename="recording.audio"' in bodies[0]
    assert "Content-Type: application/octet-stream" in bodies[0]
