"""
Development upload relay.

Accepts the multipart upload the desktop app sends and either describes it
as JSON or echoes the audio back, so both response paths of the client can
be exercised locally. ``python relay.py`` (or ``voice-webhook-relay``)
serves it with uvicorn.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

INDEX_PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Voice Webhook Relay</title></head>
<body>
<h1>Voice Webhook Relay</h1>
<p>POST a multipart form with an <code>audio</code> file and a
<code>timestamp</code> field to <code>/webhook/test</code>.</p>
<p>Health check: <a href="/health">/health</a></p>
</body>
</html>
"""


class RelaySettings(BaseModel):
    host: str = Field(default=os.getenv("HOST", "127.0.0.1"))
    port: int = Field(default=int(os.getenv("PORT", "3000")))
    max_upload_bytes: int = Field(default=MAX_UPLOAD_BYTES)
    echo_audio: bool = Field(
        default=os.getenv("RELAY_ECHO_AUDIO", "false").lower() in {"1", "true", "yes"}
    )


class ReceivedFile(BaseModel):
    name: str
    size: int
    type: str


class UploadReceipt(BaseModel):
    success: bool = True
    message: str = "Audio received successfully"
    receivedFile: ReceivedFile
    timestamp: str


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _format_limit(limit: int) -> str:
    if limit >= 1024 * 1024:
        return f"{limit // (1024 * 1024)}MB"
    return f"{limit} bytes"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": <message>}``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # a known path with the wrong method is still an unknown endpoint
        if exc.status_code in (404, 405):
            return _error(404, "Endpoint not found")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Invalid upload")

    @app.exception_handler(Exception)
    async def generic_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.error("relay error: %s", exc)
        return _error(500, "Internal server error")


def create_app(settings: Optional[RelaySettings] = None) -> FastAPI:
    settings = settings or RelaySettings()
    app = FastAPI(title="Voice Webhook Relay", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return INDEX_PAGE

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy", "timestamp": _now_iso(), "port": settings.port}

    @app.post("/webhook/test")
    async def webhook_test(
        audio: Optional[UploadFile] = File(None),
        timestamp: Optional[str] = Form(None),
    ):
        if audio is None:
            raise HTTPException(status_code=400, detail="No audio file received")
        content_type = audio.content_type or ""
        if not content_type.startswith("audio/"):
            raise HTTPException(status_code=400, detail="Only audio files are allowed!")

        data = await audio.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File too large. Maximum size is {_format_limit(settings.max_upload_bytes)}.",
            )

        logger.info(
            "received %s (%s, %d bytes) recorded at %s",
            audio.filename,
            content_type,
            len(data),
            timestamp,
        )
        if settings.echo_audio:
            return Response(content=data, media_type=content_type)
        return UploadReceipt(
            receivedFile=ReceivedFile(name=audio.filename or "", size=len(data), type=content_type),
            timestamp=_now_iso(),
        )

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = RelaySettings()
    logger.info("relay listening on http://%s:%d/webhook/test", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
