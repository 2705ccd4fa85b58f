"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path

DEFAULT_HOTKEY = "Key.f9"
DEFAULT_TIMEOUT_S = 30.0
WEBHOOK_URL_ENV = "VOICE_WEBHOOK_URL"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voice_webhook" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_webhook_url(self) -> str:
        data = self._read_all()
        stored = str(data.get("webhook_url", "")).strip()
        return stored or os.getenv(WEBHOOK_URL_ENV, "").strip()

    def set_webhook_url(self, url: str) -> None:
        data = self._read_all()
        data["webhook_url"] = url.strip()
        self._write_all(data)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def get_request_timeout_s(self) -> float:
        data = self._read_all()
        try:
            value = float(data.get("request_timeout_s", DEFAULT_TIMEOUT_S))
        except (TypeError, ValueError):
            return DEFAULT_TIMEOUT_S
        return value if value > 0 else DEFAULT_TIMEOUT_S

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
