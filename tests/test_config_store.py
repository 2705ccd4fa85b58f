from __future__ import annotations

from pathlib import Path

from config import DEFAULT_TIMEOUT_S, JsonConfigStore


def test_config_read_write(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("VOICE_WEBHOOK_URL", raising=False)
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_webhook_url() == ""
    assert store.get_hotkey() == "Key.f9"
    assert store.get_request_timeout_s() == DEFAULT_TIMEOUT_S

    store.set_webhook_url("  http://localhost:3000/webhook/test  ")
    store.set_hotkey("Key.f8")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_webhook_url() == "http://localhost:3000/webhook/test"
    assert reloaded.get_hotkey() == "Key.f8"


def test_config_invalid_json_fallback(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("VOICE_WEBHOOK_URL", raising=False)
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_webhook_url() == ""
    assert store.get_hotkey() == "Key.f9"


def test_env_url_used_when_store_empty(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("VOICE_WEBHOOK_URL", "http://env.example/hook")
    store = JsonConfigStore(path=tmp_path / "config.json")

    assert store.get_webhook_url() == "http://env.example/hook"

    store.set_webhook_url("http://stored.example/hook")
    assert store.get_webhook_url() == "http://stored.example/hook"


def test_bad_timeout_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text('{"request_timeout_s": "soon"}', encoding="utf-8")
    assert JsonConfigStore(path=path).get_request_timeout_s() == DEFAULT_TIMEOUT_S

    path.write_text('{"request_timeout_s": 5}', encoding="utf-8")
    assert JsonConfigStore(path=path).get_request_timeout_s() == 5.0
