from __future__ import annotations

import pytest

import hotkey
from hotkey import GlobalHotkeyAdapter


class _Listener:
    def __init__(self, on_press, on_release) -> None:  # noqa: ANN001
        self.on_press = on_press
        self.on_release = on_release
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True


class _Keyboard:
    Listener = _Listener


def test_press_toggles_once_until_release(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey, "keyboard", _Keyboard)
    toggles: list[int] = []

    adapter = GlobalHotkeyAdapter(hotkey_name="Key.f9")
    adapter.start(on_toggle=lambda: toggles.append(1))
    listener = adapter._listener
    assert listener.started is True

    listener.on_press("Key.f9")
    listener.on_press("Key.f9")  # auto-repeat
    listener.on_press("Key.f8")
    listener.on_release("Key.f9")
    listener.on_press("Key.f9")

    assert len(toggles) == 2

    adapter.stop()
    assert listener.stopped is True


def test_start_raises_without_pynput(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey, "keyboard", None)

    with pytest.raises(RuntimeError, match="pynput is not installed"):
        GlobalHotkeyAdapter().start(on_toggle=lambda: None)
