from __future__ import annotations

import asyncio

import pytest

from timer import RecordingTimer


@pytest.mark.asyncio
async def test_ticks_report_elapsed_and_cancel_is_idempotent() -> None:
    ticks: list[str] = []
    now = {"ms": 0}

    timer = RecordingTimer(on_tick=ticks.append, interval_ms=5, clock=lambda: now["ms"])
    timer.start(started_at=0)
    assert timer.active is True
    now["ms"] = 5000
    await asyncio.sleep(0.03)
    timer.cancel()
    timer.cancel()

    assert "00:05" in ticks
    assert timer.active is False


def test_elapsed_is_zero_before_start() -> None:
    assert RecordingTimer().elapsed_ms() == 0
