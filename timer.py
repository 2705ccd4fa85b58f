"""Periodic elapsed-time ticker for the recording display."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

from models import format_duration

TickCallback = Callable[[str], None]


def now_ms() -> int:
    return int(time.monotonic() * 1000)


class RecordingTimer:
    def __init__(
        self,
        on_tick: Optional[TickCallback] = None,
        interval_ms: int = 100,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._on_tick = on_tick
        self._interval_s = interval_ms / 1000.0
        self._clock = clock
        self._task: Optional[asyncio.Task[None]] = None
        self._started_at: Optional[int] = None

    @property
    def active(self) -> bool:
        return self._task is not None

    def start(self, started_at: int) -> None:
        self.cancel()
        self._started_at = started_at
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        """Stop ticking. Safe to call when already stopped."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    def elapsed_ms(self) -> int:
        if self._started_at is None:
            return 0
        return self._clock() - self._started_at

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            if self._on_tick:
                self._on_tick(format_duration(self.elapsed_ms()))
