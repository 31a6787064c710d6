# presence_guard/ticker.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("presence-guard.ticker")

TickFn = Callable[[], Awaitable[None]]


class Ticker:
    """
    Fire ``fn`` every ``interval`` seconds on the running loop.

    Ticks never overlap: if the previous tick is still running when the next
    one is due, the new one is skipped (not queued). Exceptions raised by a
    tick are logged and the schedule keeps going.
    """

    def __init__(self, name: str, interval: float, fn: TickFn):
        self.name = name
        self.interval = interval
        self._fn = fn
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self.fired = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def busy(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run(), name=f"ticker-{self.name}")

    async def stop(self) -> None:
        tasks = [t for t in (self._loop_task, self._inflight) if t is not None and not t.done()]
        self._loop_task = None
        self._inflight = None
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self.busy:
                self.skipped += 1
                logger.debug("Tick %s skipped; previous tick still running", self.name)
                continue
            self.fired += 1
            self._inflight = asyncio.create_task(self._guarded(), name=f"tick-{self.name}")

    async def _guarded(self) -> None:
        try:
            await self._fn()
        except Exception:
            logger.exception("Tick %s failed", self.name)
