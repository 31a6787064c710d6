# presence_guard/session.py
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .capture import CaptureSource
from .detectors import PresenceDetector
from .evaluator import AbsenceEvaluator
from .sampler import DetectionSampler
from .state import PresenceState
from .status import StatusBoard
from .ticker import Ticker

if TYPE_CHECKING:
    from .guard import PresenceGuard

logger = logging.getLogger("presence-guard.session")


class MonitoringSession:
    """
    One start/stop cycle: the camera handle, the presence record and the two
    periodic loops. Built by ``PresenceGuard.start`` and thrown away on stop.
    """

    def __init__(
        self,
        guard: "PresenceGuard",
        capture: CaptureSource,
        detector: PresenceDetector,
        status: StatusBoard,
        sample_interval: float,
        evaluate_interval: float,
    ):
        self.guard = guard
        self.capture = capture
        self.presence = PresenceState()
        self.active = False
        self.started_at: float = 0.0

        self.sampler = DetectionSampler(guard, self, detector, status)
        self.evaluator = AbsenceEvaluator(guard, self, status)
        self.sampler_ticker = Ticker("sampler", sample_interval, self.sampler.tick)
        self.evaluator_ticker = Ticker("evaluator", evaluate_interval, self.evaluator.tick)
        self._released = False

    async def open(self) -> None:
        """Acquire the camera. Opening a device can block, so it runs off-loop."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.capture.acquire)

    def begin(self, now: float) -> None:
        self.presence.reset(now)
        self.started_at = now
        self.active = True
        self.sampler_ticker.start()
        self.evaluator_ticker.start()

    async def close(self) -> None:
        self.active = False
        await self.sampler_ticker.stop()
        await self.evaluator_ticker.stop()
        if not self._released:
            self._released = True
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, self.capture.release)
            except Exception:
                logger.exception("Failed to release capture source")
        self.presence.clear()
