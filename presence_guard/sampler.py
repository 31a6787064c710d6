# presence_guard/sampler.py
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from .detectors import DetectionResult, PresenceDetector
from .errors import TransientSampleError
from .status import NO_DETECTION, SUBJECT_DETECTED, StatusBoard
from .utils import describe_error

if TYPE_CHECKING:
    from .guard import PresenceGuard
    from .session import MonitoringSession

logger = logging.getLogger("presence-guard.sampler")


class DetectionSampler:
    """
    One presence reading per tick.

    Ticks are lossy: no frame yet, or a failed detector call, just means this
    tick does not update anything. Absence is measured from the last positive
    reading, so dropped ticks never count as negatives.
    """

    def __init__(
        self,
        guard: "PresenceGuard",
        session: "MonitoringSession",
        detector: PresenceDetector,
        status: StatusBoard,
    ):
        self.guard = guard
        self.session = session
        self.detector = detector
        self.status = status
        self.failures = 0

    async def _detect(self, frame, now: float) -> DetectionResult:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.detector.detect, frame, now)
        except Exception as exc:
            raise TransientSampleError(describe_error(exc)) from exc

    async def tick(self) -> Optional[DetectionResult]:
        session = self.session
        if not session.active:
            return None

        capture = session.capture
        if not capture.frame_ready():
            return None
        frame = capture.read_frame()
        if frame is None:
            return None

        now = self.guard.clock()
        try:
            result = await self._detect(frame, now)
        except TransientSampleError as exc:
            self.failures += 1
            logger.warning("Detection failed; skipping tick: %s", exc)
            self.status.set_camera(f"Detection failed: {exc}", kind="sample.failed")
            return None

        # stop() may have run while the detector was busy
        if not session.active:
            return None

        presence = session.presence
        if result.count > 0:
            if not presence.face_detected:
                logger.info("Subject detected (faces=%d)", result.count)
            presence.mark_seen(now)
            self.status.set_camera(SUBJECT_DETECTED, kind="presence.detected")
        else:
            if presence.face_detected:
                logger.info("Subject no longer detected")
            presence.mark_missing()
            self.status.set_camera(NO_DETECTION, kind="presence.lost")
        return result
