# presence_guard/evaluator.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .status import StatusBoard

if TYPE_CHECKING:
    from .guard import PresenceGuard
    from .session import MonitoringSession

logger = logging.getLogger("presence-guard.evaluator")

ABSENCE_REASON = "Absence detected"


class AbsenceDecision(str, Enum):
    DISABLED = "disabled"   # auto-lock off
    BUSY = "busy"           # a lock attempt is in flight
    PRESENT = "present"     # inside the grace window
    COOLDOWN = "cooldown"   # threshold passed, but we tried recently
    LOCK = "lock"


@dataclass
class Evaluation:
    decision: AbsenceDecision
    absence_ms: float

    @property
    def absence_seconds(self) -> int:
        return max(0, int(math.floor(self.absence_ms / 1000.0)))


def evaluate_absence(
    *,
    now: float,
    last_face_seen_at: float,
    threshold_seconds: int,
    last_lock_attempt_at: Optional[float],
    cooldown_ms: int,
    auto_lock_enabled: bool = True,
    locking: bool = False,
) -> Evaluation:
    """
    Decide whether an absence warrants a lock attempt.

    The threshold gate and the cooldown gate are independent; both must pass.
    The absence is always computed so callers can display it.
    """
    absence_ms = now - last_face_seen_at

    if not auto_lock_enabled:
        return Evaluation(AbsenceDecision.DISABLED, absence_ms)
    if locking:
        return Evaluation(AbsenceDecision.BUSY, absence_ms)
    if absence_ms < threshold_seconds * 1000:
        return Evaluation(AbsenceDecision.PRESENT, absence_ms)
    if last_lock_attempt_at is not None and now - last_lock_attempt_at < cooldown_ms:
        return Evaluation(AbsenceDecision.COOLDOWN, absence_ms)
    return Evaluation(AbsenceDecision.LOCK, absence_ms)


class AbsenceEvaluator:
    def __init__(self, guard: "PresenceGuard", session: "MonitoringSession", status: StatusBoard):
        self.guard = guard
        self.session = session
        self.status = status
        self.last_decision: Optional[AbsenceDecision] = None

    async def tick(self) -> Optional[Evaluation]:
        session = self.session
        if not session.active:
            return None

        presence = session.presence
        lock_state = self.guard.invoker.state
        now = self.guard.clock()

        result = evaluate_absence(
            now=now,
            last_face_seen_at=presence.last_face_seen_at,
            threshold_seconds=self.guard.absence_threshold_seconds,
            last_lock_attempt_at=lock_state.last_lock_attempt_at,
            cooldown_ms=self.guard.lock_cooldown_ms,
            auto_lock_enabled=self.guard.auto_lock_enabled,
            locking=lock_state.locking,
        )
        presence.absence_seconds = result.absence_seconds

        over_threshold = result.absence_ms >= self.guard.absence_threshold_seconds * 1000
        if over_threshold and not presence.absent:
            self.status.record(
                "presence.absent",
                "Subject absent beyond threshold",
                absence_seconds=result.absence_seconds,
            )
            logger.info("Subject absent for %ss (threshold=%ss)", result.absence_seconds, self.guard.absence_threshold_seconds)
        presence.absent = over_threshold

        if result.decision != self.last_decision:
            logger.debug("Absence decision %s (absence_ms=%.0f)", result.decision.value, result.absence_ms)
        self.last_decision = result.decision

        if result.decision is AbsenceDecision.LOCK:
            await self.guard.invoker.lock(ABSENCE_REASON)
        return result
