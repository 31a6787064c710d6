# presence_guard/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PresencePhase(str, Enum):
    IDLE = "idle"
    PRESENT = "present"
    ABSENT = "absent"
    LOCKING = "locking"


@dataclass
class PresenceState:
    """
    Written by the sampler, read by the evaluator.

    Timestamps are monotonic milliseconds. ``last_face_seen_at`` never moves
    backwards within a session.
    """

    last_face_seen_at: float = 0.0
    face_detected: bool = False
    absence_seconds: int = 0
    # flips on the first positive sample of the session
    seen_once: bool = False
    absent: bool = False

    def reset(self, now: float) -> None:
        self.last_face_seen_at = now
        self.face_detected = False
        self.absence_seconds = 0
        self.seen_once = False
        self.absent = False

    def mark_seen(self, ts: float) -> None:
        if ts > self.last_face_seen_at:
            self.last_face_seen_at = ts
        self.face_detected = True
        self.seen_once = True
        self.absent = False

    def mark_missing(self) -> None:
        self.face_detected = False

    def clear(self) -> None:
        self.face_detected = False
        self.absence_seconds = 0
        self.absent = False


@dataclass
class LockAttemptState:
    locking: bool = False
    # None = never attempted, never blocks the first attempt
    last_lock_attempt_at: Optional[float] = None
    last_error: Optional[str] = None
    attempts: int = 0
