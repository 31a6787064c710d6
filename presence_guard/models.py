from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .state import PresencePhase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GuardStatus(BaseModel):
    """
    Read-only snapshot of the guard, served to the UI.
    """

    monitoring: bool
    face_detected: bool
    absence_seconds: int
    phase: PresencePhase
    camera_status: str
    lock_status: str
    locking: bool
    auto_lock_enabled: bool
    absence_threshold_seconds: int
    lock_cooldown_ms: int
    seconds_since_lock_attempt: Optional[float] = None


class StartResult(BaseModel):
    started: bool
    already_active: bool = False
    error: Optional[str] = None


class LockOutcome(BaseModel):
    attempted: bool = Field(..., description="False when another attempt was already in flight")
    ok: bool = False
    reason: str
    message: str


class LockRequest(BaseModel):
    reason: Optional[str] = None


class ConfigUpdate(BaseModel):
    auto_lock_enabled: Optional[bool] = None
    absence_threshold_seconds: Optional[int] = Field(default=None, ge=1)


class GuardEvent(BaseModel):
    kind: str = Field(..., description="e.g. monitor.started, presence.absent, lock.failed")
    message: str
    created_at: datetime = Field(default_factory=_utcnow)
    details: Dict[str, Any] = Field(default_factory=dict)
