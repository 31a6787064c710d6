# presence_guard/status.py
from __future__ import annotations

from collections import deque
from typing import Any, Deque, List, Optional

from .models import GuardEvent

CAMERA_STOPPED = "Monitor stopped"
CAMERA_INITIALIZING = "Initializing detector..."
CAMERA_REQUESTING = "Requesting camera access..."
CAMERA_ACTIVE = "Monitor active"
CAMERA_FAILED = "Could not start camera"
SUBJECT_DETECTED = "Subject detected"
NO_DETECTION = "No detection"


class StatusBoard:
    """
    The two user-facing status lines plus a short history of what changed.
    """

    def __init__(self, history_size: int = 100):
        self.camera_status: str = CAMERA_STOPPED
        self.lock_status: str = ""
        self._events: Deque[GuardEvent] = deque(maxlen=history_size)

    def set_camera(self, message: str, kind: Optional[str] = None, **details: Any) -> None:
        # sampler writes the same line every tick, only keep transitions
        changed = message != self.camera_status
        self.camera_status = message
        if kind and changed:
            self.record(kind, message, **details)

    def set_lock(self, message: str, kind: Optional[str] = None, **details: Any) -> None:
        self.lock_status = message
        if kind:
            self.record(kind, message, **details)

    def record(self, kind: str, message: str, **details: Any) -> GuardEvent:
        event = GuardEvent(kind=kind, message=message, details=dict(details))
        self._events.append(event)
        return event

    def recent(self, limit: Optional[int] = None) -> List[GuardEvent]:
        events = list(self._events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events
