# presence_guard/guard.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from .capture import CameraSource, CaptureSource
from .detectors import PresenceDetector, close_detector, get_detector
from .errors import InitializationError
from .invoker import LockInvoker
from .lock_action import LockAction, SystemLockAction
from .models import GuardEvent, GuardStatus, LockOutcome, StartResult
from .session import MonitoringSession
from .settings import Settings, get_settings
from .state import PresencePhase
from .status import (
    CAMERA_ACTIVE,
    CAMERA_FAILED,
    CAMERA_INITIALIZING,
    CAMERA_REQUESTING,
    CAMERA_STOPPED,
    StatusBoard,
)
from .utils import describe_error, monotonic_ms

logger = logging.getLogger("presence-guard.guard")

MANUAL_REASON = "Manual lock"


class PresenceGuard:
    """
    Owns everything that outlives a single monitoring session: configuration,
    the lock invoker (and so the cooldown), the status lines and the shared
    detector. At most one ``MonitoringSession`` is alive at a time.

    All timestamps come from ``clock`` (monotonic milliseconds).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        detector_factory: Optional[Callable[[], PresenceDetector]] = None,
        capture_factory: Optional[Callable[[], CaptureSource]] = None,
        lock_action: Optional[LockAction] = None,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.status = StatusBoard(history_size=self.settings.EVENT_HISTORY_SIZE)

        self.auto_lock_enabled: bool = self.settings.AUTO_LOCK_ENABLED
        self.absence_threshold_seconds: int = self.settings.ABSENCE_THRESHOLD_SEC
        self.lock_cooldown_ms: int = self.settings.LOCK_COOLDOWN_MS

        self._shared_detector = detector_factory is None
        self._detector_factory = detector_factory or (lambda: get_detector(self.settings))
        self._capture_factory = capture_factory or self._default_capture
        self.detector: Optional[PresenceDetector] = None

        self.invoker = LockInvoker(
            action=lock_action
            or SystemLockAction(
                custom_command=self.settings.LOCK_COMMAND,
                timeout=self.settings.LOCK_COMMAND_TIMEOUT_SEC,
            ),
            clock=clock,
            status=self.status,
        )

        self.session: Optional[MonitoringSession] = None
        self._lifecycle = asyncio.Lock()

    def _default_capture(self) -> CaptureSource:
        return CameraSource(
            self.settings.camera_source,
            width=self.settings.CAMERA_WIDTH,
            height=self.settings.CAMERA_HEIGHT,
            fps=self.settings.CAMERA_FPS,
        )

    @property
    def monitoring(self) -> bool:
        return self.session is not None and self.session.active

    # ─────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────

    async def _ensure_detector(self) -> PresenceDetector:
        if self.detector is None:
            loop = asyncio.get_running_loop()
            self.detector = await loop.run_in_executor(None, self._detector_factory)
        return self.detector

    async def start(self) -> StartResult:
        async with self._lifecycle:
            if self.monitoring:
                return StartResult(started=False, already_active=True)

            try:
                self.status.set_camera(CAMERA_INITIALIZING)
                detector = await self._ensure_detector()

                self.status.set_camera(CAMERA_REQUESTING)
                self.session = MonitoringSession(
                    self,
                    capture=self._capture_factory(),
                    detector=detector,
                    status=self.status,
                    sample_interval=self.settings.SAMPLE_INTERVAL_MS / 1000.0,
                    evaluate_interval=self.settings.EVALUATE_INTERVAL_MS / 1000.0,
                )
                await self.session.open()
                self.session.begin(self.clock())
            except Exception as exc:
                err = exc if isinstance(exc, InitializationError) else InitializationError(describe_error(exc))
                message = describe_error(err)
                logger.error("Failed to start monitor: %s", message)
                await self._stop_locked()
                self.status.set_camera(CAMERA_FAILED, kind="monitor.failed", error=message)
                self.status.set_lock(f"Error starting monitor: {message}")
                return StartResult(started=False, error=message)

            self.status.set_camera(CAMERA_ACTIVE, kind="monitor.started")
            logger.info(
                "Monitor active; threshold=%ss cooldown=%sms auto_lock=%s",
                self.absence_threshold_seconds,
                self.lock_cooldown_ms,
                self.auto_lock_enabled,
            )
            return StartResult(started=True)

    async def stop(self) -> None:
        async with self._lifecycle:
            await self._stop_locked()

    async def _stop_locked(self) -> None:
        session, self.session = self.session, None
        if session is None and self.status.camera_status == CAMERA_STOPPED:
            return
        if session is not None:
            await session.close()
            logger.info("Monitor stopped")
        self.status.set_camera(CAMERA_STOPPED, kind="monitor.stopped")

    async def shutdown(self) -> None:
        await self.stop()
        await self.invoker.wait_idle()
        if self._shared_detector:
            close_detector()
        elif self.detector is not None:
            self.detector.close()
        self.detector = None

    # ─────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────

    async def lock_now(self, reason: str = MANUAL_REASON) -> LockOutcome:
        return await self.invoker.lock(reason or MANUAL_REASON)

    def set_auto_lock(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled == self.auto_lock_enabled:
            return
        self.auto_lock_enabled = enabled
        state = "enabled" if enabled else "disabled"
        logger.info("Auto-lock %s", state)
        self.status.record(f"config.auto_lock_{state}", f"Auto-lock {state}")

    def set_absence_threshold(self, seconds: int) -> None:
        seconds = int(seconds)
        if seconds < 1:
            raise ValueError("Absence threshold must be at least 1 second")
        if seconds == self.absence_threshold_seconds:
            return
        self.absence_threshold_seconds = seconds
        logger.info("Absence threshold set to %ss", seconds)
        self.status.record("config.threshold", f"Absence threshold set to {seconds}s", seconds=seconds)

    # ─────────────────────────────────────────────
    # Observability
    # ─────────────────────────────────────────────

    def phase(self) -> PresencePhase:
        session = self.session
        if session is None or not session.active:
            return PresencePhase.IDLE
        if self.invoker.locking:
            return PresencePhase.LOCKING
        if session.presence.absent:
            return PresencePhase.ABSENT
        if session.presence.seen_once:
            return PresencePhase.PRESENT
        return PresencePhase.IDLE

    def snapshot(self) -> GuardStatus:
        session = self.session
        presence = session.presence if session is not None else None
        last_attempt = self.invoker.state.last_lock_attempt_at
        since = None
        if last_attempt is not None:
            since = max(0.0, (self.clock() - last_attempt) / 1000.0)

        return GuardStatus(
            monitoring=self.monitoring,
            face_detected=bool(presence and presence.face_detected),
            absence_seconds=presence.absence_seconds if presence else 0,
            phase=self.phase(),
            camera_status=self.status.camera_status,
            lock_status=self.status.lock_status,
            locking=self.invoker.locking,
            auto_lock_enabled=self.auto_lock_enabled,
            absence_threshold_seconds=self.absence_threshold_seconds,
            lock_cooldown_ms=self.lock_cooldown_ms,
            seconds_since_lock_attempt=since,
        )

    def events(self, limit: Optional[int] = None) -> List[GuardEvent]:
        return self.status.recent(limit)
