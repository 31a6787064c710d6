# presence_guard/routes.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from .guard import MANUAL_REASON, PresenceGuard
from .models import ConfigUpdate, GuardEvent, GuardStatus, LockOutcome, LockRequest, StartResult

router = APIRouter()


def get_guard(request: Request) -> PresenceGuard:
    return request.app.state.guard


@router.get("/health")
async def health(guard: PresenceGuard = Depends(get_guard)):
    return {
        "ok": True,
        "service": guard.settings.SERVICE_NAME,
        "version": guard.settings.SERVICE_VERSION,
        "monitoring": guard.monitoring,
    }


@router.get("/state", response_model=GuardStatus)
async def get_state(guard: PresenceGuard = Depends(get_guard)):
    return guard.snapshot()


@router.post("/monitor/start", response_model=StartResult)
async def start_monitor(guard: PresenceGuard = Depends(get_guard)):
    """
    Start monitoring. A failed start still answers 200; the body carries
    the error and the guard is left stopped.
    """
    return await guard.start()


@router.post("/monitor/stop", response_model=GuardStatus)
async def stop_monitor(guard: PresenceGuard = Depends(get_guard)):
    await guard.stop()
    return guard.snapshot()


@router.post("/lock", response_model=LockOutcome)
async def lock_now(payload: Optional[LockRequest] = None, guard: PresenceGuard = Depends(get_guard)):
    reason = (payload.reason if payload else None) or MANUAL_REASON
    return await guard.lock_now(reason)


@router.post("/config", response_model=GuardStatus)
async def update_config(payload: ConfigUpdate, guard: PresenceGuard = Depends(get_guard)):
    if payload.absence_threshold_seconds is not None:
        guard.set_absence_threshold(payload.absence_threshold_seconds)
    if payload.auto_lock_enabled is not None:
        guard.set_auto_lock(payload.auto_lock_enabled)
    return guard.snapshot()


@router.get("/events", response_model=List[GuardEvent])
async def recent_events(
    limit: int = Query(default=50, ge=0, le=1000),
    guard: PresenceGuard = Depends(get_guard),
):
    return guard.events(limit)
