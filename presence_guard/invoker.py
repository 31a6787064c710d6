# presence_guard/invoker.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .lock_action import LockAction
from .models import LockOutcome
from .state import LockAttemptState
from .status import StatusBoard
from .utils import describe_error

logger = logging.getLogger("presence-guard.invoker")

LOCK_SENT = "Lock command sent. If the OS allows it, the session will lock now."


class LockInvoker:
    """
    Single-flight wrapper around the lock action.

    Only this class mutates ``LockAttemptState``. The cooldown timestamp is
    written on every attempt, successful or not.
    """

    def __init__(
        self,
        action: LockAction,
        clock: Callable[[], float],
        status: StatusBoard,
        state: LockAttemptState | None = None,
    ):
        self.action = action
        self.clock = clock
        self.status = status
        self.state = state or LockAttemptState()
        self._task: asyncio.Task | None = None

    @property
    def locking(self) -> bool:
        return self.state.locking

    async def lock(self, reason: str) -> LockOutcome:
        if self.state.locking:
            logger.debug("Lock already in flight; ignoring request (%s)", reason)
            return LockOutcome(
                attempted=False,
                reason=reason,
                message="A lock attempt is already in progress",
            )

        # set before the first await so a concurrent caller sees it
        self.state.locking = True
        self.status.set_lock(f"{reason}: attempting to lock the session...", kind="lock.requested", reason=reason)
        logger.warning("Locking session (reason=%s)", reason)

        # The action may be running a subprocess in an executor thread that
        # cannot be interrupted. Cancelling the caller must not end the
        # attempt early, so the bookkeeping lives in a done-callback.
        outcomes: list[LockOutcome] = []
        task = asyncio.create_task(self.action.invoke(), name="lock-action")
        task.add_done_callback(lambda t: outcomes.append(self._finish(t, reason)))
        self._task = task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.info("Lock caller cancelled; attempt keeps running (reason=%s)", reason)
            raise
        except Exception:
            # reported by _finish
            pass

        # the done-callback was registered before shield's, so it has run
        return outcomes[0]

    async def wait_idle(self) -> None:
        """Wait for an attempt whose caller was cancelled to finish."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait([task])

    def _finish(self, task: asyncio.Task, reason: str) -> LockOutcome:
        ok = False
        if task.cancelled():
            message = "Lock attempt cancelled"
            self.state.last_error = message
            self.status.set_lock(message, kind="lock.cancelled", reason=reason)
            logger.warning("Lock attempt cancelled (reason=%s)", reason)
        elif task.exception() is not None:
            exc = task.exception()
            message = f"Could not lock the session: {describe_error(exc)}"
            self.state.last_error = message
            self.status.set_lock(message, kind="lock.failed", reason=reason)
            logger.error("Lock attempt failed (reason=%s): %s", reason, describe_error(exc))
        else:
            ok = True
            message = LOCK_SENT
            self.state.last_error = None
            self.status.set_lock(message, kind="lock.sent", reason=reason)
            logger.info("Lock command accepted (reason=%s)", reason)

        self.state.last_lock_attempt_at = self.clock()
        self.state.attempts += 1
        self.state.locking = False
        return LockOutcome(attempted=True, ok=ok, reason=reason, message=message)
