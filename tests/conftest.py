import asyncio
import os
import sys
from typing import List, Optional

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from presence_guard.detectors import DetectionResult  # noqa: E402
from presence_guard.errors import InitializationError, LockActionError  # noqa: E402
from presence_guard.guard import PresenceGuard  # noqa: E402
from presence_guard.settings import Settings  # noqa: E402


class FakeClock:
    """Monotonic milliseconds, advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now

    def set(self, ms: float) -> float:
        self.now = ms
        return self.now


class FakeDetector:
    """Returns queued counts; an Exception in the queue is raised instead."""

    def __init__(self, results: Optional[list] = None, default: int = 0):
        self.results = list(results or [])
        self.default = default
        self.calls: List[float] = []
        self.closed = False

    def detect(self, frame, timestamp_ms):
        self.calls.append(timestamp_ms)
        value = self.results.pop(0) if self.results else self.default
        if isinstance(value, Exception):
            raise value
        return DetectionResult(count=value, timestamp_ms=timestamp_ms)

    def close(self):
        self.closed = True


class FakeCapture:
    def __init__(self, ready: bool = True, fail: bool = False):
        self.ready = ready
        self.fail = fail
        self.acquired = 0
        self.released = 0

    def acquire(self):
        self.acquired += 1
        if self.fail:
            raise InitializationError("camera busy")

    def frame_ready(self):
        return self.ready

    def read_frame(self):
        return object() if self.ready else None

    def release(self):
        self.released += 1


class FakeLockAction:
    """
    Records invocations. Set ``fail`` to make it raise; set ``gate`` to an
    asyncio.Event to hold the call open until the test releases it.
    """

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def invoke(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise LockActionError("loginctl: permission denied")


def make_settings(**overrides) -> Settings:
    values = dict(
        SAMPLE_INTERVAL_MS=60_000,
        EVALUATE_INTERVAL_MS=60_000,
        ABSENCE_THRESHOLD_SEC=5,
        LOCK_COOLDOWN_MS=30_000,
        AUTO_LOCK_ENABLED=True,
        AUTO_START=False,
        LOCK_COMMAND="",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def detector():
    return FakeDetector()


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def lock_action():
    return FakeLockAction()


@pytest.fixture
def guard(clock, detector, capture, lock_action):
    # long intervals: tests drive the sampler/evaluator ticks by hand
    return PresenceGuard(
        make_settings(),
        detector_factory=lambda: detector,
        capture_factory=lambda: capture,
        lock_action=lock_action,
        clock=clock,
    )
