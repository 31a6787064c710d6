import threading
import time

import numpy as np
import pytest

from presence_guard import capture as capture_mod
from presence_guard.capture import CameraSource
from presence_guard.errors import InitializationError


class FakeVideoCapture:
    instances = []

    def __init__(self, source, opened=True):
        self.source = source
        self.opened = opened
        self.released = False
        self.props = {}
        FakeVideoCapture.instances.append(self)

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        return True, np.zeros((4, 4, 3), dtype=np.uint8)

    def release(self):
        self.released = True


@pytest.fixture
def fake_cv(monkeypatch):
    FakeVideoCapture.instances = []
    monkeypatch.setattr(capture_mod.cv2, "VideoCapture", FakeVideoCapture)
    return FakeVideoCapture


def test_acquire_reads_frames_and_release(fake_cv):
    cam = CameraSource(0, width=320, height=240, fps=30)
    cam.acquire()
    deadline = time.monotonic() + 2
    while not cam.frame_ready() and time.monotonic() < deadline:
        time.sleep(0.01)

    assert cam.frame_ready()
    assert cam.read_frame().shape == (4, 4, 3)
    device = fake_cv.instances[0]
    assert device.props[capture_mod.cv2.CAP_PROP_FRAME_WIDTH] == 320

    cam.release()
    assert device.released
    assert not cam.frame_ready()
    cam.release()


def test_unopened_device_raises_and_releases(monkeypatch):
    devices = []

    def closed_capture(source):
        devices.append(FakeVideoCapture(source, opened=False))
        return devices[-1]

    monkeypatch.setattr(capture_mod.cv2, "VideoCapture", closed_capture)
    cam = CameraSource("rtsp://nowhere")
    with pytest.raises(InitializationError, match="Could not open camera"):
        cam.acquire()
    assert devices[0].released
    assert not cam.frame_ready()


def test_acquire_twice_keeps_one_device(fake_cv):
    cam = CameraSource(1)
    cam.acquire()
    cam.acquire()
    cam.release()
    assert len(fake_cv.instances) == 1


class SlowVideoCapture(FakeVideoCapture):
    """read() blocks until the test lets it return, like a stalled USB camera."""

    def __init__(self, source, opened=True):
        super().__init__(source, opened)
        self.reading = threading.Event()
        self.unblock = threading.Event()

    def read(self):
        self.reading.set()
        self.unblock.wait(5)
        return True, np.zeros((4, 4, 3), dtype=np.uint8)


def test_release_during_blocked_read_leaves_reader_clean(monkeypatch):
    errors = []
    monkeypatch.setattr(threading, "excepthook", lambda args: errors.append(args.exc_value))
    monkeypatch.setattr(capture_mod.cv2, "VideoCapture", SlowVideoCapture)
    FakeVideoCapture.instances = []

    cam = CameraSource(0)
    cam.acquire()
    device = FakeVideoCapture.instances[0]
    thread = cam._thread
    assert device.reading.wait(2)

    # same as a join that timed out: the reader is still inside read()
    cam._thread = None
    cam.release()
    assert cam.cap is None

    device.unblock.set()
    thread.join(2)
    assert not thread.is_alive()
    assert errors == []
    assert cam.read_frame() is None
    assert not cam.frame_ready()


def test_reader_retries_after_failed_reads(monkeypatch):
    class FlakyVideoCapture(FakeVideoCapture):
        calls = 0

        def read(self):
            FlakyVideoCapture.calls += 1
            if FlakyVideoCapture.calls <= 2:
                return False, None
            return True, np.ones((2, 2, 3), dtype=np.uint8)

    monkeypatch.setattr(capture_mod, "READ_RETRY_SEC", 0.01)
    monkeypatch.setattr(capture_mod.cv2, "VideoCapture", FlakyVideoCapture)
    cam = CameraSource(0, fps=30)
    cam.acquire()
    deadline = time.monotonic() + 2
    while not cam.frame_ready() and time.monotonic() < deadline:
        time.sleep(0.01)

    assert cam.frame_ready()
    assert FlakyVideoCapture.calls >= 3
    cam.release()
