# presence_guard/capture.py
import logging
import threading
from typing import Any, Optional, Protocol, Union

import cv2

from .errors import InitializationError

logger = logging.getLogger("presence-guard.capture")

READ_RETRY_SEC = 0.25
READ_MISS_WARN = 20


class CaptureSource(Protocol):
    def acquire(self) -> None: ...

    def frame_ready(self) -> bool: ...

    def read_frame(self) -> Any: ...

    def release(self) -> None: ...


class CameraSource:
    """
    Exclusive handle on one camera. A reader thread keeps the latest frame so
    the sampler never blocks on the device.
    """

    def __init__(self, source: Union[int, str], width: int = 640, height: int = 480, fps: int = 15):
        self.source = source
        self.width = width
        self.height = height
        self.fps = fps
        self.cap = None
        self.last_frame = None
        self._frame_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def acquire(self) -> None:
        if self.cap is not None:
            return
        cap = cv2.VideoCapture(self.source)
        if not cap.isOpened():
            cap.release()
            raise InitializationError(f"Could not open camera source {self.source!r}")
        self.cap = cap
        # a fresh event per acquire so a reader left over from a slow release
        # can never be revived
        self._stop = threading.Event()
        try:
            if self.width:
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            if self.height:
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            if self.fps:
                cap.set(cv2.CAP_PROP_FPS, self.fps)

            self._thread = threading.Thread(
                target=self._read_frames,
                args=(cap, self._stop),
                name="camera-reader",
                daemon=True,
            )
            self._thread.start()
        except Exception:
            self.release()
            raise
        logger.info("Camera %r acquired (%sx%s@%s)", self.source, self.width, self.height, self.fps)

    def _read_frames(self, cap, stop: threading.Event) -> None:
        # owns its own device reference; release() may clear self.cap at any time
        pause = 0.5 / max(self.fps, 1)
        misses = 0
        while not stop.is_set():
            ok, frame = cap.read()
            if not ok:
                misses += 1
                if misses == READ_MISS_WARN:
                    logger.warning("Camera %r returned no frame %d times in a row", self.source, misses)
                stop.wait(READ_RETRY_SEC)
                continue
            if misses >= READ_MISS_WARN:
                logger.info("Camera %r delivering frames again", self.source)
            misses = 0
            with self._frame_lock:
                if not stop.is_set():
                    self.last_frame = frame
            stop.wait(pause)

    def frame_ready(self) -> bool:
        return self.cap is not None and self.last_frame is not None

    def read_frame(self):
        with self._frame_lock:
            return self.last_frame

    def release(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2)
            self._thread = None
        if self.cap is not None:
            try:
                self.cap.release()
            except Exception:
                logger.exception("Camera release failed")
            self.cap = None
            logger.info("Camera %r released", self.source)
        with self._frame_lock:
            self.last_frame = None
