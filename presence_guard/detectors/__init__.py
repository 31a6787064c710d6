# presence_guard/detectors/__init__.py
import logging
import threading
from typing import Optional

from ..settings import Settings, get_settings
from .base import BBox, DetectionResult, PresenceDetector

logger = logging.getLogger("presence-guard.detectors")

# One detector per process, shared by every monitoring session
_detector: Optional[PresenceDetector] = None
_detector_lock = threading.Lock()


def build_detector(settings: Settings) -> PresenceDetector:
    from .face import FaceDetector

    return FaceDetector(
        cascade_path=settings.FACE_CASCADE_PATH,
        scale_factor=settings.FACE_SCALE_FACTOR,
        min_neighbors=settings.FACE_MIN_NEIGHBORS,
        min_size=settings.face_min_size_tuple,
    )


def get_detector(settings: Optional[Settings] = None) -> PresenceDetector:
    """
    Lazily build the shared detector. Safe to call from several threads;
    a failed build leaves nothing cached so the next call retries.
    """
    global _detector
    with _detector_lock:
        if _detector is None:
            settings = settings or get_settings()
            logger.info("Loading face detector")
            _detector = build_detector(settings)
        return _detector


def close_detector() -> None:
    global _detector
    with _detector_lock:
        if _detector is not None:
            _detector.close()
            _detector = None


__all__ = [
    "BBox",
    "DetectionResult",
    "PresenceDetector",
    "build_detector",
    "close_detector",
    "get_detector",
]
