import os

import cv2

from ..errors import InitializationError
from .base import DetectionResult


class FaceDetector:
    def __init__(self, cascade_path: str = "", scale_factor: float = 1.1, min_neighbors: int = 5, min_size=(60, 60)):
        if not cascade_path:
            cascade_path = os.path.join(cv2.data.haarcascades, "haarcascade_frontalface_default.xml")
        if not os.path.exists(cascade_path):
            raise InitializationError(f"Missing cascade file: {cascade_path}")
        try:
            self.face = cv2.CascadeClassifier(cascade_path)
        except cv2.error as exc:
            raise InitializationError(f"Could not load cascade: {cascade_path}") from exc
        if self.face.empty():
            raise InitializationError(f"Could not load cascade: {cascade_path}")
        self.cascade_path = cascade_path
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = tuple(min_size)

    def detect(self, frame, timestamp_ms: float) -> DetectionResult:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self.face.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        boxes = [(int(x), int(y), int(w), int(h)) for (x, y, w, h) in faces]
        return DetectionResult(count=len(boxes), timestamp_ms=timestamp_ms, boxes=boxes)

    def close(self) -> None:
        self.face = None
