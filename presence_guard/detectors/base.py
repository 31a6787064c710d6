from dataclasses import dataclass, field
from typing import Any, List, Protocol, Tuple

BBox = Tuple[int, int, int, int]  # x, y, w, h


@dataclass
class DetectionResult:
    count: int
    timestamp_ms: float
    boxes: List[BBox] = field(default_factory=list)

    @property
    def detected(self) -> bool:
        return self.count > 0


class PresenceDetector(Protocol):
    # frame-mode detector: one frame in, a count of faces out
    def detect(self, frame: Any, timestamp_ms: float) -> DetectionResult: ...

    def close(self) -> None: ...
