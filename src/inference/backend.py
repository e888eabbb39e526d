"""
Inference backend interface.

Backends return pixel-space detections in the original frame coordinate system,
with confidence expressed as a percentage.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol

from models.detection import Detection
from models.frame import FrameData

# Called with a short description whenever the backend swallows a failure.
ErrorReporter = Callable[[str], None]

MIN_THRESHOLD = 1
MAX_THRESHOLD = 100


class InferenceServiceError(Exception):
    """The detection service could not be reached or returned an unusable answer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def clamp_threshold(value: float) -> int:
    """Clamp a percentage threshold into [1, 100]."""
    return int(max(MIN_THRESHOLD, min(MAX_THRESHOLD, round(value))))


class InferenceBackend(Protocol):
    async def detect(self, frame: FrameData, confidence: int, overlap: int) -> List[Detection]:
        ...
