"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple


def _non_negative(value: Any) -> float:
    return max(0.0, float(value))


@dataclass(frozen=True)
class Detection:
    """
    A single object recognized in one frame.

    Attributes:
        class_name: Label reported by the detection service.
        confidence: Detection confidence as a percentage (0-100).
        x: Box center x coordinate in source-image pixels.
        y: Box center y coordinate in source-image pixels.
        width: Box width in source-image pixels.
        height: Box height in source-image pixels.
    """
    class_name: str
    confidence: float
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x - self.width / 2

    @property
    def top(self) -> float:
        return self.y - self.height / 2

    @property
    def right(self) -> float:
        return self.x + self.width / 2

    @property
    def bottom(self) -> float:
        return self.y + self.height / 2

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        """Return as (left, top, right, bottom) tuple."""
        return (self.left, self.top, self.right, self.bottom)

    @classmethod
    def from_prediction(cls, pred: Mapping[str, Any]) -> "Detection":
        """
        Adapter: Convert one prediction from the detection service.

        The service reports confidence as a 0-1 fraction; it is rescaled to a
        percentage and clamped so the invariants hold even for odd payloads.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a numeric field cannot be converted.
        """
        confidence = _non_negative(pred["confidence"]) * 100.0
        return cls(
            class_name=str(pred["class"]),
            confidence=min(confidence, 100.0),
            x=_non_negative(pred["x"]),
            y=_non_negative(pred["y"]),
            width=_non_negative(pred["width"]),
            height=_non_negative(pred["height"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.class_name,
            "confidence": self.confidence,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class DetectionSummary:
    """Aggregate view of one frame's detections."""
    total: int = 0
    average_confidence: float = 0.0
    by_class: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "average_confidence": self.average_confidence,
            "by_class": dict(self.by_class),
        }


def unique_classes(detections: List[Detection]) -> List[str]:
    """Distinct class names in first-seen order."""
    return list(dict.fromkeys(d.class_name for d in detections))


def summarize_detections(detections: List[Detection]) -> DetectionSummary:
    if not detections:
        return DetectionSummary(total=0, average_confidence=0.0, by_class={})

    by_class: Dict[str, int] = {}
    for det in detections:
        by_class[det.class_name] = by_class.get(det.class_name, 0) + 1

    avg = sum(d.confidence for d in detections) / len(detections)
    return DetectionSummary(total=len(detections), average_confidence=avg, by_class=by_class)
