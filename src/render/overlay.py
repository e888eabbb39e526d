"""
Detection overlay rendering.

Detections arrive as center/size boxes in source-image pixels. The mapping to
a display surface is a pure scale; drawing uses OpenCV on a copy of the frame.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np

from models.detection import Detection

# Colors (BGR)
COLOR_BOX = (128, 222, 74)  # Green
COLOR_LABEL_TEXT = (0, 0, 0)


def detection_rect(
    detection: Detection,
    src_size: Tuple[int, int],
    dst_size: Optional[Tuple[int, int]] = None,
) -> Tuple[int, int, int, int]:
    """
    Map a detection to an integer (x1, y1, x2, y2) rectangle on a display surface.

    Args:
        detection: Detection in source-image pixel space.
        src_size: (width, height) of the image the detection refers to.
        dst_size: (width, height) of the target surface. Defaults to src_size.
    """
    src_w, src_h = src_size
    dst_w, dst_h = dst_size or src_size
    sx = dst_w / src_w if src_w else 1.0
    sy = dst_h / src_h if src_h else 1.0

    x1 = int(round(detection.left * sx))
    y1 = int(round(detection.top * sy))
    x2 = int(round(detection.right * sx))
    y2 = int(round(detection.bottom * sy))

    x1 = max(0, min(dst_w - 1, x1))
    y1 = max(0, min(dst_h - 1, y1))
    x2 = max(0, min(dst_w - 1, x2))
    y2 = max(0, min(dst_h - 1, y2))
    return (x1, y1, x2, y2)


def detection_label(detection: Detection) -> str:
    return f"{detection.class_name}: {detection.confidence:.1f}%"


def draw_detections(frame: np.ndarray, detections: List[Detection]) -> np.ndarray:
    """Return a copy of the frame with a labeled box per detection."""
    out = frame.copy()
    h, w = out.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX

    for det in detections:
        x1, y1, x2, y2 = detection_rect(det, (w, h))
        cv2.rectangle(out, (x1, y1), (x2, y2), COLOR_BOX, 2)

        # Label with background
        label = detection_label(det)
        (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
        label_top = max(0, y1 - th - 6)
        cv2.rectangle(out, (x1, label_top), (x1 + tw + 4, label_top + th + 6), COLOR_BOX, -1)
        cv2.putText(out, label, (x1 + 2, label_top + th + 2), font, 0.5, COLOR_LABEL_TEXT, 1)

    return out


def encode_jpeg(frame: np.ndarray, quality: int = 85) -> bytes:
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise RuntimeError("Failed to encode JPEG")
    return buf.tobytes()
