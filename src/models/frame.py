"""
FrameData model for captured still images.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass
class FrameData:
    """
    Payload and metadata for one captured still image.

    Attributes:
        encoded: The image bytes exactly as returned by the camera.
        frame: The decoded image as a numpy array (BGR format).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when the frame was captured.
        frame_index: Sequential frame number since the loop started.
        content_type: MIME type reported by the camera.
        source: Identifier for the camera.
    """
    encoded: bytes
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    content_type: str = "image/jpeg"
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        encoded: bytes,
        frame: np.ndarray,
        timestamp: float,
        content_type: str = "image/jpeg",
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from the encoded payload and its decoded array."""
        h, w = frame.shape[:2]
        return cls(
            encoded=encoded,
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            content_type=content_type,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
