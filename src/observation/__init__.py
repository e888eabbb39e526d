"""
Observation layer for pluggable still-image sources.

This layer abstracts where frames come from (an HTTP camera today) from the
detection loop. Each source implements the FrameSource interface and returns
FrameData objects or raises a CaptureError.
"""

from models.config import CameraConfig
from .base import (
    CaptureError,
    CaptureHttpError,
    CaptureNetworkError,
    CaptureTimeout,
    FrameSource,
    FrameSourceConfig,
)
from .http_source import HttpCaptureSource, HttpCaptureSourceConfig


def create_source_from_config(camera: CameraConfig, source_id: str = "camera") -> FrameSource:
    """Build the frame source described by the camera config section."""
    return HttpCaptureSource(
        HttpCaptureSourceConfig(
            source_id=source_id,
            timeout_s=camera.timeout_s,
            capture_url=camera.capture_url,
        )
    )


__all__ = [
    "CaptureError",
    "CaptureHttpError",
    "CaptureNetworkError",
    "CaptureTimeout",
    "FrameSource",
    "FrameSourceConfig",
    "HttpCaptureSource",
    "HttpCaptureSourceConfig",
    "create_source_from_config",
]
