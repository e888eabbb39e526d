"""
Typed models for the object watch application.

These models are plain dataclasses with dict adapters for config and JSON output.
"""

from .frame import FrameData
from .detection import Detection, DetectionSummary, summarize_detections, unique_classes
from .status import (
    CaptureErrorKind,
    ConnectionState,
    ConnectionStatus,
    LastNotification,
    LoopSnapshot,
)
from .config import (
    Config,
    CameraConfig,
    InferenceConfig,
    SpeakerConfig,
    NotificationConfig,
    LoopConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "DetectionSummary",
    "summarize_detections",
    "unique_classes",
    # Status
    "CaptureErrorKind",
    "ConnectionState",
    "ConnectionStatus",
    "LastNotification",
    "LoopSnapshot",
    # Config
    "Config",
    "CameraConfig",
    "InferenceConfig",
    "SpeakerConfig",
    "NotificationConfig",
    "LoopConfig",
    "WebConfig",
]
