"""
Inference layer: turns a captured frame into normalized detections.
"""

from .backend import InferenceBackend, InferenceServiceError, clamp_threshold
from .remote_backend import RemoteDetectionBackend, RemoteDetectionConfig, parse_predictions

__all__ = [
    "InferenceBackend",
    "InferenceServiceError",
    "clamp_threshold",
    "RemoteDetectionBackend",
    "RemoteDetectionConfig",
    "parse_predictions",
]
