"""
Pipeline module for the object watch system.

The pipeline orchestrates the polling flow:
- Still-image capture from the frame source
- Remote detection with the current thresholds
- Cooldown-gated speaker notifications per detected class
- Loop state (frame count, fps, connection) for the status API
"""

from .engine import DetectionLoop, DetectionLoopConfig, LoopPhase, create_loop_from_config
from .fps import FpsGauge

__all__ = [
    "DetectionLoop",
    "DetectionLoopConfig",
    "LoopPhase",
    "create_loop_from_config",
    "FpsGauge",
]
