"""
Notification layer: cooldown-gated speaker commands keyed by detected class.
"""

from .cooldown import CooldownGate
from .dispatcher import DispatchResult, DispatchStatus, NotificationDispatcher
from .speaker import Actuator, ActuatorError, HttpSpeaker, HttpSpeakerConfig

__all__ = [
    "CooldownGate",
    "DispatchResult",
    "DispatchStatus",
    "NotificationDispatcher",
    "Actuator",
    "ActuatorError",
    "HttpSpeaker",
    "HttpSpeakerConfig",
]
