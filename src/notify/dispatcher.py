"""
Class-keyed notification dispatch.

Maps detected classes to speaker commands through a fixed vocabulary and
enforces the per-class cooldown. The cooldown only starts after the speaker
acknowledged a command, so a failed call can be retried on the very next
detection of the same class.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .cooldown import CooldownGate
from .speaker import Actuator, ActuatorError


class DispatchStatus(str, Enum):
    DISPATCHED = "dispatched"
    SKIPPED_DISABLED = "skipped_disabled"
    SKIPPED_UNKNOWN_CLASS = "skipped_unknown_class"
    SKIPPED_COOLDOWN = "skipped_cooldown"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchResult:
    """
    Outcome of one notify() call.

    Attributes:
        status: What happened.
        class_name: Class the notification was requested for.
        command: Command code sent (or that would have been sent).
        timestamp: Time passed to notify().
        error: Actuator error message when status is FAILED.
    """
    status: DispatchStatus
    class_name: str
    command: Optional[int] = None
    timestamp: float = 0.0
    error: Optional[str] = None

    @property
    def dispatched(self) -> bool:
        return self.status == DispatchStatus.DISPATCHED


class NotificationDispatcher:
    """
    Sends class-specific commands to an actuator, subject to a CooldownGate.

    Example:
        dispatcher = NotificationDispatcher(speaker, {"blade": 1}, CooldownGate(60.0))
        result = await dispatcher.notify("blade")
    """

    def __init__(
        self,
        actuator: Actuator,
        vocabulary: Mapping[str, int],
        gate: Optional[CooldownGate] = None,
        enabled: bool = True,
    ):
        self._actuator = actuator
        self._vocabulary: Mapping[str, int] = MappingProxyType(dict(vocabulary))
        self.gate = gate or CooldownGate()
        self.enabled = enabled
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def vocabulary(self) -> Mapping[str, int]:
        return self._vocabulary

    @property
    def actuator(self) -> Actuator:
        return self._actuator

    def _lock_for(self, class_name: str) -> asyncio.Lock:
        lock = self._locks.get(class_name)
        if lock is None:
            lock = self._locks[class_name] = asyncio.Lock()
        return lock

    async def notify(self, class_name: str, now: Optional[float] = None) -> DispatchResult:
        if now is None:
            now = time.time()

        if not self.enabled:
            return DispatchResult(DispatchStatus.SKIPPED_DISABLED, class_name, timestamp=now)

        command = self._vocabulary.get(class_name)
        if command is None:
            logging.debug(f"No command mapped for class '{class_name}'")
            return DispatchResult(DispatchStatus.SKIPPED_UNKNOWN_CLASS, class_name, timestamp=now)

        # check-then-record must not interleave for the same class
        async with self._lock_for(class_name):
            if not self.gate.is_allowed(class_name, now):
                remaining = self.gate.remaining(class_name, now)
                logging.debug(f"Notification for '{class_name}' in cooldown, {round(remaining)}s remaining")
                return DispatchResult(DispatchStatus.SKIPPED_COOLDOWN, class_name, command, now)

            logging.info(f"Sending command {command} for '{class_name}'")
            try:
                await self._actuator.send(command)
            except ActuatorError as e:
                logging.error(f"Failed to send command {command} for '{class_name}': {e}")
                return DispatchResult(DispatchStatus.FAILED, class_name, command, now, error=str(e))
            except Exception as e:
                logging.exception(f"Unexpected error sending command {command} for '{class_name}': {e}")
                return DispatchResult(DispatchStatus.FAILED, class_name, command, now, error=str(e))

            self.gate.record(class_name, now)

        logging.info(f"Command {command} sent for '{class_name}'")
        return DispatchResult(DispatchStatus.DISPATCHED, class_name, command, now)

    async def notify_all(self, class_names: Iterable[str], now: Optional[float] = None) -> List[DispatchResult]:
        """
        Notify once per distinct class, in first-seen order.

        Classes are dispatched concurrently; each class is guarded by its own lock.
        """
        if now is None:
            now = time.time()
        distinct = list(dict.fromkeys(class_names))
        if not distinct:
            return []
        return list(await asyncio.gather(*(self.notify(c, now) for c in distinct)))
