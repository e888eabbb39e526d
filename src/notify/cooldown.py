"""
Per-class cooldown gate for speaker notifications.
"""

from __future__ import annotations

from typing import Dict, Optional


class CooldownGate:
    """
    Decides whether a notification for a class may fire.

    The gate owns the cooldown table (class -> wall-clock seconds of the last
    successful dispatch). `is_allowed` only reads it; `record` is called by the
    dispatcher after the actuator confirmed the command, so a failed dispatch
    never starts a cooldown.

    Example:
        gate = CooldownGate(period_s=60.0)
        if gate.is_allowed("blade", now):
            ...send...
            gate.record("blade", now)
    """

    def __init__(self, period_s: float = 60.0):
        if period_s < 0:
            raise ValueError("cooldown period must be non-negative")
        self.period_s = float(period_s)
        self._last_dispatch: Dict[str, float] = {}

    def is_allowed(self, class_name: str, now: float) -> bool:
        last = self._last_dispatch.get(class_name)
        if last is None:
            return True
        return now - last >= self.period_s

    def remaining(self, class_name: str, now: float) -> float:
        """Seconds until the class may fire again (0 when allowed)."""
        last = self._last_dispatch.get(class_name)
        if last is None:
            return 0.0
        return max(0.0, self.period_s - (now - last))

    def record(self, class_name: str, now: float) -> None:
        self._last_dispatch[class_name] = now

    def last_dispatch(self, class_name: str) -> Optional[float]:
        return self._last_dispatch.get(class_name)

    def snapshot(self) -> Dict[str, float]:
        """Copy of the cooldown table."""
        return dict(self._last_dispatch)
