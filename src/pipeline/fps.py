"""
Throughput gauge for the polling loop.
"""

from __future__ import annotations

from typing import Optional


class FpsGauge:
    """
    Frames-per-second estimate from the time since the last successful frame.

    The loop calls `mark_frame` on every successful capture and `sample` once per
    sampling window. A stalled camera therefore decays the reading towards 0
    instead of freezing it at the last good value.
    """

    def __init__(self):
        self._last_frame_time: Optional[float] = None
        self.value: float = 0.0

    def reset(self, now: float) -> None:
        self._last_frame_time = now
        self.value = 0.0

    def mark_frame(self, now: float) -> None:
        self._last_frame_time = now

    def sample(self, now: float) -> float:
        if self._last_frame_time is None:
            return self.value
        elapsed = now - self._last_frame_time
        if elapsed > 0:
            self.value = float(round(1.0 / elapsed))
        return self.value
