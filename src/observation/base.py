"""
FrameSource interface for on-demand still image capture.

A frame source produces one image per call to capture(). Sources do not retry;
the polling loop calls again on its next tick.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from models.frame import FrameData
from models.status import CaptureErrorKind


class CaptureError(Exception):
    """Base class for failed captures. `kind` classifies the failure."""

    kind: CaptureErrorKind = CaptureErrorKind.NETWORK


class CaptureTimeout(CaptureError):
    """The camera did not answer within the capture timeout."""

    kind = CaptureErrorKind.TIMEOUT


class CaptureNetworkError(CaptureError):
    """Connection-level failure (refused, DNS, reset...)."""

    kind = CaptureErrorKind.NETWORK


class CaptureHttpError(CaptureError):
    """The camera answered with a non-2xx status or an unusable body."""

    kind = CaptureErrorKind.HTTP

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class FrameSourceConfig:
    """
    Base configuration for frame sources.

    Attributes:
        source_id: Identifier for this source (e.g., "esp32-cam").
        timeout_s: Hard bound on a single capture.
    """
    source_id: str = "default"
    timeout_s: float = 10.0


class FrameSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. await capture() as often as needed
        3. Call close() to release resources

    Can also be used as an async context manager:
        async with HttpCaptureSource(config) as source:
            frame_data = await source.capture()
    """

    def __init__(self, config: FrameSourceConfig):
        self._config = config

    @property
    def source_id(self) -> str:
        """Identifier for this source."""
        return self._config.source_id

    @property
    def timeout_s(self) -> float:
        return self._config.timeout_s

    @abstractmethod
    async def capture(self) -> FrameData:
        """
        Fetch one still image.

        Returns:
            FrameData with the encoded payload and decoded pixel dimensions.

        Raises:
            CaptureTimeout: If the capture timeout was exceeded.
            CaptureNetworkError: On connection-level failures.
            CaptureHttpError: On non-2xx responses or undecodable payloads.
        """

    def close(self) -> None:
        """Release any held resources. Safe to call multiple times."""

    async def __aenter__(self) -> "FrameSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
