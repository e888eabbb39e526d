"""
HTTP still-image source.

Fetches a single JPEG from a camera's capture endpoint (ESP32-CAM style
`GET /capture`). The blocking request runs in a worker thread so the event
loop keeps scheduling ticks while a capture is outstanding.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
import requests

from models.frame import FrameData
from .base import (
    CaptureHttpError,
    CaptureNetworkError,
    CaptureTimeout,
    FrameSource,
    FrameSourceConfig,
)


@dataclass
class HttpCaptureSourceConfig(FrameSourceConfig):
    """
    Configuration for HTTP capture sources.

    Attributes:
        capture_url: Full URL of the still-image endpoint.
    """
    capture_url: str = "http://127.0.0.1/capture"


def decode_image(payload: bytes) -> Optional[np.ndarray]:
    """Decode an encoded image into a BGR array, or None if it is not an image."""
    if not payload:
        return None
    buf = np.frombuffer(payload, dtype=np.uint8)
    return cv2.imdecode(buf, cv2.IMREAD_COLOR)


class HttpCaptureSource(FrameSource):
    """
    Frame source backed by an HTTP still-image endpoint.

    Example:
        source = HttpCaptureSource(HttpCaptureSourceConfig(capture_url="http://cam/capture"))
        frame_data = await source.capture()
    """

    def __init__(self, config: HttpCaptureSourceConfig, session: Optional[requests.Session] = None):
        super().__init__(config)
        self._config: HttpCaptureSourceConfig = config
        self._session = session or requests.Session()
        self._owns_session = session is None

    @property
    def capture_url(self) -> str:
        return self._config.capture_url

    async def capture(self) -> FrameData:
        timeout_s = self._config.timeout_s
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._session.get, self.capture_url, timeout=timeout_s),
                timeout=timeout_s,
            )
        except (asyncio.TimeoutError, requests.exceptions.Timeout) as e:
            raise CaptureTimeout("Connection timeout - camera not responding") from e
        except requests.exceptions.RequestException as e:
            raise CaptureNetworkError(f"Connection failed: {e}") from e

        if not response.ok:
            raise CaptureHttpError(
                f"Connection failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        payload = response.content
        frame = decode_image(payload)
        if frame is None:
            raise CaptureHttpError(
                "Connection failed: invalid image payload",
                status_code=response.status_code,
            )

        logging.debug(f"Captured {frame.shape[1]}x{frame.shape[0]} frame ({len(payload)} bytes) from {self.capture_url}")
        return FrameData.from_numpy(
            encoded=payload,
            frame=frame,
            timestamp=time.time(),
            content_type=response.headers.get("Content-Type", "image/jpeg"),
            source=self.source_id,
        )

    def close(self) -> None:
        if self._owns_session:
            self._session.close()
