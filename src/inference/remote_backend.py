"""
Hosted detection backend (Roboflow-style HTTP inference API).

POSTs the captured JPEG as multipart form data to
`<api_url>/<project>/<version>?api_key=..&confidence=..&overlap=..` and converts
the returned `predictions` into Detection objects.

Failures never propagate: the polling loop must keep running when the service
is down, so every error becomes an empty result plus a log line.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import requests

from models.detection import Detection
from models.frame import FrameData
from .backend import ErrorReporter, InferenceBackend, InferenceServiceError, clamp_threshold
from .secrets import redact_url, scrub_secret


@dataclass(frozen=True)
class RemoteDetectionConfig:
    api_url: str
    project: str
    version: int
    api_key: str
    timeout_s: float = 15.0

    @property
    def model_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/{self.project}/{self.version}"


def parse_predictions(payload: Any) -> List[Detection]:
    """
    Convert a detection service response body into Detection objects.

    Raises:
        InferenceServiceError: If the body is not shaped like a predictions response.
    """
    if not isinstance(payload, dict):
        raise InferenceServiceError("Unexpected response body")

    predictions = payload.get("predictions") or []
    if not isinstance(predictions, list):
        raise InferenceServiceError("'predictions' is not a list")

    try:
        return [Detection.from_prediction(pred) for pred in predictions]
    except (KeyError, TypeError, ValueError) as e:
        raise InferenceServiceError(f"Malformed prediction: {e}") from e


class RemoteDetectionBackend(InferenceBackend):
    def __init__(
        self,
        cfg: RemoteDetectionConfig,
        session: Optional[requests.Session] = None,
        error_reporter: Optional[ErrorReporter] = None,
    ):
        self.cfg = cfg
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._error_reporter = error_reporter

    def set_error_reporter(self, reporter: Optional[ErrorReporter]) -> None:
        self._error_reporter = reporter

    def _request(self, frame: FrameData, confidence: int, overlap: int) -> List[Detection]:
        params = {
            "api_key": self.cfg.api_key,
            "confidence": confidence,
            "overlap": overlap,
        }
        files = {"file": ("frame.jpg", frame.encoded, frame.content_type)}
        try:
            response = self._session.post(
                self.cfg.model_url,
                params=params,
                files=files,
                timeout=self.cfg.timeout_s,
            )
        except requests.exceptions.RequestException as e:
            raise InferenceServiceError(
                f"Detection request failed: {scrub_secret(str(e), self.cfg.api_key)}"
            ) from e

        logging.debug(f"Detection response {response.status_code} from {redact_url(response.url)}")
        if not response.ok:
            raise InferenceServiceError(
                f"Detection API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise InferenceServiceError("Detection API returned invalid JSON") from e

        return parse_predictions(body)

    async def detect(self, frame: FrameData, confidence: int, overlap: int) -> List[Detection]:
        confidence = clamp_threshold(confidence)
        overlap = clamp_threshold(overlap)
        try:
            detections = await asyncio.to_thread(self._request, frame, confidence, overlap)
        except InferenceServiceError as e:
            logging.error(f"Detection error ({self.cfg.model_url}): {e}")
            if self._error_reporter is not None:
                self._error_reporter(str(e))
            return []

        logging.debug(
            f"Detection: {len(detections)} objects "
            f"(confidence={confidence}, overlap={overlap})"
        )
        return detections

    def close(self) -> None:
        if self._owns_session:
            self._session.close()
