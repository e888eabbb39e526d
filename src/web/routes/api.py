from __future__ import annotations

import platform
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from models.config import Config
from pipeline.engine import DetectionLoop
from render.overlay import draw_detections, encode_jpeg
from ..api_models import (
    ConfigResponse,
    ControlResponse,
    DetectionModel,
    DetectionsResponse,
    SettingsRequest,
    StatusResponse,
)

router = APIRouter()


def get_detection_loop(request: Request) -> DetectionLoop:
    loop = getattr(request.app.state, "detection_loop", None)
    if loop is None:
        raise HTTPException(status_code=503, detail="Detection loop not configured")
    return loop


def _status(loop: DetectionLoop) -> StatusResponse:
    return StatusResponse(**loop.snapshot().to_dict())


@router.get("/health")
def health(request: Request) -> Dict[str, Any]:
    started_at = getattr(request.app.state, "started_at", None)
    return {
        "timestamp": time.time(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "uptime_seconds": int(time.time() - started_at) if started_at else None,
    }


@router.get("/status", response_model=StatusResponse)
async def status(loop: DetectionLoop = Depends(get_detection_loop)):
    """
    Loop status for the UI.
    Fields:
    - running / frame_count / fps
    - connection: {status: unknown|connected|disconnected, error_kind, error}
    - confidence / overlap: current thresholds (percent)
    - notifications_enabled, last_notification (hidden after the display period)
    - summary: {total, average_confidence, by_class} for the current detections
    """
    return _status(loop)


@router.get("/config", response_model=ConfigResponse)
def config(request: Request):
    """
    Running configuration for the UI: command vocabulary, cooldown, camera,
    speaker and detection model. Built from Config.to_dict(), which omits the API key.
    """
    cfg: Optional[Config] = getattr(request.app.state, "config", None)
    if cfg is None:
        raise HTTPException(status_code=503, detail="Configuration not available")
    return ConfigResponse(**cfg.to_dict())


@router.get("/detections", response_model=DetectionsResponse)
async def detections(loop: DetectionLoop = Depends(get_detection_loop)):
    frame_data, current = loop.latest_frame()
    return DetectionsResponse(
        frame_count=loop.frame_count,
        image_width=frame_data.width if frame_data is not None else None,
        image_height=frame_data.height if frame_data is not None else None,
        detections=[DetectionModel(**d.to_dict()) for d in current],
    )


@router.post("/start", response_model=ControlResponse)
async def start(loop: DetectionLoop = Depends(get_detection_loop)):
    changed = loop.start()
    return ControlResponse(changed=changed, status=_status(loop))


@router.post("/stop", response_model=ControlResponse)
async def stop(loop: DetectionLoop = Depends(get_detection_loop)):
    changed = loop.stop()
    return ControlResponse(changed=changed, status=_status(loop))


@router.put("/settings", response_model=StatusResponse)
async def update_settings(req: SettingsRequest, loop: DetectionLoop = Depends(get_detection_loop)):
    try:
        loop.update_settings(
            confidence=req.confidence,
            overlap=req.overlap,
            notifications_enabled=req.notifications_enabled,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _status(loop)


@router.get("/frame.jpg")
def frame_jpeg(loop: DetectionLoop = Depends(get_detection_loop)):
    frame_data, current = loop.latest_frame()
    if frame_data is None:
        raise HTTPException(status_code=404, detail="No frame captured yet")

    try:
        jpeg_bytes = encode_jpeg(draw_detections(frame_data.frame, current))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

    return Response(
        content=jpeg_bytes,
        media_type="image/jpeg",
        headers={"Cache-Control": "no-store"},
    )
