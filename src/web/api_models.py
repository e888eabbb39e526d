from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ConnectionModel(BaseModel):
    status: str = Field(..., description="unknown|connected|disconnected")
    error_kind: Optional[str] = Field(None, description="timeout|network|http")
    error: Optional[str] = None


class LastNotificationModel(BaseModel):
    class_name: str = Field(..., alias="class")
    command: int
    sent_at: float
    label: str

    model_config = {"populate_by_name": True}


class DetectionSummaryModel(BaseModel):
    total: int
    average_confidence: float
    by_class: Dict[str, int]


class StatusResponse(BaseModel):
    """
    Loop status optimized for frontend polling.
    """
    running: bool
    frame_count: int
    fps: float
    connection: ConnectionModel
    confidence: int
    overlap: int
    notifications_enabled: bool
    last_notification: Optional[LastNotificationModel] = None
    summary: DetectionSummaryModel
    ticks_skipped: int = 0
    last_inference_error: Optional[str] = None


class DetectionModel(BaseModel):
    class_name: str = Field(..., alias="class")
    confidence: float = Field(..., ge=0, le=100)
    x: float = Field(..., ge=0)
    y: float = Field(..., ge=0)
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)

    model_config = {"populate_by_name": True}


class DetectionsResponse(BaseModel):
    frame_count: int
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    detections: List[DetectionModel]


class SettingsRequest(BaseModel):
    confidence: Optional[int] = Field(None, ge=1, le=100, description="Confidence threshold (%)")
    overlap: Optional[int] = Field(None, ge=1, le=100, description="Overlap threshold (%)")
    notifications_enabled: Optional[bool] = None


class ControlResponse(BaseModel):
    changed: bool = Field(..., description="False if the loop was already in the requested state")
    status: StatusResponse


class CameraInfoModel(BaseModel):
    base_url: str
    capture_path: str
    timeout_ms: int


class SpeakerInfoModel(BaseModel):
    base_url: str
    play_path: str


class InferenceInfoModel(BaseModel):
    api_url: str
    project: str
    version: int


class NotificationsInfoModel(BaseModel):
    enabled: bool
    cooldown_ms: int
    commands: Dict[str, int] = Field(..., description="class name -> speaker clip number")


class ConfigResponse(BaseModel):
    """
    Read-only view of the running configuration. Never carries the API key.
    """
    camera: CameraInfoModel
    speaker: SpeakerInfoModel
    inference: InferenceInfoModel
    notifications: NotificationsInfoModel
