"""
Connection and loop status models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .detection import Detection, summarize_detections


class ConnectionStatus(str, Enum):
    """Camera connection status as seen by the polling loop."""
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class CaptureErrorKind(str, Enum):
    """Classification of a failed capture."""
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP = "http"


@dataclass(frozen=True)
class ConnectionState:
    """
    Camera connection state derived from the most recent capture outcome.

    Attributes:
        status: unknown while idle, otherwise connected/disconnected.
        error_kind: Classification of the last failure (None when connected).
        error: Human-readable message for the last failure.
    """
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    error_kind: Optional[CaptureErrorKind] = None
    error: Optional[str] = None

    @classmethod
    def unknown(cls) -> "ConnectionState":
        return cls()

    @classmethod
    def connected(cls) -> "ConnectionState":
        return cls(status=ConnectionStatus.CONNECTED)

    @classmethod
    def from_error(cls, err: Any) -> "ConnectionState":
        """Build a disconnected state from a CaptureError (anything with kind/str)."""
        return cls(
            status=ConnectionStatus.DISCONNECTED,
            error_kind=getattr(err, "kind", CaptureErrorKind.NETWORK),
            error=str(err),
        )

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class LastNotification:
    """Most recent successful speaker dispatch, shown until expires_at."""
    class_name: str
    command: int
    sent_at: float
    expires_at: float

    def is_visible(self, now: float) -> bool:
        return now < self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.class_name,
            "command": self.command,
            "sent_at": self.sent_at,
            "label": f"{self.class_name} ({self.command})",
        }


@dataclass(frozen=True)
class LoopSnapshot:
    """
    Read-only view of the detection loop state.

    Attributes:
        running: Whether the loop is ticking.
        frame_count: Successful captures since the last start.
        fps: Throughput gauge from the last sampling window.
        connection: Camera connection state.
        detections: Detections from the most recent successful frame.
        confidence: Current confidence threshold (percent).
        overlap: Current overlap threshold (percent).
        notifications_enabled: Whether speaker dispatch is enabled.
        last_notification: Most recent dispatch if still visible.
        ticks_skipped: Scheduled ticks skipped because the previous one was busy.
        last_inference_error: Last error reported by the detection service.
    """
    running: bool = False
    frame_count: int = 0
    fps: float = 0.0
    connection: ConnectionState = field(default_factory=ConnectionState)
    detections: List[Detection] = field(default_factory=list)
    confidence: int = 40
    overlap: int = 30
    notifications_enabled: bool = True
    last_notification: Optional[LastNotification] = None
    ticks_skipped: int = 0
    last_inference_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "running": self.running,
            "frame_count": self.frame_count,
            "fps": self.fps,
            "connection": self.connection.to_dict(),
            "confidence": self.confidence,
            "overlap": self.overlap,
            "notifications_enabled": self.notifications_enabled,
            "last_notification": self.last_notification.to_dict() if self.last_notification else None,
            "summary": summarize_detections(self.detections).to_dict(),
            "ticks_skipped": self.ticks_skipped,
            "last_inference_error": self.last_inference_error,
        }
