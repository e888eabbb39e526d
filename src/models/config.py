"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass
class CameraConfig:
    """Camera configuration."""
    base_url: str = "http://192.168.135.220"
    capture_path: str = "/capture"
    timeout_ms: int = 10000

    @property
    def capture_url(self) -> str:
        return self.base_url.rstrip("/") + self.capture_path

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            base_url=d.get("base_url", "http://192.168.135.220"),
            capture_path=d.get("capture_path", "/capture"),
            timeout_ms=d.get("timeout_ms", 10000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "capture_path": self.capture_path,
            "timeout_ms": self.timeout_ms,
        }


@dataclass
class InferenceConfig:
    """Remote detection service configuration."""
    api_url: str = "https://detect.roboflow.com"
    project: str = ""
    version: int = 1
    api_key: str = ""
    secrets_file: Optional[str] = None
    timeout_ms: int = 15000
    confidence: int = 40
    overlap: int = 30

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "InferenceConfig":
        return cls(
            api_url=d.get("api_url", "https://detect.roboflow.com"),
            project=d.get("project", ""),
            version=d.get("version", 1),
            api_key=d.get("api_key", ""),
            secrets_file=d.get("secrets_file"),
            timeout_ms=d.get("timeout_ms", 15000),
            confidence=d.get("confidence", 40),
            overlap=d.get("overlap", 30),
        )

    def to_dict(self) -> Dict[str, Any]:
        # api_key intentionally omitted
        return {
            "api_url": self.api_url,
            "project": self.project,
            "version": self.version,
            "secrets_file": self.secrets_file,
            "timeout_ms": self.timeout_ms,
            "confidence": self.confidence,
            "overlap": self.overlap,
        }


@dataclass
class SpeakerConfig:
    """Speaker actuator configuration."""
    base_url: str = "http://192.168.135.80"
    play_path: str = "/play"
    timeout_ms: int = 5000

    @property
    def play_url(self) -> str:
        return self.base_url.rstrip("/") + self.play_path

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SpeakerConfig":
        return cls(
            base_url=d.get("base_url", "http://192.168.135.80"),
            play_path=d.get("play_path", "/play"),
            timeout_ms=d.get("timeout_ms", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "play_path": self.play_path,
            "timeout_ms": self.timeout_ms,
        }


@dataclass
class NotificationConfig:
    """Class-keyed speaker notifications."""
    enabled: bool = True
    cooldown_ms: int = 60000
    display_ms: int = 3000
    commands: Dict[str, int] = field(default_factory=dict)

    @property
    def cooldown_s(self) -> float:
        return self.cooldown_ms / 1000.0

    @property
    def display_s(self) -> float:
        return self.display_ms / 1000.0

    @property
    def vocabulary(self) -> Mapping[str, int]:
        """Read-only class -> command code mapping."""
        return MappingProxyType(dict(self.commands))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "NotificationConfig":
        commands = d.get("commands") or {}
        return cls(
            enabled=d.get("enabled", True),
            cooldown_ms=d.get("cooldown_ms", 60000),
            display_ms=d.get("display_ms", 3000),
            commands={str(k): int(v) for k, v in commands.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "cooldown_ms": self.cooldown_ms,
            "display_ms": self.display_ms,
            "commands": dict(self.commands),
        }


@dataclass
class LoopConfig:
    """Polling loop timing."""
    tick_interval_ms: int = 500
    fps_window_ms: int = 1000
    autostart: bool = False

    @property
    def tick_interval_s(self) -> float:
        return self.tick_interval_ms / 1000.0

    @property
    def fps_window_s(self) -> float:
        return self.fps_window_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            tick_interval_ms=d.get("tick_interval_ms", 500),
            fps_window_ms=d.get("fps_window_ms", 1000),
            autostart=d.get("autostart", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick_interval_ms": self.tick_interval_ms,
            "fps_window_ms": self.fps_window_ms,
            "autostart": self.autostart,
        }


@dataclass
class WebConfig:
    """Control/status API server."""
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(host=d.get("host", "0.0.0.0"), port=d.get("port", 5000))

    def to_dict(self) -> Dict[str, Any]:
        return {"host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Root configuration object.

    Example:
        config = Config.from_dict(load_config("config/config.yaml"))
        print(config.notifications.cooldown_s)
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    speaker: SpeakerConfig = field(default_factory=SpeakerConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/object_watch.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create from the merged config dictionary."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            inference=InferenceConfig.from_dict(d.get("inference") or {}),
            speaker=SpeakerConfig.from_dict(d.get("speaker") or {}),
            notifications=NotificationConfig.from_dict(d.get("notifications") or {}),
            loop=LoopConfig.from_dict(d.get("loop") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/object_watch.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "camera": self.camera.to_dict(),
            "inference": self.inference.to_dict(),
            "speaker": self.speaker.to_dict(),
            "notifications": self.notifications.to_dict(),
            "loop": self.loop.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
