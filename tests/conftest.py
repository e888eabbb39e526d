"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  base_url: "http://camera.local"
  capture_path: "/capture"
  timeout_ms: 10000

inference:
  api_url: "https://detect.example.com"
  project: "locket"
  version: 2
  api_key: "default-key"
  confidence: 40
  overlap: 30

speaker:
  base_url: "http://speaker.local"

notifications:
  cooldown_ms: 60000
  commands:
    blade: 1
    cap: 2

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "base_url": "http://camera.local",
            "capture_path": "/capture",
            "timeout_ms": 10000,
        },
        "inference": {
            "api_url": "https://detect.example.com",
            "project": "locket",
            "version": 2,
            "api_key": "secret-key",
            "confidence": 40,
            "overlap": 30,
        },
        "speaker": {
            "base_url": "http://speaker.local",
            "play_path": "/play",
        },
        "notifications": {
            "enabled": True,
            "cooldown_ms": 60000,
            "commands": {
                "blade": 1,
                "cap": 2,
                "toy-truck": 3,
                "battery": 4,
                "crayons": 5,
            },
        },
        "loop": {
            "tick_interval_ms": 500,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def jpeg_bytes():
    """A small but real JPEG (64x48, black)."""
    ok, buf = cv2.imencode(".jpg", np.zeros((48, 64, 3), dtype=np.uint8))
    assert ok
    return buf.tobytes()
