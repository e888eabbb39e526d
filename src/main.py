"""
Main application for Object Watch: camera object detection with speaker notifications.

This script polls a networked still camera, sends each frame to a hosted
object detection model and plays a speaker clip when a known class shows up,
at most once per class per cooldown period. A small HTTP API exposes status and
start/stop/settings controls.

Usage:
    python src/main.py --config config/config.yaml --autostart

Arguments:
    --config: Path to configuration file
    --autostart: Start polling as soon as the server is up
    --host / --port: Override the API bind address
"""

import os
import sys
import argparse
import logging
import yaml
from typing import Dict, Any, Tuple, Optional

import uvicorn

from inference.secrets import inject_api_key
from ops.logging import setup_logging
from pipeline.engine import create_loop_from_config
from web.app import create_app

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_percent(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 100


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['camera', 'inference', 'speaker', 'notifications', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate camera settings
    camera = config.get('camera') or {}
    if not isinstance(camera.get('base_url'), str) or not camera.get('base_url'):
        return False, "camera.base_url must be a non-empty string"
    if not str(camera.get('capture_path', '/capture')).startswith('/'):
        return False, "camera.capture_path must start with '/'"
    if 'timeout_ms' in camera and not _is_positive_int(camera['timeout_ms']):
        return False, "camera.timeout_ms must be a positive integer"

    # Validate detection service settings
    inference = config.get('inference') or {}
    for key in ('api_url', 'project'):
        if not isinstance(inference.get(key), str) or not inference.get(key):
            return False, f"inference.{key} must be a non-empty string"
    if not _is_positive_int(inference.get('version')):
        return False, "inference.version must be a positive integer"
    if not inference.get('api_key'):
        return False, "inference.api_key is required (config, secrets_file or OBJECT_WATCH_API_KEY)"
    for key in ('confidence', 'overlap'):
        if key in inference and not _is_percent(inference[key]):
            return False, f"inference.{key} must be an integer between 1 and 100"
    if 'timeout_ms' in inference and not _is_positive_int(inference['timeout_ms']):
        return False, "inference.timeout_ms must be a positive integer"

    # Validate speaker settings
    speaker = config.get('speaker') or {}
    if not isinstance(speaker.get('base_url'), str) or not speaker.get('base_url'):
        return False, "speaker.base_url must be a non-empty string"
    if 'timeout_ms' in speaker and not _is_positive_int(speaker['timeout_ms']):
        return False, "speaker.timeout_ms must be a positive integer"

    # Validate notification settings
    notifications = config.get('notifications') or {}
    if 'cooldown_ms' in notifications:
        cooldown = notifications['cooldown_ms']
        if not isinstance(cooldown, int) or isinstance(cooldown, bool) or cooldown < 0:
            return False, "notifications.cooldown_ms must be a non-negative integer"
    commands = notifications.get('commands') or {}
    if not isinstance(commands, dict):
        return False, "notifications.commands must be a mapping of class name to command code"
    for class_name, code in commands.items():
        if not _is_positive_int(code):
            return False, f"notifications.commands.{class_name} must be a positive integer"

    # Optional loop timing
    loop = config.get('loop') or {}
    for key in ('tick_interval_ms', 'fps_window_ms'):
        if key in loop and not _is_positive_int(loop[key]):
            return False, f"loop.{key} must be a positive integer"

    # Validate log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def main():
    """Main application function."""
    # Parse command-line arguments
    parser = argparse.ArgumentParser(description='Object Watch - camera detection with speaker notifications')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--autostart', action='store_true',
                        help='Start the detection loop immediately')
    parser.add_argument('--host', type=str, default=None,
                        help='API bind host (overrides web.host)')
    parser.add_argument('--port', type=int, default=None,
                        help='API bind port (overrides web.port)')
    args = parser.parse_args()

    # Load configuration
    config = load_config(args.config)

    # Load the detection service key if a secrets_file is provided
    try:
        inject_api_key(config.setdefault("inference", {}))
    except Exception as e:
        logging.error(f"Error loading detection service secrets: {e}")

    # Validate configuration
    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    # Setup logging
    setup_logging(config['log_path'], config['log_level'])

    web_cfg = config.get('web') or {}
    host = args.host or web_cfg.get('host', '0.0.0.0')
    port = args.port or int(web_cfg.get('port', 5000))
    autostart = args.autostart or bool((config.get('loop') or {}).get('autostart', False))

    vocabulary = (config['notifications'].get('commands') or {})
    logging.info(
        f"Starting Object Watch: camera={config['camera']['base_url']}, "
        f"model={config['inference']['project']}/{config['inference']['version']}, "
        f"notify_classes={sorted(vocabulary)}"
    )

    detection_loop = create_loop_from_config(config)
    app = create_app(detection_loop, autostart=autostart, config=config)

    try:
        uvicorn.run(app, host=host, port=port, log_level=config['log_level'].lower())
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        logging.info("Object Watch stopped")


if __name__ == "__main__":
    main()
