"""
API key injection utilities.

Loads the detection service credential from a separate secrets file so it does
not have to live in config.yaml, and redacts it from URLs before logging.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import yaml

SECRET_QUERY_KEYS = ("api_key",)


def inject_api_key(inference_cfg: Dict[str, Any]) -> None:
    """
    Inject the detection service API key from a secrets file into the config.

    Args:
        inference_cfg: Inference configuration dict (modified in-place).
            Expected keys:
            - secrets_file: Path to YAML file with `api_key`
            - api_key: Current key (kept if the secrets file has none)

    The secrets file should contain:
        api_key: <key>

    The environment variable OBJECT_WATCH_API_KEY, when set, wins over both.
    """
    env_key = os.environ.get("OBJECT_WATCH_API_KEY")
    if env_key:
        inference_cfg["api_key"] = env_key
        return

    secrets_file = inference_cfg.get("secrets_file")
    if not secrets_file:
        return

    if not os.path.exists(secrets_file):
        logging.warning(f"Secrets file not found: {secrets_file}")
        return

    with open(secrets_file, "r") as f:
        secrets = yaml.safe_load(f) or {}

    api_key = secrets.get("api_key")
    if api_key:
        inference_cfg["api_key"] = str(api_key)
        logging.info("Detection service API key loaded from secrets file")


def redact_url(url: str) -> str:
    """Replace secret query parameter values with '***' for logging."""
    parsed = urlparse(url)
    if not parsed.query:
        return url
    query = [
        (k, "***" if k in SECRET_QUERY_KEYS else v)
        for k, v in parse_qsl(parsed.query, keep_blank_values=True)
    ]
    return urlunparse(parsed._replace(query=urlencode(query, safe="*")))


def scrub_secret(text: str, secret: str) -> str:
    """Remove a literal secret from free text such as an exception message."""
    if not secret:
        return text
    return text.replace(secret, "***")
