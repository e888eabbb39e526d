"""
Remote speaker actuator.

The speaker (an ESP32 with a sound module) plays a numbered clip when it
receives `POST /play` with the clip number as a plain-text body.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol

import requests


class ActuatorError(Exception):
    """The actuator could not be reached or rejected the command."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class Actuator(Protocol):
    async def send(self, command: int) -> None:
        ...


@dataclass(frozen=True)
class HttpSpeakerConfig:
    play_url: str
    timeout_s: float = 5.0


class HttpSpeaker(Actuator):
    def __init__(self, cfg: HttpSpeakerConfig, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self._session = session or requests.Session()
        self._owns_session = session is None

    def _post(self, command: int) -> None:
        try:
            response = self._session.post(
                self.cfg.play_url,
                data=str(int(command)),
                headers={"Content-Type": "text/plain"},
                timeout=self.cfg.timeout_s,
            )
        except requests.exceptions.RequestException as e:
            raise ActuatorError(f"Speaker request failed: {e}") from e

        if not response.ok:
            raise ActuatorError(
                f"Speaker rejected command {command}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

    async def send(self, command: int) -> None:
        """
        Play clip `command` on the speaker.

        Raises:
            ActuatorError: On transport failure or non-2xx response.
        """
        await asyncio.to_thread(self._post, command)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()
