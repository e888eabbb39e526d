"""
Detection loop for the object watch system.

Polls the camera on a fixed interval, runs remote detection on each frame and
forwards distinct detected classes to the notification dispatcher. The loop
is resilient: capture, detection and speaker failures are recorded and logged
but never stop it. Only stop() does.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from inference import InferenceBackend, RemoteDetectionBackend, RemoteDetectionConfig
from inference.backend import MAX_THRESHOLD, MIN_THRESHOLD
from models.config import Config
from models.detection import Detection, unique_classes
from models.frame import FrameData
from models.status import ConnectionState, LastNotification, LoopSnapshot
from notify import CooldownGate, HttpSpeaker, HttpSpeakerConfig, NotificationDispatcher
from observation import CaptureError, FrameSource, create_source_from_config
from pipeline.fps import FpsGauge


class LoopPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class DetectionLoopConfig:
    """
    Configuration for the detection loop.

    Attributes:
        tick_interval_s: Seconds between scheduled ticks.
        fps_window_s: Seconds between fps gauge samples.
        notification_display_s: How long the last dispatched command stays visible.
        confidence: Initial confidence threshold (percent).
        overlap: Initial overlap threshold (percent).
    """
    tick_interval_s: float = 0.5
    fps_window_s: float = 1.0
    notification_display_s: float = 3.0
    confidence: int = 40
    overlap: int = 30


def _validate_threshold(name: str, value: int) -> int:
    value = int(value)
    if not MIN_THRESHOLD <= value <= MAX_THRESHOLD:
        raise ValueError(f"{name} must be between {MIN_THRESHOLD} and {MAX_THRESHOLD}")
    return value


class DetectionLoop:
    """
    Periodic capture -> detect -> notify loop.

    States: IDLE -> RUNNING -> IDLE. Ticks are serialized: if the previous tick
    is still outstanding when the timer fires, that tick is skipped. Each tick
    carries the generation it was started in; stop() bumps the generation so
    late results from an in-flight tick are discarded.

    Must be started from within a running asyncio event loop.

    Example:
        loop = DetectionLoop(source, backend, dispatcher, DetectionLoopConfig())
        loop.start()
        ...
        await loop.close()
    """

    def __init__(
        self,
        source: FrameSource,
        backend: InferenceBackend,
        dispatcher: Optional[NotificationDispatcher],
        config: DetectionLoopConfig,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.backend = backend
        self.dispatcher = dispatcher
        self.config = config
        self._clock = clock

        self._phase = LoopPhase.IDLE
        self._generation = 0
        self._ticker_task: Optional[asyncio.Task] = None
        self._fps_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

        self._confidence = _validate_threshold("confidence", config.confidence)
        self._overlap = _validate_threshold("overlap", config.overlap)

        self._frame_count = 0
        self._fps = FpsGauge()
        self._connection = ConnectionState.unknown()
        self._detections: List[Detection] = []
        self._latest_frame: Optional[FrameData] = None
        self._last_notification: Optional[LastNotification] = None
        self._ticks_skipped = 0
        self._last_inference_error: Optional[str] = None

        if hasattr(self.backend, "set_error_reporter"):
            self.backend.set_error_reporter(self._report_inference_error)

    @property
    def running(self) -> bool:
        return self._phase == LoopPhase.RUNNING

    @property
    def phase(self) -> LoopPhase:
        return self._phase

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def connection(self) -> ConnectionState:
        return self._connection

    @property
    def detections(self) -> List[Detection]:
        return list(self._detections)

    def start(self) -> bool:
        """
        Start ticking. Returns False if the loop was already running.
        """
        if self.running:
            return False

        self._generation += 1
        self._phase = LoopPhase.RUNNING
        self._frame_count = 0
        self._ticks_skipped = 0
        self._connection = ConnectionState.unknown()
        self._last_notification = None
        self._last_inference_error = None
        self._fps.reset(self._clock())

        generation = self._generation
        self._ticker_task = asyncio.create_task(self._run_ticker(generation))
        self._fps_task = asyncio.create_task(self._run_fps_sampler())
        logging.info(
            f"Detection loop started: source={self.source.source_id}, "
            f"interval={self.config.tick_interval_s}s"
        )
        return True

    def stop(self) -> bool:
        """
        Stop ticking immediately. Returns False if the loop was not running.

        An in-flight tick is not aborted; its results are ignored on arrival.
        """
        if not self.running:
            return False

        self._generation += 1
        self._phase = LoopPhase.IDLE
        for task in (self._ticker_task, self._fps_task):
            if task is not None:
                task.cancel()
        self._ticker_task = None
        self._fps_task = None

        self._connection = ConnectionState.unknown()
        self._detections = []
        self._fps.value = 0.0
        logging.info(f"Detection loop stopped after {self._frame_count} frames")
        return True

    async def close(self) -> None:
        """Stop, wait for any in-flight tick, and release collaborators."""
        self.stop()
        if self._inflight is not None:
            await asyncio.gather(self._inflight, return_exceptions=True)
            self._inflight = None

        for component in (self.source, self.backend, getattr(self.dispatcher, "actuator", None)):
            close = getattr(component, "close", None)
            if callable(close):
                try:
                    close()
                except Exception as e:
                    logging.warning(f"Error closing {type(component).__name__}: {e}")

    def update_settings(
        self,
        confidence: Optional[int] = None,
        overlap: Optional[int] = None,
        notifications_enabled: Optional[bool] = None,
    ) -> None:
        """
        Change thresholds or the notification toggle; applies from the next tick.

        Raises:
            ValueError: If a threshold is outside [1, 100].
        """
        new_confidence = self._confidence if confidence is None else _validate_threshold("confidence", confidence)
        new_overlap = self._overlap if overlap is None else _validate_threshold("overlap", overlap)
        self._confidence = new_confidence
        self._overlap = new_overlap
        if notifications_enabled is not None and self.dispatcher is not None:
            self.dispatcher.enabled = bool(notifications_enabled)

    def snapshot(self) -> LoopSnapshot:
        now = self._clock()
        last = self._last_notification
        if last is not None and not last.is_visible(now):
            last = None
        return LoopSnapshot(
            running=self.running,
            frame_count=self._frame_count,
            fps=self._fps.value,
            connection=self._connection,
            detections=list(self._detections),
            confidence=self._confidence,
            overlap=self._overlap,
            notifications_enabled=bool(self.dispatcher and self.dispatcher.enabled),
            last_notification=last,
            ticks_skipped=self._ticks_skipped,
            last_inference_error=self._last_inference_error,
        )

    def latest_frame(self) -> Tuple[Optional[FrameData], List[Detection]]:
        """Most recent successful frame and the detections currently shown."""
        return self._latest_frame, list(self._detections)

    def _is_current(self, generation: int) -> bool:
        return self.running and generation == self._generation

    def _report_inference_error(self, message: str) -> None:
        self._last_inference_error = message

    async def _run_ticker(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.tick_interval_s
        next_tick = loop.time()
        while self._is_current(generation):
            if self._inflight is not None and not self._inflight.done():
                self._ticks_skipped += 1
                logging.debug("Previous tick still in flight, skipping this one")
            else:
                self._inflight = asyncio.create_task(self.tick(generation))

            next_tick += interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def _run_fps_sampler(self) -> None:
        while True:
            await asyncio.sleep(self.config.fps_window_s)
            self._fps.sample(self._clock())

    async def tick(self, generation: Optional[int] = None) -> None:
        """
        Run one capture -> detect -> notify cycle.

        Never raises; unexpected errors are logged and the loop carries on.
        """
        if generation is None:
            generation = self._generation
        try:
            await self._tick(generation)
        except Exception as e:
            logging.exception(f"Tick failed: {e}")

    async def _tick(self, generation: int) -> None:
        try:
            frame_data = await self.source.capture()
        except CaptureError as e:
            if self._is_current(generation):
                self._connection = ConnectionState.from_error(e)
                self._detections = []
                logging.warning(f"Frame capture failed ({e.kind.value}): {e}")
            return

        if not self._is_current(generation):
            logging.debug("Discarding frame from a stopped loop")
            return

        now = self._clock()
        self._frame_count += 1
        frame_data.frame_index = self._frame_count
        self._connection = ConnectionState.connected()
        self._fps.mark_frame(now)
        self._latest_frame = frame_data

        detections = await self.backend.detect(frame_data, self._confidence, self._overlap)
        if not self._is_current(generation):
            logging.debug("Discarding detections from a stopped loop")
            return

        self._detections = list(detections)
        if self._detections and self._frame_count % 20 == 0:
            logging.debug(f"[DETECT] frame={self._frame_count} classes={unique_classes(self._detections)}")

        if self.dispatcher is None or not self._detections:
            return

        results = await self.dispatcher.notify_all(unique_classes(self._detections), self._clock())
        for result in results:
            if result.dispatched:
                self._last_notification = LastNotification(
                    class_name=result.class_name,
                    command=result.command,
                    sent_at=result.timestamp,
                    expires_at=result.timestamp + self.config.notification_display_s,
                )


def create_loop_from_config(config: Dict[str, Any]) -> DetectionLoop:
    """
    Factory function to create a DetectionLoop from the merged config dict.

    Args:
        config: Full application config dict (after API key injection).
    """
    cfg = Config.from_dict(config)

    source = create_source_from_config(cfg.camera)
    backend = RemoteDetectionBackend(
        RemoteDetectionConfig(
            api_url=cfg.inference.api_url,
            project=cfg.inference.project,
            version=int(cfg.inference.version),
            api_key=cfg.inference.api_key,
            timeout_s=cfg.inference.timeout_s,
        )
    )

    speaker = HttpSpeaker(HttpSpeakerConfig(play_url=cfg.speaker.play_url, timeout_s=cfg.speaker.timeout_s))
    dispatcher = NotificationDispatcher(
        actuator=speaker,
        vocabulary=cfg.notifications.vocabulary,
        gate=CooldownGate(period_s=cfg.notifications.cooldown_s),
        enabled=cfg.notifications.enabled,
    )

    loop_config = DetectionLoopConfig(
        tick_interval_s=cfg.loop.tick_interval_s,
        fps_window_s=cfg.loop.fps_window_s,
        notification_display_s=cfg.notifications.display_s,
        confidence=int(cfg.inference.confidence),
        overlap=int(cfg.inference.overlap),
    )

    return DetectionLoop(source, backend, dispatcher, loop_config)
