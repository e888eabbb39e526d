"""
Tests for the detection loop.
"""

import asyncio

import numpy as np
import pytest

from inference import RemoteDetectionBackend
from models.detection import Detection
from models.frame import FrameData
from models.status import CaptureErrorKind, ConnectionStatus
from notify import CooldownGate, HttpSpeaker, NotificationDispatcher
from observation import CaptureNetworkError, CaptureTimeout, FrameSource, FrameSourceConfig, HttpCaptureSource
from pipeline.engine import DetectionLoop, DetectionLoopConfig, LoopPhase, create_loop_from_config
from pipeline.fps import FpsGauge


VOCABULARY = {"blade": 1, "cap": 2, "toy-truck": 3, "battery": 4, "crayons": 5}


def _frame():
    return FrameData.from_numpy(
        encoded=b"jpeg",
        frame=np.zeros((48, 64, 3), dtype=np.uint8),
        timestamp=0.0,
    )


def _det(class_name, confidence=90.0):
    return Detection(class_name, confidence, x=20, y=20, width=10, height=10)


class MockFrameSource(FrameSource):
    """Source that returns a blank frame, raises queued errors, or blocks until released."""

    def __init__(self, errors=None, block=False):
        super().__init__(FrameSourceConfig(source_id="mock"))
        self.errors = list(errors or [])
        self.block = block
        self.calls = 0
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.closed = False

    async def capture(self):
        self.calls += 1
        self.entered.set()
        if self.block:
            await self.release.wait()
        if self.errors:
            raise self.errors.pop(0)
        return _frame()

    def close(self):
        self.closed = True


class MockDetector:
    """Backend double returning fixed detections and recording thresholds."""

    def __init__(self, detections=None, error=None):
        self.detections = list(detections or [])
        self.error = error
        self.calls = []
        self._reporter = None

    def set_error_reporter(self, reporter):
        self._reporter = reporter

    async def detect(self, frame, confidence, overlap):
        self.calls.append((confidence, overlap))
        if self.error:
            self._reporter(self.error)
            return []
        return list(self.detections)


class MockSpeaker:
    def __init__(self):
        self.sent = []

    async def send(self, command):
        self.sent.append(command)


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _make_loop(source=None, detector=None, interval_s=60.0, clock=None, enabled=True):
    speaker = MockSpeaker()
    dispatcher = NotificationDispatcher(speaker, VOCABULARY, CooldownGate(60.0), enabled=enabled)
    config = DetectionLoopConfig(tick_interval_s=interval_s, fps_window_s=60.0, notification_display_s=3.0)
    loop = DetectionLoop(
        source or MockFrameSource(),
        detector or MockDetector(),
        dispatcher,
        config,
        clock=clock or Clock(),
    )
    return loop, speaker


async def _first_tick(loop):
    """Wait until the tick scheduled on start() has finished."""
    for _ in range(100):
        if loop._inflight is not None:
            break
        await asyncio.sleep(0)
    await loop._inflight


class TestDetectionLoopLifecycle:
    """Start/stop behavior."""

    def test_start_and_stop(self):
        async def scenario():
            loop, _ = _make_loop()
            assert loop.phase == LoopPhase.IDLE
            assert loop.start() is True
            assert loop.start() is False
            assert loop.running
            assert loop.stop() is True
            assert loop.stop() is False
            assert loop.phase == LoopPhase.IDLE
            await loop.close()

        asyncio.run(scenario())

    def test_first_tick_runs_immediately(self):
        async def scenario():
            source = MockFrameSource()
            loop, _ = _make_loop(source=source)
            loop.start()
            await _first_tick(loop)
            await loop.close()
            return source, loop

        source, loop = asyncio.run(scenario())

        assert source.calls == 1
        assert loop.frame_count == 1

    def test_stop_resets_visible_state(self):
        async def scenario():
            loop, _ = _make_loop(detector=MockDetector([_det("cap")]))
            loop.start()
            await _first_tick(loop)
            assert loop.connection.status == ConnectionStatus.CONNECTED
            loop.stop()
            snap = loop.snapshot()
            await loop.close()
            return snap

        snap = asyncio.run(scenario())

        assert snap.running is False
        assert snap.connection.status == ConnectionStatus.UNKNOWN
        assert snap.detections == []
        assert snap.fps == 0.0

    def test_restart_resets_frame_count(self):
        async def scenario():
            loop, _ = _make_loop()
            loop.start()
            await _first_tick(loop)
            loop.stop()
            assert loop.frame_count == 1
            loop.start()
            count_after_restart = loop.frame_count
            await loop.close()
            return count_after_restart

        assert asyncio.run(scenario()) == 0

    def test_restart_clears_last_notification(self):
        async def scenario():
            loop, _ = _make_loop(detector=MockDetector([_det("blade")]))
            loop.start()
            await _first_tick(loop)
            assert loop.snapshot().last_notification is not None
            loop.stop()
            loop.start()
            snap = loop.snapshot()
            await loop.close()
            return snap

        assert asyncio.run(scenario()).last_notification is None

    def test_close_releases_source(self):
        async def scenario():
            source = MockFrameSource()
            loop, _ = _make_loop(source=source)
            await loop.close()
            return source

        assert asyncio.run(scenario()).closed


class TestDetectionLoopTick:
    """Single tick behavior."""

    def test_detections_replace_previous(self):
        async def scenario():
            detector = MockDetector([_det("blade"), _det("cap")])
            loop, _ = _make_loop(detector=detector)
            loop.start()
            await _first_tick(loop)
            detector.detections = [_det("crayons")]
            await loop.tick()
            result = loop.detections
            await loop.close()
            return result

        detections = asyncio.run(scenario())

        assert [d.class_name for d in detections] == ["crayons"]

    def test_duplicate_class_notified_once(self):
        """Two batteries in one frame produce a single command 4."""
        async def scenario():
            loop, speaker = _make_loop(detector=MockDetector([_det("battery"), _det("battery", 70.0)]))
            loop.start()
            await _first_tick(loop)
            snap = loop.snapshot()
            await loop.close()
            return snap, speaker

        snap, speaker = asyncio.run(scenario())

        assert speaker.sent == [4]
        assert len(snap.detections) == 2
        assert snap.last_notification.to_dict()["label"] == "battery (4)"

    def test_cooldown_across_ticks(self):
        """Repeated detections within the cooldown send nothing more."""
        async def scenario():
            clock = Clock()
            loop, speaker = _make_loop(detector=MockDetector([_det("blade")]), clock=clock)
            loop.start()
            await _first_tick(loop)
            clock.now += 30.0
            await loop.tick()
            clock.now += 31.0
            await loop.tick()
            await loop.close()
            return speaker

        assert asyncio.run(scenario()).sent == [1, 1]

    def test_unknown_class_displayed_not_notified(self):
        async def scenario():
            loop, speaker = _make_loop(detector=MockDetector([_det("giraffe")]))
            loop.start()
            await _first_tick(loop)
            dets = loop.detections
            await loop.close()
            return dets, speaker

        dets, speaker = asyncio.run(scenario())

        assert [d.class_name for d in dets] == ["giraffe"]
        assert speaker.sent == []

    def test_capture_timeout_keeps_running(self):
        async def scenario():
            source = MockFrameSource(errors=[CaptureTimeout("Connection timeout - camera not responding")])
            loop, _ = _make_loop(source=source)
            loop.start()
            await _first_tick(loop)
            failed = loop.snapshot()
            await loop.tick()
            recovered = loop.snapshot()
            await loop.close()
            return failed, recovered

        failed, recovered = asyncio.run(scenario())

        assert failed.running is True
        assert failed.frame_count == 0
        assert failed.connection.status == ConnectionStatus.DISCONNECTED
        assert failed.connection.error_kind == CaptureErrorKind.TIMEOUT
        assert recovered.connection.status == ConnectionStatus.CONNECTED
        assert recovered.frame_count == 1

    def test_capture_failure_clears_detections(self):
        async def scenario():
            source = MockFrameSource()
            loop, _ = _make_loop(source=source, detector=MockDetector([_det("cap")]))
            loop.start()
            await _first_tick(loop)
            assert loop.detections
            source.errors.append(CaptureTimeout("Connection timeout - camera not responding"))
            await loop.tick()
            dets = loop.detections
            await loop.close()
            return dets

        assert asyncio.run(scenario()) == []

    def test_inference_error_recorded(self):
        async def scenario():
            loop, _ = _make_loop(detector=MockDetector(error="Detection API error: 500"))
            loop.start()
            await _first_tick(loop)
            snap = loop.snapshot()
            await loop.close()
            return snap

        snap = asyncio.run(scenario())

        assert snap.running is True
        assert snap.frame_count == 1
        assert snap.detections == []
        assert snap.last_inference_error == "Detection API error: 500"


class TestDetectionLoopConcurrency:
    """Stale results and serialized ticks."""

    def test_stop_discards_inflight_results(self):
        async def scenario():
            source = MockFrameSource(block=True)
            loop, speaker = _make_loop(source=source, detector=MockDetector([_det("blade")]))
            loop.start()
            await source.entered.wait()
            loop.stop()
            source.release.set()
            await loop._inflight
            snap = loop.snapshot()
            await loop.close()
            return snap, speaker

        snap, speaker = asyncio.run(scenario())

        assert snap.frame_count == 0
        assert snap.detections == []
        assert snap.connection.status == ConnectionStatus.UNKNOWN
        assert speaker.sent == []

    def test_stop_discards_inflight_failure(self):
        """A capture failure arriving after stop() leaves the connection unknown."""
        async def scenario():
            source = MockFrameSource(errors=[CaptureNetworkError("Connection failed: reset")], block=True)
            loop, _ = _make_loop(source=source)
            loop.start()
            await source.entered.wait()
            loop.stop()
            source.release.set()
            await loop._inflight
            snap = loop.snapshot()
            await loop.close()
            return snap

        snap = asyncio.run(scenario())

        assert snap.connection.status == ConnectionStatus.UNKNOWN
        assert snap.connection.error is None

    def test_busy_tick_is_skipped(self):
        async def scenario():
            source = MockFrameSource(block=True)
            loop, _ = _make_loop(source=source, interval_s=0.01)
            loop.start()
            await source.entered.wait()
            await asyncio.sleep(0.1)
            calls_while_blocked = source.calls
            skipped = loop.snapshot().ticks_skipped
            source.release.set()
            await loop.close()
            return calls_while_blocked, skipped

        calls, skipped = asyncio.run(scenario())

        assert calls == 1
        assert skipped >= 1


class TestDetectionLoopSettings:
    def test_thresholds_apply_to_next_tick(self):
        async def scenario():
            detector = MockDetector()
            loop, _ = _make_loop(detector=detector)
            loop.start()
            await _first_tick(loop)
            loop.update_settings(confidence=70, overlap=10)
            await loop.tick()
            await loop.close()
            return detector

        detector = asyncio.run(scenario())

        assert detector.calls == [(40, 30), (70, 10)]

    @pytest.mark.parametrize("kwargs", [{"confidence": 0}, {"overlap": 101}])
    def test_out_of_range_rejected(self, kwargs):
        loop, _ = _make_loop()
        with pytest.raises(ValueError):
            loop.update_settings(**kwargs)
        assert loop.snapshot().confidence == 40
        assert loop.snapshot().overlap == 30

    def test_disabling_notifications(self):
        async def scenario():
            loop, speaker = _make_loop(detector=MockDetector([_det("blade")]))
            loop.update_settings(notifications_enabled=False)
            loop.start()
            await _first_tick(loop)
            snap = loop.snapshot()
            await loop.close()
            return snap, speaker

        snap, speaker = asyncio.run(scenario())

        assert snap.notifications_enabled is False
        assert speaker.sent == []

    def test_last_notification_expires(self):
        async def scenario():
            clock = Clock()
            loop, _ = _make_loop(detector=MockDetector([_det("cap")]), clock=clock)
            loop.start()
            await _first_tick(loop)
            visible = loop.snapshot().last_notification
            clock.now += 3.5
            hidden = loop.snapshot().last_notification
            await loop.close()
            return visible, hidden

        visible, hidden = asyncio.run(scenario())

        assert visible.command == 2
        assert hidden is None


class TestCreateLoopFromConfig:
    def test_wires_components(self, valid_config):
        loop = create_loop_from_config(valid_config)

        assert isinstance(loop.source, HttpCaptureSource)
        assert loop.source.capture_url == "http://camera.local/capture"
        assert isinstance(loop.backend, RemoteDetectionBackend)
        assert loop.backend.cfg.model_url == "https://detect.example.com/locket/2"
        assert isinstance(loop.dispatcher.actuator, HttpSpeaker)
        assert loop.dispatcher.actuator.cfg.play_url == "http://speaker.local/play"
        assert loop.dispatcher.vocabulary["battery"] == 4
        assert loop.dispatcher.gate.period_s == 60.0
        assert loop.config.tick_interval_s == 0.5
        assert loop.snapshot().confidence == 40

        asyncio.run(loop.close())


class TestFpsGauge:
    def test_sample_from_last_frame(self):
        gauge = FpsGauge()
        gauge.reset(100.0)
        gauge.mark_frame(100.5)

        assert gauge.sample(101.0) == 2.0

    def test_stalled_camera_decays(self):
        gauge = FpsGauge()
        gauge.reset(100.0)
        gauge.mark_frame(100.5)
        gauge.sample(101.0)

        assert gauge.sample(110.5) == 0.0
