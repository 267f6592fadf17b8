"""
Tests for Config, Events, Logging, Feedback and Rendering
==========================================================
"""

import logging
import pytest
import numpy as np
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus, Events
from core.types import Block, Circle, FrameDrawables, HAND_CONNECTIONS, Landmark, ScorePopup
from modules.capture.camera_manager import CameraManager
from modules.control.feedback_manager import FeedbackManager
from modules.utils.config import Config, DEFAULTS
from modules.utils.logger import GameEventLogger
from modules.utils.performance_monitor import PerformanceMonitor
from modules.visualization.renderer import Renderer


@pytest.fixture
def config():
    Config.reset()
    yield Config()
    Config.reset()


class TestConfig:
    """Test suite for the configuration manager."""

    def test_singleton(self, config):
        assert Config() is config

    def test_defaults_without_file(self, config, tmp_path):
        config.load(tmp_path / "missing.yaml")
        assert config.get("camera.width") == 640
        assert config.get("blocks.capacity") == 6
        assert config.get("game.duration_sec") == 60

    def test_partial_file_merged_over_defaults(self, config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("camera:\n  width: 1280\nmotion:\n  jump_threshold: 0.25\n")

        config.load(path)

        assert config.camera["width"] == 1280
        assert config.camera["height"] == 480
        assert config.get("motion.jump_threshold") == 0.25
        assert config.get("motion.baseline_samples") == 30

    def test_wrong_type_replaced_by_default(self, config, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text("blocks:\n  capacity: lots\n")

        with caplog.at_level(logging.WARNING):
            config.load(path)

        assert config.get("blocks.capacity") == 6
        assert "blocks.capacity" in caplog.text

    def test_non_positive_replaced_by_default(self, config, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text("charades:\n  max_distance: 0\nblocks:\n  interval_ms: -5\n")

        with caplog.at_level(logging.WARNING):
            config.load(path)

        assert config.get("charades.max_distance") == 0.5
        assert config.get("blocks.interval_ms") == 2000
        assert "must be positive" in caplog.text

    def test_update_rejects_zero_duration(self, config, tmp_path):
        config.load(tmp_path / "missing.yaml")
        config.update({"game": {"duration_sec": 0}})
        assert config.get("game.duration_sec") == 60

    def test_invalid_yaml_uses_defaults(self, config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("camera: [unclosed\n")
        config.load(path)
        assert config.get("camera.width") == 640

    def test_update_overrides(self, config, tmp_path):
        config.load(tmp_path / "missing.yaml")
        config.update({"camera": {"device_id": 2}})
        assert config.get("camera.device_id") == 2
        assert config.get("camera.width") == 640

    def test_section_properties(self, config, tmp_path):
        config.load(tmp_path / "missing.yaml")
        assert config.blocks["capacity"] == 6
        assert config.motion["baseline_samples"] == 30
        assert "targets_dir" in config.charades
        assert isinstance(config.circles, dict)

    def test_get_missing_key(self, config):
        assert config.get("nope.nothing", "fallback") == "fallback"

    def test_defaults_not_mutated(self, config, tmp_path):
        config.load(tmp_path / "missing.yaml")
        config.get_section("camera")["width"] = 1
        assert DEFAULTS["camera"]["width"] == 640

    def test_shipped_config_loads(self, config):
        config.load()
        assert config.get("game.mode") in ("charades", "blocks", "circles")
        assert config.get("blocks.lanes_x") == [160, 240, 320, 400]


class TestEventBus:
    """Test suite for the event bus."""

    def test_emit_to_subscribers(self):
        bus = EventBus()
        received = []
        bus.subscribe(Events.OBJECT_HIT, lambda **kw: received.append(kw))
        bus.emit(Events.OBJECT_HIT, kind="block", points=10)
        assert received == [{"kind": "block", "points": 10}]

    def test_priority_order(self):
        bus = EventBus()
        order = []
        bus.subscribe("e", lambda: order.append("low"), priority=0)
        bus.subscribe("e", lambda: order.append("high"), priority=5)
        bus.emit("e")
        assert order == ["high", "low"]

    def test_failing_listener_does_not_stop_others(self):
        bus = EventBus()
        received = []

        def broken(**kw):
            raise ValueError("bad listener")

        bus.subscribe("e", broken, priority=1)
        bus.subscribe("e", lambda **kw: received.append(kw))
        bus.emit("e", x=1)
        assert received == [{"x": 1}]

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        handler = lambda **kw: received.append(kw)
        bus.subscribe("e", handler)
        bus.unsubscribe("e", handler)
        bus.emit("e")
        assert received == []
        assert bus.listener_count == 0

    def test_history_and_count(self):
        bus = EventBus(max_history=3)
        for _ in range(5):
            bus.emit(Events.TIMER_TICK, time_left=1)
        assert len(bus.get_history(10)) == 3
        assert bus.count(Events.TIMER_TICK) == 3

    def test_buses_are_independent(self):
        a, b = EventBus(), EventBus()
        received = []
        a.subscribe("e", lambda: received.append("a"))
        b.emit("e")
        assert received == []


class TestGameEventLogger:
    """Test suite for the session event log."""

    def test_tallies_reset_per_session(self):
        bus = EventBus()
        log = GameEventLogger(bus)
        bus.emit(Events.SESSION_STARTED, mode="blocks", duration_sec=60)
        bus.emit(Events.OBJECT_HIT, kind="block", obj=None, points=10)
        bus.emit(Events.JUMP_DETECTED, head_y=0.2, baseline=0.6, time_ms=0)
        assert (log.hits, log.jumps) == (1, 1)

        bus.emit(Events.SESSION_STARTED, mode="blocks", duration_sec=60)
        assert (log.hits, log.jumps) == (0, 0)

    def test_session_end_logged(self, caplog):
        bus = EventBus()
        GameEventLogger(bus)
        with caplog.at_level(logging.INFO, logger="game_events"):
            bus.emit(Events.SESSION_STARTED, mode="circles", duration_sec=60)
            bus.emit(Events.SESSION_ENDED, score=40, reason="time_up")
        assert "score: 40" in caplog.text

    def test_detach(self):
        bus = EventBus()
        log = GameEventLogger(bus)
        log.detach()
        bus.emit(Events.OBJECT_HIT, kind="circle", obj=None, points=10)
        assert log.hits == 0


class TestFeedbackManager:
    """Test suite for score popups."""

    def test_popup_fades_and_expires(self):
        feedback = FeedbackManager({"popup_duration_ms": 800, "popup_fade_ms": 300})
        feedback.add(100, 200, "+10", now_ms=1000)

        assert feedback.active(1000)[0].opacity == 1.0
        assert 0.0 < feedback.active(1650)[0].opacity < 1.0
        assert feedback.active(1900) == []
        assert len(feedback) == 0

    def test_popup_rises(self):
        feedback = FeedbackManager({"popup_duration_ms": 800, "popup_rise_px": 40})
        feedback.add(100, 200, "+10", now_ms=0)
        assert feedback.active(400)[0].y == pytest.approx(180)

    def test_clear(self):
        feedback = FeedbackManager()
        feedback.add(0, 0, "+10", 0)
        feedback.clear()
        assert feedback.active(0) == []

    def test_render_draws_text(self):
        feedback = FeedbackManager()
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        feedback.render(frame, [ScorePopup(50, 50, "+10", 0)])
        assert frame.any()


class TestPerformanceMonitor:
    """Test suite for frame timing."""

    def test_measure_records_stage(self):
        perf = PerformanceMonitor()
        with perf.measure("detection"):
            pass
        assert perf.stage_latency("detection") >= 0.0
        assert "detection" in perf.get_report()["latencies_ms"]

    def test_measure_records_on_error(self):
        perf = PerformanceMonitor()
        with pytest.raises(ValueError):
            with perf.measure("custom"):
                raise ValueError()
        assert "custom" in perf.get_report()["latencies_ms"]

    def test_ticks_and_drops(self):
        perf = PerformanceMonitor()
        for _ in range(3):
            perf.tick()
        perf.record_drop()
        report = perf.get_report()
        assert report["frames"] == 3
        assert report["dropped"] == 1
        assert perf.fps >= 0.0

    def test_reset(self):
        perf = PerformanceMonitor()
        perf.tick()
        perf.reset()
        assert perf.frame_count == 0


class TestRenderer:
    """Test suite for frame composition."""

    def test_blank_canvas_when_no_frame(self):
        renderer = Renderer({})
        canvas = renderer.render(None, FrameDrawables(status_text="No target"), (320, 240))
        assert canvas.shape == (240, 320, 3)

    def test_mirrored_frame_is_flipped(self):
        renderer = Renderer({"show_fps": False, "hud_height": 0})
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        frame[:, :100] = 255
        canvas = renderer.render(frame, FrameDrawables(mirrored=True))
        assert canvas[60, 150, 0] == 255
        assert canvas[60, 50, 0] == 0
        # Input frame untouched
        assert frame[60, 150, 0] == 0

    def test_draws_entities_and_skeleton(self):
        renderer = Renderer({})
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        hand = [Landmark(0.3 + 0.01 * i, 0.5) for i in range(21)]
        drawables = FrameDrawables(
            skeletons=[hand],
            connections=HAND_CONNECTIONS,
            entities=[Block(160, 440, (0, 0, 255)), Circle(320, 240, 40, (0, 255, 0))],
            score=20,
            time_left=42,
            status_text="Go!",
        )
        canvas = renderer.render(frame, drawables)
        assert tuple(canvas[460, 200]) == (0, 0, 255)
        assert tuple(canvas[240, 320]) == (0, 255, 0)


class TestCameraManager:
    """Test suite for the webcam wrapper."""

    @patch("modules.capture.camera_manager.cv2.VideoCapture")
    def test_open_failure_releases(self, mock_capture):
        cap = MagicMock()
        cap.isOpened.return_value = False
        mock_capture.return_value = cap

        camera = CameraManager({"device_id": 3})

        assert camera.open() is False
        cap.release.assert_called_once()
        assert not camera.is_open

    @patch("modules.capture.camera_manager.cv2.VideoCapture")
    def test_read_resizes_to_configured_size(self, mock_capture):
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.read.return_value = (True, np.zeros((720, 1280, 3), dtype=np.uint8))
        mock_capture.return_value = cap

        camera = CameraManager({"width": 640, "height": 480, "warmup_frames": 0})
        assert camera.open() is True
        frame_id, frame = camera.read()

        assert frame_id == 1
        assert frame.shape == (480, 640, 3)

    def test_read_before_open(self):
        assert CameraManager({}).read() == (None, None)

    @patch("modules.capture.camera_manager.cv2.VideoCapture")
    def test_release_is_idempotent(self, mock_capture):
        cap = MagicMock()
        cap.isOpened.return_value = True
        mock_capture.return_value = cap

        camera = CameraManager({"warmup_frames": 0})
        camera.open()
        camera.release()
        camera.release()
        cap.release.assert_called_once()

    def test_blank_frame(self):
        assert CameraManager({"width": 320, "height": 240}).blank_frame().shape == (240, 320, 3)
