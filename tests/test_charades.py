"""
Tests for Charades Targets
===========================
"""

import pytest
import numpy as np
import cv2
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import NoLandmarksFoundError, UnreadableImageError
from core.events import EventBus, Events
from core.modes import CharadesMode
from core.types import COLOR_BAD, DetectionResult, GameState, Landmark
from modules.charades.target_loader import (
    TargetCarousel, detect_target_hands, letterbox, read_image, upscale,
)


def create_hand(dx=0.0):
    return [Landmark(0.4 + dx + 0.01 * i, 0.6 - 0.015 * (i % 5)) for i in range(21)]


class ScriptedDetector:
    """Detector whose detect() replays a script of results or exceptions."""

    def __init__(self, script, mode="VIDEO"):
        self.script = list(script)
        self.is_ready = True
        self.running_mode = mode
        self.inputs = []

    def set_running_mode(self, mode):
        self.running_mode = mode

    def detect(self, image):
        self.inputs.append(image)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return step


def found(*hands):
    return DetectionResult(landmarks=list(hands), handedness=["Right"] * len(hands))


EMPTY = DetectionResult()


class TestReadImage:
    """Test suite for reading reference images."""

    def test_bgr_array_converted_to_rgb(self):
        image = np.zeros((10, 20, 3), dtype=np.uint8)
        image[:, :, 0] = 255   # blue in BGR
        rgb = read_image(image)
        assert rgb.shape == (10, 20, 3)
        assert rgb[0, 0, 2] == 255
        assert rgb[0, 0, 0] == 0

    def test_grayscale_expanded(self):
        rgb = read_image(np.full((8, 8), 100, dtype=np.uint8))
        assert rgb.shape == (8, 8, 3)

    def test_bgra_drops_alpha(self):
        rgb = read_image(np.zeros((8, 8, 4), dtype=np.uint8))
        assert rgb.shape == (8, 8, 3)

    def test_missing_file(self, tmp_path):
        with pytest.raises(UnreadableImageError):
            read_image(tmp_path / "missing.png")

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(UnreadableImageError):
            read_image(path)

    def test_empty_array(self):
        with pytest.raises(UnreadableImageError):
            read_image(np.zeros((0, 0, 3), dtype=np.uint8))

    def test_reads_png_from_disk(self, tmp_path):
        path = tmp_path / "target.png"
        cv2.imwrite(str(path), np.zeros((30, 40, 3), dtype=np.uint8))
        assert read_image(path).shape == (30, 40, 3)


class TestImageFallbacks:
    """Test suite for the letterbox and upscale inputs."""

    def test_letterbox_is_square(self):
        boxed = letterbox(np.ones((100, 300, 3), dtype=np.uint8))
        assert boxed.shape == (300, 300, 3)
        # Content centered, borders black
        assert boxed[0, 0, 0] == 0
        assert boxed[150, 150, 0] == 1

    def test_upscale_min_side(self):
        assert upscale(np.zeros((100, 200, 3), dtype=np.uint8)).shape == (800, 800, 3)

    def test_upscale_doubles_large_images(self):
        assert upscale(np.zeros((500, 600, 3), dtype=np.uint8)).shape == (1000, 1200, 3)


class TestDetectTargetHands:
    """Test suite for target hand detection with fallbacks."""

    def test_first_attempt_succeeds(self):
        detector = ScriptedDetector([found(create_hand())])
        hands = detect_target_hands(detector, np.zeros((100, 100, 3), dtype=np.uint8))
        assert isinstance(hands, tuple)
        assert len(hands) == 1
        assert hands[0].handedness == "Right"
        assert len(detector.inputs) == 1

    def test_falls_back_to_upscaled(self):
        detector = ScriptedDetector([EMPTY, EMPTY, found(create_hand(), create_hand(0.2))])
        hands = detect_target_hands(detector, np.zeros((100, 150, 3), dtype=np.uint8))

        assert len(hands) == 2
        shapes = [image.shape[:2] for image in detector.inputs]
        assert shapes == [(100, 150), (150, 150), (800, 800)]

    def test_attempt_error_moves_to_next(self):
        detector = ScriptedDetector([RuntimeError("gpu"), found(create_hand())])
        hands = detect_target_hands(detector, np.zeros((50, 50, 3), dtype=np.uint8))
        assert len(hands) == 1

    def test_no_hands_after_fallbacks(self):
        detector = ScriptedDetector([EMPTY])
        with pytest.raises(NoLandmarksFoundError):
            detect_target_hands(detector, np.zeros((50, 50, 3), dtype=np.uint8))
        assert len(detector.inputs) == 3


class TestTargetCarousel:
    """Test suite for the target image carousel."""

    def _make_dir(self, tmp_path, names):
        for name in names:
            (tmp_path / name).write_bytes(b"")
        return tmp_path

    def test_lists_images_sorted(self, tmp_path):
        carousel = TargetCarousel(self._make_dir(tmp_path, ["b.png", "a.jpg", "notes.txt"]))
        assert len(carousel) == 2
        assert carousel.current.name == "a.jpg"

    def test_next_and_previous_wrap(self, tmp_path):
        carousel = TargetCarousel(self._make_dir(tmp_path, ["1.png", "2.png", "3.png"]))
        assert carousel.next().name == "2.png"
        assert carousel.next().name == "3.png"
        assert carousel.next().name == "1.png"
        assert carousel.previous().name == "3.png"
        assert carousel.index == 2

    def test_on_change_called(self, tmp_path):
        carousel = TargetCarousel(self._make_dir(tmp_path, ["1.png", "2.png"]))
        seen = []
        carousel.on_change(seen.append)
        carousel.next()
        assert [p.name for p in seen] == ["2.png"]

    def test_empty_directory(self, tmp_path):
        carousel = TargetCarousel(tmp_path / "nothing")
        assert len(carousel) == 0
        assert carousel.current is None
        assert carousel.next() is None


class TestCharadesMode:
    """Test suite for target loading and grading."""

    def _mode(self):
        bus = EventBus()
        return CharadesMode({}, (640, 480), bus), bus

    def test_load_success(self):
        mode, bus = self._mode()
        loaded = []
        bus.subscribe(Events.TARGET_LOADED, lambda **kw: loaded.append(kw))
        detector = ScriptedDetector([found(create_hand())])

        assert mode.load_target(detector, np.zeros((60, 60, 3), dtype=np.uint8)) is True

        assert len(mode.targets) == 1
        assert mode.target_status[0] == "Ready (1 hand(s))"
        assert detector.running_mode == "IMAGE"
        assert mode.processing_target is False
        assert loaded == [{"hand_count": 1}]

    def test_load_no_hand_clears_targets(self):
        mode, bus = self._mode()
        failed = []
        bus.subscribe(Events.TARGET_FAILED, lambda **kw: failed.append(kw))
        mode.load_target(ScriptedDetector([found(create_hand())]), np.zeros((60, 60, 3), dtype=np.uint8))

        ok = mode.load_target(ScriptedDetector([EMPTY]), np.zeros((60, 60, 3), dtype=np.uint8))

        assert ok is False
        assert mode.targets == ()
        assert mode.target_status == ("Error: No hand in target", COLOR_BAD)
        assert failed[0]["reason"] == "NoLandmarksFoundError"
        assert mode.processing_target is False

    def test_load_unreadable_image(self, tmp_path):
        mode, _ = self._mode()
        ok = mode.load_target(ScriptedDetector([EMPTY]), tmp_path / "gone.png")
        assert ok is False
        assert mode.target_status[0] == "Error: Image cross-origin blocked"

    def test_load_with_detector_not_ready(self):
        mode, _ = self._mode()
        detector = ScriptedDetector([found(create_hand())])
        detector.is_ready = False
        assert mode.load_target(detector, np.zeros((60, 60, 3), dtype=np.uint8)) is False
        assert detector.inputs == []

    def test_frame_without_hands(self):
        mode, _ = self._mode()
        state = GameState()
        mode.on_frame(state, DetectionResult(), 0)
        assert state.status_text == "Waiting for hands..."

    def test_frame_without_target(self):
        mode, _ = self._mode()
        state = GameState()
        mode.on_frame(state, found(create_hand()), 0)
        assert state.status_text == "No target"

    def test_frame_after_failed_target_shows_error(self):
        mode, _ = self._mode()
        mode.load_target(ScriptedDetector([EMPTY]), np.zeros((60, 60, 3), dtype=np.uint8))
        state = GameState()
        mode.on_frame(state, found(create_hand()), 0)
        assert state.status_text == "Error: No hand in target"

    def test_frame_scores_similarity(self):
        mode, bus = self._mode()
        updates = []
        bus.subscribe(Events.SIMILARITY_UPDATED, lambda **kw: updates.append(kw))
        mode.load_target(ScriptedDetector([found(create_hand())]), np.zeros((60, 60, 3), dtype=np.uint8))
        state = GameState()

        mode.on_frame(state, found(create_hand(dx=0.1)), 0)

        assert state.similarity == 100
        assert state.status_text == "100%"
        assert state.status_color == (0, 255, 0)
        assert state.score == 0
        assert updates[0]["per_target"] == [100]

    def test_not_ready_for_frames_while_processing(self):
        mode, _ = self._mode()
        assert mode.ready_for_frame()
        mode.processing_target = True
        assert not mode.ready_for_frame()
