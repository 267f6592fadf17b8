"""
Tests for Jump and Movement Classification
===========================================
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus, Events
from modules.recognition.motion_classifier import (
    ActionDetector, JumpDetector, MotionClassifier, MotionConfig,
)


def calibrate(detector, value=0.6, samples=30):
    for i in range(samples):
        assert detector.update(value, now_ms=i * 33) is False


class TestMotionConfig:
    """Test suite for MotionConfig."""

    def test_default_values(self):
        config = MotionConfig()
        assert config.baseline_samples == 30
        assert config.jump_threshold == 0.3
        assert config.jump_cooldown_ms == 500
        assert config.action_threshold == 0.05
        assert config.jump_arms_action is True

    def test_from_dict_partial(self):
        config = MotionConfig.from_dict({"jump_threshold": 0.2})
        assert config.jump_threshold == 0.2
        assert config.baseline_samples == 30


class TestJumpDetector:
    """Test suite for the adaptive-baseline jump detector."""

    def test_calibration_sets_running_mean(self):
        detector = JumpDetector()
        calibrate(detector, 0.6)
        assert detector.is_calibrated
        assert detector.baseline.sample_count == 30
        assert detector.baseline.running_mean == pytest.approx(0.6)

    def test_no_jump_during_calibration(self):
        detector = JumpDetector()
        assert detector.update(0.6, 0) is False
        # A large rise while calibrating only moves the mean
        assert detector.update(0.0, 33) is False
        assert detector.jump_count == 0

    def test_jump_detected_after_calibration(self):
        detector = JumpDetector()
        calibrate(detector, 0.6)
        assert detector.update(0.25, now_ms=1000) is True
        assert detector.is_jumping
        assert detector.last_jump_time == 1000
        assert detector.jump_count == 1

    def test_single_jump_within_cooldown(self):
        detector = JumpDetector()
        calibrate(detector, 0.6)
        assert detector.update(0.25, now_ms=1000) is True
        assert detector.update(0.20, now_ms=1200) is False
        assert detector.update(0.25, now_ms=1450) is False
        assert detector.jump_count == 1

    def test_small_rise_is_not_a_jump(self):
        detector = JumpDetector()
        calibrate(detector, 0.6)
        assert detector.update(0.45, now_ms=1000) is False
        assert not detector.is_jumping

    def test_jump_resolves_and_reanchors_baseline(self):
        detector = JumpDetector()
        calibrate(detector, 0.6)
        detector.update(0.25, now_ms=1000)

        detector.update(0.55, now_ms=1600)

        assert not detector.is_jumping
        assert detector.baseline.running_mean == pytest.approx(0.55)

    def test_second_jump_after_cooldown(self):
        detector = JumpDetector()
        calibrate(detector, 0.6)
        assert detector.update(0.25, now_ms=1000) is True
        detector.update(0.6, now_ms=1600)
        assert detector.update(0.25, now_ms=1700) is True
        assert detector.jump_count == 2


class TestActionDetector:
    """Test suite for the sticky movement flag."""

    def test_first_sample_sets_no_action(self):
        detector = ActionDetector(0.05)
        assert detector.update(0.9) is False
        assert not detector.has_action
        assert detector.previous_y == 0.9

    def test_movement_above_threshold(self):
        detector = ActionDetector(0.05)
        detector.update(0.80)
        assert detector.update(0.90) is True
        assert detector.has_action

    def test_small_movement_ignored(self):
        detector = ActionDetector(0.05)
        detector.update(0.80)
        assert detector.update(0.82) is False
        assert not detector.has_action

    def test_flag_is_sticky_until_consumed(self):
        detector = ActionDetector(0.05)
        detector.update(0.80)
        detector.update(0.90)
        detector.update(0.90)
        assert detector.has_action
        assert detector.consume() is True
        assert not detector.has_action
        assert detector.consume() is False

    def test_arm(self):
        detector = ActionDetector()
        detector.arm()
        assert detector.has_action


class TestMotionClassifier:
    """Test suite for the combined classifier."""

    def _calibrated(self, config=None, bus=None):
        classifier = MotionClassifier(config, bus)
        for i in range(30):
            classifier.update(0.6, 0.9, now_ms=i * 33)
        return classifier

    def test_jump_arms_action(self):
        classifier = self._calibrated()
        result = classifier.update(0.25, 0.9, now_ms=1000)
        assert result == {"jumped": True, "moved": False}
        assert classifier.has_action

    def test_jump_without_arming(self):
        classifier = self._calibrated(MotionConfig(jump_arms_action=False))
        classifier.update(0.25, 0.9, now_ms=1000)
        assert not classifier.has_action

    def test_foot_movement_sets_action(self):
        classifier = self._calibrated()
        result = classifier.update(0.6, 0.8, now_ms=1000)
        assert result["moved"] is True
        assert classifier.consume_action() is True
        assert not classifier.has_action

    def test_events_published(self):
        bus = EventBus()
        jumps, actions = [], []
        bus.subscribe(Events.JUMP_DETECTED, lambda **kw: jumps.append(kw))
        bus.subscribe(Events.ACTION_DETECTED, lambda **kw: actions.append(kw))

        classifier = self._calibrated(bus=bus)
        classifier.update(0.25, 0.8, now_ms=1000)

        assert len(jumps) == 1
        assert jumps[0]["time_ms"] == 1000
        assert len(actions) == 1
