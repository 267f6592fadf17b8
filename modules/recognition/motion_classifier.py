"""
Motion classification for the arcade games.

Turns per-frame vertical coordinates into discrete events:
    - Jump: head rises above an adaptive baseline by more than a
      threshold. One physical jump fires once; a cooldown re-arms the
      detector and re-anchors the baseline.
    - Action: the feet move between consecutive frames. Sets a sticky
      flag that a successful block hit consumes, so standing still in a
      spawn lane never scores.

Coordinates are normalized image space (y grows downward), times in ms.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from core.events import EventBus, Events
from core.types import MotionBaseline

logger = logging.getLogger(__name__)


@dataclass
class MotionConfig:
    """Motion classifier configuration."""
    baseline_samples: int = 30        # Samples averaged before jumps can fire
    jump_threshold: float = 0.3       # Rise above baseline (fraction of frame height)
    jump_cooldown_ms: float = 500.0   # Time before an in-flight jump resolves
    action_threshold: float = 0.05    # Frame-to-frame foot movement
    jump_arms_action: bool = True     # A jump also counts as a stepping action

    @classmethod
    def from_dict(cls, d: dict) -> "MotionConfig":
        """Create config from dictionary."""
        return cls(
            baseline_samples=d.get("baseline_samples", 30),
            jump_threshold=d.get("jump_threshold", 0.3),
            jump_cooldown_ms=d.get("jump_cooldown_ms", 500.0),
            action_threshold=d.get("action_threshold", 0.05),
            jump_arms_action=d.get("jump_arms_action", True),
        )


class JumpDetector:
    """Adaptive-baseline jump detector over a head-height stream."""

    def __init__(self, config: Optional[MotionConfig] = None):
        self.config = config or MotionConfig()
        self._baseline = MotionBaseline()
        self._is_jumping = False
        self._last_jump_time = 0.0
        self._jump_count = 0

    def update(self, current_y: float, now_ms: float) -> bool:
        """Feed one sample.

        Returns:
            True if this sample started a new jump
        """
        b = self._baseline
        if b.sample_count < self.config.baseline_samples:
            b.sample_count += 1
            b.running_mean += (current_y - b.running_mean) / b.sample_count
            return False

        jumped = False
        delta = b.running_mean - current_y
        if delta > self.config.jump_threshold and not self._is_jumping:
            self._is_jumping = True
            self._last_jump_time = now_ms
            self._jump_count += 1
            jumped = True
            logger.debug("Jump detected (delta=%.3f, baseline=%.3f)", delta, b.running_mean)

        if self._is_jumping and now_ms - self._last_jump_time > self.config.jump_cooldown_ms:
            self._is_jumping = False
            b.running_mean = current_y
            logger.debug("Jump resolved, baseline re-anchored to %.3f", current_y)

        return jumped

    @property
    def baseline(self) -> MotionBaseline:
        return self._baseline

    @property
    def is_calibrated(self) -> bool:
        return self._baseline.sample_count >= self.config.baseline_samples

    @property
    def is_jumping(self) -> bool:
        return self._is_jumping

    @property
    def last_jump_time(self) -> float:
        return self._last_jump_time

    @property
    def jump_count(self) -> int:
        return self._jump_count


class ActionDetector:
    """Sticky movement flag over a foot-height stream."""

    def __init__(self, threshold: float = 0.05):
        self._threshold = threshold
        self._previous_y: Optional[float] = None
        self._has_action = False

    def update(self, foot_y: float) -> bool:
        """Feed one sample.

        Returns:
            True if this sample moved more than the threshold
        """
        moved = False
        if self._previous_y is not None:
            movement = abs(foot_y - self._previous_y)
            if movement > self._threshold:
                self._has_action = True
                moved = True
                logger.debug("Foot action detected (movement=%.1f%%)", movement * 100)
        self._previous_y = foot_y
        return moved

    def arm(self):
        """Set the flag without a foot movement (e.g. after a jump)."""
        self._has_action = True

    def consume(self) -> bool:
        """Read and clear the flag."""
        had_action = self._has_action
        self._has_action = False
        return had_action

    @property
    def has_action(self) -> bool:
        return self._has_action

    @property
    def previous_y(self) -> Optional[float]:
        return self._previous_y


class MotionClassifier:
    """Runs the jump and action detectors side by side and publishes events."""

    def __init__(self, config: Optional[MotionConfig] = None, event_bus: Optional[EventBus] = None):
        self.config = config or MotionConfig()
        self.jump = JumpDetector(self.config)
        self.action = ActionDetector(self.config.action_threshold)
        self._bus = event_bus

    def update(self, head_y: float, foot_y: float, now_ms: float) -> dict:
        """Classify one frame of pose signals.

        Returns:
            {"jumped": bool, "moved": bool}
        """
        moved = self.action.update(foot_y)
        jumped = self.jump.update(head_y, now_ms)

        if jumped and self.config.jump_arms_action:
            self.action.arm()

        if self._bus is not None:
            if moved:
                self._bus.emit(Events.ACTION_DETECTED, foot_y=foot_y)
            if jumped:
                self._bus.emit(Events.JUMP_DETECTED, head_y=head_y,
                               baseline=self.jump.baseline.running_mean, time_ms=now_ms)

        return {"jumped": jumped, "moved": moved}

    @property
    def has_action(self) -> bool:
        return self.action.has_action

    def consume_action(self) -> bool:
        return self.action.consume()

    @property
    def baseline(self) -> MotionBaseline:
        return self.jump.baseline
