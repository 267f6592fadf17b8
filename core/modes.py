"""
Game modes plugged into the session controller.

A mode turns one frame of detector output into game effects on the
session's GameState:
    - CharadesMode: grade live hands against a reference target set
    - BlocksMode: step on floor blocks after a qualifying foot movement
    - CirclesMode: touch circles with wrists or ankles

The controller owns the loop and timers; modes own the per-game rules.
"""

import logging
import random
from typing import List, Optional, Tuple

from core.errors import NoLandmarksFoundError, UnreadableImageError
from core.events import EventBus, Events
from core.types import (
    COLOR_BAD, COLOR_TEXT, HAND_CONNECTIONS, LIMB_INDICES, POSE_CONNECTIONS,
    POSE_LANDMARK_COUNT, DetectionResult, GameMode, GameState, PoseIndex,
    TargetSet,
)
from modules.charades.target_loader import detect_target_hands
from modules.detection.base import IMAGE
from modules.game.collision import (
    CollisionConfig, resolve_block_collisions, resolve_circle_collisions,
)
from modules.game.spawner import (
    BlockSpawner, BlockSpawnerConfig, CircleSpawner, CircleSpawnerConfig,
)
from modules.recognition.hand_matcher import match_hands
from modules.recognition.motion_classifier import MotionClassifier, MotionConfig
from modules.recognition.similarity_scorer import (
    DEFAULT_MAX_DISTANCE, score_color, similarity_score,
)

logger = logging.getLogger(__name__)


class BaseMode:
    """Shared mode behavior. Subclasses set the class attributes."""

    mode: GameMode = None
    detector_kind = "pose"
    timed = True
    connections: List[Tuple[int, int]] = POSE_CONNECTIONS
    mirrored = True

    def __init__(self, settings: dict, canvas_size: Tuple[int, int], event_bus: EventBus):
        self._settings = settings
        self.canvas_size = canvas_size
        self._bus = event_bus
        self.spawner = None

    @property
    def spawn_interval_ms(self) -> Optional[float]:
        return self.spawner.interval_ms if self.spawner is not None else None

    def ready_for_frame(self) -> bool:
        """False when the frame should be dropped and retried next time."""
        return True

    def on_start(self, state: GameState, now_ms: float):
        pass

    def on_frame(self, state: GameState, detection: Optional[DetectionResult],
                 now_ms: float) -> list:
        """Apply one frame. Returns the objects hit in this frame."""
        raise NotImplementedError

    def spawn(self, state: GameState, now_ms: float):
        if self.spawner is not None:
            return self.spawner.spawn(state.entities, now_ms)
        return None


# =============================================================================
# Charades
# =============================================================================

class CharadesMode(BaseMode):
    """Grades the live hands against hands detected in a reference image."""

    mode = GameMode.CHARADES
    detector_kind = "hand"
    timed = False
    connections = HAND_CONNECTIONS
    mirrored = False

    def __init__(self, settings: dict, canvas_size: Tuple[int, int], event_bus: EventBus):
        super().__init__(settings, canvas_size, event_bus)
        cfg = settings.get("charades", {})
        self._mirror_tolerant = cfg.get("mirror_tolerant", True)
        self._max_distance = cfg.get("max_distance", DEFAULT_MAX_DISTANCE)
        self._upscale_min_side = cfg.get("upscale_min_side", 800)
        self._targets: TargetSet = ()
        self._target_status = ("No target", COLOR_TEXT)
        # Volatile flag: webcam frames are dropped while a target loads.
        self.processing_target = False
        self.last_match = None

    @property
    def targets(self) -> TargetSet:
        return self._targets

    @property
    def target_status(self) -> Tuple[str, tuple]:
        return self._target_status

    def ready_for_frame(self) -> bool:
        return not self.processing_target

    def load_target(self, detector, source) -> bool:
        """Replace the target set with the hands found in `source`.

        The detector is switched to IMAGE mode for the duration; the next
        webcam frame switches it back. On any failure the target set is
        cleared and the status explains why.

        Returns:
            True when at least one hand was loaded
        """
        if detector is None or not detector.is_ready:
            logger.warning("Detector not ready, target not loaded")
            return False

        self.processing_target = True
        try:
            if detector.running_mode != IMAGE:
                detector.set_running_mode(IMAGE)
            hands = detect_target_hands(detector, source, self._upscale_min_side)
        except (NoLandmarksFoundError, UnreadableImageError) as e:
            logger.error("Target load failed: %s", e)
            self._targets = ()
            self._target_status = (e.status_text, COLOR_BAD)
            self._bus.emit(Events.TARGET_FAILED, reason=type(e).__name__, message=str(e))
            return False
        except Exception as e:
            logger.error("Error detecting target: %s", e, exc_info=True)
            self._targets = ()
            self._target_status = (f"Error: {e}", COLOR_BAD)
            self._bus.emit(Events.TARGET_FAILED, reason=type(e).__name__, message=str(e))
            return False
        finally:
            self.processing_target = False

        self._targets = hands
        self._target_status = (f"Ready ({len(hands)} hand(s))", COLOR_TEXT)
        self._bus.emit(Events.TARGET_LOADED, hand_count=len(hands))
        return True

    def on_start(self, state: GameState, now_ms: float):
        state.status_text, state.status_color = self._target_status

    def on_frame(self, state: GameState, detection: Optional[DetectionResult],
                 now_ms: float) -> list:
        if detection is None or detection.is_empty:
            state.status_text, state.status_color = "Waiting for hands...", COLOR_TEXT
            return []

        if not self._targets:
            text, color = self._target_status
            if not text.startswith("Error"):
                text = "No target"
            state.status_text, state.status_color = text, color
            return []

        scorer = lambda t, c: similarity_score(t, c, mirror=self._mirror_tolerant,
                                               max_distance=self._max_distance)
        match = match_hands(self._targets, detection.hands(), scorer=scorer)
        self.last_match = match
        state.similarity = match.total_score
        state.status_text = f"{match.total_score}%"
        state.status_color = score_color(match.total_score)
        self._bus.emit(Events.SIMILARITY_UPDATED, score=match.total_score,
                       per_target=match.per_target_scores)
        return []


# =============================================================================
# Arcade
# =============================================================================

class ArcadeMode(BaseMode):
    """Pose-driven modes with a motion classifier and timed spawning."""

    def __init__(self, settings: dict, canvas_size: Tuple[int, int], event_bus: EventBus,
                 rng: Optional[random.Random] = None):
        super().__init__(settings, canvas_size, event_bus)
        self._motion_config = MotionConfig.from_dict(settings.get("motion", {}))
        self.collision = CollisionConfig.from_dict(settings.get("collision", {}))
        self._rng = rng or random.Random()
        self.motion = MotionClassifier(self._motion_config, event_bus)

    def on_start(self, state: GameState, now_ms: float):
        # The baseline belongs to the session, like the rest of its state.
        self.motion = MotionClassifier(self._motion_config, self._bus)

    def _read_pose(self, state: GameState, detection: Optional[DetectionResult], now_ms: float):
        if detection is None or detection.is_empty:
            return
        pose = detection.landmarks[0]
        if len(pose) < POSE_LANDMARK_COUNT:
            logger.debug("Ignoring partial pose with %d landmarks", len(pose))
            return

        nose = pose[PoseIndex.NOSE]
        left_ankle = pose[PoseIndex.LEFT_ANKLE]
        right_ankle = pose[PoseIndex.RIGHT_ANKLE]

        signals = state.signals
        signals.foot_y = (left_ankle.y + right_ankle.y) / 2
        signals.foot_x = (left_ankle.x + right_ankle.x) / 2
        signals.head_y = nose.y
        signals.limbs = [(pose[i].x, pose[i].y) for i in LIMB_INDICES]

        self.motion.update(signals.head_y, signals.foot_y, now_ms)
        signals.has_action = self.motion.has_action
        signals.is_jumping = self.motion.jump.is_jumping
        signals.last_jump_time = self.motion.jump.last_jump_time

    def _announce_hits(self, state: GameState, hits: list, kind: str):
        for obj in hits:
            self._bus.emit(Events.OBJECT_HIT, kind=kind, obj=obj, points=self.collision.points)
        if hits:
            self._bus.emit(Events.SCORE_CHANGED, score=state.score)


class BlocksMode(ArcadeMode):
    mode = GameMode.BLOCKS

    def __init__(self, settings: dict, canvas_size: Tuple[int, int], event_bus: EventBus,
                 rng: Optional[random.Random] = None):
        super().__init__(settings, canvas_size, event_bus, rng)
        self.spawner = BlockSpawner(BlockSpawnerConfig.from_dict(settings.get("blocks", {})),
                                    canvas_size, self._rng, event_bus)

    def on_frame(self, state: GameState, detection: Optional[DetectionResult],
                 now_ms: float) -> list:
        self._read_pose(state, detection, now_ms)
        hits = resolve_block_collisions(state, self.motion.action, self.canvas_size, self.collision)
        state.signals.has_action = self.motion.has_action
        self._announce_hits(state, hits, "block")
        return hits


class CirclesMode(ArcadeMode):
    mode = GameMode.CIRCLES

    def __init__(self, settings: dict, canvas_size: Tuple[int, int], event_bus: EventBus,
                 rng: Optional[random.Random] = None):
        super().__init__(settings, canvas_size, event_bus, rng)
        self.spawner = CircleSpawner(CircleSpawnerConfig.from_dict(settings.get("circles", {})),
                                     canvas_size, self._rng, event_bus)

    def on_frame(self, state: GameState, detection: Optional[DetectionResult],
                 now_ms: float) -> list:
        self._read_pose(state, detection, now_ms)
        hits = resolve_circle_collisions(state, state.signals.limbs, self.canvas_size, self.collision)
        self._announce_hits(state, hits, "circle")
        return hits


def create_mode(mode: GameMode, settings: dict, canvas_size: Tuple[int, int],
                event_bus: EventBus, rng: Optional[random.Random] = None) -> BaseMode:
    """Build the mode object for a GameMode."""
    if mode == GameMode.CHARADES:
        return CharadesMode(settings, canvas_size, event_bus)
    if mode == GameMode.CIRCLES:
        return CirclesMode(settings, canvas_size, event_bus, rng)
    return BlocksMode(settings, canvas_size, event_bus, rng)
