"""
Shared domain types for the Pose Arcade game suite.

Centralizes enums, landmark containers and game-state data classes used
across modules to eliminate circular imports and ensure type consistency.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Tuple


# =============================================================================
# Landmarks
# =============================================================================

class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth, unused by the game logic

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates."""
        return (int(self.x * width), int(self.y * height))


# Ordered; the index carries anatomical meaning.
LandmarkSequence = List[Landmark]

HAND_LANDMARK_COUNT = 21
POSE_LANDMARK_COUNT = 33


class HandIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_TIP = 4
    INDEX_TIP = 8
    MIDDLE_TIP = 12
    RING_TIP = 16
    PINKY_TIP = 20


class PoseIndex(IntEnum):
    """Pose landmark indices used by the arcade games."""
    NOSE = 0
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


FINGERTIPS = (4, 8, 12, 16, 20)

HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),         # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),         # Index
    (5, 9), (9, 10), (10, 11), (11, 12),    # Middle
    (9, 13), (13, 14), (14, 15), (15, 16),  # Ring
    (13, 17), (17, 18), (18, 19), (19, 20), # Pinky
    (0, 17),                                # Palm base
]

POSE_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 7),
    (0, 4), (4, 5), (5, 6), (6, 8),
    (9, 10),
    (11, 12),
    (11, 13), (13, 15),
    (12, 14), (14, 16),
    (11, 23), (12, 24),
    (23, 24),
    (23, 25), (25, 27),
    (24, 26), (26, 28),
]

# Tracked limbs for circle collisions, in check order.
LIMB_INDICES = (
    PoseIndex.LEFT_WRIST,
    PoseIndex.RIGHT_WRIST,
    PoseIndex.LEFT_ANKLE,
    PoseIndex.RIGHT_ANKLE,
)


@dataclass(frozen=True)
class DetectedHand:
    """One hand from a single detection call."""
    landmarks: LandmarkSequence
    handedness: Optional[str] = None


@dataclass
class DetectionResult:
    """Detector output for one image or video frame."""
    landmarks: List[LandmarkSequence] = field(default_factory=list)
    handedness: List[Optional[str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return len(self.landmarks) == 0

    def hands(self) -> List[DetectedHand]:
        """Pair each landmark sequence with its handedness label, if any."""
        hands = []
        for i, seq in enumerate(self.landmarks):
            label = self.handedness[i] if i < len(self.handedness) else None
            hands.append(DetectedHand(landmarks=list(seq), handedness=label))
        return hands


# Captured once from a reference image; replaced as a whole, never edited.
TargetSet = Tuple[DetectedHand, ...]


@dataclass
class MatchResult:
    """Per-target similarity scores plus their rounded mean."""
    per_target_scores: List[int] = field(default_factory=list)
    total_score: int = 0
    # assignments[i] is the index of the detected hand used for target i, or -1
    assignments: List[int] = field(default_factory=list)


# =============================================================================
# Game Objects
# =============================================================================

@dataclass
class Block:
    """A step target anchored at its top-left corner (screen pixels)."""
    x: float
    y: float
    color: Tuple[int, int, int]
    width: float = 80
    height: float = 40
    active: bool = True
    created_at: float = 0.0

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)


@dataclass
class Circle:
    """A touch target anchored at its center (screen pixels)."""
    x: float
    y: float
    radius: float
    color: Tuple[int, int, int]
    active: bool = True
    created_at: float = 0.0

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x, self.y)


# =============================================================================
# Session State
# =============================================================================

class SessionStatus(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    ENDED = "ended"


class GameMode(Enum):
    CHARADES = "charades"
    BLOCKS = "blocks"
    CIRCLES = "circles"

    @classmethod
    def from_string(cls, name: str) -> "GameMode":
        """Convert a mode name to GameMode, defaulting to BLOCKS."""
        try:
            return cls(name.lower())
        except (ValueError, AttributeError):
            return cls.BLOCKS


@dataclass
class MotionBaseline:
    """Adaptive estimate of the player's neutral vertical position."""
    running_mean: float = 0.0
    sample_count: int = 0


@dataclass
class PlayerSignals:
    """Latest classified player position, in normalized image space."""
    foot_x: float = 0.5
    foot_y: float = 0.0
    head_y: float = 0.0
    has_action: bool = False
    is_jumping: bool = False
    last_jump_time: float = 0.0
    limbs: List[Tuple[float, float]] = field(default_factory=list)


# Status colors are BGR, as consumed by the OpenCV renderer.
COLOR_GOOD = (0, 255, 0)
COLOR_WARN = (0, 255, 255)
COLOR_BAD = (0, 0, 255)
COLOR_TEXT = (255, 255, 255)


@dataclass
class GameState:
    """Single mutable state of one session.

    Created fresh by every start(); never reset field by field.
    """
    score: int = 0
    time_left: int = 60
    is_playing: bool = False
    entities: list = field(default_factory=list)
    signals: PlayerSignals = field(default_factory=PlayerSignals)
    similarity: int = 0
    status_text: str = ""
    status_color: Tuple[int, int, int] = COLOR_TEXT

    def award(self, points: int):
        """Add points; the score never decreases."""
        if points > 0:
            self.score += points


@dataclass
class ScorePopup:
    """Transient "+N" acknowledgment drawn where an object was hit."""
    x: float
    y: float
    text: str
    created_at: float
    opacity: float = 1.0


@dataclass
class FrameDrawables:
    """Everything the renderer needs for one frame."""
    skeletons: List[LandmarkSequence] = field(default_factory=list)
    connections: List[Tuple[int, int]] = field(default_factory=list)
    mirrored: bool = False
    entities: list = field(default_factory=list)
    popups: List[ScorePopup] = field(default_factory=list)
    score: int = 0
    time_left: Optional[int] = None
    status_text: str = ""
    status_color: Tuple[int, int, int] = COLOR_TEXT
    fps: float = 0.0
