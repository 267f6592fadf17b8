"""
Hand pose similarity scoring.

Two normalized landmark sequences are compared by mean 2D Euclidean
distance over their overlapping indices; the distance maps linearly to a
0-100 score that reaches 0 at `max_distance`.

The charades game also scores against a horizontally mirrored copy of
the live hand and keeps the better result, so a left hand can match a
right-hand target and camera mirroring does not matter.
"""

import math
from typing import Sequence

import numpy as np

from core.types import Landmark
from modules.detection.landmark_normalizer import normalize_landmarks, mirror_landmarks

DEFAULT_MAX_DISTANCE = 0.5


def round_half_up(value: float) -> int:
    """Round halves up, matching the percentage shown to the player."""
    return int(math.floor(value + 0.5))


def compare_normalized(a: Sequence[Landmark], b: Sequence[Landmark],
                       max_distance: float = DEFAULT_MAX_DISTANCE) -> float:
    """Unrounded similarity of two already-normalized sequences.

    Returns:
        Score in [0, 100]; 0 when the sequences do not overlap.
    """
    length = min(len(a), len(b))
    if length == 0:
        return 0.0

    pa = np.array([(p.x, p.y) for p in a[:length]], dtype=np.float64)
    pb = np.array([(p.x, p.y) for p in b[:length]], dtype=np.float64)
    avg_dist = float(np.mean(np.linalg.norm(pa - pb, axis=1)))

    score = (1.0 - avg_dist / max_distance) * 100.0
    if not math.isfinite(score):
        return 0.0
    return min(100.0, max(0.0, score))


def similarity_score(target: Sequence, current: Sequence, mirror: bool = True,
                     max_distance: float = DEFAULT_MAX_DISTANCE) -> int:
    """Score how closely `current` matches `target`.

    Args:
        target: Raw landmark sequence of the reference hand
        current: Raw landmark sequence of the live hand
        mirror: Also try the horizontally mirrored live hand and keep
            the better score (False gives the direct comparison only)
        max_distance: Mean distance at which the score reaches 0

    Returns:
        Integer score in [0, 100]
    """
    if not target or not current:
        return 0

    norm_target = normalize_landmarks(target)
    norm_current = normalize_landmarks(current)

    score = compare_normalized(norm_target, norm_current, max_distance)
    if mirror:
        mirrored = compare_normalized(norm_target, mirror_landmarks(norm_current), max_distance)
        score = max(score, mirrored)

    return round_half_up(score)


def score_color(score: int):
    """BGR status color for a similarity percentage."""
    if score > 80:
        return (0, 255, 0)
    if score > 50:
        return (0, 255, 255)
    return (0, 0, 255)
