"""
Translation- and scale-invariant landmark normalization.

The anchor joint (index 0: wrist for hands, nose for poses) is moved to
the origin and the sequence is scaled so the point farthest from the
anchor lies at distance 1. Depth is discarded: detector z-noise would
otherwise dominate the 2D comparison.
"""

import math
from typing import Iterable, List

from core.types import Landmark


def _coord(value) -> float:
    """Coerce a coordinate to a finite float (NaN/None become 0)."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def normalize_landmarks(landmarks: Iterable) -> List[Landmark]:
    """Center a landmark sequence on its anchor and scale it to unit extent.

    Accepts Landmark tuples or any objects with x/y attributes. Never
    raises: empty input yields an empty list, and when every point
    coincides with the anchor the centered, unscaled sequence is returned.

    Returns:
        New list of Landmark with z == 0
    """
    points = list(landmarks or [])
    if not points:
        return []

    anchor_x = _coord(getattr(points[0], "x", 0.0))
    anchor_y = _coord(getattr(points[0], "y", 0.0))

    centered = [
        Landmark(
            x=_coord(getattr(p, "x", 0.0)) - anchor_x,
            y=_coord(getattr(p, "y", 0.0)) - anchor_y,
            z=0.0,
        )
        for p in points
    ]

    max_dist = max(math.hypot(p.x, p.y) for p in centered)
    if max_dist == 0:
        return centered

    return [Landmark(x=p.x / max_dist, y=p.y / max_dist, z=0.0) for p in centered]


def mirror_landmarks(landmarks: Iterable[Landmark]) -> List[Landmark]:
    """Flip a (normalized) sequence horizontally by negating x."""
    return [Landmark(x=-p.x, y=p.y, z=p.z) for p in landmarks]
