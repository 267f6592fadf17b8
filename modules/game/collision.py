"""
Collision checks between the classified player and live game objects.

Player coordinates arrive in normalized image space. The camera image is
shown mirrored, so x is flipped before comparing against screen-space
objects.

Every pass ends by purging inactive objects from the live list in place.
"""

import math
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from core.types import Block, Circle, GameState

logger = logging.getLogger(__name__)


@dataclass
class CollisionConfig:
    """Hit tolerances (pixels) and award."""
    points: int = 10
    block_margin_x: float = 20.0
    block_margin_y: float = 30.0
    circle_margin: float = 20.0
    mirrored: bool = True

    @classmethod
    def from_dict(cls, d: dict) -> "CollisionConfig":
        """Create config from dictionary."""
        return cls(
            points=d.get("points", 10),
            block_margin_x=d.get("block_margin_x", 20.0),
            block_margin_y=d.get("block_margin_y", 30.0),
            circle_margin=d.get("circle_margin", 20.0),
            mirrored=d.get("mirrored", True),
        )


def to_screen(x: float, y: float, width: int, height: int,
              mirrored: bool = True) -> Tuple[float, float]:
    """Map a normalized point to canvas pixels, flipping x when mirrored."""
    sx = (1.0 - x) * width if mirrored else x * width
    return (sx, y * height)


def purge_inactive(entities: list):
    """Drop inactive objects from the live list, keeping the same list object."""
    entities[:] = [e for e in entities if e.active]


def resolve_block_collisions(state: GameState, action, canvas_size: Tuple[int, int],
                             config: CollisionConfig) -> List[Block]:
    """Score blocks the player's feet are standing on.

    A hit needs a pending action (action.has_action). The first hit
    consumes it, so one movement scores at most one block.

    Args:
        state: Session state holding the live entities and foot signal
        action: Object with has_action and consume() (the action detector)
        canvas_size: (width, height) in pixels
        config: Tolerances and award

    Returns:
        Blocks hit in this pass
    """
    hits = []
    width, height = canvas_size

    if action.has_action:
        px, py = to_screen(state.signals.foot_x, state.signals.foot_y,
                           width, height, config.mirrored)
        for block in state.entities:
            if not block.active or not isinstance(block, Block):
                continue
            cx, cy = block.center
            dx = abs(px - cx)
            dy = abs(py - cy)
            if dx < block.width / 2 + config.block_margin_x and dy < block.height / 2 + config.block_margin_y:
                block.active = False
                state.award(config.points)
                action.consume()
                hits.append(block)
                logger.info("Block hit at (%.0f, %.0f), score=%d", cx, cy, state.score)
                break

    purge_inactive(state.entities)
    return hits


def resolve_circle_collisions(state: GameState, limbs: Sequence[Tuple[float, float]],
                              canvas_size: Tuple[int, int],
                              config: CollisionConfig) -> List[Circle]:
    """Score circles touched by any tracked limb.

    Args:
        state: Session state holding the live entities
        limbs: Normalized (x, y) anchors of wrists and ankles
        canvas_size: (width, height) in pixels
        config: Tolerances and award

    Returns:
        Circles hit in this pass
    """
    hits = []
    width, height = canvas_size
    points = [to_screen(x, y, width, height, config.mirrored) for x, y in limbs]

    for circle in state.entities:
        if not isinstance(circle, Circle):
            continue
        for px, py in points:
            if not circle.active:
                break
            distance = math.hypot(px - circle.x, py - circle.y)
            if distance < circle.radius + config.circle_margin:
                circle.active = False
                state.award(config.points)
                hits.append(circle)
                logger.info("Circle hit at (%.0f, %.0f), score=%d", circle.x, circle.y, state.score)

    purge_inactive(state.entities)
    return hits
