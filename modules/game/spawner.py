"""
Timed spawning of arcade game objects.

Each spawner appends one object per call to the session's live entity
list and evicts the oldest entries once the list exceeds its capacity.
The live list is a bounded FIFO queue: objects have no reuse value, so
there is no recency tracking.
"""

import random
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core.events import EventBus, Events
from core.types import Block, Circle

logger = logging.getLogger(__name__)

# BGR versions of the arcade palette
DEFAULT_PALETTE = [
    (107, 107, 255),  # coral red
    (196, 205, 78),   # turquoise
    (209, 183, 69),   # sky blue
    (122, 160, 255),  # salmon
    (200, 216, 152),  # mint
]


def _palette(values) -> List[Tuple[int, int, int]]:
    return [tuple(int(c) for c in color) for color in values]


@dataclass
class BlockSpawnerConfig:
    """Block spawning configuration (screen pixels)."""
    interval_ms: float = 2000.0
    capacity: int = 6
    width: int = 80
    height: int = 40
    lanes_x: List[int] = field(default_factory=lambda: [160, 240, 320, 400])
    bottom_offset: int = 40           # Block top edge above the canvas bottom
    colors: List[Tuple[int, int, int]] = field(default_factory=lambda: list(DEFAULT_PALETTE))

    @classmethod
    def from_dict(cls, d: dict) -> "BlockSpawnerConfig":
        """Create config from dictionary."""
        return cls(
            interval_ms=d.get("interval_ms", 2000.0),
            capacity=d.get("capacity", 6),
            width=d.get("width", 80),
            height=d.get("height", 40),
            lanes_x=list(d.get("lanes_x", [160, 240, 320, 400])),
            bottom_offset=d.get("bottom_offset", 40),
            colors=_palette(d.get("colors", DEFAULT_PALETTE)),
        )


@dataclass
class CircleSpawnerConfig:
    """Circle spawning configuration (screen pixels)."""
    interval_ms: float = 1500.0
    capacity: int = 5
    radii: List[int] = field(default_factory=lambda: [30, 40, 50])
    margin: int = 60                  # Keep centers this far from the edges
    colors: List[Tuple[int, int, int]] = field(default_factory=lambda: list(DEFAULT_PALETTE))

    @classmethod
    def from_dict(cls, d: dict) -> "CircleSpawnerConfig":
        """Create config from dictionary."""
        return cls(
            interval_ms=d.get("interval_ms", 1500.0),
            capacity=d.get("capacity", 5),
            radii=list(d.get("radii", [30, 40, 50])),
            margin=d.get("margin", 60),
            colors=_palette(d.get("colors", DEFAULT_PALETTE)),
        )


class Spawner:
    """Base spawner: append, then evict oldest-first beyond capacity."""

    kind = "object"

    def __init__(self, config, canvas_size: Tuple[int, int],
                 rng: Optional[random.Random] = None,
                 event_bus: Optional[EventBus] = None):
        self.config = config
        self._width, self._height = canvas_size
        self._rng = rng or random.Random()
        self._bus = event_bus
        self._spawn_count = 0

    @property
    def interval_ms(self) -> float:
        return self.config.interval_ms

    @property
    def capacity(self) -> int:
        return self.config.capacity

    def create(self, now_ms: float):
        raise NotImplementedError

    def spawn(self, entities: list, now_ms: float):
        """Create one object, append it, and enforce the capacity bound.

        Returns:
            The new object
        """
        obj = self.create(now_ms)
        entities.append(obj)
        self._spawn_count += 1

        while len(entities) > self.capacity:
            evicted = entities.pop(0)
            evicted.active = False
            logger.debug("Evicted oldest %s at (%.0f, %.0f)", self.kind, evicted.x, evicted.y)
            if self._bus is not None:
                self._bus.emit(Events.OBJECT_EVICTED, kind=self.kind, obj=evicted)

        if self._bus is not None:
            self._bus.emit(Events.OBJECT_SPAWNED, kind=self.kind, obj=obj)
        return obj

    @property
    def spawn_count(self) -> int:
        return self._spawn_count


class BlockSpawner(Spawner):
    """Drops blocks into one of a few fixed floor lanes."""

    kind = "block"

    def create(self, now_ms: float) -> Block:
        cfg = self.config
        return Block(
            x=self._rng.choice(cfg.lanes_x),
            y=self._height - cfg.bottom_offset,
            color=self._rng.choice(cfg.colors),
            width=cfg.width,
            height=cfg.height,
            created_at=now_ms,
        )


class CircleSpawner(Spawner):
    """Places circles at random positions inside the canvas margins."""

    kind = "circle"

    def create(self, now_ms: float) -> Circle:
        cfg = self.config
        margin = min(cfg.margin, self._width // 2, self._height // 2)
        return Circle(
            x=self._rng.uniform(margin, self._width - margin),
            y=self._rng.uniform(margin, self._height - margin),
            radius=self._rng.choice(cfg.radii),
            color=self._rng.choice(cfg.colors),
            created_at=now_ms,
        )
