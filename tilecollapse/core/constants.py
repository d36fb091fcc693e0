"""Shared constants and enumerations for the tile collapse solver."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class Direction(str, Enum):
    """Lateral neighbor directions. Forward points along +y."""

    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]

    @property
    def step(self) -> Tuple[int, int]:
        return DIRECTION_STEPS[self]

    @classmethod
    def parse(cls, value: str) -> "Direction":
        try:
            return cls(value.strip().upper())
        except ValueError as exc:
            raise ValueError(f"Unknown direction '{value}'") from exc


_OPPOSITES: Dict[Direction, Direction] = {
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
    Direction.FORWARD: Direction.BACKWARD,
    Direction.BACKWARD: Direction.FORWARD,
}

DIRECTION_STEPS: Dict[Direction, Tuple[int, int]] = {
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
    Direction.BACKWARD: (0, -1),
    Direction.FORWARD: (0, 1),
}

# Neighbor scan order; the first failing neighbor in this order is the one
# reported when propagation stops.
DIRECTION_ORDER: Tuple[Direction, ...] = (
    Direction.LEFT,
    Direction.RIGHT,
    Direction.BACKWARD,
    Direction.FORWARD,
)


@dataclass(frozen=True)
class Bounds:
    """Rectangle bounds with row-major flat indexing."""

    width: int
    height: int

    @property
    def cell_count(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index(self, x: int, y: int) -> int:
        if not self.contains(x, y):
            raise IndexError(f"({x}, {y}) is outside the grid")
        return y * self.width + x

    def coords(self, index: int) -> Tuple[int, int]:
        return index % self.width, index // self.width
