"""Host grid representation and helper utilities.

The solver only relies on ``width``, ``height`` and ``cell(x, y)`` returning
an object with a mutable ``type_id`` and a read-only ``usage_blocked`` flag,
so any grid exposing that surface can be collapsed in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Tuple

from ..core.constants import DIRECTION_ORDER, Bounds, Direction
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)

BLOCKED_MARKS = frozenset("#Xx1")


@dataclass
class TileCell:
    """A grid cell: the assigned tile type plus the externally set usage flag."""

    type_id: str = ""
    usage_blocked: bool = False


class TileGrid:
    """Row-major grid of :class:`TileCell` addressed by ``(x, y)``."""

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid must have a positive width and height, got {width}x{height}")
        self.bounds = Bounds(width=width, height=height)
        self.cells: List[TileCell] = [TileCell() for _ in range(self.bounds.cell_count)]

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[str]]) -> "TileGrid":
        """Build a grid whose type ids are given row by row, ``rows[y][x]``."""

        if not rows or not rows[0]:
            raise ValueError("Rows must be non-empty")
        width = len(rows[0])
        if any(len(row) != width for row in rows):
            raise ValueError("All rows must have the same length")
        grid = cls(width, len(rows))
        for y, row in enumerate(rows):
            for x, type_id in enumerate(row):
                grid.cell(x, y).type_id = type_id or ""
        return grid

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return self.bounds.width

    @property
    def height(self) -> int:
        return self.bounds.height

    def cell(self, x: int, y: int) -> TileCell:
        return self.cells[self.bounds.index(x, y)]

    def neighbors(self, x: int, y: int) -> Iterator[Tuple[Direction, int, int]]:
        for direction in DIRECTION_ORDER:
            dx, dy = direction.step
            nx, ny = x + dx, y + dy
            if self.bounds.contains(nx, ny):
                yield direction, nx, ny

    def enumerate_cells(self) -> Iterator[Tuple[int, int, TileCell]]:
        for y in range(self.height):
            for x in range(self.width):
                yield x, y, self.cells[y * self.width + x]

    # ------------------------------------------------------------------
    # Usage flags
    # ------------------------------------------------------------------
    def set_blocked_mask(self, rows: Iterable[str]) -> None:
        """Set usage flags from text rows, ``#``/``X``/``1`` meaning blocked.

        Missing rows or columns leave cells unblocked.
        """

        for y, row in enumerate(rows):
            if y >= self.height:
                LOGGER.warning("Blocked mask has more rows than the grid; ignoring the rest")
                break
            for x, mark in enumerate(row[: self.width]):
                self.cell(x, y).usage_blocked = mark in BLOCKED_MARKS

    # ------------------------------------------------------------------
    # Serialization helpers
    # ------------------------------------------------------------------
    def to_rows(self) -> List[List[str]]:
        return [
            [self.cells[y * self.width + x].type_id for x in range(self.width)]
            for y in range(self.height)
        ]

    def to_jsonable(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "type_ids": self.to_rows(),
            "usage_blocked": [
                [self.cells[y * self.width + x].usage_blocked for x in range(self.width)]
                for y in range(self.height)
            ],
        }
