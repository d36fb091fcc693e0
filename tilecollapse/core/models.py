"""Data models supporting the tile collapse solver."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .constants import DIRECTION_ORDER, Direction


@dataclass
class TileRule:
    """A tile type with its weight and per-direction neighbor allow-lists.

    An empty allow-list for a direction means any neighbor is accepted on
    that side; it never means "forbidden".
    """

    type_id: str
    weight: float = 1.0
    is_joker: bool = False
    allowed_neighbors: Dict[Direction, List[str]] = field(default_factory=dict)

    def allowed(self, direction: Direction) -> List[str]:
        return self.allowed_neighbors.get(direction) or []

    def allows(self, neighbor_type_id: str, direction: Direction) -> bool:
        if not neighbor_type_id or not neighbor_type_id.strip():
            return False
        allowed = self.allowed(direction)
        if not allowed:
            return True
        return neighbor_type_id in allowed

    def compatible_with(self, other: "TileRule", direction: Direction) -> bool:
        """True when ``other`` may sit in ``direction`` of this rule and vice versa."""
        return self.allows(other.type_id, direction) and other.allows(
            self.type_id, direction.opposite
        )

    @property
    def selectable(self) -> bool:
        return not self.is_joker and self.weight > 0

    def to_jsonable(self) -> dict:
        return {
            "type_id": self.type_id,
            "weight": self.weight,
            "is_joker": self.is_joker,
            "allowed_neighbors": {
                direction.value.lower(): list(self.allowed(direction))
                for direction in DIRECTION_ORDER
                if self.allowed(direction)
            },
        }


@dataclass(frozen=True)
class CellSnapshot:
    """State of one cell captured for a contradiction report."""

    x: int
    y: int
    usage_blocked: bool
    decided: Optional[str]
    candidates: Tuple[str, ...] = ()

    def describe(self) -> str:
        flag = " blocked" if self.usage_blocked else ""
        if self.decided is not None:
            return f"({self.x},{self.y}){flag} = {self.decided}"
        return f"({self.x},{self.y}){flag} ? [{', '.join(self.candidates)}]"

    def to_jsonable(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "usage_blocked": self.usage_blocked,
            "decided": self.decided,
            "candidates": list(self.candidates),
        }


@dataclass
class RemovalTrace:
    """One propagation step that removed candidates from a neighbor."""

    source: Tuple[int, int]
    target: Tuple[int, int]
    direction: Direction
    chosen_type_id: str
    before: List[str]
    after: List[str]
    joker_substituted: bool = False


@dataclass
class ContradictionReport:
    """Diagnostic for an attempt that ended with an empty candidate set.

    ``source`` and ``trigger_type_id`` are ``None`` when the cell started
    the attempt with no candidates at all.
    """

    attempt: int
    seed: int
    cell: Tuple[int, int]
    usage_blocked: bool
    reason: str
    trigger_type_id: Optional[str] = None
    direction: Optional[Direction] = None
    source: Optional[Tuple[int, int]] = None
    before: List[str] = field(default_factory=list)
    after: List[str] = field(default_factory=list)
    source_neighborhood: List[CellSnapshot] = field(default_factory=list)
    cell_neighborhood: List[CellSnapshot] = field(default_factory=list)

    def describe(self) -> str:
        x, y = self.cell
        parts = [
            f"attempt {self.attempt} (seed {self.seed}): {self.reason} at ({x},{y})",
            f"blocked={self.usage_blocked}",
        ]
        if self.source is not None:
            parts.append(
                f"after {self.trigger_type_id} at {self.source} towards {self.direction.value}"
            )
        parts.append(f"candidates {len(self.before)}->{len(self.after)} {self.before}")
        return ", ".join(parts)

    def to_jsonable(self) -> dict:
        return {
            "attempt": self.attempt,
            "seed": self.seed,
            "cell": list(self.cell),
            "usage_blocked": self.usage_blocked,
            "reason": self.reason,
            "trigger_type_id": self.trigger_type_id,
            "direction": self.direction.value if self.direction else None,
            "source": list(self.source) if self.source else None,
            "before": list(self.before),
            "after": list(self.after),
            "source_neighborhood": [snap.to_jsonable() for snap in self.source_neighborhood],
            "cell_neighborhood": [snap.to_jsonable() for snap in self.cell_neighborhood],
        }
