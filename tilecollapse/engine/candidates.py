"""Per-cell candidate state for one solving attempt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence, Tuple, Union

from ..core.constants import DIRECTION_ORDER, Bounds, Direction
from ..core.models import CellSnapshot, TileRule
from ..data.catalog import TileCatalog
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .generator import CollapseConfig


LOGGER = get_logger(__name__)


@dataclass
class Undecided:
    """Cell still open; ``candidates`` only shrinks during an attempt."""

    candidates: List[TileRule]

    @property
    def count(self) -> int:
        return len(self.candidates)


@dataclass
class Decided:
    """Cell whose tile has been chosen, applied and propagated."""

    rule: TileRule


CellState = Union[Undecided, Decided]


class CandidateStore:
    """Flat, row-major array of cell states (index ``y * width + x``)."""

    def __init__(
        self,
        bounds: Bounds,
        states: List[CellState],
        usage_blocked: Sequence[bool],
    ) -> None:
        if len(states) != bounds.cell_count or len(usage_blocked) != bounds.cell_count:
            raise ValueError("Candidate store size does not match the grid bounds")
        self.bounds = bounds
        self.states = states
        self.usage_blocked = list(usage_blocked)
        self.warnings: List[str] = []

    @classmethod
    def initialize(cls, grid, catalog: TileCatalog, config: "CollapseConfig") -> "CandidateStore":
        """Seed every cell with its eligible pool.

        Pools are computed once and shared by reference as templates; each
        cell receives its own list copy.
        """

        bounds = Bounds(width=grid.width, height=grid.height)
        usage_blocked = [
            bool(grid.cell(x, y).usage_blocked)
            for y in range(bounds.height)
            for x in range(bounds.width)
        ]
        joker = catalog.joker
        warnings: List[str] = []

        if config.respect_usage_blocked:
            blocked_pool, unblocked_pool = catalog.partition(
                config.blocked_type_ids, config.unblocked_type_ids
            )
            for label, pool in (("blocked", blocked_pool), ("unblocked", unblocked_pool)):
                if not pool:
                    message = (
                        f"NoPartitionedCandidates: the {label} pool is empty; "
                        f"{label} cells fall back to "
                        f"{'the joker' if joker else 'no candidates'}"
                    )
                    LOGGER.warning(message)
                    warnings.append(message)
        else:
            blocked_pool = unblocked_pool = catalog.selectable_rules

        if config.verbose_logging:
            LOGGER.info(
                "Candidate pools: blocked=%s unblocked=%s joker=%s",
                [rule.type_id for rule in blocked_pool],
                [rule.type_id for rule in unblocked_pool],
                joker.type_id if joker else None,
            )

        fallback = [joker] if joker is not None else []
        states: List[CellState] = []
        for blocked in usage_blocked:
            pool = blocked_pool if blocked else unblocked_pool
            states.append(Undecided(list(pool) if pool else list(fallback)))

        store = cls(bounds, states, usage_blocked)
        store.warnings = warnings
        return store

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.states)

    def state(self, index: int) -> CellState:
        return self.states[index]

    def candidates(self, index: int) -> List[TileRule]:
        state = self.states[index]
        if isinstance(state, Decided):
            return [state.rule]
        return state.candidates

    def coords(self, index: int) -> Tuple[int, int]:
        return self.bounds.coords(index)

    def neighbors(self, index: int) -> Iterator[Tuple[Direction, int]]:
        x, y = self.bounds.coords(index)
        for direction in DIRECTION_ORDER:
            dx, dy = direction.step
            nx, ny = x + dx, y + dy
            if self.bounds.contains(nx, ny):
                yield direction, ny * self.bounds.width + nx

    def first_singleton(self) -> Optional[int]:
        """Row-major index of the first undecided cell with one candidate."""
        for index, state in enumerate(self.states):
            if isinstance(state, Undecided) and state.count == 1:
                return index
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def decide(self, index: int, rule: TileRule) -> None:
        self.states[index] = Decided(rule)

    def replace(self, index: int, candidates: List[TileRule]) -> None:
        state = self.states[index]
        if isinstance(state, Decided):
            raise ValueError(f"Cell {self.coords(index)} is already decided")
        state.candidates = candidates

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def snapshot(self, index: int) -> CellSnapshot:
        x, y = self.coords(index)
        state = self.states[index]
        if isinstance(state, Decided):
            return CellSnapshot(x, y, self.usage_blocked[index], state.rule.type_id)
        return CellSnapshot(
            x,
            y,
            self.usage_blocked[index],
            None,
            tuple(rule.type_id for rule in state.candidates),
        )

    def neighborhood(self, index: int) -> List[CellSnapshot]:
        """Snapshot of a cell and its in-bounds lateral neighbors."""
        snapshots = [self.snapshot(index)]
        snapshots.extend(self.snapshot(neighbor) for _, neighbor in self.neighbors(index))
        return snapshots
