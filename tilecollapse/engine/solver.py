"""Entropy selection, weighted collapse and constraint propagation.

One call to :func:`run_attempt` is a full solving pass: seed the candidate
store, then alternate selection/collapse with propagation until every cell
is decided or a candidate set empties with no joker to fall back on.

Cells left with a single candidate are handled lazily: the entropy scan
skips them, and only once no cell with two or more candidates remains are
they applied one at a time in row-major order, each propagated before the
next is looked up.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Union

from ..core.constants import Direction
from ..core.models import ContradictionReport, RemovalTrace, TileRule
from ..data.catalog import TileCatalog
from ..utils.logger import get_logger
from .candidates import CandidateStore, Decided, Undecided

if TYPE_CHECKING:
    from .generator import CollapseConfig


LOGGER = get_logger(__name__)

RngFactory = Callable[[int], random.Random]


class SelectionKind(str, Enum):
    PICK = "PICK"
    DONE = "DONE"
    CONTRADICTION = "CONTRADICTION"


@dataclass(frozen=True)
class Selection:
    kind: SelectionKind
    index: Optional[int] = None


@dataclass(frozen=True)
class Progress:
    """Propagation finished without emptying a neighbor."""

    removed: int = 0


@dataclass(frozen=True)
class Contradiction:
    """Propagation emptied ``cell_index`` and no joker was available."""

    cell_index: int
    source_index: int
    rule: TileRule
    direction: Direction
    before: List[str]


PropagationResult = Union[Progress, Contradiction]


@dataclass
class AttemptOutcome:
    attempt: int
    seed: int
    success: bool = False
    report: Optional[ContradictionReport] = None
    decisions: int = 0
    joker_substitutions: int = 0
    trace: List[RemovalTrace] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ----------------------------------------------------------------------
# Entropy selection
# ----------------------------------------------------------------------
def select_cell(store: CandidateStore) -> Selection:
    """Pick the undecided cell with the fewest (>= 2) candidates.

    Ties go to the lowest row-major index. Any undecided cell with no
    candidates short-circuits to a contradiction.
    """

    best_index: Optional[int] = None
    best_count = 0
    for index, state in enumerate(store.states):
        if isinstance(state, Decided):
            continue
        count = state.count
        if count == 0:
            return Selection(SelectionKind.CONTRADICTION, index)
        if count == 1:
            continue
        if best_index is None or count < best_count:
            best_index = index
            best_count = count
    if best_index is None:
        return Selection(SelectionKind.DONE)
    return Selection(SelectionKind.PICK, best_index)


# ----------------------------------------------------------------------
# Weighted collapse
# ----------------------------------------------------------------------
def weighted_collapse(
    candidates: Sequence[TileRule],
    rng: random.Random,
    joker: Optional[TileRule] = None,
) -> TileRule:
    """Draw one rule proportionally to weight, preferring non-joker rules.

    Negative weights count as zero. When the pool carries no weight at all
    the joker (or else the first entry) is returned without drawing.
    """

    if not candidates:
        raise ValueError("Cannot collapse an empty candidate set")

    non_joker = [rule for rule in candidates if not rule.is_joker]
    pool = non_joker or list(candidates)

    total_weight = sum(max(0.0, rule.weight) for rule in pool)
    if total_weight <= 0:
        return joker if joker is not None else pool[0]

    threshold = rng.random() * total_weight
    accumulated = 0.0
    for rule in pool:
        weight = max(0.0, rule.weight)
        if weight <= 0:
            continue
        accumulated += weight
        if threshold <= accumulated:
            return rule

    # float rounding can leave the threshold a hair above the final sum
    return next(rule for rule in reversed(pool) if rule.weight > 0)


# ----------------------------------------------------------------------
# Propagation
# ----------------------------------------------------------------------
def propagate(
    store: CandidateStore,
    index: int,
    rule: TileRule,
    joker: Optional[TileRule],
    trace: Optional[List[RemovalTrace]] = None,
) -> PropagationResult:
    """Filter the lateral neighbors of ``index`` against the fixed ``rule``.

    A candidate survives only if ``rule`` allows it in that direction and it
    allows ``rule`` back in the opposite direction. Stops at the first
    neighbor that empties when there is no joker.
    """

    removed_total = 0
    for direction, neighbor in store.neighbors(index):
        state = store.state(neighbor)
        if not isinstance(state, Undecided):
            continue
        before = state.candidates
        if joker is not None and len(before) == 1 and before[0] is joker:
            continue
        kept = [candidate for candidate in before if rule.compatible_with(candidate, direction)]
        if len(kept) == len(before):
            continue

        substituted = False
        if not kept:
            if joker is None:
                return Contradiction(
                    cell_index=neighbor,
                    source_index=index,
                    rule=rule,
                    direction=direction,
                    before=[candidate.type_id for candidate in before],
                )
            kept = [joker]
            substituted = True

        removed_total += len(before) if substituted else len(before) - len(kept)
        store.replace(neighbor, kept)
        if trace is not None:
            record = RemovalTrace(
                source=store.coords(index),
                target=store.coords(neighbor),
                direction=direction,
                chosen_type_id=rule.type_id,
                before=[candidate.type_id for candidate in before],
                after=[candidate.type_id for candidate in kept],
                joker_substituted=substituted,
            )
            trace.append(record)
            LOGGER.info(
                "Propagate %s at %s -> %s %s: %s -> %s%s",
                record.chosen_type_id,
                record.source,
                record.target,
                direction.value,
                record.before,
                record.after,
                " (joker)" if substituted else "",
            )
    return Progress(removed=removed_total)


def apply_choice(
    grid,
    store: CandidateStore,
    index: int,
    rule: TileRule,
    joker: Optional[TileRule],
    trace: Optional[List[RemovalTrace]] = None,
) -> PropagationResult:
    """Commit ``rule`` to the cell, write it to the grid and propagate."""

    x, y = store.coords(index)
    store.decide(index, rule)
    grid.cell(x, y).type_id = rule.type_id
    return propagate(store, index, rule, joker, trace)


# ----------------------------------------------------------------------
# One attempt
# ----------------------------------------------------------------------
def run_attempt(
    grid,
    catalog: TileCatalog,
    config: "CollapseConfig",
    seed: int,
    attempt: int = 0,
    rng_factory: RngFactory = random.Random,
) -> AttemptOutcome:
    """Run one full solve pass, writing decided type ids into ``grid``.

    The caller owns restoring the grid when the outcome is not a success.
    """

    rng = rng_factory(seed)
    store = CandidateStore.initialize(grid, catalog, config)
    joker = catalog.joker
    trace: Optional[List[RemovalTrace]] = [] if config.verbose_logging else None
    outcome = AttemptOutcome(attempt=attempt, seed=seed, warnings=list(store.warnings))

    while True:
        selection = select_cell(store)
        if selection.kind is SelectionKind.CONTRADICTION:
            outcome.report = _empty_start_report(store, selection.index, attempt, seed)
            break

        if selection.kind is SelectionKind.PICK:
            index = selection.index
            rule = weighted_collapse(store.candidates(index), rng, joker)
        else:
            index = store.first_singleton()
            if index is None:
                outcome.success = True
                break
            rule = store.candidates(index)[0]

        if joker is not None and rule is joker:
            outcome.joker_substitutions += 1
        result = apply_choice(grid, store, index, rule, joker, trace)
        outcome.decisions += 1
        if isinstance(result, Contradiction):
            outcome.report = _contradiction_report(store, result, attempt, seed)
            break

    outcome.trace = trace or []
    if outcome.success:
        LOGGER.debug(
            "Attempt %d (seed %d) decided %d cells, %d jokers",
            attempt,
            seed,
            outcome.decisions,
            outcome.joker_substitutions,
        )
    return outcome


def _empty_start_report(
    store: CandidateStore, index: int, attempt: int, seed: int
) -> ContradictionReport:
    return ContradictionReport(
        attempt=attempt,
        seed=seed,
        cell=store.coords(index),
        usage_blocked=store.usage_blocked[index],
        reason="cell has no eligible candidates",
        cell_neighborhood=store.neighborhood(index),
    )


def _contradiction_report(
    store: CandidateStore, contradiction: Contradiction, attempt: int, seed: int
) -> ContradictionReport:
    index = contradiction.cell_index
    return ContradictionReport(
        attempt=attempt,
        seed=seed,
        cell=store.coords(index),
        usage_blocked=store.usage_blocked[index],
        reason="candidate set emptied with no joker",
        trigger_type_id=contradiction.rule.type_id,
        direction=contradiction.direction,
        source=store.coords(contradiction.source_index),
        before=list(contradiction.before),
        after=[],
        source_neighborhood=store.neighborhood(contradiction.source_index),
        cell_neighborhood=store.neighborhood(index),
    )
