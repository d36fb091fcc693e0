"""Exact satisfiability check for a catalog on a grid using OR-Tools CP-SAT.

The collapse solver is greedy and only looks one hop ahead, so a run of
failed attempts does not prove the catalog cannot tile the grid. This
module answers that question exactly: it either returns a locally
consistent assignment (using as few jokers as possible) or ``None``.
It never writes to the grid.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from ortools.sat.python import cp_model

from ..core.constants import Direction
from ..data.catalog import TileCatalog
from ..utils.logger import get_logger
from .candidates import CandidateStore

if TYPE_CHECKING:
    from .generator import CollapseConfig


LOGGER = get_logger(__name__)


def find_consistent_assignment(
    grid,
    catalog: TileCatalog,
    config: "CollapseConfig",
    timeout: float = 10.0,
) -> Optional[Dict[Tuple[int, int], str]]:
    """Search for an assignment honouring every adjacency and partition rule.

    Args:
        grid: Grid exposing ``width``, ``height`` and ``cell(x, y)``.
        catalog: Tile rules to place.
        config: Collapse configuration; only the partition settings are used.
        timeout: Solver time limit in seconds.

    Returns:
        Mapping of ``(x, y)`` to type id, or None if no assignment exists or
        none was found within the time limit.
    """

    rules = list(catalog)
    rule_index = {id(rule): position for position, rule in enumerate(rules)}
    joker = catalog.joker
    joker_value = rule_index[id(joker)] if joker is not None else None

    store = CandidateStore.initialize(grid, catalog, config)
    domains: List[List[int]] = []
    for index in range(len(store)):
        values = [rule_index[id(rule)] for rule in store.candidates(index)]
        if joker_value is not None and joker_value not in values:
            values.append(joker_value)
        if not values:
            LOGGER.info("Cell %s has no candidates; assignment impossible", store.coords(index))
            return None
        domains.append(values)

    model = cp_model.CpModel()
    cell_vars = []
    for index, values in enumerate(domains):
        x, y = store.coords(index)
        var = model.new_int_var(0, len(rules) - 1, f"T_{x}_{y}")
        model.add_allowed_assignments([var], [[value] for value in values])
        cell_vars.append(var)

    # ------------------------------------------------------------------
    # Adjacency tables, one per right/forward pair
    # ------------------------------------------------------------------
    for index in range(len(store)):
        for direction, neighbor in store.neighbors(index):
            if direction not in (Direction.RIGHT, Direction.FORWARD):
                continue
            pairs = _allowed_pairs(rules, domains[index], domains[neighbor], direction, joker_value)
            if not pairs:
                LOGGER.info(
                    "No compatible pair between %s and %s; assignment impossible",
                    store.coords(index),
                    store.coords(neighbor),
                )
                return None
            model.add_allowed_assignments([cell_vars[index], cell_vars[neighbor]], pairs)

    # ------------------------------------------------------------------
    # Prefer regular tiles: minimise joker placements
    # ------------------------------------------------------------------
    if joker_value is not None:
        joker_flags = []
        for index, var in enumerate(cell_vars):
            x, y = store.coords(index)
            flag = model.new_bool_var(f"J_{x}_{y}")
            model.add(var == joker_value).only_enforce_if(flag)
            model.add(var != joker_value).only_enforce_if(~flag)
            joker_flags.append(flag)
        model.minimize(sum(joker_flags))

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = timeout
    solver.parameters.num_workers = 4

    LOGGER.info(
        "CP-SAT: %d cells, %d tile types, solving (timeout=%0.1fs)...",
        len(cell_vars),
        len(rules),
        timeout,
    )
    status = solver.solve(model)
    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        LOGGER.info("CP-SAT: no assignment found (status=%s)", solver.status_name(status))
        return None

    LOGGER.info("CP-SAT: assignment found in %.2fs", solver.wall_time)
    return {
        store.coords(index): rules[solver.value(var)].type_id
        for index, var in enumerate(cell_vars)
    }


def _allowed_pairs(
    rules,
    left_values: List[int],
    right_values: List[int],
    direction: Direction,
    joker_value: Optional[int],
) -> List[List[int]]:
    """Value pairs for a cell and its neighbor in ``direction``; jokers pair with anything."""
    pairs: List[List[int]] = []
    for a in left_values:
        for b in right_values:
            if a == joker_value or b == joker_value or rules[a].compatible_with(rules[b], direction):
                pairs.append([a, b])
    return pairs
