"""Contradiction handling and bounded retry orchestration.

The generator snapshots every cell's type id before the first attempt and
restores it after any failed attempt, including a lone attempt run with
``restart_on_failure`` disabled. Callers therefore never observe a
partially collapsed grid: either every cell is assigned or the grid is
exactly as it was handed in.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import AbstractSet, List, Optional

from ..core.exceptions import (
    ContradictionError,
    EmptyCatalogError,
    RetriesExhaustedError,
    ValidationError,
)
from ..core.models import ContradictionReport, RemovalTrace
from ..data.catalog import TileCatalog
from ..utils.logger import get_logger
from .solver import RngFactory, run_attempt
from .validator import AssignmentValidator


LOGGER = get_logger(__name__)


@dataclass
class CollapseConfig:
    respect_usage_blocked: bool = False
    blocked_type_ids: AbstractSet[str] = frozenset()
    unblocked_type_ids: AbstractSet[str] = frozenset()
    restart_on_failure: bool = False
    max_retries: int = 3
    use_new_seed_on_retry: bool = True
    verbose_logging: bool = False
    base_seed: int = 0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        self.blocked_type_ids = frozenset(self.blocked_type_ids)
        self.unblocked_type_ids = frozenset(self.unblocked_type_ids)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1 if self.restart_on_failure else 1

    def seed_for(self, attempt: int) -> int:
        return self.base_seed + attempt if self.use_new_seed_on_retry else self.base_seed

    def to_jsonable(self) -> dict:
        return {
            "respect_usage_blocked": self.respect_usage_blocked,
            "blocked_type_ids": sorted(self.blocked_type_ids),
            "unblocked_type_ids": sorted(self.unblocked_type_ids),
            "restart_on_failure": self.restart_on_failure,
            "max_retries": self.max_retries,
            "use_new_seed_on_retry": self.use_new_seed_on_retry,
            "verbose_logging": self.verbose_logging,
            "base_seed": self.base_seed,
        }


@dataclass
class CollapseResult:
    grid: object
    seed: int
    attempts: int
    failed_reports: List[ContradictionReport] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    trace: List[RemovalTrace] = field(default_factory=list)
    validation_messages: List[str] = field(default_factory=list)
    joker_substitutions: int = 0


class TileCollapseGenerator:
    """High-level orchestrator: attempts, snapshot restore and reporting."""

    def __init__(
        self,
        catalog: TileCatalog,
        config: Optional[CollapseConfig] = None,
        rng_factory: RngFactory = random.Random,
    ) -> None:
        self.catalog = catalog
        self.config = config or CollapseConfig()
        self.rng_factory = rng_factory
        self.validator = AssignmentValidator(catalog)

    # ------------------------------------------------------------------
    # Public entrypoint
    # ------------------------------------------------------------------
    def generate(self, grid) -> CollapseResult:
        if not self.catalog.is_usable:
            LOGGER.error("No usable tiles: catalog has no weighted tile and no joker")
            raise EmptyCatalogError("Catalog has no weighted tile and no joker")

        snapshot = _snapshot_type_ids(grid)
        attempts = self.config.max_attempts
        failed: List[ContradictionReport] = []

        for attempt in range(attempts):
            seed = self.config.seed_for(attempt)
            LOGGER.info("Collapse attempt %s/%s (seed %s)", attempt + 1, attempts, seed)
            outcome = run_attempt(
                grid,
                self.catalog,
                self.config,
                seed,
                attempt=attempt,
                rng_factory=self.rng_factory,
            )

            if outcome.success:
                validation = self.validator.validate(grid, self.config)
                if not validation.ok:
                    _restore_type_ids(grid, snapshot)
                    raise ValidationError(
                        f"Collapsed grid failed validation: {validation.messages}"
                    )
                LOGGER.info(
                    "Collapsed %dx%d grid on attempt %d (seed %d, %d jokers)",
                    grid.width,
                    grid.height,
                    attempt + 1,
                    seed,
                    outcome.joker_substitutions,
                )
                return CollapseResult(
                    grid=grid,
                    seed=seed,
                    attempts=attempt + 1,
                    failed_reports=failed,
                    warnings=outcome.warnings,
                    trace=outcome.trace,
                    validation_messages=validation.messages,
                    joker_substitutions=outcome.joker_substitutions,
                )

            _restore_type_ids(grid, snapshot)
            failed.append(outcome.report)
            if attempt + 1 < attempts:
                LOGGER.warning(
                    "Attempt %d/%d (seed %d) failed, retrying: %s",
                    attempt + 1,
                    attempts,
                    seed,
                    outcome.report.describe(),
                )

        report = failed[-1]
        LOGGER.error("Collapse failed after %d attempt(s): %s", attempts, report.describe())
        if self.config.restart_on_failure:
            raise RetriesExhaustedError(report, attempts, failed)
        raise ContradictionError(report)


def _snapshot_type_ids(grid) -> List[str]:
    return [grid.cell(x, y).type_id for y in range(grid.height) for x in range(grid.width)]


def _restore_type_ids(grid, snapshot: List[str]) -> None:
    for index, type_id in enumerate(snapshot):
        grid.cell(index % grid.width, index // grid.width).type_id = type_id
