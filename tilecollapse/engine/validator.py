"""Deterministic integrity checks for a committed tile assignment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from ..core.constants import Direction
from ..core.exceptions import ValidationError
from ..data.catalog import TileCatalog
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .generator import CollapseConfig


LOGGER = get_logger(__name__)


@dataclass
class ValidationResult:
    ok: bool
    messages: List[str]


class AssignmentValidator:
    """Runs deterministic validation over the collapsed grid.

    Pairs involving the catalog joker are exempt from the adjacency check:
    the joker is placed precisely where no consistent tile existed.
    """

    def __init__(self, catalog: TileCatalog) -> None:
        self.catalog = catalog

    def validate(self, grid, config: Optional["CollapseConfig"] = None) -> ValidationResult:
        try:
            self._check_complete(grid)
            self._check_adjacency(grid)
            if config is not None and config.respect_usage_blocked:
                self._check_partition(grid, config)
        except ValidationError as exc:
            LOGGER.error("Validation failed: %s", exc)
            return ValidationResult(ok=False, messages=[str(exc)])
        return ValidationResult(ok=True, messages=[])

    def _check_complete(self, grid) -> None:
        for y in range(grid.height):
            for x in range(grid.width):
                type_id = grid.cell(x, y).type_id
                if not type_id:
                    raise ValidationError(f"Cell ({x},{y}) has no tile assigned")
                if type_id not in self.catalog:
                    raise ValidationError(f"Cell ({x},{y}) holds unknown tile '{type_id}'")

    def _check_adjacency(self, grid) -> None:
        joker = self.catalog.joker
        for y in range(grid.height):
            for x in range(grid.width):
                rule = self.catalog.get(grid.cell(x, y).type_id)
                for direction in (Direction.RIGHT, Direction.FORWARD):
                    dx, dy = direction.step
                    nx, ny = x + dx, y + dy
                    if nx >= grid.width or ny >= grid.height:
                        continue
                    other = self.catalog.get(grid.cell(nx, ny).type_id)
                    if joker is not None and (rule is joker or other is joker):
                        continue
                    if not rule.compatible_with(other, direction):
                        raise ValidationError(
                            f"Adjacency violation: {rule.type_id} at ({x},{y}) and "
                            f"{other.type_id} at ({nx},{ny}) ({direction.value})"
                        )

    def _check_partition(self, grid, config: "CollapseConfig") -> None:
        joker = self.catalog.joker
        for y in range(grid.height):
            for x in range(grid.width):
                cell = grid.cell(x, y)
                if joker is not None and cell.type_id == joker.type_id:
                    continue
                allowed = (
                    config.blocked_type_ids if cell.usage_blocked else config.unblocked_type_ids
                )
                if allowed and cell.type_id not in allowed:
                    label = "blocked" if cell.usage_blocked else "unblocked"
                    raise ValidationError(
                        f"Tile '{cell.type_id}' at ({x},{y}) is not allowed on {label} cells"
                    )
