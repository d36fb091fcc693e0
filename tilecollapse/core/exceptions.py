"""Custom exception hierarchy for tile collapse generation."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .models import ContradictionReport


class TileCollapseError(Exception):
    """Base exception for solver failures."""


class CatalogError(TileCollapseError):
    """Raised when a tile catalog is malformed or cannot be read."""


class EmptyCatalogError(TileCollapseError):
    """Raised when no tile is usable at all, joker included."""


class ContradictionError(TileCollapseError):
    """Raised when an attempt ends with an empty candidate set."""

    def __init__(self, report: "ContradictionReport", message: Optional[str] = None) -> None:
        super().__init__(message or report.describe())
        self.report = report


class RetriesExhaustedError(ContradictionError):
    """Raised when every allowed attempt ended in a contradiction."""

    def __init__(
        self,
        report: "ContradictionReport",
        attempts: int,
        failed_reports: Optional[List["ContradictionReport"]] = None,
    ) -> None:
        super().__init__(
            report,
            f"Unable to collapse grid after {attempts} attempts; last: {report.describe()}",
        )
        self.attempts = attempts
        self.failed_reports = list(failed_reports or [])


class ValidationError(TileCollapseError):
    """Raised when a committed assignment fails the integrity checks."""
