"""Constrained tile collapse (Wave Function Collapse style) grid filler.

This package exposes the public API surface via:

- ``tilecollapse.engine.generator.TileCollapseGenerator``: runs attempts with
  snapshot restore and bounded reseeded retries.
- ``tilecollapse.data.catalog.TileCatalog``: validated tile rules, joker and
  blocked/unblocked pools.
- ``tilecollapse.engine.grid.TileGrid``: a minimal host grid; any object with
  the same ``width``/``height``/``cell(x, y)`` surface works too.
"""

from .core.constants import Direction
from .core.exceptions import (
    CatalogError,
    ContradictionError,
    EmptyCatalogError,
    RetriesExhaustedError,
    TileCollapseError,
    ValidationError,
)
from .core.models import ContradictionReport, TileRule
from .data.catalog import TileCatalog, derive_catalog, load_catalog
from .engine.generator import CollapseConfig, CollapseResult, TileCollapseGenerator
from .engine.grid import TileCell, TileGrid

__all__ = [
    "CatalogError",
    "CollapseConfig",
    "CollapseResult",
    "ContradictionError",
    "ContradictionReport",
    "Direction",
    "EmptyCatalogError",
    "RetriesExhaustedError",
    "TileCatalog",
    "TileCell",
    "TileCollapseError",
    "TileCollapseGenerator",
    "TileGrid",
    "TileRule",
    "ValidationError",
    "derive_catalog",
    "load_catalog",
]

__version__ = "0.1.0"
