"""Tile rule catalog loading, partitioning and derivation."""

from __future__ import annotations

import json
from collections import Counter, defaultdict
from pathlib import Path
from typing import TYPE_CHECKING, AbstractSet, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from ..core.constants import DIRECTION_ORDER, Direction
from ..core.exceptions import CatalogError
from ..core.models import TileRule
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..engine.grid import TileGrid


LOGGER = get_logger(__name__)


class TileCatalog:
    """Ordered, validated collection of :class:`TileRule` records."""

    def __init__(self, rules: Iterable[TileRule]) -> None:
        self._rules: List[TileRule] = []
        self._by_id: Dict[str, TileRule] = {}
        self.joker: Optional[TileRule] = None

        for rule in rules:
            if rule is None or not rule.type_id or not rule.type_id.strip():
                LOGGER.warning("Skipping tile rule without a type id")
                continue
            if rule.type_id in self._by_id:
                raise CatalogError(f"Duplicate tile type id '{rule.type_id}'")
            if rule.weight < 0:
                raise CatalogError(
                    f"Tile '{rule.type_id}' has negative weight {rule.weight}"
                )
            if rule.is_joker:
                if self.joker is None:
                    self.joker = rule
                else:
                    LOGGER.warning(
                        "Tile '%s' is flagged joker but '%s' already is; only the first joker substitutes",
                        rule.type_id,
                        self.joker.type_id,
                    )
            self._rules.append(rule)
            self._by_id[rule.type_id] = rule

    def __iter__(self) -> Iterator[TileRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._by_id

    @property
    def type_ids(self) -> List[str]:
        return [rule.type_id for rule in self._rules]

    def get(self, type_id: str) -> Optional[TileRule]:
        return self._by_id.get(type_id)

    @property
    def selectable_rules(self) -> List[TileRule]:
        """Rules eligible for weighted selection, in catalog order."""
        return [rule for rule in self._rules if rule.selectable]

    @property
    def is_usable(self) -> bool:
        return bool(self.selectable_rules) or self.joker is not None

    def partition(
        self,
        blocked_ids: AbstractSet[str],
        unblocked_ids: AbstractSet[str],
    ) -> Tuple[List[TileRule], List[TileRule]]:
        """Split the selectable pool for blocked and unblocked cells.

        An empty id set leaves that side unrestricted.
        """

        pool = self.selectable_rules
        blocked = [rule for rule in pool if not blocked_ids or rule.type_id in blocked_ids]
        unblocked = [rule for rule in pool if not unblocked_ids or rule.type_id in unblocked_ids]
        return blocked, unblocked

    # ------------------------------------------------------------------
    # Serialization helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_dict(cls, payload: dict) -> "TileCatalog":
        if not isinstance(payload, dict):
            raise CatalogError("Catalog payload must be a JSON object")
        tiles = payload.get("tiles")
        if not isinstance(tiles, list):
            raise CatalogError("Catalog payload must contain a 'tiles' list")
        rules: List[TileRule] = []
        for entry in tiles:
            if not isinstance(entry, dict):
                raise CatalogError(f"Invalid tile entry: {entry!r}")
            neighbors = entry.get("allowed_neighbors") or {}
            if not isinstance(neighbors, dict):
                raise CatalogError(
                    f"'allowed_neighbors' of tile {entry.get('type_id')!r} must map directions to lists"
                )
            allowed: Dict[Direction, List[str]] = {}
            for key, ids in neighbors.items():
                try:
                    direction = Direction.parse(str(key))
                except ValueError as exc:
                    raise CatalogError(str(exc)) from exc
                if not isinstance(ids, list):
                    raise CatalogError(
                        f"Allowed {key} neighbors of tile {entry.get('type_id')!r} must be a list, "
                        f"got {ids!r}"
                    )
                allowed[direction] = [str(type_id) for type_id in ids]
            try:
                weight = float(entry.get("weight", 1.0))
            except (TypeError, ValueError) as exc:
                raise CatalogError(f"Invalid weight in tile entry {entry!r}") from exc
            rules.append(
                TileRule(
                    type_id=str(entry.get("type_id") or ""),
                    weight=weight,
                    is_joker=bool(entry.get("is_joker", False)),
                    allowed_neighbors=allowed,
                )
            )
        return cls(rules)

    def to_jsonable(self) -> dict:
        return {"tiles": [rule.to_jsonable() for rule in self._rules]}


def load_catalog(path: Path | str) -> TileCatalog:
    """Read a JSON catalog file."""

    source = Path(path)
    if not source.exists():
        raise CatalogError(f"Missing catalog file: {source}")
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise CatalogError(f"Catalog {source} is not valid JSON: {exc}") from exc
    catalog = TileCatalog.from_dict(payload)
    LOGGER.info("Loaded %d tile rules from %s", len(catalog), source)
    return catalog


def derive_catalog(sample: "TileGrid") -> TileCatalog:
    """Build a catalog from a hand-painted sample grid.

    Each type's weight is its occurrence count and each direction's
    allow-list holds every type observed on that side. Observations are
    recorded from both cells of a pair so the result is symmetric.
    """

    counts: Counter = Counter()
    directional: Dict[str, Dict[Direction, Set[str]]] = defaultdict(lambda: defaultdict(set))

    for y in range(sample.height):
        for x in range(sample.width):
            type_id = sample.cell(x, y).type_id
            if not type_id:
                continue
            counts[type_id] += 1
            for direction, nx, ny in sample.neighbors(x, y):
                neighbor = sample.cell(nx, ny).type_id
                if not neighbor:
                    continue
                directional[type_id][direction].add(neighbor)
                directional[neighbor][direction.opposite].add(type_id)

    if not counts:
        raise CatalogError("Sample grid has no painted cells")

    rules = [
        TileRule(
            type_id=type_id,
            weight=float(counts[type_id]),
            allowed_neighbors={
                direction: sorted(directional[type_id][direction])
                for direction in DIRECTION_ORDER
                if directional[type_id][direction]
            },
        )
        for type_id in sorted(counts)
    ]
    LOGGER.info(
        "Derived %d tile rules from %d painted cells", len(rules), sum(counts.values())
    )
    return TileCatalog(rules)
