"""Pretty-print helpers for collapsed grids."""

from __future__ import annotations

import sys
from collections import Counter
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from ..engine.generator import CollapseResult
    from ..engine.grid import TileGrid


UNASSIGNED = "."


def symbol_table(type_ids: List[str]) -> Dict[str, str]:
    """Map each type id to a single display character.

    Uses the first free character of the id, falling back to digits.
    """

    table: Dict[str, str] = {}
    used = {UNASSIGNED}
    fallback = iter("0123456789abcdefghijklmnopqrstuvwxyz")
    for type_id in type_ids:
        if type_id in table:
            continue
        symbol = next((ch for ch in type_id if ch not in used and not ch.isspace()), None)
        if symbol is None:
            symbol = next((ch for ch in fallback if ch not in used), "?")
        table[type_id] = symbol
        used.add(symbol)
    return table


def format_grid(grid: TileGrid, symbols: Optional[Dict[str, str]] = None) -> str:
    # Forward is +y, so the last row prints first.
    rows = grid.to_rows()
    symbols = symbols or symbol_table(sorted({t for row in rows for t in row if t}))
    width = grid.width
    lines = ["    " + " ".join(f"{x:>2}" for x in range(width))]
    lines.append("    " + "-" * (3 * width - 1))
    for y in reversed(range(grid.height)):
        rendered = []
        for x in range(width):
            cell = grid.cell(x, y)
            symbol = symbols.get(cell.type_id, UNASSIGNED) if cell.type_id else UNASSIGNED
            rendered.append(f"{symbol:>2}")
        lines.append(f"{y:>2} | {' '.join(rendered)}")
    return "\n".join(lines)


def pretty_print_grid(grid: TileGrid, *, label: str | None = None, stream=None) -> None:
    """Print the grid in a human-friendly format."""

    stream = stream or sys.stdout
    if label:
        print(label, file=stream)
    print(format_grid(grid), file=stream)


def print_result_stats(result: CollapseResult, *, stream=None) -> None:
    """Print grid + legend + attempt stats for a completed collapse."""

    stream = stream or sys.stdout
    grid = result.grid
    rows = grid.to_rows()
    counts = Counter(t for row in rows for t in row)
    symbols = symbol_table(sorted(counts))
    print(format_grid(grid, symbols), file=stream)

    total = grid.width * grid.height
    print(file=stream)
    print("--- Tiles ---", file=stream)
    for type_id, count in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        print(
            f"  {symbols.get(type_id, '?')}  {type_id:<16} {count:>4} ({count / total * 100:.0f}%)",
            file=stream,
        )

    print(file=stream)
    print("--- Run ---", file=stream)
    print(f"  Size:          {grid.width} x {grid.height} ({total} cells)", file=stream)
    print(f"  Attempts:      {result.attempts}", file=stream)
    print(f"  Jokers:        {result.joker_substitutions}", file=stream)
    for report in result.failed_reports:
        print(f"  Failed:        {report.describe()}", file=stream)
    for warning in result.warnings:
        print(f"  Warning:       {warning}", file=stream)
    print(f"Seed: {result.seed}", file=stream)
