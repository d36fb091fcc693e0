"""CLI entrypoint for the tile collapse grid filler."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from tilecollapse.core.exceptions import CatalogError, TileCollapseError
from tilecollapse.data.catalog import TileCatalog, derive_catalog, load_catalog
from tilecollapse.engine.feasibility import find_consistent_assignment
from tilecollapse.engine.generator import CollapseConfig, TileCollapseGenerator
from tilecollapse.engine.grid import TileGrid
from tilecollapse.engine.run_store import RunStore
from tilecollapse.utils.logger import configure_logging, get_logger
from tilecollapse.utils.pretty import print_result_stats


LOGGER = get_logger("tilecollapse.cli")


def parse_rows_file(path: Path) -> List[str]:
    """Read grid rows from a file, first line = y 0. Blank lines and // comments are skipped."""
    rows: List[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("//"):
            continue
        rows.append(stripped)
    return rows


def parse_sample_file(path: Path) -> TileGrid:
    """Read a painted sample: whitespace-separated type ids, one row per line."""
    rows = [row.split() for row in parse_rows_file(path)]
    return TileGrid.from_rows(rows)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fill a grid with tiles honouring directional adjacency rules",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--catalog", type=Path, help="Path to a JSON tile catalog")
    source.add_argument(
        "--derive-from",
        type=Path,
        metavar="SAMPLE",
        help="Derive the catalog from a painted sample grid (whitespace-separated ids)",
    )
    parser.add_argument("--width", type=int, required=True, help="Grid width in cells")
    parser.add_argument("--height", type=int, required=True, help="Grid height in cells")
    parser.add_argument(
        "--blocked-file",
        type=Path,
        help="Usage mask, one row per line; '#', 'X' or '1' marks a blocked cell",
    )
    parser.add_argument(
        "--respect-usage-blocked",
        action="store_true",
        help="Use separate tile pools for blocked and unblocked cells",
    )
    parser.add_argument(
        "--blocked-types",
        nargs="*",
        default=[],
        metavar="TYPE",
        help="Type ids allowed on blocked cells (empty = unrestricted)",
    )
    parser.add_argument(
        "--unblocked-types",
        nargs="*",
        default=[],
        metavar="TYPE",
        help="Type ids allowed on unblocked cells (empty = unrestricted)",
    )
    parser.add_argument("--restart", action="store_true", help="Retry after a contradiction")
    parser.add_argument("--max-retries", type=int, default=3, help="Additional attempts allowed")
    parser.add_argument(
        "--same-seed-on-retry",
        action="store_true",
        help="Reuse the base seed on every retry instead of base_seed + attempt",
    )
    parser.add_argument("--seed", type=int, default=0, help="Base random seed")
    parser.add_argument("--verbose", action="store_true", help="Trace candidate pools and removals")
    parser.add_argument(
        "--diagnose",
        action="store_true",
        help="On failure, check with CP-SAT whether any consistent assignment exists",
    )
    parser.add_argument(
        "--diagnose-timeout",
        type=float,
        default=10.0,
        help="CP-SAT time limit in seconds for --diagnose",
    )
    parser.add_argument("--store-dir", type=Path, help="Save run documents under this directory")
    parser.add_argument("--output", type=Path, help="Optional path to JSON output")
    parser.add_argument("--pretty", action="store_true", help="Print the grid and stats")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = getattr(logging, args.log_level.upper(), logging.INFO)
    configure_logging(level)

    if args.max_retries < 0:
        parser.error("--max-retries must be >= 0")
    if (args.blocked_types or args.unblocked_types) and not args.respect_usage_blocked:
        parser.error("--blocked-types/--unblocked-types require --respect-usage-blocked")

    try:
        catalog: TileCatalog = (
            load_catalog(args.catalog) if args.catalog else derive_catalog(parse_sample_file(args.derive_from))
        )
        grid = TileGrid(args.width, args.height)
    except (CatalogError, OSError, ValueError) as exc:
        parser.error(str(exc))
    if args.blocked_file:
        try:
            grid.set_blocked_mask(parse_rows_file(args.blocked_file))
        except (OSError, UnicodeDecodeError) as exc:
            parser.error(f"Cannot read blocked file {args.blocked_file}: {exc}")

    config = CollapseConfig(
        respect_usage_blocked=args.respect_usage_blocked,
        blocked_type_ids=frozenset(args.blocked_types),
        unblocked_type_ids=frozenset(args.unblocked_types),
        restart_on_failure=args.restart,
        max_retries=args.max_retries,
        use_new_seed_on_retry=not args.same_seed_on_retry,
        verbose_logging=args.verbose,
        base_seed=args.seed,
    )
    store: Optional[RunStore] = RunStore(args.store_dir) if args.store_dir else None
    generator = TileCollapseGenerator(catalog, config)

    try:
        result = generator.generate(grid)
    except TileCollapseError as exc:
        payload: Dict[str, Any] = {"status": "failed", "error": str(exc)}
        report = getattr(exc, "report", None)
        if report is not None:
            payload["report"] = report.to_jsonable()
        if args.diagnose:
            assignment = find_consistent_assignment(
                grid, catalog, config, timeout=args.diagnose_timeout
            )
            payload["satisfiable"] = assignment is not None
            if assignment is None:
                LOGGER.error("No consistent assignment exists for this catalog and grid")
            else:
                LOGGER.warning("A consistent assignment exists; try other seeds or more retries")
        if store is not None:
            payload["document_id"] = store.save_failure(exc, config, grid)
        _emit(payload, args.output)
        return 1

    payload = {
        "status": "success",
        "seed": result.seed,
        "attempts": result.attempts,
        "joker_substitutions": result.joker_substitutions,
        "warnings": result.warnings,
        "grid": grid.to_jsonable(),
    }
    if store is not None:
        payload["document_id"] = store.save_success(result, config)
    if args.pretty:
        print_result_stats(result)
    _emit(payload, args.output)
    return 0


def _emit(payload: Dict[str, Any], output: Optional[Path]) -> None:
    output_text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output:
        output.write_text(output_text, encoding="utf-8")
    else:
        print(output_text)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
