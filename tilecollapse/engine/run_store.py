"""Persistent collapse run store.

Every CLI run (success or failure) can be saved as a JSON document under
``local_db/collections/collapse_runs/``. Failure documents carry the full
contradiction report, including the neighborhood snapshots, so a failed
seed can be inspected without running the solver again.
"""

from __future__ import annotations

import json
import uuid
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..core.exceptions import ContradictionError, RetriesExhaustedError, TileCollapseError
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .generator import CollapseConfig, CollapseResult
    from .grid import TileGrid


LOGGER = get_logger(__name__)

DEFAULT_STORE_DIR = Path("local_db/collections/collapse_runs")


class RunStore:
    """Save collapse results and failures as structured JSON documents."""

    def __init__(self, store_dir: Path | str = DEFAULT_STORE_DIR) -> None:
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def save_success(self, result: "CollapseResult", config: "CollapseConfig") -> str:
        """Persist a successful collapse and return its document ID."""
        doc_id = self._new_id()
        doc = {
            "id": doc_id,
            "created_at": self._now(),
            "status": "success",
            "config": config.to_jsonable(),
            "seed": result.seed,
            "attempts": result.attempts,
            "failed_attempts": [report.to_jsonable() for report in result.failed_reports],
            "warnings": result.warnings,
            "grid": result.grid.to_jsonable(),
            "stats": {
                "joker_substitutions": result.joker_substitutions,
                "type_counts": dict(
                    Counter(type_id for row in result.grid.to_rows() for type_id in row)
                ),
            },
        }
        self._write(doc_id, doc)
        LOGGER.info("Collapse run saved: %s", doc_id)
        return doc_id

    def save_failure(
        self,
        error: TileCollapseError,
        config: "CollapseConfig",
        grid: Optional["TileGrid"] = None,
    ) -> str:
        """Persist a failed collapse and return its document ID."""
        doc_id = self._new_id()
        doc = {
            "id": doc_id,
            "created_at": self._now(),
            "status": "failed",
            "error": str(error),
            "error_kind": type(error).__name__,
            "config": config.to_jsonable(),
            "report": error.report.to_jsonable() if isinstance(error, ContradictionError) else None,
            "attempts": error.attempts if isinstance(error, RetriesExhaustedError) else 1,
            "grid": grid.to_jsonable() if grid is not None else None,
        }
        self._write(doc_id, doc)
        LOGGER.info("Collapse failure saved: %s", doc_id)
        return doc_id

    def load(self, doc_id: str) -> dict:
        path = self.store_dir / f"{doc_id}.json"
        return json.loads(path.read_text(encoding="utf-8"))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _write(self, doc_id: str, doc: dict) -> None:
        path = self.store_dir / f"{doc_id}.json"
        path.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
