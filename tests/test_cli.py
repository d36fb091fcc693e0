import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from main import main, parse_rows_file


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmpdir.name)

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def _write_catalog(self, tiles) -> Path:
        path = self.tmp / "catalog.json"
        path.write_text(json.dumps({"tiles": tiles}), encoding="utf-8")
        return path

    def _read_output(self) -> dict:
        return json.loads((self.tmp / "out.json").read_text(encoding="utf-8"))

    def test_successful_run_writes_grid(self) -> None:
        catalog = self._write_catalog(
            [
                {"type_id": "sea", "weight": 2, "allowed_neighbors": {"left": ["sea", "coast"]}},
                {"type_id": "coast"},
            ]
        )
        code = main(
            [
                "--catalog", str(catalog),
                "--width", "4",
                "--height", "3",
                "--seed", "7",
                "--output", str(self.tmp / "out.json"),
                "--log-level", "ERROR",
            ]
        )
        self.assertEqual(code, 0)
        payload = self._read_output()
        self.assertEqual(payload["status"], "success")
        self.assertEqual(payload["seed"], 7)
        self.assertEqual(len(payload["grid"]["type_ids"]), 3)

    def test_successful_run_is_saved_to_store(self) -> None:
        catalog = self._write_catalog([{"type_id": "grass"}])
        store_dir = self.tmp / "runs"
        code = main(
            [
                "--catalog", str(catalog),
                "--width", "2",
                "--height", "2",
                "--store-dir", str(store_dir),
                "--output", str(self.tmp / "out.json"),
                "--log-level", "ERROR",
            ]
        )
        self.assertEqual(code, 0)
        payload = self._read_output()
        doc = json.loads((store_dir / f"{payload['document_id']}.json").read_text(encoding="utf-8"))
        self.assertEqual(doc["status"], "success")
        self.assertEqual(doc["stats"]["type_counts"], {"grass": 4})

    def test_missing_blocked_file_is_a_usage_error(self) -> None:
        catalog = self._write_catalog([{"type_id": "grass"}])
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(
                    [
                        "--catalog", str(catalog),
                        "--width", "2",
                        "--height", "2",
                        "--blocked-file", str(self.tmp / "missing.txt"),
                    ]
                )
        self.assertEqual(ctx.exception.code, 2)

    def test_missing_sample_is_a_usage_error(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["--derive-from", str(self.tmp / "missing.txt"), "--width", "2", "--height", "2"])
        self.assertEqual(ctx.exception.code, 2)

    def test_failed_run_reports_and_diagnoses(self) -> None:
        catalog = self._write_catalog(
            [
                {"type_id": "red", "allowed_neighbors": {d: ["nothing"] for d in ("left", "right", "backward", "forward")}},
                {"type_id": "blue", "allowed_neighbors": {d: ["nothing"] for d in ("left", "right", "backward", "forward")}},
            ]
        )
        store_dir = self.tmp / "runs"
        code = main(
            [
                "--catalog", str(catalog),
                "--width", "2",
                "--height", "2",
                "--restart",
                "--max-retries", "1",
                "--diagnose",
                "--diagnose-timeout", "5",
                "--store-dir", str(store_dir),
                "--output", str(self.tmp / "out.json"),
                "--log-level", "CRITICAL",
            ]
        )
        self.assertEqual(code, 1)
        payload = self._read_output()
        self.assertEqual(payload["status"], "failed")
        self.assertFalse(payload["satisfiable"])
        self.assertEqual(payload["report"]["attempt"], 1)
        self.assertTrue((store_dir / f"{payload['document_id']}.json").exists())

    def test_derive_from_sample_with_blocked_mask(self) -> None:
        sample = self.tmp / "sample.txt"
        sample.write_text("// painted sample\nwall floor\nwall floor\n", encoding="utf-8")
        mask = self.tmp / "mask.txt"
        mask.write_text("#.\n#.\n", encoding="utf-8")
        code = main(
            [
                "--derive-from", str(sample),
                "--width", "2",
                "--height", "2",
                "--blocked-file", str(mask),
                "--respect-usage-blocked",
                "--blocked-types", "wall",
                "--unblocked-types", "floor",
                "--output", str(self.tmp / "out.json"),
                "--log-level", "ERROR",
            ]
        )
        self.assertEqual(code, 0)
        self.assertEqual(self._read_output()["grid"]["type_ids"], [["wall", "floor"], ["wall", "floor"]])

    def test_type_lists_require_partitioning(self) -> None:
        catalog = self._write_catalog([{"type_id": "grass"}])
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["--catalog", str(catalog), "--width", "2", "--height", "2", "--blocked-types", "grass"])
        self.assertEqual(ctx.exception.code, 2)

    def test_missing_catalog_is_a_usage_error(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                main(["--catalog", str(self.tmp / "missing.json"), "--width", "2", "--height", "2"])

    def test_parse_rows_file_skips_comments_and_blanks(self) -> None:
        path = self.tmp / "rows.txt"
        path.write_text("// header\n\n  #.#  \n...\n", encoding="utf-8")
        self.assertEqual(parse_rows_file(path), ["#.#", "..."])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
