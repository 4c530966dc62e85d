"""Tests for execbench.bench.results: result types and run persistence."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from bench_test_helpers import make_matrix, make_meta, make_result

from execbench.bench.results import (
    META_FILENAME,
    RESULTS_FILENAME,
    BenchMeta,
    BenchmarkResult,
    HostProfile,
    load_bench_run,
    save_bench_run,
)


class TestBenchmarkResult(unittest.TestCase):
    """Tests for BenchmarkResult serialization."""

    def test_to_dict_column_order(self) -> None:
        d = make_result("Duration", [1.0, 3.0], async_=True).to_dict()
        self.assertEqual(
            list(d),
            ["name", "async", "executor", "runs", "mean", "median", "min", "max", "stdDev"],
        )
        self.assertIs(d["async"], True)

    def test_dict_roundtrip(self) -> None:
        result = make_result("Branch miss ratio", [0.01, 0.02], executor="native")
        self.assertEqual(BenchmarkResult.from_dict(result.to_dict()), result)


class TestHostProfile(unittest.TestCase):
    """Tests for HostProfile."""

    def test_capture(self) -> None:
        host = HostProfile.capture()
        self.assertTrue(host.python_version)
        self.assertTrue(host.implementation)
        self.assertGreater(host.cpu_count, 0)

    def test_from_dict_ignores_unknown_keys(self) -> None:
        host = HostProfile.from_dict({"python_version": "3.12.1", "gpu": "none"})
        self.assertEqual(host.python_version, "3.12.1")


class TestBenchMeta(unittest.TestCase):
    """Tests for BenchMeta serialization."""

    def test_roundtrip(self) -> None:
        meta = make_meta()
        meta.cli_args = ["benchmark", "-c", "5"]
        restored = BenchMeta.from_dict(json.loads(json.dumps(meta.to_dict())))
        self.assertEqual(restored, meta)

    def test_from_dict_minimal(self) -> None:
        meta = BenchMeta.from_dict({"bench_id": "b"})
        self.assertEqual(meta.bench_id, "b")
        self.assertEqual(meta.cells_total, 0)
        self.assertEqual(meta.host, HostProfile())


class TestSaveLoad(unittest.TestCase):
    """Tests for save_bench_run() and load_bench_run()."""

    def test_save_and_load(self) -> None:
        results = make_matrix(
            {
                ("Duration", True, "python"): 1200.0,
                ("Duration", True, "native"): 900.0,
                ("Duration", False, "python"): 1100.0,
                ("Duration", False, "native"): 800.0,
            }
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "bench_test_001"
            save_bench_run(out, make_meta(), results)
            self.assertTrue((out / META_FILENAME).exists())
            self.assertTrue((out / RESULTS_FILENAME).exists())

            meta, loaded = load_bench_run(out)

        self.assertEqual(meta.bench_id, "bench_test_001")
        self.assertEqual(meta.host.cpu_count, 8)
        self.assertEqual(loaded, results)

    def test_csv_has_one_row_per_cell(self) -> None:
        results = [make_result("Duration", [1.0]), make_result("Duration", [2.0], async_=True)]
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir)
            save_bench_run(out, make_meta(), results)
            lines = (out / RESULTS_FILENAME).read_text().splitlines()
        self.assertEqual(len(lines), 3)

    def test_load_missing_meta(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileNotFoundError):
                load_bench_run(Path(tmpdir))

    def test_load_without_results_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir)
            (out / META_FILENAME).write_text(json.dumps(make_meta().to_dict()))
            meta, results = load_bench_run(out)
        self.assertEqual(meta.name, "Test Benchmark")
        self.assertEqual(results, [])


if __name__ == "__main__":
    unittest.main()
