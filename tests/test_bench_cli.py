"""Tests for execbench.bench_cli: benchmark, show and export commands."""

from __future__ import annotations

import csv
import io
import logging
import sys
import tempfile
import unittest
from pathlib import Path

import yaml
from click.testing import CliRunner

from bench_test_helpers import FAKE_EXECUTOR_SCRIPT, make_matrix, make_meta
from execbench.bench.config import EXECUTOR_ENV_VAR
from execbench.bench.results import save_bench_run
from execbench.cli import main


class CliTestCase(unittest.TestCase):
    """Drops handlers bound to CliRunner streams after each test."""

    def tearDown(self) -> None:
        logging.getLogger("execbench").handlers.clear()


class TestBenchmarkHelp(CliTestCase):
    """Tests for command help output."""

    def test_main_help(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        self.assertEqual(result.exit_code, 0)
        for command in ("benchmark", "show", "export", "execute-test-sync"):
            self.assertIn(command, result.output)

    def test_benchmark_help(self) -> None:
        result = CliRunner().invoke(main, ["benchmark", "--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--count", result.output)
        self.assertIn("--profile", result.output)
        self.assertIn("--instructions-per-cycle", result.output)
        self.assertIn("--cpu-migrations", result.output)

    def test_export_help(self) -> None:
        result = CliRunner().invoke(main, ["export", "--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--format", result.output)


class TestBenchmarkCommand(CliTestCase):
    """Tests for the benchmark command."""

    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)

    def tearDown(self) -> None:
        super().tearDown()
        self.tmpdir.cleanup()

    def _write_profile(self, **extra: object) -> Path:
        artifact = self.root / "artifact.json"
        artifact.write_text("{}")
        data: dict[str, object] = {
            "name": "cli run",
            "test_artifact_path": str(artifact),
            "test_name": "test_a()",
            "executors": {
                "python": {
                    "command": sys.executable,
                    "args": ["-c", FAKE_EXECUTOR_SCRIPT],
                    "env": {"FAKE_BASE_NS": "3000"},
                },
                "native": {
                    "command": sys.executable,
                    "args": ["-c", FAKE_EXECUTOR_SCRIPT],
                    "env": {"FAKE_BASE_NS": "1000"},
                },
            },
        }
        data.update(extra)
        path = self.root / "profile.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    def test_count_zero_rejected(self) -> None:
        result = CliRunner().invoke(main, ["benchmark", "--count", "0"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("--count must be at least 1", result.output)

    def test_negative_count_rejected(self) -> None:
        result = CliRunner().invoke(main, ["benchmark", "--count=-4"])
        self.assertEqual(result.exit_code, 1)

    def test_missing_profile(self) -> None:
        result = CliRunner().invoke(main, ["benchmark", "--profile", "/nonexistent.yaml"])
        self.assertEqual(result.exit_code, 2)

    def test_profile_with_unknown_metric(self) -> None:
        profile = self._write_profile(metrics=["bogus"])
        result = CliRunner().invoke(main, ["benchmark", "--profile", str(profile)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Unknown metric", result.output)

    def test_run_with_profile(self) -> None:
        profile = self._write_profile()
        results_dir = self.root / "results"
        result = CliRunner().invoke(
            main,
            [
                "benchmark",
                "--profile",
                str(profile),
                "-c",
                "2",
                "--instructions",
                "--results-dir",
                str(results_dir),
                "-q",
            ],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("=== Duration / python / async ===", result.output)
        self.assertIn("Duration: python/native median (async): 300.00 %", result.output)
        self.assertIn("Results saved to:", result.output)

        [run_dir] = list(results_dir.iterdir())
        with open(run_dir / "bench_results.csv", newline="") as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(len(rows), 8)
        self.assertEqual(
            [(r["name"], r["async"], r["executor"]) for r in rows[:4]],
            [
                ("Duration", "true", "python"),
                ("Duration", "true", "native"),
                ("Duration", "false", "python"),
                ("Duration", "false", "native"),
            ],
        )
        self.assertEqual({r["median"] for r in rows[4:]}, {"0.5"})
        self.assertEqual({r["runs"] for r in rows}, {"2"})

    def test_host_executor_without_target_rejected(self) -> None:
        result = CliRunner().invoke(
            main,
            ["benchmark", "-c", "1", "--results-dir", str(self.root)],
            env={EXECUTOR_ENV_VAR: ""},
        )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("no in-process target is set", result.output)
        self.assertEqual(list(self.root.iterdir()), [])

    def test_failing_executor_exits_1(self) -> None:
        profile = self._write_profile(
            executors={"broken": {"command": str(self.root / "no-such-executor")}}
        )
        result = CliRunner().invoke(
            main,
            ["benchmark", "--profile", str(profile), "-c", "1", "--results-dir", str(self.root)],
        )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error:", result.output)


# ---------------------------------------------------------------------------
# show / export
# ---------------------------------------------------------------------------


class TestShowExport(CliTestCase):
    """Tests for the show and export commands on a saved run."""

    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.run_dir = Path(self.tmpdir.name) / "bench_test_001"
        results = make_matrix(
            {
                ("Duration", True, "python"): 2_000_000.0,
                ("Duration", True, "native"): 1_000_000.0,
            }
        )
        save_bench_run(self.run_dir, make_meta(), results)

    def tearDown(self) -> None:
        super().tearDown()
        self.tmpdir.cleanup()

    def test_show(self) -> None:
        result = CliRunner().invoke(main, ["show", str(self.run_dir)])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Test Benchmark", result.output)
        self.assertIn("200.00 %", result.output)

    def test_show_without_meta(self) -> None:
        result = CliRunner().invoke(main, ["show", self.tmpdir.name])
        self.assertEqual(result.exit_code, 1)

    def test_export_csv_stdout(self) -> None:
        result = CliRunner().invoke(main, ["export", str(self.run_dir)])
        self.assertEqual(result.exit_code, 0)
        rows = list(csv.reader(io.StringIO(result.output)))
        self.assertEqual(rows[0][0], "name")
        self.assertEqual(len(rows), 3)

    def test_export_markdown_file(self) -> None:
        out = Path(self.tmpdir.name) / "report.md"
        result = CliRunner().invoke(
            main, ["export", str(self.run_dir), "--format", "markdown", "-o", str(out)]
        )
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Exported to", result.output)
        self.assertIn("## Comparison", out.read_text())


if __name__ == "__main__":
    unittest.main()
