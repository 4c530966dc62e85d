"""Benchmark result data structures and serialization.

Hierarchy::

    BenchMeta (one benchmark execution)
      → config: resolved BenchConfig settings
      → host: HostProfile

    BenchmarkResult (one matrix cell)
      → stats: BenchmarkStats

Files produced::

    bench_meta.json    BenchMeta
    bench_results.csv  one BenchmarkResult per row, in matrix order
"""

from __future__ import annotations

import json
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from execbench.bench.stats import BenchmarkStats
from execbench.logging import get_logger

log = get_logger("results")

META_FILENAME = "bench_meta.json"
RESULTS_FILENAME = "bench_results.csv"


# ---------------------------------------------------------------------------
# Cell-level result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchmarkResult:
    """Aggregated sample for one (metric, call strategy, executor) cell."""

    name: str
    async_: bool
    executor: str
    stats: BenchmarkStats

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a flat dict in column order."""
        return {
            "name": self.name,
            "async": self.async_,
            "executor": self.executor,
            **self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkResult:
        """Deserialize from a flat dict."""
        return cls(
            name=data["name"],
            async_=bool(data["async"]),
            executor=data["executor"],
            stats=BenchmarkStats.from_dict(data),
        )


# ---------------------------------------------------------------------------
# Host profile
# ---------------------------------------------------------------------------


@dataclass
class HostProfile:
    """The machine and interpreter driving the benchmark."""

    python_version: str = ""
    implementation: str = ""
    platform: str = ""
    machine: str = ""
    cpu_count: int = 0

    @classmethod
    def capture(cls) -> HostProfile:
        return cls(
            python_version=platform.python_version(),
            implementation=platform.python_implementation(),
            platform=platform.platform(),
            machine=platform.machine(),
            cpu_count=os.cpu_count() or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "python_version": self.python_version,
            "implementation": self.implementation,
            "platform": self.platform,
            "machine": self.machine,
            "cpu_count": self.cpu_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HostProfile:
        known = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in data.items() if k in known})


# ---------------------------------------------------------------------------
# Run-level metadata
# ---------------------------------------------------------------------------


@dataclass
class BenchMeta:
    """Metadata for a complete benchmark run."""

    bench_id: str
    name: str = ""
    description: str = ""
    host: HostProfile = field(default_factory=HostProfile)
    config: dict[str, Any] = field(default_factory=dict)
    cli_args: list[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""
    cells_total: int = 0
    cells_completed: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "bench_id": self.bench_id,
            "name": self.name,
            "description": self.description,
            "host": self.host.to_dict(),
            "config": self.config,
            "cli_args": self.cli_args,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "cells_total": self.cells_total,
            "cells_completed": self.cells_completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchMeta:
        """Deserialize from a dict."""
        meta = cls(bench_id=data["bench_id"])
        meta.name = data.get("name", "")
        meta.description = data.get("description", "")
        meta.host = HostProfile.from_dict(data.get("host", {}))
        meta.config = data.get("config", {})
        meta.cli_args = data.get("cli_args", [])
        meta.start_time = data.get("start_time", "")
        meta.end_time = data.get("end_time", "")
        meta.cells_total = data.get("cells_total", 0)
        meta.cells_completed = data.get("cells_completed", 0)
        return meta


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def save_bench_run(
    output_dir: Path,
    meta: BenchMeta,
    results: list[BenchmarkResult],
) -> None:
    """Save a complete benchmark run to disk.

    Creates ``output_dir/bench_meta.json`` and
    ``output_dir/bench_results.csv``.
    """
    from execbench.bench.export import export_csv

    output_dir.mkdir(parents=True, exist_ok=True)

    meta_path = output_dir / META_FILENAME
    meta_path.write_text(json.dumps(meta.to_dict(), indent=2) + "\n")
    log.info("Wrote %s", meta_path)

    results_path = output_dir / RESULTS_FILENAME
    results_path.write_text(export_csv(results), newline="")
    log.info("Wrote %d results to %s", len(results), results_path)


def load_bench_run(run_dir: Path) -> tuple[BenchMeta, list[BenchmarkResult]]:
    """Load a benchmark run from disk.

    Raises:
        FileNotFoundError: If ``bench_meta.json`` is missing.
    """
    from execbench.bench.export import parse_csv

    meta_path = run_dir / META_FILENAME
    if not meta_path.exists():
        raise FileNotFoundError(f"No {META_FILENAME} in {run_dir}")

    meta = BenchMeta.from_dict(json.loads(meta_path.read_text()))

    results: list[BenchmarkResult] = []
    results_path = run_dir / RESULTS_FILENAME
    if results_path.exists():
        with open(results_path, newline="") as f:
            results = parse_csv(f.read())

    return meta, results
