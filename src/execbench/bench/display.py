"""Terminal display formatting for benchmark results.

Duration cells are shown in milliseconds (3 decimals) alongside whole
nanoseconds; other metrics are shown as plain numbers.  Comparison
lines give one cell's median as a percentage of another's, to 2
decimals.
"""

from __future__ import annotations

import math

from execbench.bench.compare import Comparison, compare_results, strategy_label
from execbench.bench.config import DURATION_NAME
from execbench.bench.results import BenchMeta, BenchmarkResult
from execbench.bench.stats import BenchmarkStats


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------


def format_duration(ns: float) -> str:
    """Format nanoseconds as ``"0.048 ms (48210 ns)"``."""
    if math.isnan(ns):
        return "N/A"
    return f"{ns / 1_000_000:.3f} ms ({ns:.0f} ns)"


def format_value(value: float) -> str:
    """Format a non-duration metric value."""
    if math.isnan(value):
        return "N/A"
    if value.is_integer() and abs(value) < 1e15:
        return f"{value:.0f}"
    return f"{value:.4f}"


def format_ratio(pct: float | None) -> str:
    """Format a median ratio percentage, e.g. ``"182.35 %"``."""
    if pct is None or math.isnan(pct):
        return "N/A"
    return f"{pct:.2f} %"


def is_duration_metric(name: str) -> bool:
    return name == DURATION_NAME


def format_stats(stats: BenchmarkStats, *, is_duration: bool) -> str:
    """Format one cell's statistics, one value per line."""
    fmt = format_duration if is_duration else format_value
    lines = [
        f"Runs:      {stats.runs}",
        f"Mean:      {fmt(stats.mean)}",
        f"Median:    {fmt(stats.median)}",
        f"Min:       {fmt(stats.min)}",
        f"Max:       {fmt(stats.max)}",
        f"Std Dev:   {fmt(stats.std_dev)}",
    ]
    return "\n".join(lines)


def format_result(result: BenchmarkResult) -> str:
    """Format one matrix cell with a header line."""
    header = f"=== {result.name} / {result.executor} / {strategy_label(result.async_)} ==="
    body = format_stats(result.stats, is_duration=is_duration_metric(result.name))
    return f"{header}\n{body}"


# ---------------------------------------------------------------------------
# Comparisons
# ---------------------------------------------------------------------------


def format_comparison(comparison: Comparison) -> str:
    return f"{comparison.metric}: {comparison.label}: {format_ratio(comparison.ratio_pct)}"


def format_comparisons(results: list[BenchmarkResult]) -> str:
    """Format all pairwise median ratios for a result table."""
    comparisons = compare_results(results)
    if not comparisons:
        return "No comparable cells."
    return "\n".join(format_comparison(c) for c in comparisons)


# ---------------------------------------------------------------------------
# Full run display
# ---------------------------------------------------------------------------


def format_bench_show(meta: BenchMeta, results: list[BenchmarkResult]) -> str:
    """Format a complete benchmark run for display."""
    lines: list[str] = []

    title = meta.name or meta.bench_id
    lines.append(title)
    lines.append("─" * len(title))
    if meta.description:
        lines.append(meta.description)

    host = meta.host
    if host.python_version:
        lines.append(
            f"Host: {host.implementation} {host.python_version} on {host.platform} "
            f"({host.cpu_count} CPUs)"
        )
    cfg = meta.config
    if cfg:
        lines.append(f"Test: {cfg.get('test_name', '?')} ({cfg.get('test_artifact_path', '?')})")
        lines.append(f"Samples per cell: {cfg.get('count', '?')}")
    if meta.start_time and meta.end_time:
        lines.append(f"Time: {meta.start_time} → {meta.end_time}")
    lines.append("")

    for r in results:
        lines.append(format_result(r))
        lines.append("")

    lines.append("=== Comparison ===")
    lines.append(format_comparisons(results))

    return "\n".join(lines)
