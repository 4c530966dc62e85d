"""Export benchmark results to CSV and Markdown formats.

CSV format: one row per matrix cell, in matrix enumeration order, with
the header ``name,async,executor,runs,mean,median,min,max,stdDev``.
Booleans are written as ``true``/``false``; numbers use Python's
default representation so that they read back exactly.

Markdown format: a summary table and the median ratios, suitable for
reports and GitHub issues.
"""

from __future__ import annotations

import csv
import io

from execbench.bench.compare import compare_results, strategy_label
from execbench.bench.display import format_ratio, format_value, is_duration_metric
from execbench.bench.results import BenchMeta, BenchmarkResult
from execbench.bench.stats import BenchmarkStats

CSV_COLUMNS = ["name", "async", "executor", "runs", "mean", "median", "min", "max", "stdDev"]


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def export_csv(results: list[BenchmarkResult]) -> str:
    """Export results as CSV, one row per cell in the given order."""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")

    writer.writerow(CSV_COLUMNS)

    for r in results:
        s = r.stats
        writer.writerow(
            [
                r.name,
                "true" if r.async_ else "false",
                r.executor,
                s.runs,
                repr(s.mean),
                repr(s.median),
                repr(s.min),
                repr(s.max),
                repr(s.std_dev),
            ]
        )

    return output.getvalue()


def parse_csv(text: str) -> list[BenchmarkResult]:
    """Parse CSV produced by :func:`export_csv`.

    Raises:
        ValueError: If the header is wrong or a row cannot be parsed.
    """
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames != CSV_COLUMNS:
        raise ValueError(f"Unexpected CSV header: {reader.fieldnames}")

    results: list[BenchmarkResult] = []
    for line_no, row in enumerate(reader, start=2):
        async_text = row["async"]
        if async_text not in ("true", "false"):
            raise ValueError(f"Line {line_no}: async must be 'true' or 'false', got {async_text!r}")
        try:
            stats = BenchmarkStats(
                runs=int(row["runs"]),
                mean=float(row["mean"]),
                median=float(row["median"]),
                min=float(row["min"]),
                max=float(row["max"]),
                std_dev=float(row["stdDev"]),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Line {line_no}: {exc}") from exc
        results.append(
            BenchmarkResult(
                name=row["name"],
                async_=async_text == "true",
                executor=row["executor"],
                stats=stats,
            )
        )
    return results


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def export_markdown(meta: BenchMeta, results: list[BenchmarkResult]) -> str:
    """Export results as a Markdown report."""
    lines: list[str] = []

    title = meta.name or meta.bench_id
    lines.append(f"# {title}")
    lines.append("")
    if meta.description:
        lines.append(meta.description)
        lines.append("")

    cfg = meta.config
    if cfg:
        lines.append(f"- **Test:** `{cfg.get('test_name', '?')}`")
        lines.append(f"- **Samples per cell:** {cfg.get('count', '?')}")
    if meta.host.python_version:
        lines.append(f"- **Host:** {meta.host.platform} ({meta.host.cpu_count} CPUs)")
    lines.append("")

    lines.append("## Results")
    lines.append("")
    lines.append("| Metric | Mode | Executor | Runs | Median | Mean | Min | Max | Std Dev |")
    lines.append("|---|---|---|---:|---:|---:|---:|---:|---:|")
    for r in results:
        s = r.stats
        if is_duration_metric(r.name):
            cols = [f"{v / 1_000_000:.3f} ms" for v in (s.median, s.mean, s.min, s.max, s.std_dev)]
        else:
            cols = [format_value(v) for v in (s.median, s.mean, s.min, s.max, s.std_dev)]
        lines.append(
            f"| {r.name} | {strategy_label(r.async_)} | {r.executor} | {s.runs} | "
            + " | ".join(cols)
            + " |"
        )
    lines.append("")

    comparisons = compare_results(results)
    if comparisons:
        lines.append("## Comparison")
        lines.append("")
        for c in comparisons:
            lines.append(f"- {c.metric}: {c.label}: {format_ratio(c.ratio_pct)}")
        lines.append("")

    lines.append(f"*Generated by execbench on {meta.start_time or 'unknown'}*")

    return "\n".join(lines)
