"""Pairwise median comparisons across matrix cells.

Within each metric configuration:

- every executor after the first is compared with the first executor,
  separately for each call strategy (``python/native`` style ratios);
- each executor's async median is compared with its sync median.

Ratios are the numerator median as a percentage of the denominator
median.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from execbench.bench.results import BenchmarkResult


@dataclass(frozen=True)
class Comparison:
    """One median ratio between two cells of the same metric."""

    metric: str
    label: str
    numerator: BenchmarkResult
    denominator: BenchmarkResult

    @property
    def ratio_pct(self) -> float | None:
        """Numerator median as a percentage of the denominator median.

        None when the denominator median is zero.
        """
        return median_ratio_pct(self.numerator.stats.median, self.denominator.stats.median)


def median_ratio_pct(numerator: float, denominator: float) -> float | None:
    """Return *numerator* as a percentage of *denominator*.

    The percentage is rounded to hundredths with halves rounded up, so
    ``median_ratio_pct(1, 800)`` is ``0.13``.  Returns None for a zero
    denominator.
    """
    if denominator == 0:
        return None
    scaled = 10000.0 * numerator / denominator
    if not math.isfinite(scaled):
        return scaled
    return math.floor(scaled + 0.5) / 100


def strategy_label(async_: bool) -> str:
    return "async" if async_ else "sync"


def compare_results(results: list[BenchmarkResult]) -> list[Comparison]:
    """Build the comparisons for a result table.

    Metric, strategy and executor order follow first appearance in
    *results*, so the output is as deterministic as the table itself.
    """
    metrics: list[str] = []
    cells: dict[tuple[str, bool, str], BenchmarkResult] = {}
    executors: dict[str, list[str]] = {}
    modes: dict[str, list[bool]] = {}

    for r in results:
        if r.name not in metrics:
            metrics.append(r.name)
            executors[r.name] = []
            modes[r.name] = []
        if r.executor not in executors[r.name]:
            executors[r.name].append(r.executor)
        if r.async_ not in modes[r.name]:
            modes[r.name].append(r.async_)
        cells[(r.name, r.async_, r.executor)] = r

    comparisons: list[Comparison] = []
    for metric in metrics:
        names = executors[metric]
        baseline = names[0]

        for async_ in modes[metric]:
            base_cell = cells.get((metric, async_, baseline))
            if base_cell is None:
                continue
            for other in names[1:]:
                other_cell = cells.get((metric, async_, other))
                if other_cell is None:
                    continue
                comparisons.append(
                    Comparison(
                        metric=metric,
                        label=f"{baseline}/{other} median ({strategy_label(async_)})",
                        numerator=base_cell,
                        denominator=other_cell,
                    )
                )

        for name in names:
            async_cell = cells.get((metric, True, name))
            sync_cell = cells.get((metric, False, name))
            if async_cell is None or sync_cell is None:
                continue
            comparisons.append(
                Comparison(
                    metric=metric,
                    label=f"{name} async/sync median",
                    numerator=async_cell,
                    denominator=sync_cell,
                )
            )

    return comparisons
