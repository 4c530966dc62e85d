"""Summary statistics for benchmark samples.

Reduces a sample to run count, mean, median, extremes and population
standard deviation.  The population form (divide by n, not n - 1) is
used throughout; comparisons between cells are ratios of medians, so a
consistent bias cancels out.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Any, Sequence

from execbench.bench.errors import EmptySampleError


@dataclass(frozen=True)
class BenchmarkStats:
    """Summary statistics for one sample."""

    runs: int
    mean: float
    median: float
    min: float
    max: float
    std_dev: float

    def to_dict(self) -> dict[str, float | int]:
        """Serialize to a dict keyed like the CSV columns."""
        return {
            "runs": self.runs,
            "mean": self.mean,
            "median": self.median,
            "min": self.min,
            "max": self.max,
            "stdDev": self.std_dev,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkStats:
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            runs=int(data["runs"]),
            mean=float(data["mean"]),
            median=float(data["median"]),
            min=float(data["min"]),
            max=float(data["max"]),
            std_dev=float(data.get("stdDev", data.get("std_dev", 0.0))),
        )


def aggregate(sample: Sequence[float]) -> BenchmarkStats:
    """Compute summary statistics for a sample.

    Sorts a copy; *sample* itself is left in its original order.

    Raises:
        EmptySampleError: If *sample* is empty.
        ValueError: If *sample* holds a NaN or infinite value.
    """
    if not sample:
        raise EmptySampleError("Cannot aggregate an empty sample")

    sorted_v = sorted(float(v) for v in sample)
    if not all(math.isfinite(v) for v in sorted_v):
        raise ValueError("Cannot aggregate a sample with non-finite values")
    n = len(sorted_v)
    mean = math.fsum(sorted_v) / n
    median = statistics.median(sorted_v)
    variance = math.fsum((v - mean) ** 2 for v in sorted_v) / n

    # Rounding in sum/n can land a hair outside [min, max] for
    # near-constant samples.
    mean = min(max(mean, sorted_v[0]), sorted_v[-1])

    return BenchmarkStats(
        runs=n,
        mean=mean,
        median=median,
        min=sorted_v[0],
        max=sorted_v[-1],
        std_dev=math.sqrt(variance),
    )
