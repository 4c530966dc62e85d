"""Executor result types and their wire format.

An executor run produces a :class:`TestResult`: the elapsed duration in
nanoseconds and, when performance counters were requested, a sparse
:class:`PerfReport`.  Across the process boundary the result travels as
a single JSON line::

    {"durationNs": 48210.0, "perfReport": {"instructionsPerCycle": 2.91}}

Perf report fields are independently optional.  An absent field is not
the same as a zero-valued one, and the order of :data:`METRIC_FIELDS`
decides which field is sampled when several are present.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

from execbench.bench.errors import MalformedOutput


# ---------------------------------------------------------------------------
# Metric fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricField:
    """Naming of one performance report field across layers."""

    attr: str  # Python attribute / config key
    wire_name: str  # JSON key on the process boundary
    flag: str  # executor command-line flag
    label: str  # human-readable name


METRIC_FIELDS: tuple[MetricField, ...] = (
    MetricField("instructions", "instructions", "--instructions", "Instructions"),
    MetricField(
        "instructions_per_cycle",
        "instructionsPerCycle",
        "--instructions-per-cycle",
        "Instructions per cycle",
    ),
    MetricField(
        "last_level_cache_hit_rate",
        "lastLevelCacheHitRate",
        "--last-level-cache-hit-rate",
        "Last level cache hit rate",
    ),
    MetricField(
        "l1_data_cache_hit_rate",
        "l1DataCacheHitRate",
        "--l1-data-cache-hit-rate",
        "L1 data cache hit rate",
    ),
    MetricField(
        "l1_instruction_cache_misses",
        "l1InstructionCacheMisses",
        "--l1-instruction-cache-misses",
        "L1 instruction cache misses",
    ),
    MetricField(
        "branch_miss_ratio",
        "branchMissRatio",
        "--branch-miss-ratio",
        "Branch miss ratio",
    ),
    MetricField("cpu_migrations", "cpuMigrations", "--cpu-migrations", "CPU migrations"),
)

METRIC_FIELDS_BY_ATTR: dict[str, MetricField] = {f.attr: f for f in METRIC_FIELDS}

SYNC_SUBCOMMAND = "execute-test-sync"
ASYNC_SUBCOMMAND = "execute-test-async"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# PerfReportConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PerfReportConfig:
    """Which performance report fields the executor should collect."""

    instructions: bool = False
    instructions_per_cycle: bool = False
    last_level_cache_hit_rate: bool = False
    l1_data_cache_hit_rate: bool = False
    l1_instruction_cache_misses: bool = False
    branch_miss_ratio: bool = False
    cpu_migrations: bool = False

    @classmethod
    def only(cls, attr: str) -> PerfReportConfig:
        """Config with exactly one field enabled."""
        if attr not in METRIC_FIELDS_BY_ATTR:
            raise ValueError(f"Unknown metric field: {attr!r}")
        return cls(**{attr: True})

    @property
    def enabled_fields(self) -> list[MetricField]:
        """Enabled fields, in the fixed field order."""
        return [f for f in METRIC_FIELDS if getattr(self, f.attr)]

    @property
    def is_empty(self) -> bool:
        """True when no field is enabled (plain duration measurement)."""
        return not self.enabled_fields

    def to_dict(self) -> dict[str, bool]:
        """Serialize to a sparse dict of enabled fields."""
        return {f.attr: True for f in self.enabled_fields}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PerfReportConfig:
        """Deserialize, ignoring unknown keys."""
        return cls(**{k: bool(v) for k, v in data.items() if k in METRIC_FIELDS_BY_ATTR})


# ---------------------------------------------------------------------------
# PerfReport
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PerfReport:
    """Sparse performance counter report.  ``None`` means not reported."""

    instructions: float | None = None
    instructions_per_cycle: float | None = None
    last_level_cache_hit_rate: float | None = None
    l1_data_cache_hit_rate: float | None = None
    l1_instruction_cache_misses: float | None = None
    branch_miss_ratio: float | None = None
    cpu_migrations: float | None = None

    def first_present(self) -> tuple[MetricField, float] | None:
        """Return the first field (in fixed order) that is present.

        A zero value counts as present.  Returns None if every field
        is absent.
        """
        for f in METRIC_FIELDS:
            value = getattr(self, f.attr)
            if value is not None:
                return f, value
        return None

    def to_dict(self) -> dict[str, float]:
        """Serialize to wire form, omitting absent fields."""
        d: dict[str, float] = {}
        for f in METRIC_FIELDS:
            value = getattr(self, f.attr)
            if value is not None:
                d[f.wire_name] = value
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PerfReport:
        """Deserialize from wire form.

        Accepts both camelCase wire names and snake_case attribute
        names.  ``null`` values are treated as absent; unknown keys are
        ignored.

        Raises:
            ValueError: If a known field holds a non-numeric value.
        """
        values: dict[str, float] = {}
        for f in METRIC_FIELDS:
            key = f.wire_name if f.wire_name in data else f.attr
            value = data.get(key)
            if value is None:
                continue
            if not _is_number(value):
                raise ValueError(f"perfReport.{f.wire_name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"perfReport.{f.wire_name} must be finite, got {value!r}")
            values[f.attr] = value
        return cls(**values)


# ---------------------------------------------------------------------------
# TestOptions / TestResult
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TestOptions:
    """Per-invocation executor configuration."""

    __test__ = False

    perf_report_config: PerfReportConfig | None = None
    async_: bool = False

    @property
    def subcommand(self) -> str:
        """The executor subcommand selecting the call strategy."""
        return ASYNC_SUBCOMMAND if self.async_ else SYNC_SUBCOMMAND

    @property
    def metric_flags(self) -> list[str]:
        """One flag per enabled report field, in the fixed field order."""
        if self.perf_report_config is None:
            return []
        return [f.flag for f in self.perf_report_config.enabled_fields]

    @property
    def effective_perf_report_config(self) -> PerfReportConfig | None:
        """The report config, or None when it enables nothing."""
        if self.perf_report_config is None or self.perf_report_config.is_empty:
            return None
        return self.perf_report_config


@dataclass(frozen=True)
class TestResult:
    """Outcome of a single executor invocation."""

    __test__ = False

    duration_ns: float
    perf_report: PerfReport | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to wire form."""
        d: dict[str, Any] = {"durationNs": self.duration_ns}
        if self.perf_report is not None:
            d["perfReport"] = self.perf_report.to_dict()
        return d

    def to_json_line(self) -> str:
        """Serialize to the single line an executor prints."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestResult:
        """Deserialize from wire (or snake_case) form.

        Raises:
            ValueError: If the duration is missing or a field has the
                wrong type.
        """
        duration = data.get("durationNs", data.get("duration_ns"))
        if not _is_number(duration):
            raise ValueError(f"durationNs must be a number, got {duration!r}")
        if not math.isfinite(duration) or duration < 0:
            raise ValueError(f"durationNs must be a finite non-negative number, got {duration!r}")
        report_data = data.get("perfReport", data.get("perf_report"))
        if report_data is None:
            return cls(duration_ns=duration)
        if isinstance(report_data, PerfReport):
            return cls(duration_ns=duration, perf_report=report_data)
        if not isinstance(report_data, dict):
            raise ValueError(f"perfReport must be an object, got {type(report_data).__name__}")
        return cls(duration_ns=duration, perf_report=PerfReport.from_dict(report_data))


def decode_test_result(line: str) -> TestResult:
    """Decode one executor result line.

    The line is normally a JSON object.  A bare number is accepted as a
    duration-only result, with an optional trailing ``n`` as printed by
    JavaScript BigInt values.

    Raises:
        MalformedOutput: If the line cannot be decoded.
    """
    text = line.strip()
    if not text:
        raise MalformedOutput("Executor produced no result line")
    if text.endswith("n") and text[:-1].strip().isdigit():
        text = text[:-1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedOutput(f"Executor result is not valid JSON: {text[:200]!r}") from exc

    if _is_number(data):
        if not math.isfinite(data) or data < 0:
            raise MalformedOutput(f"Executor reported an invalid duration: {data!r}")
        return TestResult(duration_ns=data)
    if not isinstance(data, dict):
        raise MalformedOutput(f"Executor result must be an object, got {type(data).__name__}")
    try:
        return TestResult.from_dict(data)
    except ValueError as exc:
        raise MalformedOutput(f"Invalid executor result: {exc}") from exc
