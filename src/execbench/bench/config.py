"""Benchmark configuration and profile loading.

Handles:
- The fixed list of metric configurations (Duration, then one per
  perf report field).
- Executor definitions (command + argument prefix + environment).
- Loading benchmark profiles from YAML files.
- Merging CLI options with profile values.
- Validating the final configuration before execution.
"""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from execbench.bench.metrics import METRIC_FIELDS, METRIC_FIELDS_BY_ATTR, PerfReportConfig
from execbench.bench.process import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_S

DEFAULT_COUNT = 27
DEFAULT_TEST_ARTIFACT = "contracts/Avg_Unit_Test.json"
DEFAULT_TEST_NAME = "test_Avg_OneOperandEvenTheOtherOdd()"
EXECUTOR_ENV_VAR = "EXECBENCH_EXECUTOR"
DURATION_KEY = "duration"
DURATION_NAME = "Duration"


# ---------------------------------------------------------------------------
# Metric configurations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricConfig:
    """A named metric configuration: one row group of the result table."""

    name: str
    field: str | None = None  # None = plain duration

    @property
    def key(self) -> str:
        """Selection key: the report field name, or ``duration``."""
        return self.field or DURATION_KEY

    @property
    def is_duration(self) -> bool:
        return self.field is None

    def perf_report_config(self) -> PerfReportConfig | None:
        """The report config enabling exactly this metric's field."""
        if self.field is None:
            return None
        return PerfReportConfig.only(self.field)


def default_metric_configs() -> list[MetricConfig]:
    """Duration baseline followed by one config per report field."""
    configs = [MetricConfig(DURATION_NAME)]
    for f in METRIC_FIELDS:
        configs.append(MetricConfig(f.label, f.attr))
    return configs


def select_metric_configs(keys: list[str]) -> list[MetricConfig]:
    """Duration baseline plus the metrics named in *keys*.

    Keys may be attribute names (``instructions_per_cycle``) or their
    dashed flag spelling (``instructions-per-cycle``).  The result keeps
    the fixed field order regardless of the order of *keys*.

    Raises:
        ValueError: If a key names no known metric.
    """
    wanted: set[str] = set()
    for key in keys:
        attr = key.strip().lstrip("-").replace("-", "_")
        if attr == DURATION_KEY:
            continue
        if attr not in METRIC_FIELDS_BY_ATTR:
            valid = ", ".join([DURATION_KEY, *METRIC_FIELDS_BY_ATTR])
            raise ValueError(f"Unknown metric '{key}'. Valid metrics: {valid}")
        wanted.add(attr)
    return [c for c in default_metric_configs() if c.field is None or c.field in wanted]


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------


@dataclass
class ExecutorDef:
    """An executor run as a child process."""

    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (sparse: omits defaults)."""
        d: dict[str, Any] = {"name": self.name, "command": self.command}
        if self.args:
            d["args"] = self.args
        if self.env:
            d["env"] = self.env
        if self.description:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutorDef:
        """Deserialize from a dict."""
        return cls(
            name=data["name"],
            command=data.get("command", ""),
            args=[str(a) for a in data.get("args", [])],
            env={str(k): str(v) for k, v in data.get("env", {}).items()},
            description=data.get("description", ""),
        )


def default_executors(in_process_target: str | None = None) -> list[ExecutorDef]:
    """The host-runtime executor followed by the native executor.

    The host executor re-invokes this package under the current Python,
    which calls the in-process target named by :data:`EXECUTOR_ENV_VAR`.
    The native executor runs the compiled ``execute_test`` binary
    through cargo.
    """
    host_env = {EXECUTOR_ENV_VAR: in_process_target} if in_process_target else {}
    return [
        ExecutorDef(
            name="python",
            command=sys.executable,
            args=["-m", "execbench"],
            env=host_env,
            description="Host Python runtime calling the in-process executor",
        ),
        ExecutorDef(
            name="native",
            command="cargo",
            args=["run", "--quiet", "--bin", "execute_test", "--release", "--"],
            description="Compiled executor binary",
        ),
    ]


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


@dataclass
class BenchConfig:
    """Resolved configuration for a benchmark run."""

    # Identity
    bench_id: str = ""  # Auto-generated if empty
    name: str = ""
    description: str = ""

    # Sampling
    count: int = DEFAULT_COUNT
    timeout: float = DEFAULT_TIMEOUT_S
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES

    # Test under measurement
    test_artifact_path: str = DEFAULT_TEST_ARTIFACT
    test_name: str = DEFAULT_TEST_NAME

    # Matrix axes
    metrics: list[MetricConfig] = field(default_factory=default_metric_configs)
    async_modes: tuple[bool, ...] = (True, False)
    executors: list[ExecutorDef] = field(default_factory=list)

    in_process_target: str | None = None
    results_dir: Path = field(default_factory=lambda: Path("results"))
    cli_args: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.bench_id:
            self.bench_id = f"bench_{time.strftime('%Y%m%d_%H%M%S')}"
        if not self.executors:
            self.executors = default_executors(self.in_process_target)

    @property
    def output_dir(self) -> Path:
        """The output directory for this benchmark run."""
        return self.results_dir / self.bench_id

    @property
    def total_cells(self) -> int:
        """Number of matrix cells (rows in the result table)."""
        return len(self.metrics) * len(self.async_modes) * len(self.executors)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the run-shaping settings for metadata."""
        return {
            "count": self.count,
            "timeout": self.timeout,
            "max_output_bytes": self.max_output_bytes,
            "test_artifact_path": self.test_artifact_path,
            "test_name": self.test_name,
            "metrics": [m.key for m in self.metrics],
            "async_modes": list(self.async_modes),
            "executors": [e.to_dict() for e in self.executors],
            "in_process_target": self.in_process_target,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def _needs_executor_target(ex: ExecutorDef) -> bool:
    """True for a host executor that would start with no target to load."""
    if ex.args[:2] != ["-m", "execbench"]:
        return False
    return not (ex.env.get(EXECUTOR_ENV_VAR) or os.environ.get(EXECUTOR_ENV_VAR))


def validate_config(config: BenchConfig) -> list[ValidationError]:
    """Validate a benchmark configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if config.count < 1:
        errors.append(
            ValidationError(
                field="count",
                message=f"Sample count must be at least 1 (got {config.count}).",
            )
        )
    elif config.count < 3:
        errors.append(
            ValidationError(
                field="count",
                message=(
                    f"Only {config.count} sample(s) per cell; median and "
                    f"standard deviation will not be meaningful."
                ),
                severity="warning",
            )
        )

    if config.timeout <= 0:
        errors.append(
            ValidationError(
                field="timeout",
                message=f"Timeout must be positive (got {config.timeout}).",
            )
        )

    if config.max_output_bytes <= 0:
        errors.append(
            ValidationError(
                field="max_output_bytes",
                message=f"Output ceiling must be positive (got {config.max_output_bytes}).",
            )
        )

    if not config.metrics:
        errors.append(ValidationError(field="metrics", message="No metrics selected."))

    if not config.async_modes:
        errors.append(ValidationError(field="async_modes", message="No call strategy selected."))

    if not config.executors:
        errors.append(ValidationError(field="executors", message="No executors defined."))

    seen: set[str] = set()
    for ex in config.executors:
        if not ex.name or not ex.name.strip():
            errors.append(
                ValidationError(field="executors", message="Executor names must be non-empty.")
            )
        elif ex.name in seen:
            errors.append(
                ValidationError(
                    field=f"executors.{ex.name}",
                    message=f"Duplicate executor name '{ex.name}'.",
                )
            )
        seen.add(ex.name)
        if not ex.command:
            errors.append(
                ValidationError(
                    field=f"executors.{ex.name}.command",
                    message=f"Executor '{ex.name}' has no command.",
                )
            )
        elif _needs_executor_target(ex):
            errors.append(
                ValidationError(
                    field=f"executors.{ex.name}.env",
                    message=(
                        f"Executor '{ex.name}' runs '-m execbench' but no in-process "
                        f"target is set; pass --executor or set {EXECUTOR_ENV_VAR}."
                    ),
                )
            )

    if not Path(config.test_artifact_path).exists():
        errors.append(
            ValidationError(
                field="test_artifact_path",
                message=f"Test artifact not found: {config.test_artifact_path}",
                severity="warning",
            )
        )

    return errors


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a benchmark profile from a YAML file.

    Profile format::

        name: "sync vs async"
        count: 27
        timeout: 3600
        test_artifact_path: contracts/Avg_Unit_Test.json
        test_name: "test_Avg_OneOperandEvenTheOtherOdd()"
        executor: "mybinding:execute_test"
        metrics: [instructions, branch_miss_ratio]

        executors:
          python:
            command: /usr/bin/python3
            args: ["-m", "execbench"]
            env:
              EXECBENCH_EXECUTOR: "mybinding:execute_test"
          native:
            command: ./target/release/execute_test

    Returns:
        The parsed YAML as a dict.

    Raises:
        FileNotFoundError: If *profile_path* does not exist.
        ValueError: If the file is not valid YAML or not a mapping.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {profile_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    return data


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> BenchConfig:
    """Build a BenchConfig from a parsed YAML profile.

    CLI overrides take precedence over profile values.  Keys match
    BenchConfig field names, plus ``metric_keys`` for metric selection.
    """
    cli = cli_overrides or {}

    def pick(key: str, default: Any) -> Any:
        if cli.get(key) is not None:
            return cli[key]
        return profile_data.get(key, default)

    target = cli.get("in_process_target") or profile_data.get("executor")

    executors: list[ExecutorDef] = []
    executors_data = profile_data.get("executors", {}) or {}
    if not isinstance(executors_data, dict):
        raise ValueError("Profile 'executors' must be a mapping of name -> definition")
    for name, ex_data in executors_data.items():
        if ex_data is None:
            ex_data = {}
        if not isinstance(ex_data, dict):
            raise ValueError(f"Executor '{name}' must be a mapping, got {type(ex_data).__name__}")
        ex = ExecutorDef.from_dict({"name": str(name), **ex_data})
        if target and EXECUTOR_ENV_VAR not in ex.env and ex.args[:2] == ["-m", "execbench"]:
            ex.env[EXECUTOR_ENV_VAR] = target
        executors.append(ex)

    metric_keys = cli.get("metric_keys") or profile_data.get("metrics")
    metrics = select_metric_configs(list(metric_keys)) if metric_keys else default_metric_configs()

    config = BenchConfig(
        name=pick("name", ""),
        description=profile_data.get("description", ""),
        count=int(pick("count", DEFAULT_COUNT)),
        timeout=float(pick("timeout", DEFAULT_TIMEOUT_S)),
        max_output_bytes=int(pick("max_output_bytes", DEFAULT_MAX_OUTPUT_BYTES)),
        test_artifact_path=str(pick("test_artifact_path", DEFAULT_TEST_ARTIFACT)),
        test_name=str(pick("test_name", DEFAULT_TEST_NAME)),
        metrics=metrics,
        executors=executors,
        in_process_target=target,
    )

    if cli.get("results_dir"):
        config.results_dir = Path(cli["results_dir"])
    elif profile_data.get("results_dir"):
        config.results_dir = Path(profile_data["results_dir"])

    return config
