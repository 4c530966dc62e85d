"""Sample collection: repeated executor invocations under one configuration.

Each invocation yields one scalar.  When the result carries a perf
report, the first present field in the fixed field order is taken,
whatever its value (zero included); otherwise the duration is taken.
Only one field is ever sampled, even when several are present.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from execbench.bench.inprocess import ExecutorFunc, invoke_in_process
from execbench.bench.metrics import TestOptions, TestResult
from execbench.bench.process import (
    DEFAULT_MAX_OUTPUT_BYTES,
    DEFAULT_TIMEOUT_S,
    build_executor_args,
    run_executor,
)
from execbench.logging import get_logger

if TYPE_CHECKING:
    from execbench.bench.config import ExecutorDef

log = get_logger("collector")

Invoker = Callable[[TestOptions], TestResult]


def select_metric(result: TestResult) -> float:
    """Pick the scalar to sample from one executor result."""
    if result.perf_report is not None:
        present = result.perf_report.first_present()
        if present is not None:
            return float(present[1])
    return float(result.duration_ns)


def collect_sample(
    count: int,
    options: TestOptions,
    invoke: Invoker,
) -> list[float]:
    """Invoke the executor *count* times and return the sampled scalars.

    Invocations run one after another.  The first failure propagates and
    the partial sample is discarded.
    """
    sample: list[float] = []
    for i in range(count):
        result = invoke(options)
        value = select_metric(result)
        log.debug("  invocation %d/%d: %r", i + 1, count, value)
        sample.append(value)
    return sample


# ---------------------------------------------------------------------------
# Invokers
# ---------------------------------------------------------------------------


def process_invoker(
    executor: ExecutorDef,
    *,
    test_artifact_path: str | Path,
    test_name: str,
    timeout: float = DEFAULT_TIMEOUT_S,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
) -> Invoker:
    """Build an invoker that runs *executor* as a child process."""

    def invoke(options: TestOptions) -> TestResult:
        args = build_executor_args(
            executor.args,
            options,
            test_artifact_path=test_artifact_path,
            test_name=test_name,
        )
        return run_executor(
            executor.command,
            args,
            env=executor.env,
            timeout=timeout,
            max_output_bytes=max_output_bytes,
        )

    return invoke


def in_process_invoker(
    func: ExecutorFunc,
    *,
    test_artifact_path: str | Path,
    test_name: str,
) -> Invoker:
    """Build an invoker that calls *func* directly in this process."""

    def invoke(options: TestOptions) -> TestResult:
        return invoke_in_process(func, str(test_artifact_path), test_name, options)

    return invoke
