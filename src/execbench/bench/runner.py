"""Benchmark matrix execution engine.

Enumerates the matrix in a fixed order::

    for metric in config.metrics:          # Duration, Instructions, ...
        for async_ in config.async_modes:  # True, then False
            for executor in config.executors:
                sample -> aggregate -> BenchmarkResult

That order is the row order of the result table.  Everything runs
sequentially: one executor invocation at a time, each awaited before
the next, so that invocations never compete for the cores and counters
being measured.  The first failure aborts the run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from execbench.bench.collector import Invoker, collect_sample, process_invoker
from execbench.bench.config import BenchConfig, ExecutorDef, validate_config
from execbench.bench.metrics import TestOptions
from execbench.bench.results import BenchMeta, BenchmarkResult, HostProfile
from execbench.bench.stats import aggregate
from execbench.logging import get_logger

log = get_logger("runner")

InvokerFactory = Callable[[ExecutorDef], Invoker]


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class BenchProgress:
    """Progress info passed to the callback after each cell."""

    metric: str
    async_: bool
    executor: str
    cells_done: int  # 1-based, including this cell
    cells_total: int
    median: float
    elapsed_s: float


ProgressCallback = Callable[[BenchProgress], None]


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class BenchRunner:
    """Executes a benchmark matrix according to a BenchConfig.

    Usage::

        config = BenchConfig(...)
        runner = BenchRunner(config)
        results = runner.run()
        save_bench_run(config.output_dir, runner.meta, results)

    *invoker_factory* maps an executor definition to the callable that
    runs it once; by default each executor runs as a child process.
    """

    def __init__(
        self,
        config: BenchConfig,
        invoker_factory: InvokerFactory | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.invoker_factory = invoker_factory or self._process_invoker
        self.progress = progress_callback or self._default_progress
        self.meta = BenchMeta(bench_id=config.bench_id)

    def run(self, count: int | None = None) -> list[BenchmarkResult]:
        """Execute the full matrix.

        Args:
            count: Samples per cell; defaults to ``config.count``.

        Returns:
            One BenchmarkResult per cell, in enumeration order.

        Raises:
            ValueError: If the configuration or *count* is invalid.
            BenchError: If any executor invocation fails.
        """
        if count is None:
            count = self.config.count
        run_config = replace(self.config, count=count)

        errors = validate_config(run_config)
        fatal = [e for e in errors if e.severity == "error"]
        for w in errors:
            if w.severity == "warning":
                log.warning("Config warning: %s: %s", w.field, w.message)
        if fatal:
            messages = [f"  {e.field}: {e.message}" for e in fatal]
            raise ValueError("Invalid benchmark configuration:\n" + "\n".join(messages))

        total = self.config.total_cells
        self.meta = BenchMeta(
            bench_id=self.config.bench_id,
            name=self.config.name,
            description=self.config.description,
            host=HostProfile.capture(),
            config=run_config.to_dict(),
            cli_args=self.config.cli_args,
            start_time=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            cells_total=total,
        )

        invokers = {ex.name: self.invoker_factory(ex) for ex in self.config.executors}

        log.info(
            "Benchmarking %d cells x %d samples (%s)",
            total,
            count,
            ", ".join(ex.name for ex in self.config.executors),
        )

        results: list[BenchmarkResult] = []
        for metric in self.config.metrics:
            report_config = metric.perf_report_config()
            for async_ in self.config.async_modes:
                options = TestOptions(perf_report_config=report_config, async_=async_)
                for ex in self.config.executors:
                    start = time.monotonic()
                    sample = collect_sample(count, options, invokers[ex.name])
                    stats = aggregate(sample)
                    result = BenchmarkResult(
                        name=metric.name,
                        async_=async_,
                        executor=ex.name,
                        stats=stats,
                    )
                    results.append(result)
                    self.meta.cells_completed = len(results)

                    self.progress(
                        BenchProgress(
                            metric=metric.name,
                            async_=async_,
                            executor=ex.name,
                            cells_done=len(results),
                            cells_total=total,
                            median=stats.median,
                            elapsed_s=time.monotonic() - start,
                        )
                    )

        self.meta.end_time = time.strftime("%Y-%m-%dT%H:%M:%S%z")
        log.info("Benchmark complete: %d cells", len(results))
        return results

    def _process_invoker(self, executor: ExecutorDef) -> Invoker:
        return process_invoker(
            executor,
            test_artifact_path=self.config.test_artifact_path,
            test_name=self.config.test_name,
            timeout=self.config.timeout,
            max_output_bytes=self.config.max_output_bytes,
        )

    @staticmethod
    def _default_progress(progress: BenchProgress) -> None:
        """Default progress callback: log one line per cell."""
        mode = "async" if progress.async_ else "sync"
        log.info(
            "  [%d/%d] %-28s %-5s %-12s median=%-14.6g %6.1fs",
            progress.cells_done,
            progress.cells_total,
            progress.metric,
            mode,
            progress.executor,
            progress.median,
            progress.elapsed_s,
        )
