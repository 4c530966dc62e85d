"""Command-line interface for execbench.

Provides the main CLI entry point.  The ``execute-test*`` commands run
the in-process executor once; ``benchmark``, ``show`` and ``export``
(see :mod:`execbench.bench_cli`) drive and report full benchmark runs.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import click

from execbench import __version__
from execbench.bench.config import DEFAULT_TEST_ARTIFACT, DEFAULT_TEST_NAME, EXECUTOR_ENV_VAR
from execbench.bench.errors import BenchError
from execbench.bench.metrics import PerfReportConfig, TestOptions, TestResult
from execbench.bench_cli import benchmark, export, metric_flag_options, show
from execbench.logging import get_logger, setup_executor_logging

log = get_logger("cli")


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """execbench: benchmark test executors across call strategies and runtimes."""


def executor_test_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options naming the executor target and the test to run."""
    func = click.option(
        "-v",
        "--verbose",
        is_flag=True,
        help="Log executor diagnostics to stderr.",
    )(func)
    func = click.option(
        "--executor",
        "executor_target",
        envvar=EXECUTOR_ENV_VAR,
        required=True,
        help=f"In-process executor as 'package.module:function' (env: {EXECUTOR_ENV_VAR}).",
    )(func)
    func = click.option(
        "-n",
        "--test-name",
        default=DEFAULT_TEST_NAME,
        show_default=True,
        help="Name of the test function to execute.",
    )(func)
    func = click.option(
        "-t",
        "--test-artifact-path",
        default=DEFAULT_TEST_ARTIFACT,
        show_default=True,
        help="Path to the test artifact.",
    )(func)
    return func


def _execute_once(
    executor_target: str,
    test_artifact_path: str,
    test_name: str,
    async_mode: bool,
    verbose: bool,
    metric_flags: dict[str, bool],
) -> TestResult:
    """Run the in-process executor once, exiting 1 on failure."""
    from execbench.bench.inprocess import invoke_in_process, load_executor

    setup_executor_logging(verbose=verbose)
    options = TestOptions(
        perf_report_config=PerfReportConfig(**metric_flags),
        async_=async_mode,
    )
    try:
        func = load_executor(executor_target)
        log.debug(
            "Running %s on %s::%s (%s, flags: %s)",
            executor_target,
            test_artifact_path,
            test_name,
            options.subcommand,
            " ".join(options.metric_flags) or "none",
        )
        result = invoke_in_process(func, test_artifact_path, test_name, options)
        log.debug("Executor reported %s", result.to_json_line())
        return result
    except BenchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# execute-test
# ---------------------------------------------------------------------------


@main.command("execute-test")
@executor_test_options
@click.option("--async", "async_mode", is_flag=True, default=False, help="Use the async call.")
@metric_flag_options
def execute_test(
    executor_target: str,
    test_artifact_path: str,
    test_name: str,
    verbose: bool,
    async_mode: bool,
    **metric_flags: bool,
) -> None:
    """Execute the test once in this process and print the measured value.

    Prints the first enabled metric, or the elapsed nanoseconds when no
    metric is enabled.
    """
    from execbench.bench.collector import select_metric

    result = _execute_once(
        executor_target, test_artifact_path, test_name, async_mode, verbose, metric_flags
    )
    click.echo(select_metric(result))


# ---------------------------------------------------------------------------
# execute-test-sync / execute-test-async
# ---------------------------------------------------------------------------


@main.command("execute-test-sync")
@executor_test_options
@metric_flag_options
def execute_test_sync(
    executor_target: str,
    test_artifact_path: str,
    test_name: str,
    verbose: bool,
    **metric_flags: bool,
) -> None:
    """Execute the test once with the sync call and print a JSON result line."""
    result = _execute_once(
        executor_target, test_artifact_path, test_name, False, verbose, metric_flags
    )
    click.echo(result.to_json_line())


@main.command("execute-test-async")
@executor_test_options
@metric_flag_options
def execute_test_async(
    executor_target: str,
    test_artifact_path: str,
    test_name: str,
    verbose: bool,
    **metric_flags: bool,
) -> None:
    """Execute the test once with the async call and print a JSON result line."""
    result = _execute_once(
        executor_target, test_artifact_path, test_name, True, verbose, metric_flags
    )
    click.echo(result.to_json_line())


main.add_command(benchmark)
main.add_command(show)
main.add_command(export)
