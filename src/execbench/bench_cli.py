"""CLI commands for benchmark runs.

Commands:
    execbench benchmark   Run the benchmark matrix
    execbench show        Display a saved benchmark run
    execbench export      Export a saved run to CSV/Markdown
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from execbench.bench.metrics import METRIC_FIELDS
from execbench.logging import setup_logging


def metric_flag_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add one boolean flag per perf report field, in field order."""
    for f in reversed(METRIC_FIELDS):
        func = click.option(
            f.flag,
            f.attr,
            is_flag=True,
            default=False,
            help=f"Collect {f.label.lower()}.",
        )(func)
    return func


# ---------------------------------------------------------------------------
# benchmark
# ---------------------------------------------------------------------------


@click.command()
@click.option(
    "-c",
    "--count",
    type=int,
    default=None,
    help="Number of samples per matrix cell (default: 27).",
)
@metric_flag_options
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, path_type=Path),
    help="YAML profile defining executors and settings.",
)
@click.option(
    "--executor",
    "executor_target",
    type=str,
    default=None,
    help="In-process executor ('package.module:function') for the Python executor.",
)
@click.option("-t", "--test-artifact-path", type=str, default=None, help="Test artifact path.")
@click.option("-n", "--test-name", type=str, default=None, help="Test function name.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Per-invocation timeout in seconds (default: 3600).",
)
@click.option(
    "--results-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Results output directory (default: results).",
)
@click.option("--name", type=str, default=None, help="Human-readable benchmark name.")
@click.option("-v", "--verbose", is_flag=True, help="Log every invocation.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None, help="Debug log file.")
def benchmark(  # noqa: PLR0913
    count: int | None,
    profile_path: Path | None,
    executor_target: str | None,
    test_artifact_path: str | None,
    test_name: str | None,
    timeout: float | None,
    results_dir: Path | None,
    name: str | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
    **metric_flags: bool,
) -> None:
    """Run the benchmark matrix: metric x sync/async x executor.

    With no metric flags every metric is benchmarked; with some, only
    Duration and the flagged metrics are.

    \b
    Examples:
        # Full matrix, 27 samples per cell
        execbench benchmark --executor mybinding:execute_test

        # Duration and IPC only, 9 samples per cell
        execbench benchmark -c 9 --instructions-per-cycle \\
            --executor mybinding:execute_test

        # Executors from a YAML profile
        execbench benchmark --profile bench.yaml
    """
    from execbench.bench.config import (
        BenchConfig,
        config_from_profile,
        default_metric_configs,
        load_profile,
        select_metric_configs,
    )
    from execbench.bench.display import format_bench_show
    from execbench.bench.errors import BenchError
    from execbench.bench.results import save_bench_run
    from execbench.bench.runner import BenchRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    if count is not None and count < 1:
        click.echo(f"Error: --count must be at least 1 (got {count}).", err=True)
        raise SystemExit(1)

    metric_keys = [attr for attr, enabled in metric_flags.items() if enabled]

    try:
        if profile_path:
            cli_overrides: dict[str, Any] = {
                "name": name,
                "count": count,
                "timeout": timeout,
                "test_artifact_path": test_artifact_path,
                "test_name": test_name,
                "in_process_target": executor_target,
                "results_dir": results_dir,
                "metric_keys": metric_keys,
            }
            config = config_from_profile(load_profile(profile_path), cli_overrides=cli_overrides)
        else:
            config = BenchConfig(
                name=name or "",
                metrics=(
                    select_metric_configs(metric_keys) if metric_keys else default_metric_configs()
                ),
                in_process_target=executor_target,
                results_dir=results_dir or Path("results"),
            )
            if count is not None:
                config.count = count
            if timeout is not None:
                config.timeout = timeout
            if test_artifact_path:
                config.test_artifact_path = test_artifact_path
            if test_name:
                config.test_name = test_name
    except (ValueError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    config.cli_args = sys.argv[1:]

    runner = BenchRunner(config)
    try:
        results = runner.run()
    except (ValueError, BenchError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    save_bench_run(config.output_dir, runner.meta, results)

    click.echo()
    click.echo(format_bench_show(runner.meta, results))
    click.echo()
    click.echo(f"Results saved to: {config.output_dir}")


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@click.command("show")
@click.argument("result_dir", type=click.Path(exists=True, path_type=Path))
def show(result_dir: Path) -> None:
    """Display results from a benchmark run.

    RESULT_DIR is the path to a benchmark output directory
    containing bench_meta.json and bench_results.csv.
    """
    from execbench.bench.display import format_bench_show
    from execbench.bench.results import load_bench_run

    try:
        meta, results = load_bench_run(result_dir)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    click.echo(format_bench_show(meta, results))


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@click.command("export")
@click.argument("result_dir", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "markdown"]),
    default="csv",
    help="Export format.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (default: stdout).",
)
def export(result_dir: Path, fmt: str, output: Path | None) -> None:
    """Export benchmark results to CSV or Markdown.

    \b
    Examples:
        execbench export results/bench_001 --format csv > data.csv
        execbench export results/bench_001 --format markdown -o report.md
    """
    from execbench.bench.export import export_csv, export_markdown
    from execbench.bench.results import load_bench_run

    try:
        meta, results = load_bench_run(result_dir)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if fmt == "csv":
        text = export_csv(results)
    else:
        text = export_markdown(meta, results)

    if output:
        output.write_text(text)
        click.echo(f"Exported to {output}")
    else:
        click.echo(text, nl=not text.endswith("\n"))
