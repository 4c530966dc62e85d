"""Run an executor as a child process and decode its result.

The child inherits stdin and stderr, so anything it prints to stderr
reaches the operator live even though it is never parsed.  Only stdout
is captured, and only its trailing line is decoded as the
:class:`~execbench.bench.metrics.TestResult`.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from pathlib import Path

from execbench.bench.errors import (
    ExecutionFailure,
    ExecutionNonZeroExit,
    ExecutionTimeout,
    MalformedOutput,
    OutputTooLarge,
)
from execbench.bench.metrics import TestOptions, TestResult, decode_test_result
from execbench.logging import get_logger

log = get_logger("process")

DEFAULT_TIMEOUT_S = 60 * 60
DEFAULT_MAX_OUTPUT_BYTES = 100 * 1024 * 1024

_READ_CHUNK_BYTES = 64 * 1024
_REAP_TIMEOUT_S = 5


# ---------------------------------------------------------------------------
# Argument derivation
# ---------------------------------------------------------------------------


def build_executor_args(
    prefix_args: list[str],
    options: TestOptions,
    *,
    test_artifact_path: str | Path,
    test_name: str,
) -> list[str]:
    """Build the executor argument list for one invocation.

    Layout::

        <prefix args> execute-test-sync|execute-test-async [metric flags]
            --test-artifact-path PATH --test-name NAME

    The subcommand comes before the metric flags so that the flags
    parse as options of the subcommand.  Metric flags follow the fixed
    report field order.
    """
    return [
        *prefix_args,
        options.subcommand,
        *options.metric_flags,
        "--test-artifact-path",
        str(test_artifact_path),
        "--test-name",
        test_name,
    ]


# ---------------------------------------------------------------------------
# ProcessRunner
# ---------------------------------------------------------------------------


def run_executor(
    command: str,
    args: list[str],
    *,
    env: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT_S,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
) -> TestResult:
    """Run an executor once and decode its result line.

    Stdout is drained by a reader thread while the caller waits.  The
    child's process group is killed as soon as stdout passes
    *max_output_bytes*, the timeout expires, or the wait is interrupted
    (e.g. by Ctrl-C, which never reaches a child in its own session).

    Args:
        command: Executable to run.
        args: Arguments passed to the executable.
        env: Extra environment variables layered over ``os.environ``.
        timeout: Wall-clock ceiling in seconds.
        max_output_bytes: Ceiling on captured stdout.

    Returns:
        The decoded TestResult.

    Raises:
        ExecutionFailure: If the process cannot be spawned.
        ExecutionTimeout: If the process exceeds *timeout*.
        ExecutionNonZeroExit: If the process exits with a non-zero status.
        OutputTooLarge: If stdout exceeds *max_output_bytes*.
        MalformedOutput: If the trailing stdout line is not a result.
    """
    run_env = dict(os.environ)
    if env:
        run_env.update(env)

    argv = [command, *args]
    log.debug("Running executor: %s", " ".join(argv))

    try:
        proc = subprocess.Popen(
            argv,
            env=run_env,
            stdin=None,
            stdout=subprocess.PIPE,
            stderr=None,
            start_new_session=True,
        )
    except OSError as exc:
        raise ExecutionFailure(f"Failed to run {command}: {exc}") from exc

    stdout = _collect_stdout(proc, command, timeout=timeout, max_output_bytes=max_output_bytes)

    if proc.returncode != 0:
        raise ExecutionNonZeroExit(
            f"{command} failed with exit code {proc.returncode}",
            proc.returncode,
        )

    return decode_test_result(_last_line(stdout))


def _collect_stdout(
    proc: subprocess.Popen[bytes],
    command: str,
    *,
    timeout: float,
    max_output_bytes: int,
) -> bytes:
    """Wait for *proc* to exit and return everything it wrote to stdout.

    On any abnormal exit from the wait the process group is killed
    before the exception propagates.
    """
    assert proc.stdout is not None
    stream = proc.stdout
    chunks: list[bytes] = []
    overflow = threading.Event()

    def drain() -> None:
        size = 0
        while True:
            chunk = stream.read1(_READ_CHUNK_BYTES)  # type: ignore[attr-defined]
            if not chunk:
                return
            size += len(chunk)
            if size > max_output_bytes:
                overflow.set()
                return
            chunks.append(chunk)

    reader = threading.Thread(target=drain, name=f"executor-stdout-{proc.pid}", daemon=True)
    deadline = time.monotonic() + timeout
    reader.start()
    try:
        # The reader returns at EOF or as soon as the ceiling is passed.
        reader.join(timeout)
        if overflow.is_set():
            raise OutputTooLarge(
                f"{command} wrote more than {max_output_bytes} bytes to stdout and was killed"
            )
        if reader.is_alive():
            raise subprocess.TimeoutExpired(command, timeout)
        proc.wait(timeout=max(deadline - time.monotonic(), 0))
    except subprocess.TimeoutExpired as exc:
        _kill_process_group(proc)
        reader.join(_REAP_TIMEOUT_S)
        raise ExecutionTimeout(
            f"{command} exceeded the {timeout:g}s timeout and was killed",
            timeout,
        ) from exc
    except BaseException:
        _kill_process_group(proc)
        reader.join(_REAP_TIMEOUT_S)
        raise

    stream.close()
    return b"".join(chunks)


def _last_line(stdout: bytes) -> str:
    """Return the trailing non-empty line of *stdout*."""
    try:
        text = stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedOutput("Executor output is not valid UTF-8") from exc
    lines = text.rstrip().splitlines()
    if not lines:
        raise MalformedOutput("Executor produced no output")
    return lines[-1]


def _kill_process_group(proc: subprocess.Popen[bytes]) -> None:
    """Kill the child's whole process group and reap it."""
    try:
        os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
    except (ProcessLookupError, PermissionError, OSError):
        proc.kill()
    try:
        proc.wait(timeout=_REAP_TIMEOUT_S)
    except subprocess.TimeoutExpired:
        log.warning("Executor process %d did not exit after SIGKILL", proc.pid)
