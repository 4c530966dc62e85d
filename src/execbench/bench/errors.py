"""Exceptions raised while collecting benchmark samples.

Every invocation failure aborts the sample, the matrix cell and the
whole run; nothing here is retried.
"""

from __future__ import annotations


class BenchError(Exception):
    """Base class for benchmark failures."""


class ExecutionFailure(BenchError):
    """The executor process could not be started."""


class ExecutionTimeout(BenchError):
    """The executor process exceeded the wall-clock ceiling."""

    def __init__(self, message: str, timeout: float) -> None:
        super().__init__(message)
        self.timeout = timeout


class ExecutionNonZeroExit(BenchError):
    """The executor process exited with a non-zero status."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class OutputTooLarge(BenchError):
    """The executor wrote more to stdout than the output ceiling allows."""


class MalformedOutput(BenchError):
    """The executor's result line could not be decoded."""


class EmptySampleError(BenchError):
    """Statistics were requested for a sample with no observations."""


class ExecutorLoadError(BenchError):
    """An in-process executor target could not be imported."""
