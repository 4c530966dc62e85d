"""In-process executors.

An in-process executor is a Python callable with the signature::

    execute_test(test_artifact_path: str, test_name: str,
                 perf_report_config: PerfReportConfig | None) -> result

where ``result`` is a :class:`TestResult`, a mapping in wire form, or a
bare number of nanoseconds.  The callable may also be a coroutine
function.  Targets are named as ``"package.module:function"``.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import math
from collections.abc import Callable, Mapping
from typing import Any

from execbench.bench.errors import ExecutorLoadError, MalformedOutput
from execbench.bench.metrics import TestOptions, TestResult

ExecutorFunc = Callable[..., Any]


def load_executor(target: str) -> ExecutorFunc:
    """Import an executor callable from a ``module:function`` target.

    Raises:
        ExecutorLoadError: If the module or attribute cannot be loaded,
            or the attribute is not callable.
    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ExecutorLoadError(
            f"Invalid executor target {target!r}; expected 'package.module:function'"
        )
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ExecutorLoadError(f"Cannot import executor module {module_name!r}: {exc}") from exc
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ExecutorLoadError(f"{module_name!r} has no attribute {attr_path!r}") from exc
    if not callable(obj):
        raise ExecutorLoadError(f"Executor target {target!r} is not callable")
    return obj


def invoke_in_process(
    func: ExecutorFunc,
    test_artifact_path: str,
    test_name: str,
    options: TestOptions,
) -> TestResult:
    """Invoke an executor callable once under *options*.

    Sync mode calls *func* directly.  Async mode drives a coroutine
    function with :func:`asyncio.run`; a plain function is moved to a
    worker thread with :func:`asyncio.to_thread` so the blocking call
    runs off the event loop.
    """
    config = options.effective_perf_report_config
    if not options.async_:
        raw = func(test_artifact_path, test_name, config)
    elif inspect.iscoroutinefunction(func):
        raw = asyncio.run(func(test_artifact_path, test_name, config))
    else:
        raw = asyncio.run(_to_thread(func, test_artifact_path, test_name, config))
    return coerce_result(raw)


async def _to_thread(func: ExecutorFunc, *args: Any) -> Any:
    return await asyncio.to_thread(func, *args)


def coerce_result(raw: Any) -> TestResult:
    """Convert an executor return value into a TestResult.

    Raises:
        MalformedOutput: If the value cannot be interpreted.
    """
    if isinstance(raw, TestResult):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if not math.isfinite(raw) or raw < 0:
            raise MalformedOutput(f"Executor returned an invalid duration: {raw!r}")
        return TestResult(duration_ns=raw)
    if isinstance(raw, Mapping):
        try:
            return TestResult.from_dict(dict(raw))
        except ValueError as exc:
            raise MalformedOutput(f"Invalid executor result: {exc}") from exc
    raise MalformedOutput(f"Executor returned unsupported type {type(raw).__name__}")
