"""Sequential execution of scenario test cases."""

import asyncio
import inspect
import logging
import threading
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from scenario_tests.models.case import TestCase
from scenario_tests.models.events import (
    AssemblyFinished,
    AssemblyStarting,
    DiagnosticMessage,
    ErrorMessage,
    ExecutionEvent,
    FailureInfo,
    TestFailed,
    TestPassed,
    TestSkipped,
    TestStarting,
)
from scenario_tests.registry import ScenarioRegistry
from scenario_tests.reporting.dispatcher import EventSink

log = logging.getLogger(__name__)


class SkipScenario(Exception):
    """Raised from a scenario body to mark it as skipped."""


class TestOutputHelper:
    """Collects output lines written by a scenario body.

    Safe to use from worker threads and process output callbacks.
    """

    __test__ = False

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def write_line(self, message: str) -> None:
        """Append one line of output."""
        with self._lock:
            self._lines.append(message)

    @property
    def output(self) -> str:
        """Everything written so far."""
        with self._lock:
            return "\n".join(self._lines)


async def _invoke(func: Callable[..., Any], *args: Any) -> None:
    if inspect.iscoroutinefunction(func):
        await func(*args)
        return

    result = await asyncio.to_thread(func, *args)
    if inspect.isawaitable(result):
        await result


def _qualified_name(func: Callable[..., Any]) -> str:
    module = getattr(func, "__module__", None)
    name = getattr(func, "__qualname__", repr(func))
    return f"{module}.{name}" if module else name


class ScenarioExecutor:
    """Runs test cases one after another and reports every outcome as an event.

    Failures of individual cases never abort the run; every case passed to
    :meth:`run_tests` is attempted, in the given order.
    """

    def __init__(
        self,
        registry: ScenarioRegistry,
        diagnostic_sink: EventSink[DiagnosticMessage],
    ) -> None:
        self.registry = registry
        self.diagnostic_sink = diagnostic_sink

    async def run_tests(
        self,
        test_cases: Sequence[TestCase],
        sink: EventSink[ExecutionEvent],
    ) -> None:
        """Execute the cases, then the registry cleanup hooks.

        Args:
            test_cases: Cases to run, in execution order
            sink: Receives every execution event, ending with AssemblyFinished

        """
        started = time.perf_counter()
        sink.on_event(
            AssemblyStarting(assembly=self.registry.name, started_at=datetime.now())
        )
        self.diagnostic_sink.on_event(
            DiagnosticMessage(message=f"Running {len(test_cases)} test case(s)")
        )

        failed = 0
        skipped = 0
        for test_case in test_cases:
            result = await self._run_test_case(test_case, sink)
            if isinstance(result, TestFailed):
                failed += 1
            elif isinstance(result, TestSkipped):
                skipped += 1

        await self._run_cleanup_hooks(sink)

        sink.on_event(
            AssemblyFinished(
                assembly=self.registry.name,
                tests_run=len(test_cases),
                tests_failed=failed,
                tests_skipped=skipped,
                time=time.perf_counter() - started,
            )
        )

    async def _run_test_case(
        self,
        test_case: TestCase,
        sink: EventSink[ExecutionEvent],
    ) -> TestPassed | TestFailed | TestSkipped:
        sink.on_event(TestStarting(test_case=test_case))

        result: TestPassed | TestFailed | TestSkipped
        if test_case.skip_reason is not None:
            result = TestSkipped(test_case=test_case, reason=test_case.skip_reason)
            sink.on_event(result)
            return result

        output = TestOutputHelper()
        started = time.perf_counter()
        try:
            await _invoke(test_case.body, output)
        except SkipScenario as e:
            result = TestSkipped(
                test_case=test_case, reason=str(e), output=output.output
            )
        except (Exception, SystemExit) as e:
            log.debug("Test case %s failed", test_case.display_name, exc_info=e)
            result = TestFailed(
                test_case=test_case,
                time=time.perf_counter() - started,
                failure=FailureInfo.from_exception(e),
                output=output.output,
            )
        else:
            result = TestPassed(
                test_case=test_case,
                time=time.perf_counter() - started,
                output=output.output,
            )

        sink.on_event(result)
        return result

    async def _run_cleanup_hooks(self, sink: EventSink[ExecutionEvent]) -> None:
        for hook in self.registry.cleanup_hooks:
            try:
                await _invoke(hook)
            except (Exception, SystemExit) as e:
                sink.on_event(
                    ErrorMessage(
                        name=_qualified_name(hook),
                        failure=FailureInfo.from_exception(e),
                    )
                )
