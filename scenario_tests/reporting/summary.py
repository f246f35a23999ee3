"""Aggregation of execution events into a run summary."""

import logging

from scenario_tests.models.events import (
    AssemblyFinished,
    ErrorMessage,
    ExecutionEvent,
)
from scenario_tests.models.summary import ExecutionSummary

log = logging.getLogger(__name__)


class SummarySink:
    """Counts errors and freezes the summary when the run finishes."""

    def __init__(self) -> None:
        self.errors = 0
        self._summary: ExecutionSummary | None = None

    @property
    def summary(self) -> ExecutionSummary:
        """Frozen summary of the finished run.

        Raises:
            RuntimeError: If the run has not finished yet

        """
        if self._summary is None:
            raise RuntimeError("Execution summary read before the run finished")
        return self._summary

    def on_event(self, event: ExecutionEvent, /) -> None:
        """Accumulate counters, printing the aggregate line on completion."""
        match event:
            case ErrorMessage(name=name):
                self.errors += 1
                log.warning("Error outside of a test: %s", name)
            case AssemblyFinished():
                self._summary = ExecutionSummary(
                    total=event.tests_run,
                    failed=event.tests_failed,
                    errors=self.errors,
                    skipped=event.tests_skipped,
                    time=event.time,
                )
                print(self._summary.format_line())
