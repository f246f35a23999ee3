"""Events emitted while discovering and executing scenarios."""

import traceback
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Self

from scenario_tests.models.case import TestCase


@dataclass(frozen=True, kw_only=True)
class FailureInfo:
    """Flattened exception chain of a failed test or hook.

    Every sequence holds one entry per exception, in the order they occurred.
    """

    exception_types: Sequence[str]
    messages: Sequence[str]
    stack_traces: Sequence[str]

    @classmethod
    def from_exception(cls, exc: BaseException) -> Self:
        """Describe an exception together with its causes and group members."""
        chain = _flatten_exception(exc, seen=set())
        return cls(
            exception_types=[_qualified_name(type(e)) for e in chain],
            messages=[str(e) for e in chain],
            stack_traces=[
                "".join(traceback.format_tb(e.__traceback__)) for e in chain
            ],
        )

    @property
    def exception_type(self) -> str:
        """Type of the exception that was finally raised."""
        return self.exception_types[-1] if self.exception_types else ""

    def combined_message(self) -> str:
        """Join all messages, marking nested ones with a ``----`` prefix."""
        parts = []
        for index, (exc_type, message) in enumerate(
            zip(self.exception_types, self.messages, strict=True)
        ):
            prefix = "" if index == 0 else "---- "
            parts.append(f"{prefix}{exc_type} : {message}")
        return "\n".join(parts)

    def combined_stack_trace(self) -> str:
        """Join all stack traces, separated by an inner stack trace marker."""
        parts: list[str] = []
        for index, trace in enumerate(self.stack_traces):
            if index > 0:
                parts.append(f"----- Inner Stack Trace #{index} -----")
            parts.append(trace.rstrip("\n"))
        return "\n".join(parts)


@dataclass(frozen=True, kw_only=True)
class DiagnosticMessage:
    """Free-form diagnostic emitted by the discoverer or executor."""

    message: str


@dataclass(frozen=True, kw_only=True)
class TestCaseDiscovered:
    """A test case was found in the artifact."""

    __test__ = False

    test_case: TestCase


@dataclass(frozen=True, kw_only=True)
class DiscoveryComplete:
    """Enumeration of the artifact has finished."""

    artifact: str


@dataclass(frozen=True, kw_only=True)
class AssemblyStarting:
    """Execution of the artifact is about to begin."""

    assembly: str
    started_at: datetime


@dataclass(frozen=True, kw_only=True)
class TestStarting:
    """A test case is about to run."""

    __test__ = False

    test_case: TestCase


@dataclass(frozen=True, kw_only=True)
class TestPassed:
    """A test case completed without raising."""

    __test__ = False

    test_case: TestCase
    time: float
    output: str = ""


@dataclass(frozen=True, kw_only=True)
class TestFailed:
    """A test case raised an exception."""

    __test__ = False

    test_case: TestCase
    time: float
    failure: FailureInfo
    output: str = ""


@dataclass(frozen=True, kw_only=True)
class TestSkipped:
    """A test case was skipped, either statically or from its body."""

    __test__ = False

    test_case: TestCase
    reason: str
    output: str = ""


@dataclass(frozen=True, kw_only=True)
class ErrorMessage:
    """A failure outside of any test body, such as a cleanup hook."""

    name: str
    failure: FailureInfo


@dataclass(frozen=True, kw_only=True)
class AssemblyFinished:
    """Execution of the artifact has finished; the completion signal."""

    assembly: str
    tests_run: int
    tests_failed: int
    tests_skipped: int
    time: float
    finished_at: datetime = field(default_factory=datetime.now)


type ExecutionEvent = (
    DiagnosticMessage
    | AssemblyStarting
    | TestStarting
    | TestPassed
    | TestFailed
    | TestSkipped
    | ErrorMessage
    | AssemblyFinished
)

type DiscoveryEvent = DiagnosticMessage | TestCaseDiscovered | DiscoveryComplete


def _flatten_exception(exc: BaseException, seen: set[int]) -> list[BaseException]:
    """Order an exception chain from the first raised to the last."""
    if id(exc) in seen:
        return []
    seen.add(id(exc))

    chain: list[BaseException] = []
    nested = exc.__cause__
    if nested is None and not exc.__suppress_context__:
        nested = exc.__context__
    if nested is not None:
        chain.extend(_flatten_exception(nested, seen))
    if isinstance(exc, BaseExceptionGroup):
        for member in exc.exceptions:
            chain.extend(_flatten_exception(member, seen))
    chain.append(exc)
    return chain


def _qualified_name(exc_type: type[BaseException]) -> str:
    if exc_type.__module__ == "builtins":
        return exc_type.__qualname__
    return f"{exc_type.__module__}.{exc_type.__qualname__}"
