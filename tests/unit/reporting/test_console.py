"""Tests for the console sink."""

import pytest

from scenario_tests.models.case import TestCase
from scenario_tests.models.events import (
    AssemblyFinished,
    FailureInfo,
    TestFailed,
    TestPassed,
    TestSkipped,
    TestStarting,
)
from scenario_tests.reporting import ConsoleSink


def test_passing_test_prints_nothing(
    test_case: TestCase, capsys: pytest.CaptureFixture[str]
) -> None:
    """Keeps quiet about starting and passing tests."""
    sink = ConsoleSink()

    sink.on_event(TestStarting(test_case=test_case))
    sink.on_event(TestPassed(test_case=test_case, time=0.1))

    assert capsys.readouterr().out == ""


def test_skipped_test(test_case: TestCase, capsys: pytest.CaptureFixture[str]) -> None:
    """Prints a SKIP line with the display name."""
    ConsoleSink().on_event(TestSkipped(test_case=test_case, reason="later"))

    assert capsys.readouterr().out == "[SKIP] tests.scenarios.verify_console\n"


def test_failed_test(
    test_case: TestCase,
    failure: FailureInfo,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Prints a FAIL line followed by the message and stack trace."""
    ConsoleSink().on_event(TestFailed(test_case=test_case, time=0.2, failure=failure))

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "[FAIL] tests.scenarios.verify_console"
    assert lines[1] == "AssertionError : expected 1 but got 2"
    assert any("in failure" in line for line in lines[2:])


def test_assembly_finished(
    assembly_finished: AssemblyFinished, capsys: pytest.CaptureFixture[str]
) -> None:
    """Prints the finished assembly followed by a blank line."""
    ConsoleSink().on_event(assembly_finished)

    assert capsys.readouterr().out == "Finished tests.scenarios\n\n"
