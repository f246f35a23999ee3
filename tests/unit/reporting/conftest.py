"""Shared event builders for reporting sink tests."""

from datetime import datetime

import pytest

from scenario_tests.models.case import TestCase
from scenario_tests.models.events import AssemblyFinished, AssemblyStarting, FailureInfo
from scenario_tests.testing.factories import TestCaseFactory


@pytest.fixture
def test_case() -> TestCase:
    """Build a test case with traits."""
    return TestCaseFactory.build(
        display_name="tests.scenarios.verify_console",
        traits={"Category": ("Offline",)},
    )


@pytest.fixture
def failure() -> FailureInfo:
    """Describe a raised exception."""
    try:
        raise AssertionError("expected 1 but got 2")
    except AssertionError as e:
        return FailureInfo.from_exception(e)


@pytest.fixture
def assembly_starting() -> AssemblyStarting:
    return AssemblyStarting(
        assembly="tests.scenarios", started_at=datetime(2026, 1, 2, 3, 4, 5)
    )


@pytest.fixture
def assembly_finished() -> AssemblyFinished:
    return AssemblyFinished(
        assembly="tests.scenarios",
        tests_run=3,
        tests_failed=1,
        tests_skipped=1,
        time=1.5,
        finished_at=datetime(2026, 1, 2, 3, 4, 7),
    )
