"""Tests for the XML result sink."""

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from scenario_tests.models.case import TestCase
from scenario_tests.models.events import (
    AssemblyFinished,
    AssemblyStarting,
    ErrorMessage,
    FailureInfo,
    TestFailed,
    TestPassed,
    TestSkipped,
)
from scenario_tests.reporting import XmlResultSink
from scenario_tests.testing.factories import TestCaseFactory


@pytest.fixture
def sink(
    test_case: TestCase,
    failure: FailureInfo,
    assembly_starting: AssemblyStarting,
    assembly_finished: AssemblyFinished,
) -> XmlResultSink:
    """Feed a sink one passing, one failing and one skipped test."""
    sink = XmlResultSink()
    sink.on_event(assembly_starting)
    sink.on_event(TestPassed(test_case=test_case, time=0.25, output="hello"))
    sink.on_event(
        TestFailed(
            test_case=TestCaseFactory.build(display_name="fails"),
            time=0.5,
            failure=failure,
        )
    )
    sink.on_event(
        TestSkipped(
            test_case=TestCaseFactory.build(
                display_name="skipped", collection="tests.other"
            ),
            reason="not today",
        )
    )
    sink.on_event(assembly_finished)
    return sink


def test_assembly_attributes(sink: XmlResultSink) -> None:
    """Records run metadata and totals on the assembly element."""
    assembly = sink.assembly

    assert assembly.tag == "assembly"
    assert assembly.get("name") == "tests.scenarios"
    assert assembly.get("test-framework") == "scenario-tests"
    assert assembly.get("run-date") == "2026-01-02"
    assert assembly.get("run-time") == "03:04:05"
    assert assembly.get("total") == "3"
    assert assembly.get("passed") == "1"
    assert assembly.get("failed") == "1"
    assert assembly.get("skipped") == "1"
    assert assembly.get("errors") == "0"
    assert assembly.get("time") == "1.500"
    assert assembly.get("finish-rtf") == "2026-01-02T03:04:07"


def test_collections_group_tests(sink: XmlResultSink) -> None:
    """Groups tests into one collection per module with its own totals."""
    collections = {c.get("name"): c for c in sink.assembly.iter("collection")}

    assert set(collections) == {"tests.scenarios", "tests.other"}
    scenarios = collections["tests.scenarios"]
    assert scenarios.get("total") == "2"
    assert scenarios.get("passed") == "1"
    assert scenarios.get("failed") == "1"
    assert scenarios.get("time") == "0.750"
    assert collections["tests.other"].get("skipped") == "1"


def test_test_elements(sink: XmlResultSink) -> None:
    """Describes each test with its result, traits, output and failure."""
    tests = {t.get("name"): t for t in sink.assembly.iter("test")}

    passed = tests["tests.scenarios.verify_console"]
    assert passed.get("result") == "Pass"
    assert passed.get("time") == "0.250"
    assert passed.get("method") == "passing_body"
    trait = passed.find("traits/trait")
    assert trait is not None
    assert trait.attrib == {"name": "Category", "value": "Offline"}
    assert passed.findtext("output") == "hello"

    failed = tests["fails"]
    assert failed.get("result") == "Fail"
    failure = failed.find("failure")
    assert failure is not None
    assert failure.get("exception-type") == "AssertionError"
    assert failure.findtext("message") == "AssertionError : expected 1 but got 2"
    assert failure.findtext("stack-trace")

    skipped = tests["skipped"]
    assert skipped.get("result") == "Skip"
    assert skipped.findtext("reason") == "not today"


def test_records_errors(failure: FailureInfo) -> None:
    """Adds errors outside of tests to the errors element."""
    sink = XmlResultSink()
    sink.on_event(ErrorMessage(name="shutdown_build_servers", failure=failure))
    sink.on_event(
        AssemblyFinished(
            assembly="a", tests_run=0, tests_failed=0, tests_skipped=0, time=0.0
        )
    )

    error = sink.assembly.find("errors/error")
    assert error is not None
    assert error.get("type") == "cleanup"
    assert error.get("name") == "shutdown_build_servers"
    assert sink.assembly.get("errors") == "1"


def test_write_before_finish_raises(tmp_path: Path) -> None:
    """Refuses to write a document for an unfinished run."""
    with pytest.raises(RuntimeError, match="before the run finished"):
        XmlResultSink().write(tmp_path / "results.xml")

    assert not (tmp_path / "results.xml").exists()


def test_write(sink: XmlResultSink, tmp_path: Path) -> None:
    """Writes a parseable document, creating parent directories."""
    path = sink.write(tmp_path / "out" / "results.xml")

    assert path.read_text(encoding="utf-8").startswith("<?xml")
    root = ET.parse(path).getroot()
    assert root.tag == "assembly"
    assert root.get("total") == "3"
    assert len(list(root.iter("test"))) == 3


def test_write_escapes_control_characters(
    assembly_starting: AssemblyStarting, tmp_path: Path
) -> None:
    """Keeps documents parseable when output holds characters XML forbids."""
    try:
        raise ValueError("bad\x00value")
    except ValueError as e:
        failure = FailureInfo.from_exception(e)
    sink = XmlResultSink()
    sink.on_event(assembly_starting)
    sink.on_event(
        TestFailed(
            test_case=TestCaseFactory.build(display_name="colored\x1b"),
            time=0.1,
            failure=failure,
            output="\x1b[31mred\x1b[0m\x00",
        )
    )
    sink.on_event(
        AssemblyFinished(
            assembly="tests.scenarios",
            tests_run=1,
            tests_failed=1,
            tests_skipped=0,
            time=0.1,
        )
    )

    root = ET.parse(sink.write(tmp_path / "results.xml")).getroot()

    test = root.find("collection/test")
    assert test is not None
    assert test.get("name") == "colored\\x1b"
    assert test.findtext("output") == "\\x1b[31mred\\x1b[0m\\x00"
    assert test.findtext("failure/message") == "ValueError : bad\\x00value"
    assert root.get("failed") == "1"
