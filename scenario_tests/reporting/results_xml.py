"""In-memory xUnit-style XML results document."""

import logging
import platform
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from scenario_tests.models.case import TestCase
from scenario_tests.models.events import (
    AssemblyFinished,
    AssemblyStarting,
    ErrorMessage,
    ExecutionEvent,
    FailureInfo,
    TestFailed,
    TestPassed,
    TestSkipped,
)

log = logging.getLogger(__name__)

TEST_FRAMEWORK = "scenario-tests"


@dataclass(kw_only=True)
class _CollectionTotals:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    time: float = 0.0


_INVALID_XML_CHARS = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]"
)


def _format_time(seconds: float) -> str:
    return f"{seconds:.3f}"


def _xml_safe(value: str) -> str:
    """Replace characters XML 1.0 cannot carry with a visible ``\\xHH`` form."""
    return _INVALID_XML_CHARS.sub(
        lambda match: f"\\x{ord(match.group()):02x}", value
    )


def _append_failure(parent: ET.Element, failure: FailureInfo) -> None:
    element = ET.SubElement(
        parent, "failure", {"exception-type": _xml_safe(failure.exception_type)}
    )
    ET.SubElement(element, "message").text = _xml_safe(failure.combined_message())
    stack_trace = _xml_safe(failure.combined_stack_trace())
    ET.SubElement(element, "stack-trace").text = stack_trace


class XmlResultSink:
    """Builds one ``<assembly>`` element as execution events arrive.

    The document is only written out by :meth:`write`, after the run has
    finished, so an interrupted run never leaves a partial file behind.
    """

    def __init__(self) -> None:
        self.assembly = ET.Element("assembly")
        self._errors = ET.SubElement(self.assembly, "errors")
        self._collections: dict[str, ET.Element] = {}
        self._totals: dict[str, _CollectionTotals] = {}
        self._finished = False

    def on_event(self, event: ExecutionEvent, /) -> None:
        """Record an event in the document."""
        match event:
            case AssemblyStarting(assembly=assembly, started_at=started_at):
                self.assembly.attrib.update(
                    {
                        "name": _xml_safe(assembly),
                        "test-framework": TEST_FRAMEWORK,
                        "environment": (
                            f"Python {platform.python_version()} "
                            f"({platform.system()} {platform.machine()})"
                        ),
                        "run-date": started_at.strftime("%Y-%m-%d"),
                        "run-time": started_at.strftime("%H:%M:%S"),
                    }
                )
            case TestPassed(test_case=test_case, time=time, output=output):
                self._add_test(test_case, "Pass", time, output)
            case TestFailed(
                test_case=test_case, time=time, output=output, failure=failure
            ):
                test = self._add_test(test_case, "Fail", time, output)
                _append_failure(test, failure)
            case TestSkipped(test_case=test_case, reason=reason, output=output):
                test = self._add_test(test_case, "Skip", 0.0, output)
                ET.SubElement(test, "reason").text = _xml_safe(reason)
            case ErrorMessage(name=name, failure=failure):
                error = ET.SubElement(
                    self._errors, "error", {"type": "cleanup", "name": _xml_safe(name)}
                )
                _append_failure(error, failure)
            case AssemblyFinished():
                self._finish(event)

    def write(self, path: Path) -> Path:
        """Serialize the finished document to a file.

        Raises:
            RuntimeError: If the run has not finished yet

        """
        if not self._finished:
            raise RuntimeError("Cannot write results before the run finished")

        path.parent.mkdir(parents=True, exist_ok=True)
        tree = ET.ElementTree(self.assembly)
        ET.indent(tree)
        tree.write(path, encoding="utf-8", xml_declaration=True)

        log.info("Wrote test results to %s", path)
        return path

    def _collection(self, name: str) -> ET.Element:
        if name not in self._collections:
            self._collections[name] = ET.SubElement(
                self.assembly, "collection", {"name": _xml_safe(name)}
            )
            self._totals[name] = _CollectionTotals()
        return self._collections[name]

    def _add_test(
        self, test_case: TestCase, result: str, time: float, output: str
    ) -> ET.Element:
        collection = self._collection(test_case.collection)
        totals = self._totals[test_case.collection]
        totals.total += 1
        totals.time += time
        match result:
            case "Pass":
                totals.passed += 1
            case "Fail":
                totals.failed += 1
            case "Skip":
                totals.skipped += 1

        method = getattr(test_case.body, "__name__", test_case.display_name)
        test = ET.SubElement(
            collection,
            "test",
            {
                "name": _xml_safe(test_case.display_name),
                "type": _xml_safe(test_case.collection),
                "method": _xml_safe(method),
                "time": _format_time(time),
                "result": result,
            },
        )
        if test_case.traits:
            traits = ET.SubElement(test, "traits")
            for key, values in test_case.traits.items():
                for value in values:
                    ET.SubElement(
                        traits,
                        "trait",
                        {"name": _xml_safe(key), "value": _xml_safe(value)},
                    )
        if output:
            ET.SubElement(test, "output").text = _xml_safe(output)
        return test

    def _finish(self, event: AssemblyFinished) -> None:
        for name, collection in self._collections.items():
            totals = self._totals[name]
            collection.attrib.update(
                {
                    "total": str(totals.total),
                    "passed": str(totals.passed),
                    "failed": str(totals.failed),
                    "skipped": str(totals.skipped),
                    "time": _format_time(totals.time),
                }
            )

        passed = event.tests_run - event.tests_failed - event.tests_skipped
        self.assembly.attrib.update(
            {
                "total": str(event.tests_run),
                "passed": str(passed),
                "failed": str(event.tests_failed),
                "skipped": str(event.tests_skipped),
                "errors": str(len(self._errors)),
                "time": _format_time(event.time),
                "finish-rtf": event.finished_at.isoformat(timespec="seconds"),
            }
        )
        self._finished = True
