"""Reporting sinks for scenario test runs."""

from scenario_tests.reporting.console import ConsoleSink
from scenario_tests.reporting.diagnostic import DiagnosticSink
from scenario_tests.reporting.dispatcher import EventDispatcher, EventSink
from scenario_tests.reporting.results_xml import XmlResultSink
from scenario_tests.reporting.summary import SummarySink

__all__ = [
    "ConsoleSink",
    "DiagnosticSink",
    "EventDispatcher",
    "EventSink",
    "SummarySink",
    "XmlResultSink",
]
