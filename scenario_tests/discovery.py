"""Discovery of scenario test cases embedded in a test artifact."""

import asyncio
import logging
from collections.abc import Sequence
from importlib.metadata import EntryPoint

from scenario_tests.models.case import TestCase
from scenario_tests.models.events import (
    DiagnosticMessage,
    DiscoveryComplete,
    DiscoveryEvent,
    TestCaseDiscovered,
)
from scenario_tests.registry import ScenarioRegistry
from scenario_tests.reporting.dispatcher import EventSink

log = logging.getLogger(__name__)

DEFAULT_ARTIFACT = "scenario_tests.sdk_templates:registry"
DEFAULT_ATTRIBUTE = "registry"


class ArtifactNotFoundError(Exception):
    """Raised when a test artifact cannot be resolved to a scenario registry."""


def load_artifact(artifact: str) -> ScenarioRegistry:
    """Resolve a ``module[:attribute]`` reference to its scenario registry.

    Args:
        artifact: Importable module, optionally followed by ``:attribute``
            (defaults to ``registry``)

    Returns:
        The registry exposed by the artifact

    Raises:
        ArtifactNotFoundError: If the module or attribute does not exist, or
            the attribute is not a scenario registry

    """
    value = artifact if ":" in artifact else f"{artifact}:{DEFAULT_ATTRIBUTE}"
    entry = EntryPoint(name="artifact", value=value, group="scenario_tests")

    try:
        loaded = entry.load()
    except (ImportError, AttributeError) as e:
        raise ArtifactNotFoundError(
            f"Test artifact '{artifact}' could not be loaded: {e}"
        ) from e

    if not isinstance(loaded, ScenarioRegistry):
        raise ArtifactNotFoundError(
            f"Test artifact '{artifact}' is a {type(loaded).__name__}, "
            "not a ScenarioRegistry"
        )
    return loaded


class DiscoverySink:
    """Collects discovered cases and signals when enumeration is complete."""

    def __init__(self, diagnostic_sink: EventSink[DiagnosticMessage]) -> None:
        self.diagnostic_sink = diagnostic_sink
        self.test_cases: list[TestCase] = []
        self.finished = asyncio.Event()

    def on_event(self, event: DiscoveryEvent) -> None:
        """Record a discovery event."""
        match event:
            case TestCaseDiscovered(test_case=test_case):
                self.test_cases.append(test_case)
            case DiscoveryComplete():
                self.finished.set()
            case DiagnosticMessage():
                self.diagnostic_sink.on_event(event)


class ScenarioDiscoverer:
    """Enumerates the cases of a registry without running any of them."""

    def __init__(
        self,
        registry: ScenarioRegistry,
        diagnostic_sink: EventSink[DiagnosticMessage],
    ) -> None:
        self.registry = registry
        self.diagnostic_sink = diagnostic_sink

    async def find(self, sink: DiscoverySink) -> None:
        """Post every registered case to the sink, then the completion event."""
        for test_case in self.registry.test_cases:
            sink.on_event(TestCaseDiscovered(test_case=test_case))
            await asyncio.sleep(0)

        sink.on_event(
            DiagnosticMessage(
                message=f"Discovered {len(self.registry.test_cases)} scenario(s) "
                f"in {self.registry.name}"
            )
        )
        sink.on_event(DiscoveryComplete(artifact=self.registry.name))


async def discover(
    registry: ScenarioRegistry,
    diagnostic_sink: EventSink[DiagnosticMessage],
) -> Sequence[TestCase]:
    """Enumerate all cases of a registry, waiting until discovery completes."""
    discoverer = ScenarioDiscoverer(registry, diagnostic_sink)
    sink = DiscoverySink(diagnostic_sink)

    await discoverer.find(sink)
    await sink.finished.wait()

    log.info("Discovered %d test case(s) in %s", len(sink.test_cases), registry.name)
    return sink.test_cases
