"""CLI entry point for the scenario test runner."""

import argparse
import asyncio
import logging
import shutil
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from scenario_tests.config import RunConfiguration
from scenario_tests.discovery import (
    DEFAULT_ARTIFACT,
    ArtifactNotFoundError,
    discover,
    load_artifact,
)
from scenario_tests.environment import EnvironmentSetupError, prepare_environment
from scenario_tests.execution import ScenarioExecutor
from scenario_tests.models.case import TestCase
from scenario_tests.registry import ScenarioRegistry
from scenario_tests.reporting import (
    ConsoleSink,
    DiagnosticSink,
    EventDispatcher,
    SummarySink,
    XmlResultSink,
)


def print_test_environment(config: RunConfiguration) -> None:
    """Print the run parameters the scenarios will see."""
    print("Test environment:")
    print(f"  Dotnet Root: {config.dotnet_root}")
    print(f"  Test root: {config.test_root}")
    print(f"  Target RID: {config.target_rid}")
    print(f"  Sdk Version: {config.sdk_version or 'latest'}")


def list_tests(test_cases: Sequence[TestCase]) -> None:
    """Print the selected tests with their traits."""
    print("Tests to execute:")
    for test_case in test_cases:
        traits = test_case.format_traits()
        line = test_case.display_name
        print(f"{line} {traits}" if traits else line)


async def run(config: RunConfiguration, registry: ScenarioRegistry) -> int:
    """Discover, filter and run the scenarios, returning the exit code."""
    log = logging.getLogger("scenario_tests")
    diagnostic_sink = DiagnosticSink()

    test_cases = await discover(registry, diagnostic_sink)
    selected = config.trait_filter().apply(test_cases)
    log.info("Selected %d of %d test case(s)", len(selected), len(test_cases))

    print_test_environment(config)

    if config.list_only:
        list_tests(selected)
        return 0

    prepare_environment(config)

    summary_sink = SummarySink()
    xml_sink = XmlResultSink()
    dispatcher = EventDispatcher([ConsoleSink(), summary_sink, xml_sink])

    executor = ScenarioExecutor(registry, diagnostic_sink)
    await executor.run_tests(selected, dispatcher)
    await dispatcher.finished.wait()

    if config.xml_path is not None:
        xml_sink.write(config.xml_path)

    if not config.no_cleanup:
        log.info("Removing test root %s", config.test_root)
        shutil.rmtree(config.test_root)

    return 1 if summary_sink.summary.has_failures else 0


def build_parser() -> argparse.ArgumentParser:
    """Declare the command line options."""
    parser = argparse.ArgumentParser(description="Scenario test runner")
    parser.add_argument(
        "--dotnet-root",
        type=Path,
        required=True,
        help="dotnet root to run tests against",
    )
    parser.add_argument(
        "--test-root",
        type=Path,
        help="Directory used for temporary files when running tests "
        "(default: a new temporary directory)",
    )
    parser.add_argument(
        "--sdk-version",
        help="Version of SDK to run tests against (default: the default SDK "
        "at the dotnet root)",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List tests that would be run, without running them",
    )
    parser.add_argument(
        "--offline-only",
        action="store_true",
        help="Only run tests that can be run in offline mode (Category=Offline)",
    )
    parser.add_argument(
        "--no-traits",
        nargs="+",
        action="extend",
        default=[],
        metavar="KEY=VALUE",
        help="Do not run tests with the following traits",
    )
    parser.add_argument(
        "--traits",
        nargs="+",
        action="extend",
        default=[],
        metavar="KEY=VALUE",
        help="Only run tests with the following traits",
    )
    parser.add_argument("--xml", type=Path, help="XML result file")
    parser.add_argument(
        "--no-cleanup",
        action="store_true",
        help="Do not cleanup the test root after execution",
    )
    parser.add_argument(
        "--target-rid",
        help="Target rid for tests requiring one (default: the rid of the "
        "running process)",
    )
    parser.add_argument(
        "--artifact",
        default=DEFAULT_ARTIFACT,
        metavar="MODULE[:ATTR]",
        help=f"Test artifact holding the scenarios (default: {DEFAULT_ARTIFACT})",
    )
    return parser


def parse_configuration(
    parser: argparse.ArgumentParser, argv: Sequence[str] | None = None
) -> RunConfiguration:
    """Parse and validate the command line.

    Invalid input ends the process with a usage error.
    """
    args = parser.parse_args(argv)

    options = {
        "dotnet_root": args.dotnet_root,
        "test_root": args.test_root,
        "sdk_version": args.sdk_version,
        "target_rid": args.target_rid,
        "list_only": args.list,
        "offline_only": args.offline_only,
        "traits": args.traits,
        "no_traits": args.no_traits,
        "xml_path": args.xml,
        "no_cleanup": args.no_cleanup,
        "artifact": args.artifact,
    }

    try:
        return RunConfiguration(
            **{key: value for key, value in options.items() if value is not None}
        )
    except ValidationError as e:
        parser.error("; ".join(error["msg"] for error in e.errors()))


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    config = parse_configuration(parser, argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    log = logging.getLogger("scenario_tests")

    try:
        registry = load_artifact(config.artifact)
    except ArtifactNotFoundError as e:
        parser.error(str(e))

    try:
        exit_code = asyncio.run(run(config, registry))
    except EnvironmentSetupError as e:
        log.error("Test environment setup failed: %s", e)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
