"""Process environment shared between the runner and scenario bodies.

The runner publishes its configuration as environment variables before any
scenario starts; scenario bodies read them back through
:class:`ScenarioTestFixture`. These variables are the only channel by which
run parameters reach a scenario.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Self

from pydantic import Field

from scenario_tests.config import RunConfiguration
from scenario_tests.models.base import Model

log = logging.getLogger(__name__)

DOTNET_ROOT_VARIABLE = "SCENARIO_TESTS_DOTNET_ROOT"
TEST_ROOT_VARIABLE = "SCENARIO_TESTS_TEST_ROOT"
SDK_VERSION_VARIABLE = "SCENARIO_TESTS_SDK_VERSION"
TARGET_RID_VARIABLE = "SCENARIO_TESTS_TARGET_RID"


class EnvironmentSetupError(Exception):
    """Raised when the test environment cannot be prepared or read."""


def prepare_environment(config: RunConfiguration) -> None:
    """Create the test root and publish the run parameters.

    Raises:
        EnvironmentSetupError: If the test root cannot be created

    """
    try:
        config.test_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise EnvironmentSetupError(
            f"Cannot create test root {config.test_root}: {e}"
        ) from e

    os.environ[DOTNET_ROOT_VARIABLE] = str(config.dotnet_root)
    os.environ[TEST_ROOT_VARIABLE] = str(config.test_root)
    os.environ[TARGET_RID_VARIABLE] = config.target_rid
    if config.sdk_version:
        os.environ[SDK_VERSION_VARIABLE] = config.sdk_version
    else:
        os.environ.pop(SDK_VERSION_VARIABLE, None)

    log.info("Published test environment (test root: %s)", config.test_root)


class ScenarioTestFixture(Model):
    """Run parameters as seen from inside a scenario body."""

    dotnet_root: Path = Field(..., description="SDK installation under test")
    test_root: Path = Field(..., description="Scratch directory for the run")
    target_rid: str = Field(..., description="Runtime identifier to target")
    sdk_version: str | None = Field(
        default=None, description="Pinned SDK version, None for the default SDK"
    )

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> Self:
        """Read the published run parameters.

        Raises:
            EnvironmentSetupError: If a required variable was never published

        """
        environ = os.environ if environ is None else environ
        missing = [
            name
            for name in (DOTNET_ROOT_VARIABLE, TEST_ROOT_VARIABLE, TARGET_RID_VARIABLE)
            if not environ.get(name)
        ]
        if missing:
            raise EnvironmentSetupError(
                f"Test environment is not set up, missing: {', '.join(missing)}"
            )

        return cls(
            dotnet_root=Path(environ[DOTNET_ROOT_VARIABLE]),
            test_root=Path(environ[TEST_ROOT_VARIABLE]),
            target_rid=environ[TARGET_RID_VARIABLE],
            sdk_version=environ.get(SDK_VERSION_VARIABLE) or None,
        )
