"""Helper driving the SDK command line from scenario bodies."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

from scenario_tests.config import dotnet_host_name
from scenario_tests.environment import ScenarioTestFixture
from scenario_tests.execution import TestOutputHelper
from scenario_tests.process import (
    OutputLineCallback,
    execute_process,
    scrubbed_environment,
    validate_exit_code,
)

log = logging.getLogger(__name__)

WEB_APP_STARTED = "Application started. Press Ctrl+C to shut down."
WEB_RUN_TIMEOUT = 30.0


def binlog_option(
    project_directory: Path, command: str, differentiator: str | None = None
) -> str:
    """MSBuild binary log switch naming the log after the command."""
    file_name = f"{command}-{differentiator}" if differentiator else command
    return f"/bl:{project_directory / f'{file_name}.binlog'}"


@dataclass(frozen=True, kw_only=True)
class DotNetSdkHelper:
    """Runs ``dotnet`` commands against the installation under test.

    When an SDK version is pinned, a ``global.json`` selecting it is created in
    the working directory before the first command runs there.
    """

    output: TestOutputHelper = field(repr=False)
    dotnet_root: Path
    sdk_version: str | None = None

    @classmethod
    def from_fixture(
        cls, output: TestOutputHelper, fixture: ScenarioTestFixture
    ) -> Self:
        """Create a helper for the published run parameters."""
        return cls(
            output=output,
            dotnet_root=fixture.dotnet_root,
            sdk_version=fixture.sdk_version,
        )

    @property
    def executable(self) -> Path:
        """Path of the SDK host executable."""
        return self.dotnet_root / dotnet_host_name()

    async def new(
        self,
        template: str,
        name: str,
        project_directory: Path,
        *,
        language: str | None = None,
        custom_args: Sequence[str] = (),
    ) -> Path:
        """Create a project from a template and return its directory."""
        project_directory.mkdir(parents=True, exist_ok=True)

        args = ["new", template, "--name", name, "--output", str(project_directory)]
        if language is not None:
            args += ["--language", language]
        args += custom_args

        await self._execute(args, project_directory)
        return project_directory

    async def build(self, project_directory: Path) -> None:
        """Build the project."""
        await self._execute(
            ["build", binlog_option(project_directory, "build")], project_directory
        )

    async def run(self, project_directory: Path) -> None:
        """Run the project to completion."""
        await self._execute(
            ["run", binlog_option(project_directory, "run")], project_directory
        )

    async def run_web(self, project_directory: Path) -> None:
        """Run a web project and stop it as soon as it reports it has started."""

        def stop_when_started(line: str, process: asyncio.subprocess.Process) -> None:
            if WEB_APP_STARTED in line and process.returncode is None:
                log.info("Web application started, stopping it")
                process.terminate()

        await self._execute(
            ["run", binlog_option(project_directory, "run")],
            project_directory,
            on_output_line=stop_when_started,
            timeout=WEB_RUN_TIMEOUT,
        )

    async def test(self, project_directory: Path) -> None:
        """Run the tests of a test project."""
        await self._execute(
            ["test", binlog_option(project_directory, "test")], project_directory
        )

    async def publish(
        self,
        project_directory: Path,
        *,
        self_contained: bool | None = None,
        rid: str | None = None,
        trimmed: bool = False,
        ready_to_run: bool = False,
    ) -> None:
        """Publish the project.

        Runtime identifier, trimming and ReadyToRun only apply to
        self-contained publishing.
        """
        args = ["publish"]
        differentiator: list[str] = []

        if self_contained is not None:
            args += ["--self-contained", str(self_contained).lower()]
            if self_contained:
                differentiator.append("self-contained")
                if rid:
                    args += ["-r", rid]
                    differentiator.append(rid)
                if trimmed:
                    args.append("/p:PublishTrimmed=true")
                    differentiator.append("trimmed")
                if ready_to_run:
                    args.append("/p:PublishReadyToRun=true")
                    differentiator.append("R2R")

        args.append(
            binlog_option(project_directory, "publish", "-".join(differentiator))
        )
        await self._execute(args, project_directory)

    async def shutdown_build_servers(self, working_directory: Path) -> None:
        """Stop build servers left running by earlier commands."""
        await self._execute_impl(["build-server", "shutdown"], working_directory)

    async def _execute(
        self,
        args: Sequence[str],
        working_directory: Path,
        *,
        on_output_line: OutputLineCallback | None = None,
        expected_exit_code: int = 0,
        timeout: float | None = None,
    ) -> None:
        if self.sdk_version and not (working_directory / "global.json").exists():
            await self._execute_impl(
                ["new", "globaljson", "--sdk-version", self.sdk_version],
                working_directory,
            )

        await self._execute_impl(
            args,
            working_directory,
            on_output_line=on_output_line,
            expected_exit_code=expected_exit_code,
            timeout=timeout,
        )

    async def _execute_impl(
        self,
        args: Sequence[str],
        working_directory: Path,
        *,
        on_output_line: OutputLineCallback | None = None,
        expected_exit_code: int = 0,
        timeout: float | None = None,
    ) -> None:
        result = await execute_process(
            self.executable,
            args,
            cwd=working_directory,
            env=scrubbed_environment(self.dotnet_root),
            output=self.output,
            on_output_line=on_output_line,
            timeout=timeout,
        )
        validate_exit_code(result, expected_exit_code)
