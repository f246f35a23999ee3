"""Execution of external commands on behalf of scenario bodies."""

import asyncio
import logging
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from scenario_tests.execution import TestOutputHelper

log = logging.getLogger(__name__)

type OutputLineCallback = Callable[[str, asyncio.subprocess.Process], None]


class ProcessExitCodeError(RuntimeError):
    """Raised when a process exits with an unexpected code or times out."""


@dataclass(frozen=True, kw_only=True)
class ProcessResult:
    """Captured outcome of a finished process."""

    args: Sequence[str]
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def command_line(self) -> str:
        """Command as a single display string."""
        return " ".join(self.args)


def scrubbed_environment(
    dotnet_root: Path,
    *,
    nuget_packages: Path | None = None,
    set_path: bool = False,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the environment for an SDK command.

    Variables inherited from an enclosing ``dotnet`` invocation change how
    nested commands behave, so every ``DOTNET_*`` variable is dropped before
    the SDK-specific ones are set.
    """
    source = os.environ if base is None else base
    env = {key: value for key, value in source.items() if not key.startswith("DOTNET_")}

    env["DOTNET_CLI_TELEMETRY_OPTOUT"] = "1"
    env["DOTNET_SKIP_FIRST_TIME_EXPERIENCE"] = "1"
    env["DOTNET_ROOT"] = str(dotnet_root)
    if nuget_packages is not None:
        env["NUGET_PACKAGES"] = str(nuget_packages)
    if set_path:
        env["PATH"] = os.pathsep.join(filter(None, [str(dotnet_root), env.get("PATH")]))
    return env


async def execute_process(
    executable: Path | str,
    args: Sequence[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    output: TestOutputHelper | None = None,
    on_output_line: OutputLineCallback | None = None,
    timeout: float | None = None,
) -> ProcessResult:
    """Run a command to completion, capturing its output line by line.

    Args:
        executable: Program to start
        args: Arguments passed to the program
        cwd: Working directory
        env: Full environment for the process (default: inherited)
        output: Receives every stdout and stderr line
        on_output_line: Called with each stdout line and the running process
        timeout: Seconds after which the process is killed (default: no limit)

    Returns:
        Captured exit code and output

    """
    command = [str(executable), *args]
    log.info("Executing: %s (cwd=%s)", " ".join(command), cwd)

    process = await asyncio.create_subprocess_exec(
        *command,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    stdout_lines: list[str] = []
    stderr_lines: list[str] = []

    async def pump(
        stream: asyncio.StreamReader, lines: list[str], *, is_stdout: bool
    ) -> None:
        async for raw in stream:
            line = raw.decode(errors="replace").rstrip("\r\n")
            lines.append(line)
            if output is not None:
                output.write_line(line)
            if is_stdout and on_output_line is not None:
                on_output_line(line, process)

    if process.stdout is None or process.stderr is None:
        raise RuntimeError(f"Output of {command[0]} is not captured")

    timed_out = False
    try:
        await asyncio.wait_for(
            asyncio.gather(
                pump(process.stdout, stdout_lines, is_stdout=True),
                pump(process.stderr, stderr_lines, is_stdout=False),
                process.wait(),
            ),
            timeout,
        )
    except TimeoutError:
        timed_out = True
        log.warning("Process timed out after %ss: %s", timeout, " ".join(command))
        if process.returncode is None:
            process.kill()

    exit_code = await process.wait()
    return ProcessResult(
        args=command,
        exit_code=exit_code,
        stdout="\n".join(stdout_lines),
        stderr="\n".join(stderr_lines),
        timed_out=timed_out,
    )


def validate_exit_code(result: ProcessResult, expected_exit_code: int = 0) -> None:
    """Check the outcome of a process.

    Raises:
        ProcessExitCodeError: If the process timed out or exited with another code

    """
    if result.timed_out:
        raise ProcessExitCodeError(
            f"Process timed out: {result.command_line}\n"
            f"StdOut:\n{result.stdout}\nStdErr:\n{result.stderr}"
        )

    if result.exit_code != expected_exit_code:
        raise ProcessExitCodeError(
            f"Expected exit code {expected_exit_code} but got {result.exit_code}: "
            f"{result.command_line}\n"
            f"StdOut:\n{result.stdout}\nStdErr:\n{result.stderr}"
        )
