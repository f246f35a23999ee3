"""Integration tests for external process execution."""

import asyncio
import sys
from pathlib import Path

import pytest

from scenario_tests.execution import TestOutputHelper
from scenario_tests.process import (
    ProcessExitCodeError,
    ProcessResult,
    execute_process,
    scrubbed_environment,
    validate_exit_code,
)


async def run_python(script: str, cwd: Path, **kwargs: object) -> ProcessResult:
    return await execute_process(
        sys.executable, ["-c", script], cwd=cwd, **kwargs  # type: ignore[arg-type]
    )


async def test_captures_output_and_exit_code(tmp_path: Path) -> None:
    """Captures stdout, stderr and the exit code."""
    output = TestOutputHelper()

    result = await run_python(
        "import sys\n"
        "print('first')\n"
        "print('second')\n"
        "print('problem', file=sys.stderr)\n"
        "sys.exit(3)\n",
        tmp_path,
        output=output,
    )

    assert result.exit_code == 3
    assert result.stdout == "first\nsecond"
    assert result.stderr == "problem"
    assert not result.timed_out
    assert sorted(output.output.splitlines()) == ["first", "problem", "second"]


async def test_runs_in_working_directory(tmp_path: Path) -> None:
    """Starts the process in the given directory."""
    result = await run_python("import os; print(os.getcwd())", tmp_path)

    assert Path(result.stdout).resolve() == tmp_path.resolve()


async def test_passes_environment(tmp_path: Path) -> None:
    """Uses the given environment instead of the inherited one."""
    env = scrubbed_environment(tmp_path, base={"DOTNET_NOLOGO": "1", "KEEP": "yes"})

    result = await run_python(
        "import os\n"
        "print(os.environ.get('DOTNET_NOLOGO', 'unset'))\n"
        "print(os.environ['KEEP'])\n"
        "print(os.environ['DOTNET_ROOT'])\n",
        tmp_path,
        env=env,
    )

    assert result.stdout.splitlines() == ["unset", "yes", str(tmp_path)]


async def test_output_line_callback(tmp_path: Path) -> None:
    """Calls back for every stdout line with the running process."""
    seen: list[str] = []

    def on_output_line(line: str, process: asyncio.subprocess.Process) -> None:
        assert process.pid > 0
        seen.append(line)

    await run_python("print('a'); print('b')", tmp_path, on_output_line=on_output_line)

    assert seen == ["a", "b"]


async def test_callback_can_terminate_process(tmp_path: Path) -> None:
    """Lets the callback stop a long running process."""

    def stop(line: str, process: asyncio.subprocess.Process) -> None:
        if line == "ready" and process.returncode is None:
            process.terminate()

    result = await run_python(
        "import time\nprint('ready', flush=True)\ntime.sleep(60)\n",
        tmp_path,
        on_output_line=stop,
        timeout=30,
    )

    assert not result.timed_out
    assert result.exit_code != 0


async def test_timeout_kills_process(tmp_path: Path) -> None:
    """Kills a process that outlives its timeout."""
    result = await run_python("import time; time.sleep(60)", tmp_path, timeout=0.5)

    assert result.timed_out
    assert result.exit_code != 0

    with pytest.raises(ProcessExitCodeError, match="Process timed out"):
        validate_exit_code(result)


async def test_validate_exit_code(tmp_path: Path) -> None:
    """Reports unexpected exit codes with the captured output."""
    result = await run_python(
        "import sys; print('out'); print('err', file=sys.stderr); sys.exit(2)",
        tmp_path,
    )

    validate_exit_code(result, expected_exit_code=2)
    with pytest.raises(ProcessExitCodeError) as exc_info:
        validate_exit_code(result)

    message = str(exc_info.value)
    assert message.startswith("Expected exit code 0 but got 2:")
    assert "StdOut:\nout" in message
    assert "StdErr:\nerr" in message


def test_scrubbed_environment_drops_dotnet_variables(tmp_path: Path) -> None:
    """Removes inherited DOTNET_ variables before setting its own."""
    env = scrubbed_environment(
        tmp_path,
        nuget_packages=tmp_path / "packages",
        set_path=True,
        base={"DOTNET_ROOT": "/elsewhere", "DOTNET_MSBUILD_SDK_RESOLVER": "x"},
    )

    assert "DOTNET_MSBUILD_SDK_RESOLVER" not in env
    assert env["DOTNET_ROOT"] == str(tmp_path)
    assert env["DOTNET_CLI_TELEMETRY_OPTOUT"] == "1"
    assert env["NUGET_PACKAGES"] == str(tmp_path / "packages")
    assert env["PATH"] == str(tmp_path)
