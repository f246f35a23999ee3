"""Resolved configuration of a scenario test run."""

import platform
import sys
import tempfile
import uuid
from collections.abc import Sequence
from pathlib import Path

from pydantic import Field, field_validator

from scenario_tests.discovery import DEFAULT_ARTIFACT
from scenario_tests.models.base import Model
from scenario_tests.traits import TraitFilter, parse_trait_arguments

ARCHITECTURES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}


def dotnet_host_name() -> str:
    """File name of the SDK host executable on this platform."""
    return "dotnet.exe" if sys.platform == "win32" else "dotnet"


def _is_musl() -> bool:
    libc, _ = platform.libc_ver()
    return libc != "glibc" and any(Path("/lib").glob("ld-musl-*"))


def current_runtime_identifier() -> str:
    """Runtime identifier of the running process, e.g. ``linux-x64``."""
    system = platform.system()
    machine = platform.machine().lower()
    arch = ARCHITECTURES.get(machine, machine)

    match system:
        case "Windows":
            os_name = "win"
        case "Darwin":
            os_name = "osx"
        case "Linux":
            os_name = "linux-musl" if _is_musl() else "linux"
        case _:
            os_name = system.lower()

    return f"{os_name}-{arch}"


def default_test_root() -> Path:
    """Unique, not yet existing directory under the system temp directory."""
    return Path(tempfile.gettempdir()) / f"scenario-tests-{uuid.uuid4().hex[:12]}"


class RunConfiguration(Model):
    """Run parameters, constructed once from the command line."""

    dotnet_root: Path = Field(..., description="SDK installation to test")
    test_root: Path = Field(
        default_factory=default_test_root,
        description="Scratch directory used by scenarios",
    )
    sdk_version: str | None = Field(
        default=None, description="SDK version pinned in generated projects"
    )
    target_rid: str = Field(
        default_factory=current_runtime_identifier,
        description="Runtime identifier for scenarios that need one",
    )
    list_only: bool = Field(default=False, description="List tests without running")
    offline_only: bool = Field(
        default=False, description="Only run tests tagged Category=Offline"
    )
    traits: Sequence[str] = Field(
        default=(), description="KEY=VALUE traits a test must have"
    )
    no_traits: Sequence[str] = Field(
        default=(), description="KEY=VALUE traits a test must not have"
    )
    xml_path: Path | None = Field(default=None, description="XML results file")
    no_cleanup: bool = Field(
        default=False, description="Keep the test root after the run"
    )
    artifact: str = Field(
        default=DEFAULT_ARTIFACT, description="Test artifact as module[:attribute]"
    )

    @field_validator("dotnet_root")
    @classmethod
    def _validate_dotnet_root(cls, value: Path) -> Path:
        host = dotnet_host_name()
        if not (value / host).is_file():
            raise ValueError(
                f"--dotnet-root must point to a valid dotnet root with host {host}"
            )
        return value

    @field_validator("traits", "no_traits")
    @classmethod
    def _validate_traits(cls, value: Sequence[str]) -> Sequence[str]:
        parse_trait_arguments(value)
        return tuple(value)

    def trait_filter(self) -> TraitFilter:
        """Build the trait filter selecting the tests of this run."""
        return TraitFilter.from_arguments(
            self.traits, self.no_traits, offline_only=self.offline_only
        )
