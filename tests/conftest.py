"""Shared fixtures for scenario runner tests."""

import sys
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from scenario_tests.config import dotnet_host_name
from scenario_tests.environment import (
    DOTNET_ROOT_VARIABLE,
    SDK_VERSION_VARIABLE,
    TARGET_RID_VARIABLE,
    TEST_ROOT_VARIABLE,
)


@pytest.fixture
def dotnet_root(tmp_path: Path) -> Path:
    """Create a directory that looks like an SDK installation."""
    root = tmp_path / "dotnet"
    root.mkdir()
    host = root / dotnet_host_name()
    host.write_text("")
    host.chmod(0o755)
    return root


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep published run parameters from leaking between tests."""
    for name in (
        DOTNET_ROOT_VARIABLE,
        TEST_ROOT_VARIABLE,
        SDK_VERSION_VARIABLE,
        TARGET_RID_VARIABLE,
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_artifact(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Callable[[str], str]]:
    """Return a function writing an importable scenario module.

    The function takes the module source and returns the module name.
    """
    artifacts = tmp_path / "artifacts"
    artifacts.mkdir()
    monkeypatch.syspath_prepend(str(artifacts))
    names: list[str] = []

    def _write(source: str) -> str:
        name = f"scenarios_{uuid.uuid4().hex}"
        (artifacts / f"{name}.py").write_text(source)
        names.append(name)
        return name

    yield _write

    for name in names:
        sys.modules.pop(name, None)
