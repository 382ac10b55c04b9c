"""Pytest fixtures for nuget-publish tests.

Provides common fixtures for:
- Temporary working directories
- MSBuild project files
- A fake dotnet runner recording every invocation
- A registry client stub
"""

import subprocess
import threading
from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from nuget_publish.registry.client import RegistryClient, VersionStatus

GITHUB_VARIABLES = (
    "GITHUB_WORKSPACE",
    "GITHUB_ACTOR",
    "GITHUB_TRIGGERING_ACTOR",
    "GITHUB_TOKEN",
    "GITHUB_OUTPUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove GitHub Actions variables so tests behave the same inside CI."""
    for name in GITHUB_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary directory for tests.

    Yields:
        Path to temporary directory
    """
    yield tmp_path


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """Create a temporary working directory.

    Returns:
        Path to working directory
    """
    project = temp_dir / "workspace"
    project.mkdir()
    return project


def render_project(
    version: str | None = "2.3.0",
    package_id: str | None = None,
    assembly_name: str | None = None,
) -> str:
    """Render an SDK-style project file with the given properties."""
    properties = ["    <TargetFramework>net8.0</TargetFramework>"]
    if package_id:
        properties.append(f"    <PackageId>{package_id}</PackageId>")
    if assembly_name:
        properties.append(f"    <AssemblyName>{assembly_name}</AssemblyName>")
    if version:
        properties.append(f"    <Version>{version}</Version>")
    body = "\n".join(properties)
    return (
        '<Project Sdk="Microsoft.NET.Sdk">\n'
        "  <PropertyGroup>\n"
        f"{body}\n"
        "  </PropertyGroup>\n"
        "</Project>\n"
    )


@pytest.fixture
def make_project(project_dir: Path) -> Callable[..., Path]:
    """Factory writing a project file into the working directory.

    Returns:
        Callable(name="Acme.Lib.csproj", **properties) -> project file path
    """

    def _make(name: str = "Acme.Lib.csproj", **properties: str | None) -> Path:
        path = project_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_project(**properties), encoding="utf-8")
        return path

    return _make


class FakeDotnet:
    """Stands in for utils.shell.run, recording dotnet invocations.

    The pack stage drops ``package_file`` into the working directory the way
    ``dotnet pack --output`` does.
    """

    def __init__(self, package_file: str | None = "Acme.Lib.2.3.0.nupkg") -> None:
        self.package_file = package_file
        self.calls: list[list[str]] = []
        self.results: dict[str, tuple[int, str, str]] = {}
        self.errors: dict[str, BaseException] = {}

    def __call__(
        self,
        cmd: list[str],
        cwd: Path | None = None,
        check: bool = True,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(cmd))
        stage = "push" if cmd[1] == "nuget" else cmd[1]

        if stage in self.errors:
            raise self.errors[stage]
        if stage == "pack" and self.package_file and cwd is not None:
            (Path(cwd) / self.package_file).write_bytes(b"PK\x03\x04")

        returncode, stdout, stderr = self.results.get(stage, (0, f"{stage} ok", ""))
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)

    @property
    def stages(self) -> list[str]:
        return ["push" if call[1] == "nuget" else call[1] for call in self.calls]

    def args_for(self, stage: str) -> list[str]:
        for call, name in zip(self.calls, self.stages):
            if name == stage:
                return call
        raise AssertionError(f"dotnet {stage} was not run")


@pytest.fixture
def fake_dotnet() -> FakeDotnet:
    """A FakeDotnet runner whose stages all succeed."""
    return FakeDotnet()


@pytest.fixture
def registry() -> MagicMock:
    """A RegistryClient stub reporting every version as new."""
    client = MagicMock(spec=RegistryClient)
    client.check_version_exists.return_value = VersionStatus.NOT_FOUND
    return client
