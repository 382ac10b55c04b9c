"""Unit tests for nuget_publish.context module.

Tests cover:
- Working directory precedence: option > GITHUB_WORKSPACE > project directory
- Credential precedence for username and password
- Project file checks
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from nuget_publish.config.models import EnvironmentDefaults, PublishRequest
from nuget_publish.context import resolve_context, resolve_credentials, resolve_working_directory
from nuget_publish.exceptions import MissingWorkingDirectoryError, ProjectNotFoundError


class TestResolveWorkingDirectory:
    """Tests for resolve_working_directory function."""

    def test_explicit_option_wins(
        self, project_dir: Path, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GITHUB_WORKSPACE", str(temp_dir))
        request = PublishRequest(working_directory=str(project_dir), project="Acme.Lib.csproj")

        working_directory, project_file = resolve_working_directory(
            request, EnvironmentDefaults()
        )

        assert working_directory == project_dir
        assert project_file == project_dir / "Acme.Lib.csproj"

    def test_workspace_variable_used(
        self, project_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GITHUB_WORKSPACE", str(project_dir))
        request = PublishRequest(project="src/Acme.Lib.csproj")

        working_directory, project_file = resolve_working_directory(
            request, EnvironmentDefaults()
        )

        assert working_directory == project_dir
        assert project_file == project_dir / "src" / "Acme.Lib.csproj"

    def test_project_directory_fallback(self, make_project: Callable[..., Path]) -> None:
        """Without an explicit directory the project's own directory is used."""
        path = make_project("src/Acme.Lib.csproj")
        request = PublishRequest(project=str(path))

        working_directory, project_file = resolve_working_directory(
            request, EnvironmentDefaults()
        )

        assert working_directory == path.parent.resolve()
        assert project_file == path.resolve()

    def test_nothing_given_raises(self) -> None:
        with pytest.raises(MissingWorkingDirectoryError):
            resolve_working_directory(PublishRequest(), EnvironmentDefaults())

    def test_missing_directory_raises(self, temp_dir: Path) -> None:
        request = PublishRequest(working_directory=str(temp_dir / "nope"))
        with pytest.raises(MissingWorkingDirectoryError):
            resolve_working_directory(request, EnvironmentDefaults())


class TestResolveCredentials:
    """Tests for resolve_credentials function."""

    def test_explicit_values_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_ACTOR", "octocat")
        monkeypatch.setenv("GITHUB_TOKEN", "ghs_token")
        request = PublishRequest(
            nuget_username="bot", nuget_password="pw", nuget_api_key="key"
        )
        credentials = resolve_credentials(request, EnvironmentDefaults())

        assert credentials.username == "bot"
        assert credentials.password == "pw"

    def test_api_key_is_password_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_ACTOR", "octocat")
        monkeypatch.setenv("GITHUB_TOKEN", "ghs_token")
        request = PublishRequest(nuget_api_key="key")
        credentials = resolve_credentials(request, EnvironmentDefaults())

        assert credentials.username == "octocat"
        assert credentials.password == "key"

    def test_environment_fallbacks(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TRIGGERING_ACTOR", "triggerer")
        monkeypatch.setenv("GITHUB_TOKEN", "ghs_token")

        credentials = resolve_credentials(PublishRequest(), EnvironmentDefaults())

        assert credentials.username == "triggerer"
        assert credentials.password == "ghs_token"

    def test_actor_preferred_over_triggering_actor(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GITHUB_ACTOR", "octocat")
        monkeypatch.setenv("GITHUB_TRIGGERING_ACTOR", "triggerer")

        credentials = resolve_credentials(PublishRequest(), EnvironmentDefaults())

        assert credentials.username == "octocat"

    def test_blank_values_are_absent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_ACTOR", "   ")
        monkeypatch.setenv("GITHUB_TRIGGERING_ACTOR", "triggerer")

        credentials = resolve_credentials(
            PublishRequest(nuget_username="  "), EnvironmentDefaults()
        )

        assert credentials.username == "triggerer"


class TestResolveContext:
    """Tests for resolve_context function."""

    def test_resolves_endpoint_and_project(
        self, project_dir: Path, make_project: Callable[..., Path]
    ) -> None:
        path = make_project()
        request = PublishRequest(
            working_directory=str(project_dir),
            project="Acme.Lib.csproj",
            github_organization="acme",
        )

        context = resolve_context(request, EnvironmentDefaults())

        assert context.project_file == path
        assert context.endpoint.is_github is True

    def test_missing_project_file_raises(self, project_dir: Path) -> None:
        request = PublishRequest(working_directory=str(project_dir), project="Missing.csproj")
        with pytest.raises(ProjectNotFoundError) as exc_info:
            resolve_context(request, EnvironmentDefaults())
        assert "Unable to find project file" in exc_info.value.message

    def test_no_project_given_raises(self, project_dir: Path) -> None:
        request = PublishRequest(working_directory=str(project_dir))
        with pytest.raises(ProjectNotFoundError):
            resolve_context(request, EnvironmentDefaults())

    def test_project_optional_for_configuration(self, project_dir: Path) -> None:
        request = PublishRequest(working_directory=str(project_dir))
        context = resolve_context(request, EnvironmentDefaults(), require_project=False)
        assert context.project_file is None
