"""Tests for the nuget-publish command-line interface.

Tests cover:
- Default command insertion
- publish through the CLI (registry stubbed, no dotnet invocation)
- Helper commands and their aliases
- Settings file defaults and command-line overrides
"""

import sys
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from nuget_publish import __version__
from nuget_publish.cli import app, main, with_default_command
from nuget_publish.registry.client import RegistryClient, VersionStatus

runner = CliRunner()


def read_outputs(path: Path) -> dict[str, str]:
    """Parse KEY="value" lines written to an outputs file."""
    values = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, _, value = line.partition("=")
        values[key] = value.strip('"')
    return values


@pytest.fixture
def outputs_file(temp_dir: Path) -> Path:
    path = temp_dir / "github_output"
    path.write_text("", encoding="utf-8")
    return path


class TestDefaultCommand:
    """Tests for with_default_command function."""

    @pytest.mark.parametrize(
        ("argv", "expected"),
        [
            ([], []),
            (["--project", "A.csproj"], ["publish", "--project", "A.csproj"]),
            (
                ["--verbose", "--project", "A.csproj"],
                ["--verbose", "publish", "--project", "A.csproj"],
            ),
            (["--version", "1.2.3"], ["publish", "--version", "1.2.3"]),
            (["--version"], ["--version"]),
            (["--help"], ["--help"]),
            (["publish", "--project", "A.csproj"], ["publish", "--project", "A.csproj"]),
            (["p", "--project", "A.csproj"], ["p", "--project", "A.csproj"]),
            (["gc"], ["gc"]),
            (["get-version"], ["get-version"]),
        ],
    )
    def test_insertion(self, argv: list[str], expected: list[str]) -> None:
        assert with_default_command(argv) == expected


class TestVersionFlag:
    """Tests for the tool version flag."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestPublishCommand:
    """Tests for the publish command."""

    def test_already_published(
        self,
        project_dir: Path,
        make_project: Callable[..., Path],
        outputs_file: Path,
    ) -> None:
        make_project(version="2.3.0")

        with patch.object(
            RegistryClient, "check_version_exists", return_value=VersionStatus.FOUND
        ) as check:
            result = runner.invoke(
                app,
                [
                    "publish",
                    "--working-directory", str(project_dir),
                    "--project", "Acme.Lib.csproj",
                    "--output", "silent",
                    "--output-file", str(outputs_file),
                ],
            )

        assert result.exit_code == 0, result.output
        check.assert_called_once()
        outputs = read_outputs(outputs_file)
        assert outputs["STATUS"] == "already-published"
        assert outputs["VERSION"] == "v2.3.0"

    def test_missing_api_key_exit_code(
        self,
        project_dir: Path,
        make_project: Callable[..., Path],
        outputs_file: Path,
    ) -> None:
        make_project()

        with patch.object(
            RegistryClient, "check_version_exists", return_value=VersionStatus.NOT_FOUND
        ):
            result = runner.invoke(
                app,
                [
                    "p",
                    "--working-directory", str(project_dir),
                    "--project", "Acme.Lib.csproj",
                    "--output", "silent",
                    "--output-file", str(outputs_file),
                ],
            )

        assert result.exit_code == 1
        outputs = read_outputs(outputs_file)
        assert outputs["STATUS"] == "failed"
        assert "API key" in outputs["ERROR"]

    def test_github_output_used_by_default(
        self,
        project_dir: Path,
        make_project: Callable[..., Path],
        outputs_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        make_project()
        monkeypatch.setenv("GITHUB_OUTPUT", str(outputs_file))
        monkeypatch.setenv("GITHUB_WORKSPACE", str(project_dir))

        with patch.object(
            RegistryClient, "check_version_exists", return_value=VersionStatus.FOUND
        ):
            result = runner.invoke(
                app, ["publish", "--project", "Acme.Lib.csproj", "--output", "silent"]
            )

        assert result.exit_code == 0, result.output
        assert read_outputs(outputs_file)["STATUS"] == "already-published"

    def test_failure_before_pipeline_reported(self, outputs_file: Path) -> None:
        """No working directory still produces a report and exit code 1."""
        result = runner.invoke(
            app,
            ["publish", "--output", "silent", "--output-file", str(outputs_file)],
        )

        assert result.exit_code == 1
        assert read_outputs(outputs_file)["ERROR"] == "Unable to find a working directory."

    def test_invalid_enum_rejected(self, project_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["publish", "--working-directory", str(project_dir), "--platform", "sparc"],
        )
        assert result.exit_code != 0

    def test_settings_file_defaults(
        self,
        project_dir: Path,
        make_project: Callable[..., Path],
        outputs_file: Path,
    ) -> None:
        """Values from --config apply unless given on the command line."""
        make_project("src/Acme.Lib.csproj", version="1.0.0")
        settings = project_dir / "nuget-publish.yml"
        settings.write_text(
            f"working-directory: {project_dir}\n"
            "project: src/Acme.Lib.csproj\n"
            "github-organization: acme\n"
            "version: 9.9.9\n"
            "output: silent\n"
        )

        with patch.object(
            RegistryClient, "check_version_exists", return_value=VersionStatus.FOUND
        ) as check:
            result = runner.invoke(
                app,
                [
                    "publish",
                    "--config", str(settings),
                    "--version", "1.0.0",
                    "--output-file", str(outputs_file),
                ],
            )

        assert result.exit_code == 0, result.output
        index_url, version = check.call_args.args[:2]
        assert index_url.startswith("https://nuget.pkg.github.com/acme/")
        assert version == "1.0.0"
        assert read_outputs(outputs_file)["VERSION"] == "v1.0.0"

    def test_invalid_settings_file(self, temp_dir: Path) -> None:
        settings = temp_dir / "nuget-publish.yml"
        settings.write_text("unknown_option: true\n")

        result = runner.invoke(app, ["publish", "--config", str(settings)])

        assert result.exit_code == 1


class TestHelperCommands:
    """Tests for generate-configuration, generate-package-name and generate-version."""

    @pytest.mark.parametrize("command", ["generate-version", "get-version", "gv"])
    def test_generate_version(
        self, command: str, project_dir: Path, make_project: Callable[..., Path]
    ) -> None:
        make_project(version="2.3.0")

        result = runner.invoke(
            app,
            [command, "--working-directory", str(project_dir), "--project", "Acme.Lib.csproj"],
        )

        assert result.exit_code == 0, result.output
        assert "2.3.0" in result.stdout
        assert "v2.3.0" not in result.stdout

    @pytest.mark.parametrize("command", ["generate-package-name", "get-package-name", "gn"])
    def test_generate_package_name(
        self, command: str, project_dir: Path, make_project: Callable[..., Path]
    ) -> None:
        make_project(package_id="Acme.Lib.Package")

        result = runner.invoke(
            app,
            [
                command,
                "--working-directory", str(project_dir),
                "--project", "Acme.Lib.csproj",
                "--scan-for-package-name",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Acme.Lib.Package" in result.stdout

    @pytest.mark.parametrize("command", ["generate-configuration", "get-config", "gc"])
    def test_generate_configuration(self, command: str, project_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                command,
                "--working-directory", str(project_dir),
                "--github-organization", "acme",
                "--nuget-username", "octocat",
                "--nuget-api-key", "key",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "https://nuget.pkg.github.com/acme/index.json" in result.stdout
        assert "nuget.pkg.github.com.acme" in result.stdout
        assert not (project_dir / "nuget.config").exists()

    def test_generate_version_missing_project(self, project_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["generate-version", "--working-directory", str(project_dir), "--project", "No.csproj"],
        )
        assert result.exit_code == 1


class TestMain:
    """Tests for the console script entry point."""

    def test_publish_is_default(
        self,
        project_dir: Path,
        make_project: Callable[..., Path],
        outputs_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        make_project()
        monkeypatch.setattr(
            sys,
            "argv",
            [
                "nuget-publish",
                "--working-directory", str(project_dir),
                "--project", "Acme.Lib.csproj",
                "--output", "silent",
                "--output-file", str(outputs_file),
            ],
        )

        with patch.object(
            RegistryClient, "check_version_exists", return_value=VersionStatus.FOUND
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0
        assert read_outputs(outputs_file)["STATUS"] == "already-published"
