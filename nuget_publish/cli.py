"""Command-line interface for nuget-publish.

Provides commands for:
- publish (default, alias p): Build, pack and push a package if its version is new
- generate-configuration (aliases get-config, gc): Print nuget.config with credentials
- generate-package-name (aliases get-package-name, gn): Print the resolved package name
- generate-version (aliases get-version, gv): Print the resolved package version
"""

import logging
import signal
import sys
from pathlib import Path

import typer
from pydantic import ValidationError as PydanticValidationError

from nuget_publish import __version__
from nuget_publish.config.loader import load_settings
from nuget_publish.config.models import (
    BuildConfiguration,
    BuildVerbosity,
    EnvironmentDefaults,
    OutputFormat,
    PublishRequest,
    TargetPlatform,
)
from nuget_publish.exceptions import PublishToolError, SettingsError
from nuget_publish.log import setup_logging
from nuget_publish.pipeline import (
    PublishPipeline,
    generate_configuration,
    generate_package_name,
    generate_version,
)
from nuget_publish.report import ReportWriter

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="nuget-publish",
    help="Build, pack and publish NuGet packages",
    add_completion=False,
    no_args_is_help=True,
)

COMMAND_ALIASES = {
    "publish": ("p",),
    "generate-configuration": ("get-config", "gc"),
    "generate-package-name": ("get-package-name", "gn"),
    "generate-version": ("get-version", "gv"),
}

# Options that belong to the app rather than to a command
GLOBAL_FLAGS = ("--verbose", "-v")
APP_ONLY_ARGS = ("--help", "-V")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"nuget-publish version {__version__}")
        raise typer.Exit()


def build_request(config: Path | None = None, **options: object) -> PublishRequest:
    """Combine settings file defaults with command-line options.

    Args:
        config: Explicit settings file (searched in cwd when None)
        **options: Command-line values; None means "not given"

    Returns:
        Validated PublishRequest

    Raises:
        SettingsError: If the settings file or the combined values are invalid
    """
    settings = load_settings(config)
    try:
        return PublishRequest(**settings.merge(**options))
    except PydanticValidationError as e:
        raise SettingsError(
            "Invalid options",
            details=str(e),
            fix_hint="Run with --help to see accepted values",
        ) from e


def fail(error: PublishToolError) -> typer.Exit:
    """Log a fatal error and return the Exit to raise."""
    logger.critical("%s", error)
    return typer.Exit(code=error.exit_code)


@app.callback()
def main_callback(
    version: bool = typer.Option(  # noqa: B008
        False,
        "-V",
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(  # noqa: B008
        False,
        "--verbose",
        "-v",
        help="Show debug output",
    ),
) -> None:
    """Build, pack and publish NuGet packages.

    Publishes to nuget.org, or to GitHub Packages when --github-organization
    is given. A version that is already on the registry is left alone.
    """
    setup_logging(verbose)


@app.command()
def publish(
    project: str | None = typer.Option(  # noqa: B008
        None,
        "--project",
        help="Project or solution file, relative to the working directory",
    ),
    working_directory: str | None = typer.Option(  # noqa: B008
        None,
        "--working-directory",
        help="Working directory (defaults to GITHUB_WORKSPACE, then the project's directory)",
    ),
    github_organization: str | None = typer.Option(  # noqa: B008
        None,
        "--github-organization",
        help="Publish to this organization's GitHub Packages feed instead of nuget.org",
    ),
    nuget_api_key: str | None = typer.Option(  # noqa: B008
        None,
        "--nuget-api-key",
        help="API key used to push the package",
    ),
    nuget_username: str | None = typer.Option(  # noqa: B008
        None,
        "--nuget-username",
        help="Registry username (defaults to GITHUB_ACTOR)",
    ),
    nuget_password: str | None = typer.Option(  # noqa: B008
        None,
        "--nuget-password",
        help="Registry password (defaults to the API key, then GITHUB_TOKEN)",
    ),
    nuget_auth_for_build: bool = typer.Option(  # noqa: B008
        False,
        "--nuget-auth-for-build",
        help="Write registry credentials to nuget.config before restoring",
    ),
    package_name: str | None = typer.Option(  # noqa: B008
        None,
        "--package-name",
        help="Package name (defaults to the project's metadata or file name)",
    ),
    version: str | None = typer.Option(  # noqa: B008
        None,
        "--version",
        help="Package version (defaults to the project's <Version>)",
    ),
    nuspec_file: str | None = typer.Option(  # noqa: B008
        None,
        "--nuspec-file",
        help="Pack with this .nuspec file",
    ),
    configuration: BuildConfiguration | None = typer.Option(  # noqa: B008
        None,
        "--configuration",
        case_sensitive=False,
        help="Build configuration [default: Release]",
    ),
    platform: TargetPlatform | None = typer.Option(  # noqa: B008
        None,
        "--platform",
        case_sensitive=False,
        help="Target platform [default: AnyCPU]",
    ),
    verbosity: BuildVerbosity | None = typer.Option(  # noqa: B008
        None,
        "--verbosity",
        case_sensitive=False,
        help="dotnet logger verbosity [default: minimal]",
    ),
    scan_for_package_name: bool = typer.Option(  # noqa: B008
        False,
        "--scan-for-package-name",
        help="Take the package name from PackageId or AssemblyName",
    ),
    output: OutputFormat | None = typer.Option(  # noqa: B008
        None,
        "--output",
        case_sensitive=False,
        help="Console report format [default: plain]",
    ),
    output_file: str | None = typer.Option(  # noqa: B008
        None,
        "--output-file",
        help="Append KEY=\"value\" outputs to this file (defaults to GITHUB_OUTPUT)",
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Settings file (defaults to nuget-publish.yml in the current directory)",
    ),
) -> None:
    """Publish a project's package unless its version is already on the registry.

    Examples:
        nuget-publish --project src/Lib/Lib.csproj --nuget-api-key KEY
        nuget-publish publish --project Lib.csproj --github-organization acme
    """
    try:
        request = build_request(
            config,
            project=project,
            working_directory=working_directory,
            github_organization=github_organization,
            nuget_api_key=nuget_api_key,
            nuget_username=nuget_username,
            nuget_password=nuget_password,
            nuget_auth_for_build=nuget_auth_for_build or None,
            package_name=package_name,
            version=version,
            nuspec_file=nuspec_file,
            configuration=configuration,
            platform=platform,
            verbosity=verbosity,
            scan_for_package_name=scan_for_package_name or None,
            output=output,
            output_file=output_file,
        )
    except PublishToolError as e:
        raise fail(e) from None

    environment = EnvironmentDefaults()
    writer = ReportWriter(request.output, request.output_file or environment.output_file)
    pipeline = PublishPipeline(request=request, environment=environment)

    previous = signal.signal(signal.SIGTERM, lambda *_: pipeline.cancel_event.set())
    try:
        code = pipeline.run(writer)
    finally:
        signal.signal(signal.SIGTERM, previous)

    if code:
        raise typer.Exit(code=code)


@app.command(name="generate-configuration")
def generate_configuration_command(
    working_directory: str | None = typer.Option(  # noqa: B008
        None,
        "--working-directory",
        help="Directory holding nuget.config (defaults to GITHUB_WORKSPACE)",
    ),
    github_organization: str | None = typer.Option(  # noqa: B008
        None,
        "--github-organization",
        help="Use this organization's GitHub Packages feed instead of nuget.org",
    ),
    nuget_api_key: str | None = typer.Option(  # noqa: B008
        None,
        "--nuget-api-key",
        help="Password fallback when --nuget-password is not given",
    ),
    nuget_username: str | None = typer.Option(  # noqa: B008
        None,
        "--nuget-username",
        help="Registry username (defaults to GITHUB_ACTOR)",
    ),
    nuget_password: str | None = typer.Option(  # noqa: B008
        None,
        "--nuget-password",
        help="Registry password (defaults to the API key, then GITHUB_TOKEN)",
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Settings file (defaults to nuget-publish.yml in the current directory)",
    ),
) -> None:
    """Print nuget.config with the registry source and credentials merged in.

    An existing nuget.config in the working directory is used as the base.
    The file itself is not modified.
    """
    try:
        request = build_request(
            config,
            working_directory=working_directory,
            github_organization=github_organization,
            nuget_api_key=nuget_api_key,
            nuget_username=nuget_username,
            nuget_password=nuget_password,
        )
        document = generate_configuration(request, EnvironmentDefaults())
    except PublishToolError as e:
        raise fail(e) from None

    typer.echo(document)


@app.command(name="generate-package-name")
def generate_package_name_command(
    project: str | None = typer.Option(  # noqa: B008
        None,
        "--project",
        help="Project or solution file, relative to the working directory",
    ),
    working_directory: str | None = typer.Option(  # noqa: B008
        None,
        "--working-directory",
        help="Working directory (defaults to GITHUB_WORKSPACE, then the project's directory)",
    ),
    scan_for_package_name: bool = typer.Option(  # noqa: B008
        False,
        "--scan-for-package-name",
        help="Take the package name from PackageId or AssemblyName",
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Settings file (defaults to nuget-publish.yml in the current directory)",
    ),
) -> None:
    """Print the package name resolved from the project."""
    try:
        request = build_request(
            config,
            project=project,
            working_directory=working_directory,
            scan_for_package_name=scan_for_package_name or None,
        )
        name = generate_package_name(request, EnvironmentDefaults())
    except PublishToolError as e:
        raise fail(e) from None

    typer.echo(name)


@app.command(name="generate-version")
def generate_version_command(
    project: str | None = typer.Option(  # noqa: B008
        None,
        "--project",
        help="Project or solution file, relative to the working directory",
    ),
    working_directory: str | None = typer.Option(  # noqa: B008
        None,
        "--working-directory",
        help="Working directory (defaults to GITHUB_WORKSPACE, then the project's directory)",
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Settings file (defaults to nuget-publish.yml in the current directory)",
    ),
) -> None:
    """Print the package version declared by the project."""
    try:
        request = build_request(config, project=project, working_directory=working_directory)
        version = generate_version(request, EnvironmentDefaults())
    except PublishToolError as e:
        raise fail(e) from None

    typer.echo(version)


# Register the short aliases without listing them in --help
_COMMANDS = {
    "publish": publish,
    "generate-configuration": generate_configuration_command,
    "generate-package-name": generate_package_name_command,
    "generate-version": generate_version_command,
}
for _name, _aliases in COMMAND_ALIASES.items():
    for _alias in _aliases:
        app.command(name=_alias, hidden=True)(_COMMANDS[_name])


def with_default_command(argv: list[str]) -> list[str]:
    """Insert ``publish`` when no command is named.

    Leading app options (--verbose) stay in front of the inserted command.
    A lone --version shows the tool version; with a value it is the package
    version for publish.
    """
    index = 0
    while index < len(argv) and argv[index] in GLOBAL_FLAGS:
        index += 1

    rest = argv[index:]
    if not rest:
        return argv
    if rest[0] in APP_ONLY_ARGS or rest == ["--version"]:
        return argv

    known = set(COMMAND_ALIASES)
    known.update(alias for aliases in COMMAND_ALIASES.values() for alias in aliases)
    if rest[0] in known:
        return argv
    return argv[:index] + ["publish"] + rest


def main() -> None:
    """Console script entry point."""
    app(args=with_default_command(sys.argv[1:]), prog_name="nuget-publish")


if __name__ == "__main__":
    main()
