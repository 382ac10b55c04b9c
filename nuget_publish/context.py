"""Run context resolution.

Turns a PublishRequest plus CI environment defaults into the immutable
values every stage works with: working directory, project file, registry
endpoint and credentials.
"""

from dataclasses import dataclass
from pathlib import Path

from nuget_publish.config.models import EnvironmentDefaults, PublishRequest
from nuget_publish.exceptions import MissingWorkingDirectoryError, ProjectNotFoundError
from nuget_publish.registry.endpoint import Credentials, RegistryEndpoint


@dataclass(frozen=True)
class ResolvedContext:
    """Values resolved once at the start of a run."""

    working_directory: Path
    project_file: Path | None
    endpoint: RegistryEndpoint
    credentials: Credentials


def resolve_working_directory(
    request: PublishRequest,
    environment: EnvironmentDefaults,
) -> tuple[Path, Path | None]:
    """Resolve the working directory and project file path.

    Precedence: --working-directory > GITHUB_WORKSPACE > directory of --project.
    The project path is relative to the working directory unless the working
    directory was derived from the project itself.

    Returns:
        Tuple of (working directory, project file or None)

    Raises:
        MissingWorkingDirectoryError: If nothing yields a usable directory
    """
    project = request.project
    explicit = request.working_directory or environment.workspace

    if explicit:
        working_directory = Path(explicit).expanduser()
        project_file = working_directory / project if project else None
    elif project:
        project_file = Path(project).expanduser().resolve()
        working_directory = project_file.parent
    else:
        raise MissingWorkingDirectoryError(
            "Unable to find a working directory.",
            fix_hint="Pass --working-directory or --project, or set GITHUB_WORKSPACE",
        )

    if not working_directory.is_dir():
        raise MissingWorkingDirectoryError(
            f"Working directory does not exist: {working_directory}",
            fix_hint="Pass an existing directory to --working-directory",
        )
    return working_directory, project_file


def resolve_credentials(
    request: PublishRequest,
    environment: EnvironmentDefaults,
) -> Credentials:
    """Resolve registry credentials.

    Username: --nuget-username > GITHUB_ACTOR > GITHUB_TRIGGERING_ACTOR.
    Password: --nuget-password > --nuget-api-key > GITHUB_TOKEN.
    """
    username = request.nuget_username or environment.username
    password = request.nuget_password or request.nuget_api_key or environment.token
    return Credentials(username=username, password=password)


def resolve_context(
    request: PublishRequest,
    environment: EnvironmentDefaults,
    require_project: bool = True,
) -> ResolvedContext:
    """Resolve everything a run needs before touching the registry.

    Args:
        request: Command-line options
        environment: CI environment defaults
        require_project: Fail when the project file is missing

    Raises:
        MissingWorkingDirectoryError: If no working directory can be resolved
        ProjectNotFoundError: If require_project and the project file does not exist
    """
    working_directory, project_file = resolve_working_directory(request, environment)

    if require_project and project_file is None:
        raise ProjectNotFoundError(
            "No project file given.",
            fix_hint="Pass --project with the project or solution file",
        )
    if require_project and not project_file.is_file():
        raise ProjectNotFoundError(
            f"Unable to find project file: {project_file}.",
            fix_hint="Pass --project relative to the working directory",
        )

    return ResolvedContext(
        working_directory=working_directory,
        project_file=project_file,
        endpoint=RegistryEndpoint.for_organization(request.github_organization),
        credentials=resolve_credentials(request, environment),
    )
