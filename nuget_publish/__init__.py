"""Build, pack and publish NuGet packages from CI."""

__version__ = "0.1.0"

from nuget_publish.exceptions import (
    AuthenticationError,
    ConfigParseError,
    MissingApiKeyError,
    MissingNameError,
    MissingVersionError,
    MissingWorkingDirectoryError,
    NoArtifactProducedError,
    ProjectNotFoundError,
    ProjectParseError,
    PublishCancelledError,
    PublishToolError,
    PushRejectedError,
    RegistryUnreachableError,
    SettingsError,
    SubprocessFailure,
)

__all__ = [
    "__version__",
    "PublishToolError",
    "SettingsError",
    "ConfigParseError",
    "ProjectParseError",
    "ProjectNotFoundError",
    "MissingWorkingDirectoryError",
    "MissingNameError",
    "MissingVersionError",
    "MissingApiKeyError",
    "AuthenticationError",
    "RegistryUnreachableError",
    "SubprocessFailure",
    "NoArtifactProducedError",
    "PushRejectedError",
    "PublishCancelledError",
]
