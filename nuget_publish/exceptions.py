"""Custom exception hierarchy for the NuGet publishing tool.

Every error is terminal for the current run: the pipeline driver catches it,
records the message in the outcome report, and exits with ``exit_code``.
A package version that already exists on the registry is not an error.
"""


class PublishToolError(Exception):
    """Base exception for all publishing errors.

    Each subclass inherits ``exit_code`` for CLI error reporting.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        details: str | None = None,
        fix_hint: str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Brief error message
            details: Detailed explanation of what went wrong
            fix_hint: Suggested command or action to fix the issue
        """
        super().__init__(message)
        self.message = message
        self.details = details
        self.fix_hint = fix_hint

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"\nDetails: {self.details}")
        if self.fix_hint:
            parts.append(f"\nFix: {self.fix_hint}")
        return "".join(parts)


class SettingsError(PublishToolError):
    """Settings file errors.

    Raised when:
    - An explicit settings file does not exist
    - The settings file has invalid YAML/TOML syntax
    - Settings values fail validation
    """


class ConfigParseError(PublishToolError):
    """The existing nuget.config document could not be parsed.

    The document is never replaced with a fresh skeleton, since that would
    silently discard the user's sources and credentials.
    """


class ProjectParseError(PublishToolError):
    """The project or solution file is not valid XML."""


class ProjectNotFoundError(PublishToolError):
    """The project or solution file does not exist."""


class MissingWorkingDirectoryError(PublishToolError):
    """No working directory could be resolved from options or environment."""


class MissingNameError(PublishToolError):
    """No package name could be resolved after all fallbacks."""


class MissingVersionError(PublishToolError):
    """No package version was given and the project does not declare one."""


class MissingApiKeyError(PublishToolError):
    """A new version must be pushed but no API key was provided."""


class AuthenticationError(PublishToolError):
    """The registry rejected both the anonymous and the authenticated request."""


class RegistryUnreachableError(PublishToolError):
    """The registry answered with an unexpected status or could not be reached.

    Raised when:
    - HTTP status is neither 200, 401 nor 404
    - DNS resolution or connection fails
    - The version index body is not valid JSON
    """


class SubprocessFailure(PublishToolError):
    """A toolchain stage failed to start or exited non-zero.

    Attributes:
        stage: Pipeline stage name (restore, clean, build, pack, push)
    """

    def __init__(
        self,
        stage: str,
        message: str,
        details: str | None = None,
        fix_hint: str | None = None,
    ) -> None:
        super().__init__(message, details=details, fix_hint=fix_hint)
        self.stage = stage


class NoArtifactProducedError(PublishToolError):
    """The pack stage finished without leaving a .nupkg in the output directory."""


class PushRejectedError(PublishToolError):
    """The push stage reported an error other than a duplicate version."""


class PublishCancelledError(PublishToolError):
    """The run was cancelled before the pipeline finished."""
