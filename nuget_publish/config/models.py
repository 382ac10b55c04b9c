"""Pydantic v2 models for publish requests and their defaults.

These models provide:
- The immutable request built once from the command line
- Environment defaults read from the GitHub Actions runner
- Settings file defaults (nuget-publish.yml / nuget-publish.toml)
"""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BuildConfiguration(str, Enum):
    """Build configuration passed to dotnet via --configuration."""

    DEBUG = "Debug"
    RELEASE = "Release"


class TargetPlatform(str, Enum):
    """Platform passed to dotnet via -property:Platform."""

    ANY_CPU = "AnyCPU"
    ARM64 = "ARM64"
    X64 = "x64"
    X86 = "x86"


class BuildVerbosity(str, Enum):
    """MSBuild logger verbosity."""

    QUIET = "quiet"
    MINIMAL = "minimal"
    NORMAL = "normal"
    DETAILED = "detailed"
    DIAGNOSTIC = "diagnostic"


class OutputFormat(str, Enum):
    """Console format of the outcome report."""

    JSON = "json"
    PLAIN = "plain"
    SILENT = "silent"
    XML = "xml"


def _blank_to_none(value: object) -> object:
    """Trim strings and collapse blank ones to None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class PublishRequest(BaseModel):
    """Options for a single invocation.

    Built once from the command line (plus settings file defaults) and never
    mutated; derived values live in ResolvedContext.
    """

    model_config = ConfigDict(frozen=True)

    github_organization: str | None = Field(
        default=None,
        description="GitHub organization; forces GitHub's NuGet server",
    )
    nuget_api_key: str | None = Field(
        default=None,
        description="API key used to push, and as a password fallback",
    )
    nuget_username: str | None = Field(default=None, description="Registry username")
    nuget_password: str | None = Field(default=None, description="Registry password")
    nuget_auth_for_build: bool = Field(
        default=False,
        description="Write registry credentials to nuget.config before restoring",
    )
    working_directory: str | None = Field(
        default=None,
        description="Working directory for the toolchain processes",
    )
    project: str | None = Field(
        default=None,
        description="Path to the project or solution file",
    )
    package_name: str | None = Field(default=None, description="Explicit package name")
    version: str | None = Field(default=None, description="Explicit package version")
    nuspec_file: str | None = Field(default=None, description="Path to a .nuspec file")
    configuration: BuildConfiguration = BuildConfiguration.RELEASE
    platform: TargetPlatform = TargetPlatform.ANY_CPU
    verbosity: BuildVerbosity = BuildVerbosity.MINIMAL
    scan_for_package_name: bool = Field(
        default=False,
        description="Prefer PackageId, then AssemblyName, over the project file name",
    )
    output: OutputFormat = OutputFormat.PLAIN
    output_file: str | None = Field(
        default=None,
        description="File receiving Bash-style KEY=\"value\" outputs",
    )

    @field_validator(
        "github_organization",
        "nuget_api_key",
        "nuget_username",
        "nuget_password",
        "working_directory",
        "project",
        "package_name",
        "version",
        "nuspec_file",
        "output_file",
        mode="before",
    )
    @classmethod
    def strip_blank(cls, v: object) -> object:
        return _blank_to_none(v)


class EnvironmentDefaults(BaseSettings):
    """Defaults discovered from the CI environment.

    Reads the variables a GitHub Actions runner exports. Blank values are
    treated as unset.
    """

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    workspace: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_WORKSPACE"),
    )
    actor: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_ACTOR"),
    )
    triggering_actor: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TRIGGERING_ACTOR"),
    )
    token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN"),
    )
    output_file: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_OUTPUT"),
    )

    @field_validator(
        "workspace", "actor", "triggering_actor", "token", "output_file", mode="before"
    )
    @classmethod
    def strip_blank(cls, v: object) -> object:
        return _blank_to_none(v)

    @property
    def username(self) -> str | None:
        """Actor name, preferring GITHUB_ACTOR over GITHUB_TRIGGERING_ACTOR."""
        return self.actor or self.triggering_actor


class PublishSettings(BaseModel):
    """Defaults read from a settings file.

    Every key mirrors a command-line option; options given on the command
    line win over the file.
    """

    model_config = ConfigDict(extra="forbid")

    github_organization: str | None = None
    nuget_api_key: str | None = None
    nuget_username: str | None = None
    nuget_password: str | None = None
    nuget_auth_for_build: bool | None = None
    working_directory: str | None = None
    project: str | None = None
    package_name: str | None = None
    version: str | None = None
    nuspec_file: str | None = None
    configuration: BuildConfiguration | None = None
    platform: TargetPlatform | None = None
    verbosity: BuildVerbosity | None = None
    scan_for_package_name: bool | None = None
    output: OutputFormat | None = None
    output_file: str | None = None

    def merge(self, **overrides: object) -> dict[str, object]:
        """Combine file values with command-line values.

        Args:
            **overrides: Command-line values; None means "not given"

        Returns:
            Keyword arguments for PublishRequest
        """
        merged: dict[str, object] = {
            key: value for key, value in self.model_dump().items() if value is not None
        }
        merged.update({key: value for key, value in overrides.items() if value is not None})
        return merged
