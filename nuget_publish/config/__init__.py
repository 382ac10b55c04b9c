"""Configuration management for the publishing tool."""

from nuget_publish.config.models import (
    BuildConfiguration,
    BuildVerbosity,
    EnvironmentDefaults,
    OutputFormat,
    PublishRequest,
    PublishSettings,
    TargetPlatform,
)

__all__ = [
    "PublishRequest",
    "PublishSettings",
    "EnvironmentDefaults",
    "BuildConfiguration",
    "BuildVerbosity",
    "OutputFormat",
    "TargetPlatform",
]
