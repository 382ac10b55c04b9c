"""NuGet registry endpoints and version-index client."""

from nuget_publish.registry.client import RegistryClient, VersionStatus, parse_versions
from nuget_publish.registry.endpoint import Credentials, RegistryEndpoint, source_name_for

__all__ = [
    "Credentials",
    "RegistryClient",
    "RegistryEndpoint",
    "VersionStatus",
    "parse_versions",
    "source_name_for",
]
