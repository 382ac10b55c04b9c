"""Registry endpoint derivation.

Everything here is a pure function of the GitHub organization: no
organization means nuget.org, an organization means GitHub Packages.
"""

from dataclasses import dataclass
from urllib.parse import quote

GITHUB_NUGET_SERVER = "https://nuget.pkg.github.com"
NUGET_ORG_SERVER = "https://api.nuget.org"


@dataclass(frozen=True)
class Credentials:
    """Username/password pair used for Basic auth and nuget.config."""

    username: str | None = None
    password: str | None = None

    @property
    def complete(self) -> bool:
        """True when both username and password are present."""
        return bool(self.username) and bool(self.password)


@dataclass(frozen=True)
class RegistryEndpoint:
    """Addresses of a NuGet registry.

    Attributes:
        base_url: Server root (nuget.org API host or GitHub org feed)
        index_url: NuGet v3 service index, used as the push/restore source
        source_name: Key for the source in nuget.config
        is_github: Whether the registry is GitHub Packages
    """

    base_url: str
    index_url: str
    source_name: str
    is_github: bool

    @classmethod
    def for_organization(cls, organization: str | None = None) -> "RegistryEndpoint":
        """Build the endpoint for an optional GitHub organization.

        Args:
            organization: GitHub organization; blank or None selects nuget.org

        Returns:
            RegistryEndpoint for the selected registry
        """
        org = (organization or "").strip()
        is_github = bool(org)
        base_url = f"{GITHUB_NUGET_SERVER}/{org}" if is_github else NUGET_ORG_SERVER
        index_url = f"{base_url}/index.json" if is_github else f"{base_url}/v3/index.json"
        return cls(
            base_url=base_url,
            index_url=index_url,
            source_name=source_name_for(base_url),
            is_github=is_github,
        )

    def package_index_url(self, package_name: str) -> str:
        """Return the URL listing every published version of a package.

        nuget.org serves the flat container; GitHub serves the same
        ``{"versions": [...]}`` document under ``download/``.

        Args:
            package_name: Package id (case-insensitive)

        Returns:
            Version index URL
        """
        package_id = quote(package_name.strip().lower(), safe="")
        if self.is_github:
            return f"{self.base_url}/download/{package_id}/index.json"
        return f"{self.base_url}/v3-flatcontainer/{package_id}/index.json"


def source_name_for(base_url: str) -> str:
    """Derive a filesystem and XML safe source name from a URL.

    Examples:
        >>> source_name_for("https://nuget.pkg.github.com/Acme")
        'nuget.pkg.github.com.acme'
    """
    name = base_url.strip().lower()
    for scheme in ("https://", "http://"):
        if name.startswith(scheme):
            name = name[len(scheme):]
    return name.replace("/", ".").strip(".")
