"""Registry version-index client.

Checks whether a package version already exists, sending credentials only
when the registry demands them:

1. Anonymous GET of the version index
2. On 401, one retry with Basic auth
3. A second 401 is terminal
"""

import base64
import json
import logging
import urllib.error
import urllib.request
from enum import Enum
from typing import Any

from nuget_publish import __version__
from nuget_publish.exceptions import AuthenticationError, RegistryUnreachableError
from nuget_publish.registry.endpoint import Credentials

logger = logging.getLogger(__name__)

USER_AGENT = f"nuget-publish/{__version__}"


class VersionStatus(Enum):
    """Result of a version existence check."""

    FOUND = "found"
    NOT_FOUND = "not_found"


def parse_versions(document: Any) -> list[str]:
    """Extract version strings from a version index document.

    Understands the flat-container shape ``{"versions": [...]}`` and the
    registration shape GitHub serves, where versions sit at
    ``items[].items[].catalogEntry.version``.

    Args:
        document: Decoded JSON document

    Returns:
        List of version strings (possibly empty)
    """
    if not isinstance(document, dict):
        return []

    versions = document.get("versions")
    if isinstance(versions, list):
        return [str(v) for v in versions if v is not None]

    found: list[str] = []
    for page in document.get("items") or []:
        if not isinstance(page, dict):
            continue
        for leaf in page.get("items") or []:
            if not isinstance(leaf, dict):
                continue
            entry = leaf.get("catalogEntry")
            if isinstance(entry, dict) and entry.get("version"):
                found.append(str(entry["version"]))
    return found


def basic_auth_header(credentials: Credentials) -> str:
    """Build an ``Authorization`` header value for Basic auth."""
    raw = f"{credentials.username}:{credentials.password}".encode()
    return "Basic " + base64.b64encode(raw).decode("ascii")


class RegistryClient:
    """Queries a NuGet registry's version index."""

    def __init__(self, timeout: int = 30) -> None:
        """Initialize the client.

        Args:
            timeout: Per-request timeout in seconds
        """
        self.timeout = timeout

    def check_version_exists(
        self,
        index_url: str,
        version: str,
        credentials: Credentials | None = None,
    ) -> VersionStatus:
        """Check whether ``version`` is listed in the index at ``index_url``.

        Args:
            index_url: Version index URL for the package
            version: Version to look for (compared case-insensitively)
            credentials: Used only if the anonymous request gets a 401

        Returns:
            VersionStatus.FOUND or VersionStatus.NOT_FOUND

        Raises:
            AuthenticationError: If the registry still answers 401 with credentials,
                or no credentials are available for the retry
            RegistryUnreachableError: On any other status, network failure or bad body
        """
        logger.info("Checking for %s at %s...", version, index_url)
        status, body = self._get(index_url)

        if status == 401:
            if credentials is None or not credentials.complete:
                raise AuthenticationError(
                    f"Registry at {index_url} requires authentication",
                    details="No username/password available for the authenticated retry",
                    fix_hint="Pass --nuget-username and --nuget-password (or --nuget-api-key)",
                )
            logger.info("Authorizing check update request at %s...", index_url)
            status, body = self._get(index_url, authorization=basic_auth_header(credentials))
            if status == 401:
                raise AuthenticationError(
                    f"Unable to authenticate with NuGet Server at {index_url}",
                    fix_hint="Check the registry username and password",
                )

        if status == 404:
            # No index yet: the package has never been published
            return VersionStatus.NOT_FOUND

        if status != 200:
            raise RegistryUnreachableError(
                f"Unable to check for updates at {index_url}",
                details=f"HTTP {status}",
            )

        try:
            document = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RegistryUnreachableError(
                f"Invalid version index at {index_url}",
                details=str(e),
            ) from e

        wanted = version.strip().lower()
        if any(v.strip().lower() == wanted for v in parse_versions(document)):
            return VersionStatus.FOUND
        return VersionStatus.NOT_FOUND

    def _get(self, url: str, authorization: str | None = None) -> tuple[int, bytes]:
        """Send a GET request and return (status, body).

        HTTP error statuses are returned rather than raised.

        Raises:
            RegistryUnreachableError: On network failures
        """
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if authorization:
            headers["Authorization"] = authorization
        req = urllib.request.Request(url, headers=headers, method="GET")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return response.status, response.read()
        except urllib.error.HTTPError as e:
            return e.code, b""
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise RegistryUnreachableError(
                f"Unable to reach registry at {url}",
                details=str(getattr(e, "reason", e)),
            ) from e
