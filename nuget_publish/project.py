"""Project file metadata.

Reads PackageId, AssemblyName and Version from an MSBuild project file and
applies the name/version resolution rules:

- name: explicit option > PackageId > AssemblyName (when scanning) > file name
- version: explicit option > Version property
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from lxml import etree

from nuget_publish.exceptions import MissingNameError, MissingVersionError, ProjectParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectMetadata:
    """Properties read from a project file's PropertyGroup elements."""

    path: Path
    package_id: str | None = None
    assembly_name: str | None = None
    version: str | None = None


def _property(root: etree._Element, name: str) -> str | None:
    """Return the first non-blank ``Project/PropertyGroup/<name>`` value.

    Elements are matched by local name so projects declaring the legacy
    MSBuild namespace resolve the same way as SDK-style projects.
    """
    for group in root:
        if not isinstance(group.tag, str) or etree.QName(group).localname != "PropertyGroup":
            continue
        for element in group:
            if not isinstance(element.tag, str) or etree.QName(element).localname != name:
                continue
            value = (element.text or "").strip()
            if value:
                return value
    return None


def parse_project(text: str | bytes, path: Path) -> ProjectMetadata:
    """Parse project XML into metadata.

    Args:
        text: Project file content
        path: Path the content came from (used for messages and name fallback)

    Returns:
        ProjectMetadata

    Raises:
        ProjectParseError: If the content is not well-formed XML
    """
    data = text.encode("utf-8") if isinstance(text, str) else text
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        raise ProjectParseError(
            f"Unable to parse project file: {path}",
            details=str(e),
        ) from e

    return ProjectMetadata(
        path=path,
        package_id=_property(root, "PackageId"),
        assembly_name=_property(root, "AssemblyName"),
        version=_property(root, "Version"),
    )


def load_project(path: Path) -> ProjectMetadata:
    """Read and parse a project file.

    Raises:
        ProjectParseError: If the file cannot be read or parsed
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ProjectParseError(f"Unable to read project file: {path}", details=str(e)) from e
    return parse_project(data, path)


def resolve_package_name(
    metadata: ProjectMetadata,
    explicit: str | None = None,
    scan: bool = False,
) -> str:
    """Resolve the package name.

    Args:
        metadata: Parsed project metadata
        explicit: Name given on the command line
        scan: Whether to look at PackageId and AssemblyName

    Returns:
        Package name

    Raises:
        MissingNameError: If every source is empty
    """
    if explicit and explicit.strip():
        return explicit.strip()

    name = None
    if scan:
        name = metadata.package_id or metadata.assembly_name
    if not name:
        name = metadata.path.stem.strip()
    if not name:
        raise MissingNameError(
            "Unable to find a package name.",
            fix_hint="Pass --package-name or set PackageId in the project file",
        )
    return name


def resolve_version(metadata: ProjectMetadata, explicit: str | None = None) -> str:
    """Resolve the package version.

    Args:
        metadata: Parsed project metadata
        explicit: Version given on the command line

    Returns:
        Version string without a ``v`` prefix

    Raises:
        MissingVersionError: If neither the option nor the project has a version
    """
    if explicit and explicit.strip():
        return explicit.strip()
    if metadata.version:
        return metadata.version
    raise MissingVersionError(
        "Unable to find a version.",
        details=f"No <Version> property in {metadata.path}",
        fix_hint="Pass --version or add <Version> to a PropertyGroup",
    )
