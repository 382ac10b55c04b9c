"""nuget.config generation.

Merges a registry source and its credentials into an existing (or fresh)
nuget.config document:

- sources are matched by URL, never by key
- credentials are stored under the key the matching source already uses
- everything else in the document is left untouched

Merging the same endpoint and credentials twice yields the same bytes.
"""

import codecs
import logging
import re
from pathlib import Path

from lxml import etree

from nuget_publish.exceptions import ConfigParseError
from nuget_publish.registry.endpoint import Credentials, RegistryEndpoint

logger = logging.getLogger(__name__)

# File names dotnet recognizes, in lookup order
CONFIG_FILE_NAMES = ("nuget.config", "NuGet.config", "NuGet.Config")

SKELETON = """<?xml version="1.0" encoding="utf-8"?>
<configuration>
  <packageSources />
  <packageSourceCredentials />
</configuration>
"""

USERNAME_KEY = "Username"
PASSWORD_KEY = "ClearTextPassword"

_NAME_START = re.compile(r"[A-Za-z_]")
_NAME_CHAR = re.compile(r"[A-Za-z0-9_.\-]")

# Byte order marks that must stay at the very start of the document
WIDE_BOMS = (
    codecs.BOM_UTF32_LE,
    codecs.BOM_UTF32_BE,
    codecs.BOM_UTF16_LE,
    codecs.BOM_UTF16_BE,
)


def encode_key(key: str) -> str:
    """Encode a source key as an XML element name.

    Characters that are not allowed in an element name become ``_xHHHH_``,
    so ``My Feed`` is stored as ``My_x0020_Feed`` like NuGet does.

    Args:
        key: Source key from packageSources

    Returns:
        Valid XML element name
    """
    encoded = []
    for index, char in enumerate(key):
        allowed = _NAME_START if index == 0 else _NAME_CHAR
        if allowed.fullmatch(char) or (char.isalpha() and char.isprintable()):
            encoded.append(char)
        else:
            encoded.append(f"_x{ord(char):04X}_")
    return "".join(encoded)


def _parser() -> etree.XMLParser:
    return etree.XMLParser(
        remove_blank_text=True,
        resolve_entities=False,
        no_network=True,
    )


def _same_url(left: str | None, right: str) -> bool:
    if left is None:
        return False
    return left.strip().rstrip("/").lower() == right.strip().rstrip("/").lower()


def _section(root: etree._Element, name: str) -> etree._Element:
    """Return the named child of ``root``, creating it when missing."""
    for child in root:
        if child.tag == name:
            return child
    return etree.SubElement(root, name)


def _set_add(parent: etree._Element, key: str, value: str) -> None:
    """Set ``<add key=... value=...>`` under parent, updating it in place if present."""
    for child in parent:
        if child.tag == "add" and child.get("key") == key:
            child.set("value", value)
            return
    etree.SubElement(parent, "add", key=key, value=value)


def _document_bytes(text: str | bytes | None) -> bytes:
    if isinstance(text, bytes):
        if text.startswith(WIDE_BOMS):
            return text
        text = text.strip()
        return text if text else SKELETON.strip().encode("utf-8")
    if text and text.strip():
        return text.strip().encode("utf-8")
    return SKELETON.strip().encode("utf-8")


def parse_configuration(text: str | bytes | None) -> etree._Element:
    """Parse nuget.config content, falling back to the skeleton for empty input.

    Bytes are handed to lxml undecoded so the BOM or XML declaration decides
    the encoding (nuget.config files saved as UTF-16 are common on Windows).

    Args:
        text: Existing document text or raw file bytes, or None

    Returns:
        The ``<configuration>`` root element

    Raises:
        ConfigParseError: If the text is not XML or its root is not <configuration>
    """
    try:
        root = etree.fromstring(_document_bytes(text), _parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        raise ConfigParseError(
            "Existing NuGet configuration is not valid XML",
            details=str(e),
            fix_hint="Fix or remove the nuget.config file in the working directory",
        ) from e

    if root.tag != "configuration":
        raise ConfigParseError(
            "Existing NuGet configuration has an unexpected root element",
            details=f"Expected <configuration>, found <{root.tag}>",
            fix_hint="Fix or remove the nuget.config file in the working directory",
        )
    return root


def merge_configuration(
    existing: str | bytes | None,
    endpoint: RegistryEndpoint,
    credentials: Credentials,
) -> str:
    """Merge a registry source and credentials into a nuget.config document.

    Args:
        existing: Current document text or bytes (None or blank starts from a skeleton)
        endpoint: Registry whose service index becomes the source
        credentials: Username and password stored in clear text

    Returns:
        Serialized document with XML declaration and two-space indentation

    Raises:
        ConfigParseError: If ``existing`` cannot be parsed
    """
    root = parse_configuration(existing)
    sources = _section(root, "packageSources")
    source_credentials = _section(root, "packageSourceCredentials")

    source = next(
        (
            child
            for child in sources
            if child.tag == "add" and _same_url(child.get("value"), endpoint.index_url)
        ),
        None,
    )
    if source is None:
        key = endpoint.source_name
        etree.SubElement(sources, "add", key=key, value=endpoint.index_url)
    else:
        key = source.get("key") or endpoint.source_name

    element_name = encode_key(key)
    entry = next((child for child in source_credentials if child.tag == element_name), None)
    if entry is None:
        entry = etree.SubElement(source_credentials, element_name)

    _set_add(entry, USERNAME_KEY, credentials.username or "")
    _set_add(entry, PASSWORD_KEY, credentials.password or "")

    return (
        etree.tostring(
            root.getroottree(),
            pretty_print=True,
            xml_declaration=True,
            encoding="utf-8",
        )
        .decode("utf-8")
        .strip()
    )


def find_configuration_file(working_directory: Path) -> Path:
    """Return the nuget.config path in ``working_directory``.

    An existing file under any of the names dotnet recognizes is preferred;
    otherwise ``nuget.config`` is returned.
    """
    for name in CONFIG_FILE_NAMES:
        candidate = working_directory / name
        if candidate.is_file():
            return candidate
    return working_directory / CONFIG_FILE_NAMES[0]


def read_configuration(path: Path) -> bytes | None:
    """Read an existing nuget.config as raw bytes, returning None when absent or blank.

    Raises:
        ConfigParseError: If the file exists but cannot be read
    """
    if not path.is_file():
        return None
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ConfigParseError(
            f"Unable to read NuGet configuration at {path}",
            details=str(e),
        ) from e
    return data if data.strip() else None


def render_configuration(
    working_directory: Path,
    endpoint: RegistryEndpoint,
    credentials: Credentials,
) -> tuple[Path, str]:
    """Merge credentials into the working directory's nuget.config without writing it.

    Returns:
        Tuple of (config path, merged document text)
    """
    path = find_configuration_file(working_directory)
    existing = read_configuration(path)
    if existing is None:
        logger.info("Generating new NuGet configuration file at %s.", path)
    else:
        logger.info("Existing NuGet configuration file found at %s.", path)
    return path, merge_configuration(existing, endpoint, credentials)


def write_configuration(
    working_directory: Path,
    endpoint: RegistryEndpoint,
    credentials: Credentials,
) -> tuple[Path, str]:
    """Merge credentials into the working directory's nuget.config and save it.

    Returns:
        Tuple of (config path, written document text)

    Raises:
        ConfigParseError: If the existing file cannot be parsed
    """
    path, document = render_configuration(working_directory, endpoint, credentials)
    path.write_text(document + "\n", encoding="utf-8")
    return path, document
