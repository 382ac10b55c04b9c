"""Settings file loading utilities.

Supports loading publish defaults from YAML and TOML files with:
- Automatic format detection
- Error reporting with file location
- Optional discovery in the current directory
"""

import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from nuget_publish.config.models import PublishSettings
from nuget_publish.exceptions import SettingsError

# Import tomli for Python < 3.11, tomllib for 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

SEARCH_PATHS = [
    "nuget-publish.yml",
    "nuget-publish.yaml",
    ".nuget-publish.yml",
    ".nuget-publish.yaml",
    "nuget-publish.toml",
]


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML settings file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as dictionary

    Raises:
        SettingsError: If file cannot be read or parsed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise SettingsError(
            f"Settings file not found: {path}",
            fix_hint="Check the --config path",
        ) from None
    except yaml.YAMLError as e:
        raise SettingsError(
            f"Invalid YAML in {path}",
            details=str(e),
            fix_hint="Check YAML syntax at the indicated line",
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError(
            f"Invalid settings in {path}",
            details=f"Expected a mapping at the top level, got {type(data).__name__}",
        )
    return data


def load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML settings file.

    Settings may sit at the top level or under a [nuget-publish] table.

    Args:
        path: Path to the TOML file

    Returns:
        Parsed TOML as dictionary

    Raises:
        SettingsError: If file cannot be read or parsed
    """
    try:
        with open(path, "rb") as f:
            data: dict[str, Any] = tomllib.load(f)
    except FileNotFoundError:
        raise SettingsError(
            f"Settings file not found: {path}",
            fix_hint="Check the --config path",
        ) from None
    except tomllib.TOMLDecodeError as e:
        raise SettingsError(
            f"Invalid TOML in {path}",
            details=str(e),
            fix_hint="Check TOML syntax at the indicated line",
        ) from e

    section = data.get("nuget-publish")
    if isinstance(section, dict):
        return section
    return data


def find_settings_file(search_root: Path | None = None) -> Path | None:
    """Find the first settings file in the standard locations.

    Args:
        search_root: Directory to search (defaults to cwd)

    Returns:
        Path to the settings file, or None when there is none
    """
    if search_root is None:
        search_root = Path.cwd()

    for search_path in SEARCH_PATHS:
        candidate = search_root / search_path
        if candidate.is_file():
            return candidate
    return None


def load_settings(
    path: Path | None = None,
    search_root: Path | None = None,
) -> PublishSettings:
    """Load publish defaults from a settings file.

    A missing settings file is only an error when ``path`` is explicit;
    otherwise empty settings are returned.

    Args:
        path: Explicit path to settings file
        search_root: Directory searched when path is not given (defaults to cwd)

    Returns:
        Validated PublishSettings instance

    Raises:
        SettingsError: If the file is missing (explicit path), unreadable or invalid
    """
    settings_path = Path(path) if path else find_settings_file(search_root)
    if settings_path is None:
        return PublishSettings()

    if settings_path.suffix in (".yml", ".yaml"):
        data = load_yaml(settings_path)
    elif settings_path.suffix == ".toml":
        data = load_toml(settings_path)
    else:
        raise SettingsError(
            f"Unsupported settings format: {settings_path.suffix}",
            fix_hint="Use .yml, .yaml, or .toml extension",
        )

    # Accept both nuget_api_key and nuget-api-key spellings
    normalized = {str(key).replace("-", "_"): value for key, value in data.items()}

    try:
        return PublishSettings(**normalized)
    except PydanticValidationError as e:
        raise SettingsError(
            f"Invalid settings in {settings_path}",
            details=str(e),
            fix_hint="Check the setting names and values match the command-line options",
        ) from e
