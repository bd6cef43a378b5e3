"""Configuration file parsing utilities."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from unitemplate.config.defaults import default_manifest
from unitemplate.config.schemas import HostManifest, Settings, TemplateManifest

if TYPE_CHECKING:
    from unitemplate.host.base import AssetIndex

logger = logging.getLogger(__name__)

TEMPLATE_MANIFEST_FILE = "template-manifest.json"
HOST_MANIFEST_PATH = Path("Packages") / "manifest.json"
SETTINGS_FILE = "unitemplate.yaml"
PROJECT_VERSION_PATH = Path("ProjectSettings") / "ProjectVersion.txt"


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_json(path: Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}", path) from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Invalid UTF-8 in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e

    if not isinstance(result, dict):
        raise ConfigError(f"JSON file must contain an object: {path}", path)
    return result


def save_json(path: Path, data: dict[str, Any], indent: int = 2) -> None:
    """Save data to a JSON file.

    Args:
        path: Path to write to
        data: Data to serialize
        indent: JSON indentation level
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)
        f.write("\n")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Invalid UTF-8 in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def locate_template_directory(asset_index: AssetIndex) -> Path | None:
    """Find the directory holding the bundled templates.

    The templates directory is identified by its marker file,
    template-manifest.json.

    Args:
        asset_index: Index used to search for the marker file

    Returns:
        Directory containing the marker, or None if it cannot be found
    """
    matches = asset_index.find_assets(TEMPLATE_MANIFEST_FILE)
    if not matches:
        logger.warning("Template directory not found: no %s indexed", TEMPLATE_MANIFEST_FILE)
        return None
    return matches[0].parent


def load_template_manifest(asset_index: AssetIndex) -> TemplateManifest:
    """Load the desired project state.

    Never raises: any failure to locate, read or validate the manifest is
    logged and the built-in default manifest is returned instead.

    Args:
        asset_index: Index used to locate the templates directory

    Returns:
        Parsed TemplateManifest, or the default manifest
    """
    template_dir = locate_template_directory(asset_index)
    if template_dir is None:
        logger.warning("Using default template manifest")
        return default_manifest()

    manifest_path = template_dir / TEMPLATE_MANIFEST_FILE
    try:
        data = load_json(manifest_path)
        return TemplateManifest.model_validate(data)
    except ConfigError as e:
        logger.warning("%s; using default template manifest", e)
    except ValidationError as e:
        logger.warning(
            "Invalid template manifest %s: %s; using default template manifest",
            manifest_path,
            e,
        )
    return default_manifest()


def load_host_manifest(project_root: Path) -> HostManifest:
    """Read the installed dependencies from Packages/manifest.json.

    A missing or unreadable manifest yields an empty one so that diffing
    treats everything as not installed.

    Args:
        project_root: Path to the Unity project root

    Returns:
        Parsed HostManifest
    """
    manifest_path = project_root / HOST_MANIFEST_PATH
    if not manifest_path.exists():
        return HostManifest()

    try:
        return HostManifest.model_validate(load_json(manifest_path))
    except (ConfigError, ValidationError) as e:
        logger.warning("Failed to read current manifest %s: %s", manifest_path, e)
        return HostManifest()


def save_host_manifest(project_root: Path, manifest: HostManifest) -> None:
    """Write Packages/manifest.json.

    Args:
        project_root: Path to the Unity project root
        manifest: Manifest to save
    """
    save_json(project_root / HOST_MANIFEST_PATH, manifest.model_dump())


def load_settings(project_root: Path) -> Settings:
    """Load tool settings from unitemplate.yaml if present.

    Args:
        project_root: Path to the Unity project root

    Returns:
        Parsed Settings, or defaults when the file does not exist

    Raises:
        ConfigError: If the file exists but is invalid
    """
    settings_path = project_root / SETTINGS_FILE
    if not settings_path.exists():
        return Settings()

    data = load_yaml(settings_path)
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}", settings_path) from e


def read_unity_version(project_root: Path) -> str | None:
    """Read the editor version recorded in ProjectSettings/ProjectVersion.txt.

    Args:
        project_root: Path to the Unity project root

    Returns:
        Version string such as "6000.0.23f1", or None if unknown
    """
    version_path = project_root / PROJECT_VERSION_PATH
    if not version_path.exists():
        return None

    try:
        text = version_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read %s: %s", version_path, e)
        return None

    match = re.search(r"^m_EditorVersion:\s*(\S+)", text, re.MULTILINE)
    return match.group(1) if match else None


def find_project_root(start_path: Path | None = None) -> Path | None:
    """Find the Unity project root by looking for Packages/manifest.json.

    Args:
        start_path: Directory to start searching from (defaults to cwd)

    Returns:
        Path to project root, or None if not found
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    while current != current.parent:
        if (current / HOST_MANIFEST_PATH).exists():
            return current
        current = current.parent

    if (current / HOST_MANIFEST_PATH).exists():
        return current

    return None
