"""Project model representing a Unity project managed by unitemplate."""

from __future__ import annotations

from functools import cached_property
from pathlib import Path

from unitemplate.config.parser import (
    HOST_MANIFEST_PATH,
    find_project_root,
    load_host_manifest,
    load_settings,
    load_template_manifest,
    locate_template_directory,
    read_unity_version,
)
from unitemplate.config.schemas import HostManifest, Settings, TemplateManifest
from unitemplate.core.state import InstallStateStore
from unitemplate.host.assets import FileSystemAssetIndex
from unitemplate.host.prefs import JsonPreferenceStore


class Project:
    """A Unity project: the directory holding Packages/manifest.json.

    Settings and the template manifest are read once per instance; the host
    manifest is re-read on every call to installed().
    """

    def __init__(self, root: Path, settings: Settings | None = None):
        """Initialize a Project.

        Args:
            root: Path to the Unity project root
            settings: Tool settings (defaults when omitted)
        """
        self._root = root.resolve()
        self._settings = settings or Settings()
        self.asset_index = FileSystemAssetIndex(self._root)

    @classmethod
    def load(cls, path: Path | None = None) -> Project:
        """Load a project from disk.

        Args:
            path: Path to the project root, or None to search from cwd

        Returns:
            Loaded Project instance

        Raises:
            FileNotFoundError: If no Unity project is found
            ConfigError: If unitemplate.yaml is invalid
        """
        if path is None:
            path = find_project_root()
            if path is None:
                raise FileNotFoundError(
                    f"No {HOST_MANIFEST_PATH.as_posix()} found in current directory "
                    "or any parent directory"
                )
        else:
            path = path.resolve()
            if not (path / HOST_MANIFEST_PATH).exists():
                raise FileNotFoundError(f"No {HOST_MANIFEST_PATH.as_posix()} found in {path}")

        return cls(path, load_settings(path))

    @property
    def root(self) -> Path:
        """Get the project root directory."""
        return self._root

    @property
    def settings(self) -> Settings:
        return self._settings

    @cached_property
    def unity_version(self) -> str | None:
        """Editor version from settings, else from ProjectVersion.txt."""
        return self._settings.unity_version or read_unity_version(self._root)

    @cached_property
    def manifest(self) -> TemplateManifest:
        """The desired project state."""
        return load_template_manifest(self.asset_index)

    @cached_property
    def template_dir(self) -> Path | None:
        """Directory holding the templates, if one can be found."""
        return locate_template_directory(self.asset_index)

    @cached_property
    def state_store(self) -> InstallStateStore:
        return InstallStateStore(JsonPreferenceStore(self._root / self._settings.prefs_file))

    def installed(self) -> HostManifest:
        """Read the currently installed dependencies."""
        return load_host_manifest(self._root)
