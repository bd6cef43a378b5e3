"""Pydantic schemas for unitemplate files.

This module defines the data models for:
- template-manifest.json (desired project state)
- Packages/manifest.json (host dependency manifest)
- the persisted installation state blob
- unitemplate.yaml (tool settings)
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Common Types
# =============================================================================

ConfigDestination = Literal["projectRoot", "assets"]


# =============================================================================
# Template Manifest Models
# =============================================================================


class SubmoduleSpec(BaseModel):
    """A git submodule exposed inside the project through a link.

    - name: Directory name of the submodule under the project root
    - url: Repository URL passed to `git submodule add`
    - link_name: Name of the link created in the scripts directory
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    url: str
    link_name: str = Field(alias="linkName")

    @field_validator("name", "link_name")
    @classmethod
    def validate_simple_name(cls, v: str) -> str:
        """Reject names that would escape their parent directory."""
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Invalid submodule or link name: {v!r}")
        return v


class AnalyzerSpec(BaseModel):
    """The analyzer submodule and the project to build inside it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    submodule_name: str = Field(alias="submoduleName")
    url: str
    project_path: str = Field(alias="projectPath")

    def as_submodule(self) -> SubmoduleSpec:
        """Get the submodule spec used to check out the analyzer sources."""
        return SubmoduleSpec(
            name=self.submodule_name,
            url=self.url,
            link_name=self.submodule_name,
        )


class ConfigFileEntry(BaseModel):
    """A configuration file copied from the templates into the project."""

    model_config = ConfigDict(frozen=True)

    source: str
    destination: ConfigDestination = "projectRoot"


class NugetPackageSpec(BaseModel):
    """A NuGet package pinned to a version."""

    model_config = ConfigDict(frozen=True)

    id: str
    version: str


class TemplateManifest(BaseModel):
    """Desired project state (template-manifest.json).

    Loaded fresh on every command and never mutated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    packages: list[str] = Field(default_factory=list)
    git_packages: list[str] = Field(default_factory=list, alias="gitPackages")
    testables: list[str] = Field(default_factory=list)
    folder_structure: list[str] = Field(default_factory=list, alias="folderStructure")
    submodules: list[SubmoduleSpec] = Field(default_factory=list)
    analyzers: AnalyzerSpec | None = None
    config_files: list[ConfigFileEntry] = Field(default_factory=list, alias="configFiles")
    nuget_packages: list[NugetPackageSpec] = Field(default_factory=list, alias="nugetPackages")
    license_folder_path: str = Field(default="Assets/LicenseMaster", alias="licenseFolderPath")

    def get_submodule(self, name: str) -> SubmoduleSpec | None:
        """Find a declared submodule by directory or link name."""
        for spec in self.submodules:
            if name in (spec.name, spec.link_name):
                return spec
        return None


# =============================================================================
# Host Manifest (Packages/manifest.json)
# =============================================================================


class HostManifest(BaseModel):
    """The installed dependencies as recorded by the package manager.

    Only `dependencies` matters for diffing; other keys are preserved when the
    manifest is rewritten.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    dependencies: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Installation State (persisted across process restarts)
# =============================================================================


class InstallationState(BaseModel):
    """Snapshot of the install queue written before every dispatch."""

    model_config = ConfigDict(populate_by_name=True)

    remaining_packages: list[str] = Field(default_factory=list, alias="remainingPackages")
    is_installing: bool = Field(default=False, alias="isInstalling")
    total_packages: int = Field(default=0, alias="totalPackages", ge=0)

    def to_json(self) -> str:
        """Serialize with the camelCase keys used on disk."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "InstallationState":
        """Parse a persisted blob."""
        return cls.model_validate_json(data)


# =============================================================================
# Tool Settings (unitemplate.yaml)
# =============================================================================


class Settings(BaseModel):
    """Tool settings, all optional.

    Values here tune the orchestrator; the desired project state itself lives
    in template-manifest.json.
    """

    model_config = ConfigDict(extra="forbid")

    scripts_dir: str = "Assets/Scripts"
    prefs_file: str = "Library/unitemplate-prefs.json"
    bridge_marker: str = "NuGetForUnity"
    skip_patterns: list[str] = Field(
        default_factory=lambda: [
            "Cannot find a version",
            "compatible with this Unity version",
        ]
    )
    builtin_packages: list[str] = Field(
        default_factory=lambda: ["com.unity.textmeshpro", "com.unity.ugui"]
    )
    post_install_delay: float = Field(default=0.5, ge=0)
    tick_interval: float = Field(default=0.05, gt=0)
    unity_version: str | None = None
    registry_url: str = "https://packages.unity.com"
    nuget_output_dir: str = "Assets/Packages"
    analyzer_output_dir: str = "Assets/Plugins/Analyzers"
