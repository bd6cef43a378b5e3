"""Folder structure and template file copying."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from unitemplate.config.schemas import ConfigFileEntry
from unitemplate.utils.filesystem import copy_file, ensure_directory

logger = logging.getLogger(__name__)

CONFIG_TEMPLATES_DIR = "ConfigTemplates"
LICENSE_TEMPLATES_DIR = "LicenseTemplates"
SCRIPT_TEMPLATES_DIR = "ScriptTemplates"
TEMPLATE_SUFFIX = ".template"

# Templates that only make sense inside the editor assembly
EDITOR_SCRIPT_PATTERNS = ["SceneSwitchLeftButton", "CreateTutorialScenes"]


@dataclass
class CopyReport:
    """Files handled by a copy operation."""

    copied: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing


def create_folder_structure(project_root: Path, folders: Iterable[str]) -> list[Path]:
    """Create the declared folders under the project root.

    Args:
        project_root: Unity project root
        folders: Folder paths relative to the project root

    Returns:
        The folders that did not exist before
    """
    created: list[Path] = []
    for folder in folders:
        path = project_root / folder
        if ensure_directory(path):
            logger.info("Created folder: %s", folder)
            created.append(path)
    return created


def copy_config_files(
    template_dir: Path,
    project_root: Path,
    entries: Iterable[ConfigFileEntry],
    overwrite: bool = True,
) -> CopyReport:
    """Copy configuration files from ConfigTemplates/ into the project.

    Args:
        template_dir: Directory holding the bundled templates
        project_root: Unity project root
        entries: Files to copy and where they go
        overwrite: Replace files that already exist

    Returns:
        Report of copied, unchanged and missing files
    """
    report = CopyReport()
    source_dir = template_dir / CONFIG_TEMPLATES_DIR

    for entry in entries:
        src = source_dir / entry.source
        if not src.is_file():
            logger.error("Config template not found: %s", src)
            report.missing.append(entry.source)
            continue

        base = project_root / "Assets" if entry.destination == "assets" else project_root
        dest = base / Path(entry.source).name
        if copy_file(src, dest, overwrite=overwrite):
            logger.info("Copied %s -> %s", entry.source, dest.relative_to(project_root))
            report.copied.append(dest)
        else:
            report.skipped.append(dest)

    return report


def copy_license_files(
    template_dir: Path,
    project_root: Path,
    license_folder: str = "Assets/LicenseMaster",
) -> CopyReport:
    """Copy license asset files, never overwriting existing ones.

    A missing LicenseTemplates/ directory copies nothing.
    """
    report = CopyReport()
    source_dir = template_dir / LICENSE_TEMPLATES_DIR
    target = project_root / license_folder
    ensure_directory(target)

    if not source_dir.is_dir():
        logger.warning("License template folder not found: %s", source_dir)
        return report

    for src in sorted(source_dir.glob("*.asset")):
        dest = target / src.name
        if copy_file(src, dest, overwrite=False):
            logger.info("Copied license file: %s", src.name)
            report.copied.append(dest)
        else:
            report.skipped.append(dest)
    return report


def _matches_any(name: str, patterns: Sequence[str]) -> bool:
    return any(p in name for p in patterns)


def copy_script_templates(
    template_dir: Path,
    target: Path,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
) -> CopyReport:
    """Copy ScriptTemplates/*.template into a scripts folder.

    The .template suffix is dropped. When include is given only templates
    whose name contains one of its patterns are copied; templates matching
    any exclude pattern are left out. Existing files are never overwritten.

    Args:
        template_dir: Directory holding the bundled templates
        target: Destination folder
        include: Substring patterns a template name must contain
        exclude: Substring patterns that rule a template out

    Returns:
        Report of copied and unchanged files
    """
    report = CopyReport()
    source_dir = template_dir / SCRIPT_TEMPLATES_DIR
    if not source_dir.is_dir():
        logger.warning("Script template folder not found: %s", source_dir)
        return report

    ensure_directory(target)
    for src in sorted(source_dir.glob(f"*{TEMPLATE_SUFFIX}")):
        file_name = src.name.removesuffix(TEMPLATE_SUFFIX)
        if include is not None and not _matches_any(file_name, include):
            continue
        if exclude is not None and _matches_any(file_name, exclude):
            continue

        dest = target / file_name
        if copy_file(src, dest, overwrite=False):
            logger.info("Copied script template: %s -> %s", src.name, file_name)
            report.copied.append(dest)
        else:
            report.skipped.append(dest)
    return report


def copy_utility_scripts(template_dir: Path, project_root: Path, scripts_dir: str) -> CopyReport:
    """Copy runtime utility scripts into <scripts_dir>/Utils."""
    return copy_script_templates(
        template_dir,
        project_root / scripts_dir / "Utils",
        exclude=EDITOR_SCRIPT_PATTERNS,
    )


def copy_editor_scripts(template_dir: Path, project_root: Path) -> CopyReport:
    """Copy editor-only scripts into Assets/Editor."""
    return copy_script_templates(
        template_dir,
        project_root / "Assets" / "Editor",
        include=EDITOR_SCRIPT_PATTERNS,
    )
