"""NuGet package installation.

NuGet packages are only usable in a Unity project once the NuGet bridge
package (NuGetForUnity) is installed through the package manager, so this
phase always runs after the UPM batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from unitemplate.config.schemas import HostManifest, NugetPackageSpec
from unitemplate.utils.command import run_command
from unitemplate.utils.platform import find_executable

logger = logging.getLogger(__name__)


class NugetError(Exception):
    """Error installing a NuGet package."""

    def __init__(self, message: str, package_id: str | None = None):
        self.package_id = package_id
        super().__init__(message)


@dataclass
class NugetResult:
    """Result of installing one NuGet package."""

    package_id: str
    version: str
    success: bool
    message: str = ""


class NugetInstaller(Protocol):
    """Installs a single NuGet package."""

    def install_package(self, package_id: str, version: str) -> NugetResult: ...


class CommandNugetInstaller:
    """NugetInstaller that shells out to the nuget command-line client."""

    def __init__(self, project_root: Path, output_dir: str = "Assets/Packages") -> None:
        self.project_root = project_root
        self.output_dir = output_dir
        self._executable: str | None = None

    @property
    def executable(self) -> str:
        """Path of the nuget executable.

        Raises:
            NugetError: If nuget is not on PATH
        """
        if self._executable is None:
            self._executable = find_executable("nuget", "nuget.exe")
            if self._executable is None:
                raise NugetError(
                    "nuget executable not found on PATH. Install the NuGet CLI, "
                    "or open Window > NuGet > Manage NuGet Packages in Unity and "
                    "install the packages there."
                )
        return self._executable

    def install_package(self, package_id: str, version: str) -> NugetResult:
        argv = [
            self.executable,
            "install",
            package_id,
            "-Version",
            version,
            "-OutputDirectory",
            str(self.project_root / self.output_dir),
            "-NonInteractive",
        ]
        result = run_command(argv, cwd=self.project_root)
        if not result.ok:
            return NugetResult(
                package_id,
                version,
                False,
                result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}",
            )
        return NugetResult(package_id, version, True, "Installed")


@dataclass
class NugetSummary:
    """Outcome of the NuGet phase."""

    results: list[NugetResult] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def failed(self) -> list[NugetResult]:
        return [r for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return not self.failed


def has_bridge(installed: HostManifest, bridge_marker: str = "NuGetForUnity") -> bool:
    """Check whether the NuGet bridge package is in the host manifest.

    The bridge is matched case-insensitively against dependency names and
    their source URLs.
    """
    marker = bridge_marker.lower()
    return any(
        marker in name.lower() or marker in source.lower()
        for name, source in installed.dependencies.items()
    )


def install_nuget_packages(
    packages: Iterable[NugetPackageSpec],
    installer: NugetInstaller,
    installed: HostManifest,
    bridge_marker: str = "NuGetForUnity",
) -> NugetSummary:
    """Install the declared NuGet packages one by one.

    Args:
        packages: Packages to install
        installer: Installer backend
        installed: Current host manifest, used to check for the bridge
        bridge_marker: Text identifying the bridge package

    Returns:
        NugetSummary; skipped when the bridge package is not installed
    """
    packages = list(packages)
    summary = NugetSummary()
    if not packages:
        return summary

    if not has_bridge(installed, bridge_marker):
        summary.skipped_reason = (
            f"{bridge_marker} is not installed; install it first, then re-run install-nuget"
        )
        logger.warning("Skipping NuGet packages: %s", summary.skipped_reason)
        return summary

    for spec in packages:
        logger.info("Installing NuGet package %s %s", spec.id, spec.version)
        try:
            result = installer.install_package(spec.id, spec.version)
        except NugetError as e:
            result = NugetResult(spec.id, spec.version, False, str(e))
        if not result.success:
            logger.error("NuGet install of %s failed: %s", spec.id, result.message)
        summary.results.append(result)

    return summary
