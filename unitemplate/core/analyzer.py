"""Roslyn analyzer build.

The analyzer sources are checked out as a submodule, built with the dotnet
SDK, and the resulting DLL is copied into the project's plugin folder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from unitemplate.config.schemas import AnalyzerSpec
from unitemplate.core.submodule import Runner, SubmoduleProvisioner
from unitemplate.utils.command import format_argv
from unitemplate.utils.filesystem import copy_file, ensure_directory

logger = logging.getLogger(__name__)


class AnalyzerBuildError(Exception):
    """Error building or installing the analyzer."""

    def __init__(self, message: str, hint: str | None = None):
        self.hint = hint
        super().__init__(message)


@dataclass
class AnalyzerResult:
    """Outcome of the analyzer setup."""

    success: bool
    message: str = ""
    hint: str | None = None
    copied: list[Path] = field(default_factory=list)


class AnalyzerBuilder:
    """Sets up the analyzer submodule and builds it."""

    def __init__(
        self,
        project_root: Path,
        runner: Runner,
        provisioner: SubmoduleProvisioner,
        output_dir: str = "Assets/Plugins/Analyzers",
        configuration: str = "Release",
    ) -> None:
        self.project_root = project_root
        self.runner = runner
        self.provisioner = provisioner
        self.output_dir = output_dir
        self.configuration = configuration

    def setup(self, spec: AnalyzerSpec) -> AnalyzerResult:
        """Check out, build and install the analyzer."""
        provision = self.provisioner.setup_submodule(spec.as_submodule())
        if not provision.success:
            return AnalyzerResult(False, provision.message, provision.hint)

        try:
            copied = self.build(spec)
        except AnalyzerBuildError as e:
            logger.error("Analyzer build failed: %s", e)
            return AnalyzerResult(False, str(e), e.hint)

        return AnalyzerResult(True, f"Installed {len(copied)} analyzer DLL(s)", copied=copied)

    def build(self, spec: AnalyzerSpec) -> list[Path]:
        """Build the analyzer project and copy its DLL.

        Returns:
            The DLLs copied into the output folder

        Raises:
            AnalyzerBuildError: If the project is missing, the build fails or
                produces no DLL
        """
        project = self.project_root / spec.submodule_name / PurePosixPath(spec.project_path)
        argv = ["dotnet", "build", str(project), "-c", self.configuration]
        hint = f"Build manually:\n  {format_argv(argv)}"

        if not project.is_file():
            raise AnalyzerBuildError(f"Analyzer project not found: {project}", hint)

        logger.info("Building analyzer %s", project.name)
        result = self.runner.run(argv, cwd=self.project_root)
        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}"
            raise AnalyzerBuildError(f"dotnet build failed: {detail}", hint)

        dlls = self.find_outputs(project)
        if not dlls:
            raise AnalyzerBuildError(f"No {project.stem}.dll produced under {project.parent}", hint)

        target_dir = self.project_root / self.output_dir
        ensure_directory(target_dir)
        copied = []
        for dll in dlls:
            dest = target_dir / dll.name
            copy_file(dll, dest)
            logger.info("Copied %s -> %s", dll.name, self.output_dir)
            copied.append(dest)
        return copied

    def find_outputs(self, project: Path) -> list[Path]:
        """Find the built DLL for a project, newest first."""
        bin_dir = project.parent / "bin" / self.configuration
        if not bin_dir.is_dir():
            return []
        candidates = [p for p in bin_dir.rglob(f"{project.stem}.dll") if p.is_file()]
        candidates.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        return candidates[:1]
