"""Full Setup: every project setup step chained into one resumable run.

Phases run in order:

1. folder structure
2. UPM packages (asynchronous, through the InstallController)
3. NuGet packages
4. config files
5. one phase per declared submodule
6. analyzer submodule and build

Phase 2 may outlive the process. Its completion, in this process or after a
restart, triggers the continuation that runs phases 3 onwards. Every phase
is guarded on its own; only a failed or cancelled UPM batch stops the run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from unitemplate.config.parser import load_host_manifest
from unitemplate.config.schemas import Settings, SubmoduleSpec, TemplateManifest
from unitemplate.core.analyzer import AnalyzerBuilder
from unitemplate.core.controller import BatchResult, BatchStatus, InstallController, InstallError
from unitemplate.core.differ import packages_to_install
from unitemplate.core.files import copy_config_files, create_folder_structure
from unitemplate.core.nuget import NugetInstaller, install_nuget_packages
from unitemplate.core.state import InstallStateStore
from unitemplate.core.submodule import SubmoduleProvisioner
from unitemplate.host.base import AssetIndex

logger = logging.getLogger(__name__)


class PhaseStatus(Enum):
    """Outcome of one Full Setup phase."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class SetupOutcome(Enum):
    """Overall Full Setup outcome."""

    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    ABORTED = "aborted"


@dataclass
class PhaseResult:
    """Result of one phase."""

    name: str
    status: PhaseStatus
    message: str = ""
    hint: str | None = None

    @property
    def failed(self) -> bool:
        return self.status in (PhaseStatus.FAILED, PhaseStatus.CANCELLED)


@dataclass
class SetupSummary:
    """Results of a Full Setup run, phase by phase."""

    phases: list[PhaseResult] = field(default_factory=list)
    outcome: SetupOutcome | None = None

    @property
    def finished(self) -> bool:
        return self.outcome is not None

    @property
    def errors(self) -> list[PhaseResult]:
        return [p for p in self.phases if p.failed]


class FullSetupOrchestrator:
    """Runs the Full Setup phases around an InstallController batch."""

    def __init__(
        self,
        project_root: Path,
        manifest: TemplateManifest,
        settings: Settings,
        controller: InstallController,
        provisioner: SubmoduleProvisioner,
        nuget_installer: NugetInstaller,
        analyzer_builder: AnalyzerBuilder,
        asset_index: AssetIndex,
        template_dir: Path | None,
        unity_version: str | None = None,
    ) -> None:
        self.project_root = project_root
        self.manifest = manifest
        self.settings = settings
        self.controller = controller
        self.provisioner = provisioner
        self.nuget_installer = nuget_installer
        self.analyzer_builder = analyzer_builder
        self.asset_index = asset_index
        self.template_dir = template_dir
        self.unity_version = unity_version

        self.summary = SetupSummary()
        self.on_complete: Callable[[SetupSummary], None] | None = None
        self._active = False

    @property
    def store(self) -> InstallStateStore:
        return self.controller.store

    @property
    def is_active(self) -> bool:
        """Whether a run started here, or resumed here, is unfinished."""
        return self._active

    def attach(self) -> None:
        """Receive the controller's batch results directly."""
        self.controller.on_batch_finished = self.handle_batch_result

    def start(self) -> None:
        """Begin a Full Setup run.

        Runs phase 1 synchronously, then either starts the UPM batch or, if
        nothing needs installing, goes straight to the continuation.
        """
        if self.controller.is_installing:
            raise InstallError("A package installation is already in progress")

        self.summary = SetupSummary()
        self._active = True
        self.store.full_setup_in_progress = True
        logger.info("Starting Full Setup")

        self._run_phase("Folder structure", self._create_folders)

        try:
            installed = load_host_manifest(self.project_root)
            packages = packages_to_install(
                self.manifest,
                installed,
                self.unity_version,
                frozenset(self.settings.builtin_packages),
            )
            if not packages:
                self.summary.phases.append(
                    PhaseResult("UPM packages", PhaseStatus.SKIPPED, "All packages already installed")
                )
                self.continue_setup()
                return
            self.controller.start(packages)
        except Exception as e:
            logger.error("Failed to start package installation: %s", e)
            self.summary.phases.append(PhaseResult("UPM packages", PhaseStatus.FAILED, str(e)))
            self._abort()

    def handle_batch_result(self, result: BatchResult) -> bool:
        """React to the end of a UPM batch.

        Returns:
            True if the result belonged to a Full Setup run
        """
        if not (self._active or self.store.full_setup_in_progress):
            return False
        self._active = True

        if result.status is BatchStatus.COMPLETED:
            self.summary.phases.append(
                PhaseResult("UPM packages", PhaseStatus.SUCCESS, _describe(result))
            )
            self.continue_setup()
        elif result.status is BatchStatus.CANCELLED:
            self.summary.phases.append(
                PhaseResult("UPM packages", PhaseStatus.CANCELLED, "Installation cancelled")
            )
            self._abort()
        else:
            self.summary.phases.append(
                PhaseResult(
                    "UPM packages",
                    PhaseStatus.FAILED,
                    f"{result.failed_package}: {result.error}",
                    hint="Fix the error and run full-setup again; installed packages are kept",
                )
            )
            self._abort()
        return True

    def continue_setup(self) -> None:
        """Run phases 3 onwards and finish the run."""
        try:
            self._run_phase("NuGet packages", self._install_nuget)
            self._run_phase("Config files", self._copy_config)
            for spec in self.manifest.submodules:
                self._run_phase(f"Submodule {spec.name}", lambda s=spec: self._setup_submodule(s))
            self._run_phase("Analyzer", self._setup_analyzer)
            self.asset_index.refresh()
        finally:
            self.store.full_setup_in_progress = False
            self._active = False

        self.summary.outcome = (
            SetupOutcome.COMPLETED_WITH_ERRORS if self.summary.errors else SetupOutcome.COMPLETED
        )
        logger.info("Full Setup finished: %s", self.summary.outcome.value)
        self._notify()

    def _abort(self) -> None:
        self.store.full_setup_in_progress = False
        self._active = False
        self.summary.outcome = SetupOutcome.ABORTED
        logger.error("Full Setup aborted")
        self._notify()

    def _notify(self) -> None:
        if self.on_complete is not None:
            self.on_complete(self.summary)

    def _run_phase(self, name: str, func: Callable[[], PhaseResult]) -> PhaseResult:
        logger.info("Full Setup phase: %s", name)
        try:
            result = func()
        except Exception as e:
            logger.exception("Phase %s failed", name)
            result = PhaseResult(name, PhaseStatus.FAILED, str(e))
        result.name = name
        if result.status is PhaseStatus.FAILED:
            logger.error("%s: %s", name, result.message)
        elif result.status is PhaseStatus.SKIPPED:
            logger.warning("%s skipped: %s", name, result.message)
        self.summary.phases.append(result)
        return result

    # Phases

    def _create_folders(self) -> PhaseResult:
        created = create_folder_structure(self.project_root, self.manifest.folder_structure)
        self.asset_index.refresh()
        return PhaseResult("", PhaseStatus.SUCCESS, f"{len(created)} folder(s) created")

    def _install_nuget(self) -> PhaseResult:
        if not self.manifest.nuget_packages:
            return PhaseResult("", PhaseStatus.SKIPPED, "No NuGet packages declared")

        summary = install_nuget_packages(
            self.manifest.nuget_packages,
            self.nuget_installer,
            load_host_manifest(self.project_root),
            self.settings.bridge_marker,
        )
        if summary.skipped:
            return PhaseResult("", PhaseStatus.SKIPPED, summary.skipped_reason or "")
        if not summary.ok:
            failed = ", ".join(f"{r.package_id} ({r.message})" for r in summary.failed)
            return PhaseResult(
                "",
                PhaseStatus.FAILED,
                f"Failed: {failed}",
                hint="Install them from Window > NuGet > Manage NuGet Packages",
            )
        return PhaseResult("", PhaseStatus.SUCCESS, f"{len(summary.results)} package(s) installed")

    def _copy_config(self) -> PhaseResult:
        if not self.manifest.config_files:
            return PhaseResult("", PhaseStatus.SKIPPED, "No config files declared")
        if self.template_dir is None:
            return PhaseResult("", PhaseStatus.FAILED, "Template directory not found")

        report = copy_config_files(self.template_dir, self.project_root, self.manifest.config_files)
        if not report.ok:
            return PhaseResult(
                "", PhaseStatus.FAILED, f"Missing template(s): {', '.join(report.missing)}"
            )
        return PhaseResult("", PhaseStatus.SUCCESS, f"{len(report.copied)} file(s) copied")

    def _setup_submodule(self, spec: SubmoduleSpec) -> PhaseResult:
        result = self.provisioner.setup_submodule(spec)
        if result.success:
            return PhaseResult("", PhaseStatus.SUCCESS, result.message)
        status = PhaseStatus.CANCELLED if result.cancelled else PhaseStatus.FAILED
        return PhaseResult("", status, result.message, result.hint)

    def _setup_analyzer(self) -> PhaseResult:
        if self.manifest.analyzers is None:
            return PhaseResult("", PhaseStatus.SKIPPED, "No analyzer declared")
        result = self.analyzer_builder.setup(self.manifest.analyzers)
        if result.success:
            return PhaseResult("", PhaseStatus.SUCCESS, result.message)
        return PhaseResult("", PhaseStatus.FAILED, result.message, result.hint)


def _describe(result: BatchResult) -> str:
    if result.restored and not result.total:
        return "Installed before restart"
    message = f"{len(result.installed)} installed"
    if result.skip_count:
        message += f", {result.skip_count} skipped (incompatible with this Unity version)"
    return message
