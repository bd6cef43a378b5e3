"""Main CLI application for unitemplate."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from unitemplate import __version__
from unitemplate.config.parser import ConfigError
from unitemplate.core.analyzer import AnalyzerBuilder
from unitemplate.core.controller import (
    BatchResult,
    BatchStatus,
    InstallController,
    InstallError,
    RestoreAction,
)
from unitemplate.core.differ import display_name, is_git_package, packages_to_install
from unitemplate.core.executor import FailurePolicy
from unitemplate.core.files import (
    CopyReport,
    copy_config_files,
    copy_editor_scripts,
    copy_license_files,
    copy_utility_scripts,
    create_folder_structure,
)
from unitemplate.core.nuget import CommandNugetInstaller, has_bridge, install_nuget_packages
from unitemplate.core.orchestrator import (
    FullSetupOrchestrator,
    PhaseStatus,
    SetupOutcome,
    SetupSummary,
)
from unitemplate.core.project import Project
from unitemplate.core.scheduler import Scheduler
from unitemplate.core.submodule import ProvisionResult, SubmoduleProvisioner
from unitemplate.host.base import Prompter
from unitemplate.host.package_client import ManifestPackageClient
from unitemplate.host.ui import AutoConfirmPrompter, ConsolePrompter, RichProgressReporter
from unitemplate.utils.command import CommandRunner

# Create the main Typer app
app = typer.Typer(
    name="unitemplate",
    help="Bootstrap a Unity project from a template",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the unitemplate package
logger = logging.getLogger("unitemplate")


@dataclass
class CliOptions:
    """Options shared by every command."""

    path: Path | None = None
    yes: bool = False


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_hint(hint: str | None) -> None:
    """Print manual-recovery instructions."""
    if hint:
        console.print(f"[dim]{hint}[/dim]")


def get_options(ctx: typer.Context) -> CliOptions:
    return ctx.obj if isinstance(ctx.obj, CliOptions) else CliOptions()


def get_project(ctx: typer.Context) -> Project:
    """Get the current project, raising an error if not found."""
    try:
        return Project.load(get_options(ctx).path)
    except FileNotFoundError as e:
        print_error(str(e))
        print_error("Run unitemplate from a Unity project, or pass --path")
        raise typer.Exit(1) from e
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def get_template_dir(project: Project) -> Path:
    template_dir = project.template_dir
    if template_dir is None:
        print_error("Template directory not found (no template-manifest.json in the project)")
        raise typer.Exit(1)
    return template_dir


def get_prompter(ctx: typer.Context) -> Prompter:
    return AutoConfirmPrompter(console) if get_options(ctx).yes else ConsolePrompter(console)


def build_controller(project: Project) -> tuple[InstallController, ManifestPackageClient]:
    """Create an install controller wired to the real package client."""
    settings = project.settings
    client = ManifestPackageClient(project.root, settings.registry_url, project.unity_version)
    controller = InstallController(
        Scheduler(),
        client,
        project.state_store,
        RichProgressReporter(error_console),
        policy=FailurePolicy(settings.skip_patterns),
        bridge_marker=settings.bridge_marker,
        post_install_delay=settings.post_install_delay,
    )
    return controller, client


def build_provisioner(project: Project, prompter: Prompter) -> SubmoduleProvisioner:
    return SubmoduleProvisioner(
        project.root, CommandRunner(), prompter, scripts_dir=project.settings.scripts_dir
    )


def build_orchestrator(
    project: Project, controller: InstallController, provisioner: SubmoduleProvisioner
) -> FullSetupOrchestrator:
    return FullSetupOrchestrator(
        project_root=project.root,
        manifest=project.manifest,
        settings=project.settings,
        controller=controller,
        provisioner=provisioner,
        nuget_installer=CommandNugetInstaller(project.root, project.settings.nuget_output_dir),
        analyzer_builder=AnalyzerBuilder(
            project.root,
            CommandRunner(),
            provisioner,
            output_dir=project.settings.analyzer_output_dir,
        ),
        asset_index=project.asset_index,
        template_dir=project.template_dir,
        unity_version=project.unity_version,
    )


def drive(project: Project, controller: InstallController, client: ManifestPackageClient) -> None:
    """Run the scheduler until the install batch and its follow-ups finish."""
    try:
        controller.scheduler.run_until_idle(interval=project.settings.tick_interval)
    except KeyboardInterrupt as e:
        controller.progress.clear()
        print_warning("Interrupted. Progress is saved; run 'unitemplate resume' to continue")
        raise typer.Exit(130) from e
    finally:
        client.shutdown()


def report_batch(result: BatchResult) -> None:
    """Print the outcome of an install batch."""
    if result.status is BatchStatus.COMPLETED:
        if result.restored and not result.total:
            return
        print_success(f"Installed {len(result.installed)} package(s)")
        if result.skip_count:
            print_warning(
                f"{result.skip_count} package(s) skipped (not compatible with this Unity version):"
            )
            for identifier in result.skipped:
                console.print(f"  - {display_name(identifier)}")
    elif result.status is BatchStatus.CANCELLED:
        print_warning("Installation cancelled")
    else:
        name = display_name(result.failed_package) if result.failed_package else "package"
        print_error(f"Failed to install {name}: {result.error}")
        print_hint("Fix the error and run install-packages again; installed packages are kept")


def report_copy(report: CopyReport, what: str) -> None:
    if report.copied:
        print_success(f"Copied {len(report.copied)} {what}")
        for path in report.copied:
            console.print(f"  {path}")
    else:
        console.print(f"No {what} to copy")
    for name in report.missing:
        print_error(f"Template not found: {name}")


def report_provision(result: ProvisionResult) -> None:
    if result.success:
        print_success(f"{result.name}: {result.message}")
    elif result.cancelled:
        print_warning(f"{result.name}: setup cancelled")
    else:
        print_error(f"{result.name}: {result.message}")
        print_hint(result.hint)


def report_summary(summary: SetupSummary) -> None:
    """Print the per-phase results of a Full Setup run."""
    table = Table(title="Full Setup")
    table.add_column("Phase", style="cyan")
    table.add_column("Result")
    table.add_column("Details", style="dim")

    styles = {
        PhaseStatus.SUCCESS: "[green]success[/green]",
        PhaseStatus.SKIPPED: "[yellow]skipped[/yellow]",
        PhaseStatus.FAILED: "[red]failed[/red]",
        PhaseStatus.CANCELLED: "[yellow]cancelled[/yellow]",
    }
    for phase in summary.phases:
        table.add_row(phase.name, styles[phase.status], phase.message)
    console.print(table)

    for phase in summary.errors:
        print_hint(phase.hint)

    if summary.outcome is SetupOutcome.COMPLETED:
        print_success("Full Setup complete")
    elif summary.outcome is SetupOutcome.COMPLETED_WITH_ERRORS:
        print_warning(f"Full Setup finished with {len(summary.errors)} error(s)")
    else:
        print_error("Full Setup aborted")


@app.callback()
def callback(
    ctx: typer.Context,
    path: Annotated[
        Path | None,
        typer.Option(
            "--path",
            "-p",
            help="Unity project directory (defaults to searching from cwd)",
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Answer yes to confirmation prompts",
        ),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
) -> None:
    """unitemplate - bootstrap a Unity project from a template."""
    setup_logging(verbose)
    ctx.obj = CliOptions(path=path, yes=yes)


@app.command()
def version() -> None:
    """Show the unitemplate version."""
    console.print(f"unitemplate {__version__}")


@app.command("create-folders")
def create_folders(ctx: typer.Context) -> None:
    """Create the template folder structure."""
    project = get_project(ctx)
    created = create_folder_structure(project.root, project.manifest.folder_structure)
    project.asset_index.refresh()

    if not created:
        console.print("Folder structure already exists")
        return
    print_success(f"Created {len(created)} folder(s)")
    for folder in created:
        console.print(f"  {folder.relative_to(project.root).as_posix()}")


@app.command("install-packages")
def install_packages(ctx: typer.Context) -> None:
    """Install the template's UPM packages one by one.

    Progress is saved before each package, so an interrupted run can be
    continued with 'unitemplate resume'.
    """
    project = get_project(ctx)
    state = project.state_store.load()
    if state is not None and state.is_installing and state.remaining_packages:
        print_error(
            f"An installation is already in progress ({len(state.remaining_packages)} remaining)"
        )
        print_hint("Run 'unitemplate resume' to continue it or 'unitemplate cancel' to drop it")
        raise typer.Exit(1)

    packages = packages_to_install(
        project.manifest,
        project.installed(),
        project.unity_version,
        frozenset(project.settings.builtin_packages),
    )
    if not packages:
        print_success("All packages are already installed")
        return

    results: list[BatchResult] = []
    controller, client = build_controller(project)
    controller.on_batch_finished = results.append
    try:
        controller.start(packages)
    except InstallError as e:
        client.shutdown()
        print_error(str(e))
        raise typer.Exit(1) from e
    drive(project, controller, client)

    for result in results:
        report_batch(result)
    if any(r.status is BatchStatus.FAILED for r in results):
        raise typer.Exit(1)
    bridge_installed = has_bridge(project.installed(), project.settings.bridge_marker)
    if bridge_installed and project.manifest.nuget_packages:
        console.print("Next: run 'unitemplate install-nuget' to install the NuGet packages")


@app.command("install-nuget")
def install_nuget(ctx: typer.Context) -> None:
    """Install the template's NuGet packages (requires NuGetForUnity)."""
    project = get_project(ctx)
    summary = install_nuget_packages(
        project.manifest.nuget_packages,
        CommandNugetInstaller(project.root, project.settings.nuget_output_dir),
        project.installed(),
        project.settings.bridge_marker,
    )

    if summary.skipped:
        print_warning(summary.skipped_reason or "NuGet packages skipped")
        return
    for result in summary.results:
        if result.success:
            print_success(f"{result.package_id} {result.version}")
        else:
            print_error(f"{result.package_id} {result.version}: {result.message}")
    if not summary.ok:
        raise typer.Exit(1)
    if not summary.results:
        console.print("No NuGet packages declared")


@app.command("copy-config")
def copy_config(ctx: typer.Context) -> None:
    """Copy configuration files (.editorconfig, csc.rsp, ...) into the project."""
    project = get_project(ctx)
    report = copy_config_files(
        get_template_dir(project), project.root, project.manifest.config_files
    )
    report_copy(report, "config file(s)")
    if not report.ok:
        raise typer.Exit(1)


@app.command("copy-licenses")
def copy_licenses(ctx: typer.Context) -> None:
    """Copy license asset files into the license folder."""
    project = get_project(ctx)
    report = copy_license_files(
        get_template_dir(project), project.root, project.manifest.license_folder_path
    )
    report_copy(report, "license file(s)")


@app.command("copy-scripts")
def copy_scripts(ctx: typer.Context) -> None:
    """Copy utility script templates into the scripts folder."""
    project = get_project(ctx)
    report = copy_utility_scripts(
        get_template_dir(project), project.root, project.settings.scripts_dir
    )
    report_copy(report, "script(s)")


@app.command("copy-editor-scripts")
def copy_editor_scripts_command(ctx: typer.Context) -> None:
    """Copy editor-only script templates into Assets/Editor."""
    project = get_project(ctx)
    report = copy_editor_scripts(get_template_dir(project), project.root)
    report_copy(report, "editor script(s)")


@app.command("setup-submodule")
def setup_submodule(
    ctx: typer.Context,
    name: Annotated[
        str,
        typer.Argument(help="Submodule directory or link name"),
    ],
) -> None:
    """Add one declared submodule and link it into the scripts folder."""
    project = get_project(ctx)
    spec = project.manifest.get_submodule(name)
    if spec is None:
        available = ", ".join(s.name for s in project.manifest.submodules) or "none"
        print_error(f"Unknown submodule: {name}")
        print_error(f"Declared submodules: {available}")
        raise typer.Exit(1)

    result = build_provisioner(project, get_prompter(ctx)).setup_submodule(spec)
    project.asset_index.refresh()
    report_provision(result)
    if not result.success and not result.cancelled:
        raise typer.Exit(1)


@app.command("setup-submodules")
def setup_submodules(ctx: typer.Context) -> None:
    """Add every declared submodule."""
    project = get_project(ctx)
    if not project.manifest.submodules:
        console.print("No submodules declared")
        return

    provisioner = build_provisioner(project, get_prompter(ctx))
    failed = False
    for spec in project.manifest.submodules:
        result = provisioner.setup_submodule(spec)
        report_provision(result)
        failed = failed or not (result.success or result.cancelled)
    project.asset_index.refresh()
    if failed:
        raise typer.Exit(1)


@app.command("setup-analyzer")
def setup_analyzer(ctx: typer.Context) -> None:
    """Add the analyzer submodule, build it and install the DLL."""
    project = get_project(ctx)
    spec = project.manifest.analyzers
    if spec is None:
        console.print("No analyzer declared")
        return

    provisioner = build_provisioner(project, get_prompter(ctx))
    builder = AnalyzerBuilder(
        project.root,
        CommandRunner(),
        provisioner,
        output_dir=project.settings.analyzer_output_dir,
    )
    result = builder.setup(spec)
    if not result.success:
        print_error(result.message)
        print_hint(result.hint)
        raise typer.Exit(1)
    print_success(result.message)
    for path in result.copied:
        console.print(f"  {path}")


@app.command("full-setup")
def full_setup(ctx: typer.Context) -> None:
    """Run every setup step: folders, packages, NuGet, config, submodules, analyzer.

    Confirmation prompts are answered automatically.
    """
    project = get_project(ctx)
    store = project.state_store
    state = store.load()
    if store.full_setup_in_progress or (
        state is not None and state.is_installing and state.remaining_packages
    ):
        print_error("A Full Setup or package installation is already in progress")
        print_hint("Run 'unitemplate resume' to continue it or 'unitemplate cancel' to drop it")
        raise typer.Exit(1)

    controller, client = build_controller(project)
    provisioner = build_provisioner(project, AutoConfirmPrompter(console))
    orchestrator = build_orchestrator(project, controller, provisioner)

    summaries: list[SetupSummary] = []
    orchestrator.attach()
    orchestrator.on_complete = summaries.append

    try:
        orchestrator.start()
    except InstallError as e:
        client.shutdown()
        print_error(str(e))
        print_hint("Run 'unitemplate resume' or 'unitemplate cancel' first")
        raise typer.Exit(1) from e
    drive(project, controller, client)

    for summary in summaries:
        report_summary(summary)
    if any(s.outcome is not SetupOutcome.COMPLETED for s in summaries):
        raise typer.Exit(1)


@app.command()
def resume(ctx: typer.Context) -> None:
    """Continue an interrupted installation or Full Setup."""
    project = get_project(ctx)
    controller, client = build_controller(project)
    provisioner = build_provisioner(project, AutoConfirmPrompter(console))
    orchestrator = build_orchestrator(project, controller, provisioner)

    results: list[BatchResult] = []
    summaries: list[SetupSummary] = []
    orchestrator.on_complete = summaries.append

    def on_batch_finished(result: BatchResult) -> None:
        results.append(result)
        orchestrator.handle_batch_result(result)

    controller.on_batch_finished = on_batch_finished

    action = controller.restore()
    if action is RestoreAction.NONE:
        client.shutdown()
        console.print("Nothing to resume")
        return
    drive(project, controller, client)

    for result in results:
        report_batch(result)
    for summary in summaries:
        report_summary(summary)
    if any(r.status is BatchStatus.FAILED for r in results) or any(
        s.outcome is not SetupOutcome.COMPLETED for s in summaries
    ):
        raise typer.Exit(1)


@app.command()
def cancel(ctx: typer.Context) -> None:
    """Drop a saved installation and Full Setup so it is not resumed."""
    project = get_project(ctx)
    store = project.state_store
    state = store.load()
    flagged = store.full_setup_in_progress

    if state is None and not flagged:
        console.print("No installation in progress")
        return

    store.clear()
    store.full_setup_in_progress = False
    remaining = len(state.remaining_packages) if state is not None else 0
    print_success(f"Cancelled installation ({remaining} package(s) were remaining)")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show which template packages are installed and any saved progress."""
    project = get_project(ctx)
    manifest = project.manifest
    pending = set(
        packages_to_install(
            manifest,
            project.installed(),
            project.unity_version,
            frozenset(project.settings.builtin_packages),
        )
    )

    console.print(f"Project: {project.root}")
    console.print(f"Unity: {project.unity_version or 'unknown'}")

    table = Table(title="Template Packages")
    table.add_column("Package", style="cyan")
    table.add_column("Source", style="dim")
    table.add_column("Status")

    for identifier in [*manifest.packages, *manifest.git_packages]:
        source = "git" if is_git_package(identifier) else "registry"
        state = "[yellow]pending[/yellow]" if identifier in pending else "[green]installed[/green]"
        table.add_row(display_name(identifier), source, state)
    console.print(table)

    if manifest.submodules:
        provisioner = build_provisioner(project, AutoConfirmPrompter(console))
        for spec in manifest.submodules:
            linked = provisioner.is_provisioned(spec)
            mark = "[green]linked[/green]" if linked else "[yellow]not set up[/yellow]"
            console.print(f"Submodule {spec.name} -> {spec.link_name}: {mark}")

    saved = project.state_store.load()
    if saved is not None and saved.is_installing:
        done = saved.total_packages - len(saved.remaining_packages)
        print_warning(
            f"Installation interrupted at {done}/{saved.total_packages}; "
            "run 'unitemplate resume' to continue"
        )
    if project.state_store.full_setup_in_progress:
        print_warning("Full Setup in progress; run 'unitemplate resume' to continue")


if __name__ == "__main__":
    app()
