"""Console progress indicator and prompts."""

import logging

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn

logger = logging.getLogger(__name__)


class RichProgressReporter:
    """ProgressReporter drawing a rich progress bar."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def update(self, title: str, label: str, fraction: float) -> None:
        progress = self._progress
        if progress is None or self._task is None:
            progress = Progress(
                TextColumn("[bold]{task.fields[title]}[/bold]"),
                BarColumn(),
                TextColumn("{task.percentage:>3.0f}%"),
                TextColumn("{task.description}"),
                console=self._console,
                transient=True,
            )
            progress.start()
            self._progress = progress
            self._task = progress.add_task(label, total=1.0, title=title)
        progress.update(
            self._task,
            description=label,
            completed=max(0.0, min(fraction, 1.0)),
            title=title,
        )

    def clear(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None


class ConsolePrompter:
    """Prompter asking on the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def confirm(self, title: str, message: str, default: bool = False) -> bool:
        self._console.print(f"[bold]{title}[/bold]")
        self._console.print(message)
        return typer.confirm("Continue?", default=default)

    def notify(self, title: str, message: str) -> None:
        self._console.print(f"[bold]{title}[/bold]")
        self._console.print(message)


class AutoConfirmPrompter:
    """Prompter that answers yes without asking (Full Setup, --yes)."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def confirm(self, title: str, message: str, default: bool = False) -> bool:
        logger.info("%s: auto-confirmed", title)
        return True

    def notify(self, title: str, message: str) -> None:
        self._console.print(f"[bold]{title}[/bold]")
        self._console.print(message)
