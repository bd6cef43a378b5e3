"""Installation controller.

Owns the install queue, the persisted installation state and the single
in-flight install step. All state that used to be process-global lives on
one InstallController instance.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from unitemplate.core.differ import display_name
from unitemplate.core.executor import FailurePolicy, InstallStep, ItemOutcome, StepState
from unitemplate.core.queue import InstallQueue
from unitemplate.core.scheduler import Scheduler
from unitemplate.core.state import InstallStateStore
from unitemplate.host.base import PackageClient, ProgressReporter

logger = logging.getLogger(__name__)

PROGRESS_TITLE = "Installing Dependencies"


class InstallError(Exception):
    """Error during package installation."""

    def __init__(self, message: str, identifier: str | None = None):
        self.identifier = identifier
        super().__init__(message)


class BatchStatus(Enum):
    """How an install batch ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RestoreAction(Enum):
    """What restore() found in the persisted state."""

    NONE = "none"
    RESUMED = "resumed"
    CONTINUATION = "continuation"


@dataclass
class BatchResult:
    """Result of an install batch."""

    status: BatchStatus
    total: int = 0
    installed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: str | None = None
    failed_package: str | None = None
    restored: bool = False

    @property
    def skip_count(self) -> int:
        return len(self.skipped)

    @property
    def success(self) -> bool:
        return self.status is BatchStatus.COMPLETED


BatchCallback = Callable[[BatchResult], None]


class InstallController:
    """Serially installs a queue of packages, persisting progress as it goes.

    State transitions: idle -> installing on start() or a resumed restore();
    installing -> idle on drain, fatal error or cancel().
    """

    def __init__(
        self,
        scheduler: Scheduler,
        client: PackageClient,
        store: InstallStateStore,
        progress: ProgressReporter,
        policy: FailurePolicy | None = None,
        bridge_marker: str = "NuGetForUnity",
        post_install_delay: float = 0.5,
    ) -> None:
        self.scheduler = scheduler
        self.client = client
        self.store = store
        self.progress = progress
        self.policy = policy or FailurePolicy()
        self.bridge_marker = bridge_marker
        self.post_install_delay = post_install_delay

        self.on_batch_finished: BatchCallback | None = None
        self.outcomes: list[ItemOutcome] = []

        self._queue = InstallQueue()
        self._is_installing = False
        self._current: InstallStep | None = None
        self._restored = False
        # Bumped whenever a batch starts or ends; stale deferred calls compare against it
        self._generation = 0

    @property
    def is_installing(self) -> bool:
        return self._is_installing

    @property
    def queue(self) -> InstallQueue:
        return self._queue

    @property
    def current_step(self) -> InstallStep | None:
        return self._current

    def start(self, identifiers: Iterable[str]) -> None:
        """Start a new install batch.

        Args:
            identifiers: Packages to install in differ order

        Raises:
            InstallError: If a batch is already running
        """
        if self._is_installing:
            raise InstallError("A package installation is already in progress")

        self._queue = InstallQueue.build(identifiers, self.bridge_marker)
        self.outcomes = []
        self._restored = False
        self._is_installing = True
        self._generation += 1

        logger.info("Starting dependency installation (%d package(s))", self._queue.total)
        self.store.save(self._queue.snapshot(is_installing=True))
        self.progress.update(PROGRESS_TITLE, "Starting installation...", 0.0)
        self._install_next()

    def restore(self) -> RestoreAction:
        """Resume whatever the persisted state says was in progress.

        A non-empty queue is rebuilt and dispatch resumes after a tick. With
        nothing left to install but a Full Setup still flagged, the batch
        callback is invoked directly so the continuation runs without
        announcing completion again.
        """
        if self._is_installing:
            return RestoreAction.NONE

        state = self.store.load()
        if state is not None and state.is_installing and state.remaining_packages:
            self._queue = InstallQueue.from_state(state)
            self.outcomes = []
            self._restored = True
            self._is_installing = True
            self._generation += 1
            logger.info(
                "Resuming package installation (%d remaining)", len(state.remaining_packages)
            )
            self.scheduler.call_after_ticks(1, self._bound(self._resume))
            return RestoreAction.RESUMED

        if state is not None:
            # Stale or finished snapshot
            self.store.clear()

        if self.store.full_setup_in_progress:
            logger.info("Package installation finished before restart; continuing Full Setup")
            self.scheduler.call_after_ticks(
                1,
                self._bound(
                    lambda: self._notify(BatchResult(status=BatchStatus.COMPLETED, restored=True))
                ),
            )
            return RestoreAction.CONTINUATION

        return RestoreAction.NONE

    def cancel(self) -> bool:
        """Cancel the running batch.

        The in-flight request is abandoned rather than aborted; its completion
        is ignored because the poll hook is removed first.

        Returns:
            True if a batch was running
        """
        was_installing = self._is_installing
        self._generation += 1
        if self._current is not None:
            self._current.abandon()
            self._current = None

        self._queue.clear()
        self._is_installing = False
        self.progress.clear()
        self.store.clear()
        self.store.full_setup_in_progress = False

        if was_installing:
            logger.info("Dependency installation cancelled")
            self._notify(self._result(BatchStatus.CANCELLED))
        return was_installing

    def _resume(self) -> None:
        if not self._is_installing:
            return
        self.progress.update(PROGRESS_TITLE, "Resuming installation...", self._queue.progress())
        self._install_next()

    def _install_next(self) -> None:
        if not self._is_installing:
            return

        if not self._queue:
            self._finish(self._result(BatchStatus.COMPLETED))
            return

        identifier = self._queue.dequeue()
        # Persist before dispatch so a restart loses at most this item
        self.store.save(self._queue.snapshot(is_installing=True))

        index = self._queue.completed_count
        total = self._queue.total
        name = display_name(identifier)
        self.progress.update(
            PROGRESS_TITLE,
            f"Installing: {name} ({index}/{total})",
            self._queue.progress(),
        )
        logger.info("[%d/%d] Installing %s", index, total, name)

        self._current = InstallStep(
            identifier, self.client, self.scheduler, self.policy, self._on_item_complete
        )
        try:
            self._current.dispatch()
        except Exception as e:
            logger.error("Failed to start install of %s: %s", identifier, e)
            self._on_item_complete(ItemOutcome(identifier, StepState.FATAL, str(e)))

    def _on_item_complete(self, outcome: ItemOutcome) -> None:
        self._current = None
        if not self._is_installing:
            return

        self.outcomes.append(outcome)
        if outcome.state is StepState.SUCCEEDED:
            self.scheduler.call_later(self.post_install_delay, self._bound(self._install_next))
        elif outcome.state is StepState.SKIPPED:
            self._report(f"Skipped: {display_name(outcome.identifier)}")
            self.scheduler.call_soon(self._bound(self._install_next))
        else:
            self._report(f"Failed: {display_name(outcome.identifier)}")
            result = self._result(BatchStatus.FAILED)
            result.error = outcome.message
            result.failed_package = outcome.identifier
            self._queue.clear()
            self._finish(result)

    def _finish(self, result: BatchResult) -> None:
        self._is_installing = False
        self._generation += 1
        self._current = None
        self.progress.clear()
        self.store.clear()

        if result.status is BatchStatus.COMPLETED:
            logger.info(
                "Dependency installation complete (%d installed, %d skipped)",
                len(result.installed),
                result.skip_count,
            )
        self._notify(result)

    def _bound(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Wrap a deferred call so it is dropped once the current batch ends."""
        generation = self._generation

        def run() -> None:
            if generation == self._generation:
                callback()

        return run

    def _report(self, label: str) -> None:
        self.progress.update(PROGRESS_TITLE, label, self._queue.progress())

    def _result(self, status: BatchStatus) -> BatchResult:
        return BatchResult(
            status=status,
            total=self._queue.total,
            installed=[o.identifier for o in self.outcomes if o.state is StepState.SUCCEEDED],
            skipped=[o.identifier for o in self.outcomes if o.state is StepState.SKIPPED],
            restored=self._restored,
        )

    def _notify(self, result: BatchResult) -> None:
        if self.on_batch_finished is not None:
            self.on_batch_finished(result)
