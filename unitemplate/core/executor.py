"""Single package install step.

Each step walks `dispatched -> polling -> succeeded | skipped | fatal`:

- dispatched: the package client is asked to add the identifier and a tick
  hook is registered
- polling: every tick the hook checks the request; nothing happens until it
  completes, so the tick thread is never blocked
- succeeded / skipped / fatal: the hook is removed and the outcome handed to
  the owner, which decides how the queue advances
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from unitemplate.core.differ import display_name
from unitemplate.core.scheduler import Scheduler
from unitemplate.host.base import AddRequest, PackageClient, RequestStatus

logger = logging.getLogger(__name__)

DEFAULT_SKIP_PATTERNS = (
    "Cannot find a version",
    "compatible with this Unity version",
)


class StepState(Enum):
    """Lifecycle of one install step."""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FATAL = "fatal"
    ABANDONED = "abandoned"


@dataclass
class ItemOutcome:
    """Final result of one install step."""

    identifier: str
    state: StepState
    message: str = ""

    @property
    def name(self) -> str:
        return display_name(self.identifier)


class FailurePolicy:
    """Decides whether a failed install is skippable or fatal.

    A failure message containing any of the skip patterns (plain,
    case-sensitive substring match) is skippable; anything else is fatal.
    """

    def __init__(self, skip_patterns: Iterable[str] = DEFAULT_SKIP_PATTERNS) -> None:
        self.skip_patterns = tuple(p for p in skip_patterns if p)

    def classify(self, message: str) -> StepState:
        """Classify a failure message as SKIPPED or FATAL."""
        if any(pattern in message for pattern in self.skip_patterns):
            return StepState.SKIPPED
        return StepState.FATAL


class InstallStep:
    """Drives one package install against the package client."""

    def __init__(
        self,
        identifier: str,
        client: PackageClient,
        scheduler: Scheduler,
        policy: FailurePolicy,
        on_complete: Callable[[ItemOutcome], None],
    ) -> None:
        self.identifier = identifier
        self.state = StepState.PENDING
        self._client = client
        self._scheduler = scheduler
        self._policy = policy
        self._on_complete = on_complete
        self._request: AddRequest | None = None

    def dispatch(self) -> None:
        """Start the install and begin polling on each tick."""
        if self.state is not StepState.PENDING:
            raise RuntimeError(f"Step for {self.identifier} already dispatched")

        logger.debug("Dispatching install of %s", self.identifier)
        self._request = self._client.add(self.identifier)
        self.state = StepState.DISPATCHED
        self._scheduler.add_tick_hook(self._poll)

    def abandon(self) -> None:
        """Stop polling. A later completion of the request is ignored."""
        self._scheduler.remove_tick_hook(self._poll)
        if self.state in (StepState.PENDING, StepState.DISPATCHED, StepState.POLLING):
            self.state = StepState.ABANDONED
        self._request = None

    def _poll(self) -> None:
        request = self._request
        if request is None:
            logger.error("Install step for %s has no request; stopping poll", self.identifier)
            self._scheduler.remove_tick_hook(self._poll)
            return

        self.state = StepState.POLLING
        if not request.is_completed:
            return

        self._scheduler.remove_tick_hook(self._poll)
        self._request = None
        outcome = self._classify(request)
        self.state = outcome.state
        self._on_complete(outcome)

    def _classify(self, request: AddRequest) -> ItemOutcome:
        if request.status is RequestStatus.SUCCESS:
            name = request.result.display_name if request.result else display_name(self.identifier)
            logger.info("Installed %s", name)
            return ItemOutcome(self.identifier, StepState.SUCCEEDED, name)

        message = request.error or "Unknown error"
        state = self._policy.classify(message)
        if state is StepState.SKIPPED:
            logger.warning(
                "Skipped %s due to a compatibility problem: %s",
                display_name(self.identifier),
                message,
            )
        else:
            logger.error("Package install error for %s: %s", self.identifier, message)
        return ItemOutcome(self.identifier, state, message)
