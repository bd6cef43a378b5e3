"""FIFO install queue with a single priority rule.

The bridge package (the one later phases depend on) is moved to the front;
every other entry keeps the order it was given in. Items only ever leave
from the front, so the remaining items are always a suffix of the original
sequence.
"""

from collections import deque
from collections.abc import Iterable

from unitemplate.config.schemas import InstallationState


def prioritize_bridge(identifiers: Iterable[str], bridge_marker: str) -> list[str]:
    """Move the first identifier containing `bridge_marker` to the front.

    Args:
        identifiers: Packages in differ order
        bridge_marker: Substring identifying the bridge package

    Returns:
        New list with the bridge package first, others in input order
    """
    items = list(identifiers)
    if not bridge_marker:
        return items

    for index, identifier in enumerate(items):
        if bridge_marker in identifier:
            return [identifier] + items[:index] + items[index + 1 :]
    return items


class InstallQueue:
    """Queue of package identifiers waiting to be installed."""

    def __init__(self) -> None:
        self._items: deque[str] = deque()
        self._total = 0

    @classmethod
    def build(cls, identifiers: Iterable[str], bridge_marker: str = "") -> "InstallQueue":
        """Create a queue for a fresh install batch."""
        queue = cls()
        queue._items.extend(prioritize_bridge(identifiers, bridge_marker))
        queue._total = len(queue._items)
        return queue

    @classmethod
    def from_state(cls, state: InstallationState) -> "InstallQueue":
        """Rebuild a queue from a persisted snapshot, preserving order."""
        queue = cls()
        queue._items.extend(state.remaining_packages)
        queue._total = max(state.total_packages, len(queue._items))
        return queue

    def dequeue(self) -> str:
        """Remove and return the next identifier.

        Raises:
            IndexError: If the queue is empty
        """
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()

    @property
    def total(self) -> int:
        """Number of items the batch started with."""
        return self._total

    @property
    def remaining(self) -> list[str]:
        """Items not yet dequeued, in order."""
        return list(self._items)

    @property
    def completed_count(self) -> int:
        """Number of items dequeued so far."""
        return self._total - len(self._items)

    def progress(self) -> float:
        """Fraction of the batch already dequeued."""
        if self._total == 0:
            return 1.0
        return self.completed_count / self._total

    def snapshot(self, is_installing: bool) -> InstallationState:
        """Build the persisted form of this queue."""
        return InstallationState(
            remaining_packages=self.remaining,
            is_installing=is_installing,
            total_packages=self._total,
        )

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
