"""Cooperative single-threaded scheduler.

One tick source drives everything: each tick runs the deferred calls that
are due, then every registered tick hook once. Deferred calls let steps be
chained without growing the call stack; tick hooks are how in-flight
package requests are polled.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


@dataclass(order=True)
class _Deferred:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    min_tick: int = field(default=0, compare=False)


class Scheduler:
    """Tick-driven scheduler with tick hooks and deferred calls."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            clock: Monotonic time source
            sleep: Function used by run_until_idle() between ticks
        """
        self._clock = clock
        self._sleep = sleep
        self._hooks: list[Callback] = []
        self._deferred: list[_Deferred] = []
        self._seq = 0
        self._tick_count = 0

    @property
    def tick_count(self) -> int:
        """Number of ticks run so far."""
        return self._tick_count

    def add_tick_hook(self, hook: Callback) -> None:
        """Register a hook called once per tick."""
        if hook not in self._hooks:
            self._hooks.append(hook)

    def remove_tick_hook(self, hook: Callback) -> None:
        """Unregister a tick hook. Unknown hooks are ignored."""
        if hook in self._hooks:
            self._hooks.remove(hook)

    def has_tick_hook(self, hook: Callback) -> bool:
        return hook in self._hooks

    def call_soon(self, callback: Callback) -> None:
        """Run a callback on the next tick."""
        self._schedule(callback, self._clock(), self._tick_count + 1)

    def call_after_ticks(self, ticks: int, callback: Callback) -> None:
        """Run a callback once `ticks` more ticks have started."""
        self._schedule(callback, self._clock(), self._tick_count + max(ticks, 1))

    def call_later(self, delay: float, callback: Callback) -> None:
        """Run a callback on the first tick at least `delay` seconds from now."""
        self._schedule(callback, self._clock() + delay, self._tick_count + 1)

    def _schedule(self, callback: Callback, due: float, min_tick: int) -> None:
        self._seq += 1
        self._deferred.append(_Deferred(due, self._seq, callback, min_tick))

    def is_idle(self) -> bool:
        """True when no hooks are registered and no calls are pending."""
        return not self._hooks and not self._deferred

    def tick(self) -> None:
        """Run one scheduler tick."""
        self._tick_count += 1
        now = self._clock()

        due = sorted(
            d for d in self._deferred if d.due <= now and d.min_tick <= self._tick_count
        )
        for item in due:
            self._deferred.remove(item)
        for item in due:
            item.callback()

        # Hooks may unregister themselves while running
        for hook in list(self._hooks):
            if hook in self._hooks:
                hook()

    def run_until_idle(self, interval: float = 0.05, max_ticks: int | None = None) -> None:
        """Drive ticks until there is nothing left to do.

        Args:
            interval: Seconds to sleep between ticks
            max_ticks: Optional safety limit on the number of ticks

        Raises:
            RuntimeError: If max_ticks is reached before the scheduler is idle
        """
        ticks = 0
        while not self.is_idle():
            if max_ticks is not None and ticks >= max_ticks:
                raise RuntimeError(f"Scheduler still busy after {max_ticks} ticks")
            self.tick()
            ticks += 1
            if not self.is_idle():
                self._sleep(interval)
        logger.debug("Scheduler idle after %d tick(s)", ticks)

    def cancel_all(self) -> None:
        """Drop every hook and pending call."""
        self._hooks.clear()
        self._deferred.clear()
