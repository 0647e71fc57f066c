"""Debounced trigger: coalesce bursts of change events into one action call."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

BatchAction = Callable[[set[str]], Awaitable[None] | None]


@dataclass
class PendingBatch:
    """Identifiers collected since the last fire, plus the scheduled fire."""

    collected: set[str] = field(default_factory=set)
    timer: asyncio.TimerHandle | None = None


class DebouncedTrigger:
    """Invoke ``action`` once per burst of ``on_change`` calls.

    Every call restarts the quiescence window. When the window expires the
    collected identifiers are handed to the action in a single call. The
    batch is swapped for a fresh one before the action runs, so events
    arriving while it runs start the next burst.

    Must be used from the event loop thread.
    """

    def __init__(
        self,
        action: BatchAction,
        delay: float = 0.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """Initialize trigger.

        Args:
            action: Callable receiving the batch; coroutine results are scheduled as tasks
            delay: Quiescence window in seconds
            loop: Event loop for timers (default: running loop at first event)
        """
        self.action = action
        self.delay = delay
        self.loop = loop
        self.batch = PendingBatch()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> set[str]:
        """Identifiers waiting for the next fire."""
        return self.batch.collected

    @property
    def scheduled(self) -> bool:
        """Whether a fire is scheduled."""
        return self.batch.timer is not None

    def on_change(self, identifier: str) -> None:
        """Record a change and restart the quiescence window."""
        if self.loop is None:
            self.loop = asyncio.get_running_loop()

        self.batch.collected.add(identifier)

        if self.batch.timer:
            self.batch.timer.cancel()
        self.batch.timer = self.loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop the scheduled fire, keeping the collected identifiers."""
        if self.batch.timer:
            self.batch.timer.cancel()
            self.batch.timer = None

    def _fire(self) -> None:
        collected = self.batch.collected
        self.batch = PendingBatch()

        logger.debug(f"Firing for {len(collected)} change(s)")
        result = self.action(collected)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result, loop=self.loop)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
