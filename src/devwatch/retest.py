"""Watch-and-re-run controller.

Runs the downstream action once at startup, then watches the configured
files and re-runs it with each debounced batch of changed files.
"""

import asyncio
import inspect
import logging
from pathlib import Path

from devwatch.controller import install_stop_signals, remove_stop_signals
from devwatch_core.debounce import BatchAction, DebouncedTrigger
from devwatch_core.models import RetestConfig
from devwatch_core.sinks import LogSink, NoOpSink
from devwatch_core.watchers import GlobWatcher

logger = logging.getLogger(__name__)


class RetestController:
    """Feed file changes through a DebouncedTrigger into a re-run action."""

    def __init__(
        self,
        config: RetestConfig,
        action: BatchAction,
        root: Path | None = None,
        sink: LogSink | None = None,
    ):
        """Initialize controller.

        Args:
            config: Patterns, command and quiescence window
            action: Called with each batch of changed files (relative paths)
            root: Directory the patterns are relative to
            sink: Output handler (defaults to NoOpSink - silent)
        """
        self.config = config
        self.action = action
        self.root = root
        self.sink = sink or NoOpSink()
        self.trigger = DebouncedTrigger(action, delay=config.debounce_ms / 1000.0)
        self.watcher: GlobWatcher | None = None
        self._stop_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Start watching, then run the action once for everything."""
        self.watcher = GlobWatcher(self.config.patterns, root=self.root, loop=asyncio.get_running_loop())
        self.watcher.on("ready", self._on_ready).on("error", self._on_error)
        self.watcher.start()

        result = self.action(set())
        if inspect.isawaitable(result):
            await result

    def _on_ready(self) -> None:
        self.sink.log(f"Watching {self.config.patterns}")
        self.watcher.on("add", self.on_file_event).on("change", self.on_file_event)

    def _on_error(self, error: Exception) -> None:
        self.sink.log(f"Watcher error: {error}", error=True)

    def on_file_event(self, path: str) -> None:
        """Queue one changed file for the next re-run."""
        identifier = self.watcher.globs.relative(path) if self.watcher else None
        self.trigger.on_change(identifier or path)

    async def run(self) -> None:
        """Run until ``stop()`` is called or SIGINT/SIGTERM arrives."""
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        install_stop_signals(loop, self.stop)

        try:
            await self.start()
            await self._stop_event.wait()
        finally:
            self.close()
            remove_stop_signals(loop)

    def stop(self) -> None:
        """Request the watch loop to end."""
        if self._stop_event is not None:
            self._stop_event.set()

    def close(self) -> None:
        """Stop the watcher and drop any pending re-run."""
        self.trigger.cancel()
        if self.watcher is not None:
            self.watcher.close()
            logger.debug("Retest watcher closed")
