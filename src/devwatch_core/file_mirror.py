"""File mirror: keep copies of matched files in one or more output trees."""

import asyncio
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from devwatch_core.sinks import LogSink
from devwatch_core.watchers import GlobWatcher, WatchSession

logger = logging.getLogger(__name__)


class FileMirror:
    """Mirror files matching a WatchSession's patterns into its destinations.

    Files are placed at their path relative to the static base of the
    matching pattern, so ``src/**/*.styl`` mirrors ``src/ui/a.styl`` to
    ``<dest>/ui/a.styl``. Failures for a single file are logged and
    ignored so one bad file never ends the session.
    """

    def __init__(
        self,
        session: WatchSession,
        sink: LogSink,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """Initialize mirror.

        Args:
            session: Patterns and destinations
            sink: Destination for copy/remove log lines
            loop: Event loop to deliver watcher events on
        """
        if not session.patterns:
            raise ValueError("File mirror needs at least one pattern")

        self.session = session
        self.sink = sink
        self.root = Path(session.root or Path.cwd()).resolve()
        self.destinations = [
            d if d.is_absolute() else self.root / d for d in session.destinations
        ]
        # Mirrored copies must never be picked up as new sources
        self.watcher = GlobWatcher(session.patterns, root=self.root, loop=loop, exclude_dirs=self.destinations)

        for directory in self.destinations:
            directory.mkdir(parents=True, exist_ok=True)

    def start(self) -> "FileMirror":
        """Start watching. Copy handlers are attached once the watcher is ready."""
        self.watcher.on("ready", self._on_ready).on("error", self._on_error)
        self.watcher.start()
        return self

    def close(self) -> None:
        """Stop watching. Copies already running are not waited for."""
        self.watcher.close()

    def _on_ready(self) -> None:
        destinations = ", ".join(str(d) for d in self.destinations)
        self.sink.log(f"Watching files for {self.session.patterns[0]} => {destinations}")
        self.watcher.on("add", self.copy).on("change", self.copy).on("unlink", self.remove)
        for path in self.watcher.matched_files():
            self.copy(path)

    def _on_error(self, error: Exception) -> None:
        self.sink.log(f"!! Watcher error: {error}", error=True)

    def target(self, path: str | Path, destination: Path) -> Path | None:
        """Mirrored location of ``path`` under ``destination``, or None if unmatched."""
        rel = self.watcher.globs.relative_to_base(path)
        if rel is None:
            return None
        return destination / rel

    def _display(self, path: str | Path) -> str:
        return self.watcher.globs.relative(path) or str(path)

    def copy(self, path: str | Path) -> None:
        """Copy one file into every destination."""
        source = Path(path)
        if not source.is_absolute():
            source = self.root / source

        for destination in self.destinations:
            target = self.target(source, destination)
            if target is None:
                continue
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
            except OSError as e:
                logger.debug(f"Failed to copy {source} -> {target}: {e}")
                continue
            self.sink.log(f"Copied {self._display(source)} -> {destination}")

    def remove(self, path: str | Path) -> None:
        """Remove the mirrored copy of one file from every destination."""
        for destination in self.destinations:
            target = self.target(path, destination)
            if target is None:
                continue
            try:
                target.unlink()
            except OSError as e:
                logger.debug(f"Failed to remove {target}: {e}")
                continue
            self.sink.log(f"Removed {target}")

    def sync_all(self) -> int:
        """Copy every currently matching file once, without watching.

        Returns:
            Number of files copied
        """
        files = self.watcher.matched_files()
        for path in files:
            self.copy(path)
        return len(files)


def mirror(
    patterns: Sequence[str],
    destinations: str | Path | Sequence[str | Path],
    *,
    sink: LogSink,
    root: str | Path | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> FileMirror:
    """Start mirroring files matching ``patterns`` into ``destinations``.

    Returns:
        The running mirror; call ``close()`` to stop it
    """
    session = WatchSession(patterns=patterns, destinations=destinations, root=root)
    return FileMirror(session, sink, loop=loop).start()
