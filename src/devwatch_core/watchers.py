"""Glob-based file watching on top of watchdog.

watchdog delivers events on its observer thread. ``GlobWatcher`` filters
them against a ``GlobSet`` and hands them to the asyncio loop with
``call_soon_threadsafe``, so every listener runs on the loop thread.

Events: ``ready``, ``add(path)``, ``change(path)``, ``unlink(path)``, ``error(exc)``.
"""

import asyncio
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from devwatch_core.globs import GlobSet

logger = logging.getLogger(__name__)

WATCH_EVENTS = ("ready", "add", "change", "unlink", "error")


@dataclass
class WatchSession:
    """Configuration for a file mirror."""

    patterns: list[str]
    """Include patterns (glob style, brace alternation allowed)."""

    destinations: list[Path] = field(default_factory=list)
    """Directories receiving the mirrored files."""

    root: Path | None = None
    """Directory the patterns are relative to (default: current directory)."""

    def __post_init__(self) -> None:
        if isinstance(self.patterns, str):
            self.patterns = [self.patterns]
        self.patterns = list(self.patterns)
        if isinstance(self.destinations, (str, Path)):
            self.destinations = [self.destinations]
        self.destinations = [Path(d) for d in self.destinations]


class _BridgeHandler(FileSystemEventHandler):
    """Forwards watchdog callbacks to a GlobWatcher."""

    def __init__(self, watcher: "GlobWatcher"):
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.post("add", os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.post("change", os.fsdecode(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.post("unlink", os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self.watcher.post("unlink", os.fsdecode(event.src_path))
        self.watcher.post("add", os.fsdecode(event.dest_path))


def _existing_ancestor(directory: Path) -> Path:
    while not directory.is_dir() and directory != directory.parent:
        directory = directory.parent
    return directory


class GlobWatcher:
    """Watch files matching glob patterns and emit events on the asyncio loop."""

    def __init__(
        self,
        patterns: Sequence[str],
        root: str | Path | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        exclude_dirs: Sequence[str | Path] = (),
    ):
        """Initialize watcher.

        Args:
            patterns: Glob patterns to watch
            root: Directory the patterns are relative to
            loop: Event loop to deliver events on (default: running loop at start())
            exclude_dirs: Directories whose files are never reported
        """
        self.globs = GlobSet(patterns, root, exclude_dirs=exclude_dirs)
        self.loop = loop
        self.observer: Observer | None = None
        self._listeners: dict[str, list[Callable[..., None]]] = {name: [] for name in WATCH_EVENTS}
        self._closed = False

    @property
    def patterns(self) -> list[str]:
        return self.globs.patterns

    @property
    def is_running(self) -> bool:
        """Whether the observer thread is alive."""
        return self.observer is not None and self.observer.is_alive()

    def on(self, event: str, callback: Callable[..., None]) -> "GlobWatcher":
        """Register a listener. Listeners only see events emitted after registration."""
        if event not in self._listeners:
            raise ValueError(f"Unknown watch event '{event}', expected one of {', '.join(WATCH_EVENTS)}")
        self._listeners[event].append(callback)
        return self

    def emit(self, event: str, *args) -> None:
        """Call every listener of ``event`` on the current thread."""
        for callback in list(self._listeners[event]):
            try:
                callback(*args)
            except Exception as e:
                logger.exception(f"Error in '{event}' listener: {e}")

    def post(self, event: str, path: str) -> None:
        """Schedule a path event on the loop. Safe to call from the observer thread."""
        if self._closed or self.loop is None:
            return
        if not self.globs.matches(path):
            return
        try:
            self.loop.call_soon_threadsafe(self._dispatch, event, path)
        except RuntimeError:
            logger.debug(f"Dropped {event} for {path}: event loop is closed")

    def _dispatch(self, event: str, path: str) -> None:
        if self._closed:
            return
        self.emit(event, path)

    def _watch_dirs(self) -> list[Path]:
        """Existing directories to schedule, without nesting duplicates."""
        dirs: list[Path] = []
        for directory in self.globs.base_dirs():
            if not directory.is_dir():
                logger.warning(f"Watch directory does not exist yet: {directory}")
                directory = _existing_ancestor(directory)
            if directory not in dirs:
                dirs.append(directory)

        dirs.sort(key=lambda d: len(d.parts))
        selected: list[Path] = []
        for directory in dirs:
            if not any(directory.is_relative_to(parent) for parent in selected):
                selected.append(directory)
        return selected

    def start(self) -> None:
        """Start the observer and emit ``ready``; emit ``error`` if it cannot start."""
        if self.loop is None:
            self.loop = asyncio.get_running_loop()

        observer = Observer()
        handler = _BridgeHandler(self)
        try:
            for directory in self._watch_dirs():
                observer.schedule(handler, str(directory), recursive=True)
                logger.debug(f"Scheduled watch on {directory}")
            observer.start()
        except OSError as e:
            logger.error(f"Failed to start file watcher: {e}")
            self.emit("error", e)
            return

        self.observer = observer
        self.emit("ready")

    def close(self) -> None:
        """Stop delivering events and stop the observer thread."""
        self._closed = True
        if self.observer is not None and self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=2.0)
            logger.debug("Stopped file watcher")
        self.observer = None

    def matched_files(self) -> list[Path]:
        """Files currently matching the patterns."""
        return list(self.globs.iter_matches())
