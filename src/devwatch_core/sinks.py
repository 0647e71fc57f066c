"""Pluggable log sinks for devwatch output.

Every ``[label] message`` line and watcher diagnostic goes through a sink.
Can be replaced with custom handlers for testing or embedding.
"""

import logging
from typing import Protocol

from rich.console import Console


class LogSink(Protocol):
    """Protocol for output lines - host can provide custom implementation."""

    def log(self, message: str, *, error: bool = False) -> None:
        """Emit one line, highlighted when ``error`` is set."""
        ...


class ConsoleSink:
    """Print lines to the terminal with rich, errors in red."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False)

    def log(self, message: str, *, error: bool = False) -> None:
        # markup off: "[tsc] ..." must print literally
        self.console.print(message, style="red" if error else None, markup=False, highlight=False)


class LoggingSink:
    """Implementation using stdlib logging - for embedding in hosts that own the terminal."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("devwatch.output")

    def log(self, message: str, *, error: bool = False) -> None:
        if error:
            self.logger.error(message)
        else:
            self.logger.info(message)


class NoOpSink:
    """Silent sink - default when embedded without an output pane."""

    def log(self, message: str, *, error: bool = False) -> None:
        """Do nothing."""
        pass
