"""Shared data models for devwatch_core."""

import re
import shlex
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from devwatch_core.watchers import WatchSession


@dataclass
class ProcessSession:
    """One supervised external process."""

    label: str
    """Tag printed in front of every output line, e.g. ``[tsc]``."""

    command: str | Sequence[str]
    """Command line (split with shell rules) or argument vector. No shell is used."""

    error_pattern: re.Pattern[str] | None = None
    """Lines matching this pattern are highlighted as errors."""

    cwd: Path | None = None
    """Working directory for the child (default: inherit)."""

    @property
    def argv(self) -> list[str]:
        """Argument vector for the child process."""
        if isinstance(self.command, str):
            return shlex.split(self.command)
        return list(self.command)

    @property
    def command_line(self) -> str:
        """Printable form of the command."""
        if isinstance(self.command, str):
            return self.command
        return shlex.join(self.command)


@dataclass
class BuildStep:
    """A compiler or bundler run by the build entry point."""

    label: str
    """Output tag for this step."""

    command: str | None = None
    """One-shot build command (skipped in one-shot builds when unset)."""

    watch_command: str | None = None
    """Long-running watch command (skipped in watch builds when unset)."""

    error_pattern: re.Pattern[str] | None = None
    """Output lines matching this pattern are shown as errors."""

    def session(self, watch: bool, cwd: Path | None = None) -> ProcessSession | None:
        """ProcessSession for the requested mode, or None if the step has no command for it."""
        command = self.watch_command if watch else self.command
        if not command:
            return None
        return ProcessSession(label=self.label, command=command, error_pattern=self.error_pattern, cwd=cwd)


@dataclass
class RetestConfig:
    """Configuration for the watch-and-re-run entry point."""

    patterns: list[str]
    """Globs of files whose changes trigger a re-run."""

    command: str
    """Name of the cmdorc command to re-run."""

    debounce_ms: int = 0
    """Quiescence window in milliseconds (0: fire on the next loop iteration)."""

    variable: str = "changed"
    """Template variable receiving the space separated batch of changed files."""


@dataclass
class DevwatchConfig:
    """Everything loaded from ``devwatch.toml``."""

    root: Path
    """Directory relative paths are resolved against (the config file's directory)."""

    steps: list[BuildStep] = field(default_factory=list)
    """Compilers/bundlers, in config order."""

    mirrors: list[WatchSession] = field(default_factory=list)
    """Static resources mirrored into the build output."""

    retest: RetestConfig | None = None
    """Watch-and-re-run settings, if configured."""

    path: Path | None = None
    """Config file this was loaded from."""
