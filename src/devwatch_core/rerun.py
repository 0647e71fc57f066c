"""
Re-run adapter: a cmdorc command as the downstream action of a DebouncedTrigger.

The changed files of a batch are passed to the command through a template
variable, so a command like ``pytest {{ changed }}`` re-runs only the
suites that changed. An empty batch leaves the variable empty, which runs
everything.
"""

import logging
from pathlib import Path

from cmdorc import CommandOrchestrator, RunHandle, load_config

from devwatch_core.sinks import LogSink, NoOpSink

logger = logging.getLogger(__name__)


class CommandRerun:
    """Re-run a cmdorc command with the batch of changed files.

    Usage:
        rerun = CommandRerun.from_config(config_path, "Tests")
        trigger = DebouncedTrigger(rerun, delay=0.05)
    """

    def __init__(
        self,
        orchestrator: CommandOrchestrator,
        command: str,
        variable: str = "changed",
        sink: LogSink | None = None,
    ):
        """Initialize adapter.

        Args:
            orchestrator: CommandOrchestrator owning the command
            command: Command name to run
            variable: Template variable receiving the changed files
            sink: Destination for result lines
        """
        self.orchestrator = orchestrator
        self.command = command
        self.variable = variable
        self.sink = sink or NoOpSink()
        self.runs = 0

        if not self.orchestrator.has_command(command):
            raise ValueError(f"Command not found in config: {command}")

        self.orchestrator.set_lifecycle_callback(
            command,
            on_success=self._make_result_handler("passed", error=False),
            on_failed=self._make_result_handler("failed", error=True),
            on_cancelled=self._make_result_handler("cancelled", error=False),
        )

    @classmethod
    def from_config(
        cls,
        config_path: str | Path,
        command: str,
        variable: str = "changed",
        sink: LogSink | None = None,
    ) -> "CommandRerun":
        """Build the orchestrator from the ``[[command]]`` tables of a config file."""
        runner_config = load_config(Path(config_path))
        return cls(CommandOrchestrator(runner_config), command, variable=variable, sink=sink)

    def _make_result_handler(self, status: str, error: bool):
        def handler(handle: RunHandle | None, context=None):
            duration = (handle.duration_str if handle else None) or "?"
            self.sink.log(f"[{self.command}] {status} ({duration})", error=error)

        return handler

    def variables(self, batch: set[str]) -> dict[str, str]:
        """Template variables for one run."""
        return {self.variable: " ".join(sorted(batch))}

    async def __call__(self, batch: set[str]) -> RunHandle | None:
        """Run the command for one batch of changed files."""
        self.runs += 1
        if batch:
            self.sink.log(f"[{self.command}] re-running for {len(batch)} changed file(s)")
        try:
            return await self.orchestrator.run_command(self.command, self.variables(batch))
        except Exception as e:
            logger.error(f"Failed to run command '{self.command}': {e}")
            self.sink.log(f"!! Failed to run {self.command}: {e}", error=True)
            return None
