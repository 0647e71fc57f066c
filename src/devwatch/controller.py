"""Build controller: one-shot builds and watch builds. Primary embed point."""

import asyncio
import logging
import signal
from collections.abc import Callable

from devwatch_core.file_mirror import FileMirror
from devwatch_core.models import DevwatchConfig
from devwatch_core.sinks import LogSink, NoOpSink
from devwatch_core.supervisor import ProcessSupervisor, run_to_completion

logger = logging.getLogger(__name__)


STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_stop_signals(loop: asyncio.AbstractEventLoop, callback: Callable[[], None]) -> None:
    """Call ``callback`` on SIGINT/SIGTERM where the loop supports signal handlers."""
    for sig in STOP_SIGNALS:
        try:
            loop.add_signal_handler(sig, callback)
        except (NotImplementedError, RuntimeError):
            # Windows: KeyboardInterrupt still reaches the CLI
            logger.debug(f"Signal handlers not supported, {sig.name} not handled")


def remove_stop_signals(loop: asyncio.AbstractEventLoop) -> None:
    for sig in STOP_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, RuntimeError):
            pass


class BuildController:
    """Runs the configured build steps and resource mirrors.

    ``build()`` runs every step to completion and copies resources once.
    ``watch()`` supervises each step's watch command side by side with one
    file mirror per mirror config until stopped.
    """

    def __init__(self, config: DevwatchConfig, sink: LogSink | None = None):
        """Initialize controller.

        Args:
            config: Loaded devwatch configuration
            sink: Output handler (defaults to NoOpSink - silent)
        """
        self.config = config
        self.sink = sink or NoOpSink()
        self.supervisors: list[ProcessSupervisor] = []
        self.mirrors: list[FileMirror] = []
        self._stop_event: asyncio.Event | None = None

    async def build(self) -> None:
        """Run every step's one-shot command, then copy all resources.

        Raises:
            StepFailed: If a step exits with a non-zero status
        """
        for step in self.config.steps:
            session = step.session(watch=False, cwd=self.config.root)
            if session is None:
                continue
            self.sink.log(f"Running {step.label}...")
            await run_to_completion(session, sink=self.sink)

        for session in self.config.mirrors:
            copied = FileMirror(session, self.sink).sync_all()
            logger.debug(f"Copied {copied} file(s) for {session.patterns}")

        self.sink.log("Done building")

    async def start_watching(self) -> None:
        """Spawn the watch commands and start the file mirrors."""
        loop = asyncio.get_running_loop()

        sessions = [step.session(watch=True, cwd=self.config.root) for step in self.config.steps]
        self.supervisors = [ProcessSupervisor(s, self.sink) for s in sessions if s is not None]
        # Spawning is quick; each child is drained by its own tasks afterwards
        for supervisor in self.supervisors:
            await supervisor.start()

        self.mirrors = [FileMirror(session, self.sink, loop=loop).start() for session in self.config.mirrors]
        logger.info(f"Started {len(self.supervisors)} process(es) and {len(self.mirrors)} mirror(s)")

    async def watch(self) -> None:
        """Watch until ``stop()`` is called or SIGINT/SIGTERM arrives."""
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        install_stop_signals(loop, self.stop)

        try:
            await self.start_watching()
            await self._stop_event.wait()
        finally:
            self.shutdown()
            remove_stop_signals(loop)

    def stop(self) -> None:
        """Request the watch loop to end."""
        if self._stop_event is not None:
            self._stop_event.set()

    def shutdown(self) -> None:
        """Close the mirrors and kill children that are still running."""
        for file_mirror in self.mirrors:
            file_mirror.close()
        self.mirrors = []

        for supervisor in self.supervisors:
            process = supervisor.process
            if process is not None and process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
        self.supervisors = []
