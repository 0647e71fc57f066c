"""Process supervision for compilers and bundlers.

A supervisor spawns one child, drains its stdout and stderr independently
through the line classifier and logs every line as ``[label] text``.
A child that cannot be started ends the whole program: without its
toolchain the build session is meaningless.
"""

import asyncio
import logging
import re
import sys
from collections.abc import Sequence
from pathlib import Path

from devwatch_core.classifier import classify_chunk
from devwatch_core.models import ProcessSession
from devwatch_core.sinks import LogSink

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class StepFailed(Exception):
    """A one-shot build command exited with a non-zero status."""

    def __init__(self, label: str, returncode: int):
        super().__init__(f"'{label}' exited with status {returncode}")
        self.label = label
        self.returncode = returncode


def _fatal(session: ProcessSession, sink: LogSink, error: OSError) -> None:
    logger.error(f"Failed to start '{session.label}': {error}")
    sink.log(f"!! Could not start {session.label} ({session.command_line}): {error}", error=True)
    sys.exit(1)


class ProcessSupervisor:
    """Owns one spawned process and logs its classified output."""

    def __init__(self, session: ProcessSession, sink: LogSink):
        """Initialize supervisor.

        Args:
            session: Process to run
            sink: Destination for output lines
        """
        self.session = session
        self.sink = sink
        self.process: asyncio.subprocess.Process | None = None
        self._drains: list[asyncio.Task] = []

    @property
    def label(self) -> str:
        return self.session.label

    @property
    def returncode(self) -> int | None:
        return self.process.returncode if self.process else None

    async def start(self) -> None:
        """Spawn the child and start draining its output.

        Exits the program with status 1 if the child cannot be started.
        """
        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.session.argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.session.cwd,
            )
        except OSError as e:
            _fatal(self.session, self.sink, e)

        logger.debug(f"Started '{self.label}' (pid {self.process.pid}): {self.session.command_line}")
        self._drains = [
            asyncio.create_task(self._drain(self.process.stdout)),
            asyncio.create_task(self._drain(self.process.stderr)),
        ]

    async def _drain(self, stream: asyncio.StreamReader) -> None:
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            if not chunk:
                break
            self.emit(chunk)

    def emit(self, chunk: str | bytes) -> None:
        """Classify one output chunk and log its lines."""
        for line in classify_chunk(chunk, self.session.error_pattern):
            self.sink.log(f"[{self.label}] {line.text}", error=line.is_error)

    async def wait(self) -> int:
        """Wait for the child to exit and its output to be drained.

        Returns:
            The child's exit status
        """
        if self.process is None:
            raise RuntimeError(f"Process '{self.label}' has not been started")

        returncode = await self.process.wait()
        if self._drains:
            await asyncio.gather(*self._drains)
        logger.info(f"'{self.label}' exited with status {returncode}")
        return returncode


async def supervise(
    label: str,
    command: str | Sequence[str],
    error_pattern: re.Pattern[str] | None = None,
    *,
    sink: LogSink,
    cwd: Path | None = None,
) -> ProcessSupervisor:
    """Spawn ``command`` and supervise its output until it exits.

    Returns:
        The running supervisor
    """
    supervisor = ProcessSupervisor(
        ProcessSession(label=label, command=command, error_pattern=error_pattern, cwd=cwd),
        sink,
    )
    await supervisor.start()
    return supervisor


async def run_to_completion(session: ProcessSession, *, sink: LogSink) -> int:
    """Run a one-shot build command, capturing its output.

    On failure the captured stderr (or stdout if stderr is empty) is logged
    as an error.

    Raises:
        StepFailed: If the command exits with a non-zero status
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *session.argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=session.cwd,
        )
    except OSError as e:
        _fatal(session, sink, e)

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        output = stderr if stderr.strip() else stdout
        for line in classify_chunk(output):
            sink.log(line.text, error=True)
        raise StepFailed(session.label, process.returncode)

    logger.debug(f"'{session.label}' finished")
    return process.returncode
