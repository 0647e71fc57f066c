"""Tests for devwatch_core.supervisor."""

import re
import sys

import pytest

from devwatch_core.models import ProcessSession
from devwatch_core.supervisor import ProcessSupervisor, StepFailed, run_to_completion, supervise

PY = sys.executable


def python(code: str) -> list[str]:
    return [PY, "-c", code]


class TestSupervise:
    @pytest.mark.asyncio
    async def test_output_is_labelled(self, sink):
        supervisor = await supervise("tool", python("print('hello'); print(); print('world')"), sink=sink)
        assert await supervisor.wait() == 0
        assert sink.messages == ["[tool] hello", "[tool] world"]

    @pytest.mark.asyncio
    async def test_stderr_is_logged(self, sink):
        code = "import sys; sys.stderr.write('warning: careful\\n')"
        supervisor = await supervise("tool", python(code), sink=sink)
        await supervisor.wait()
        assert sink.messages == ["[tool] warning: careful"]

    @pytest.mark.asyncio
    async def test_timestamps_are_stripped(self, sink):
        supervisor = await supervise("tsc", python("print('10:42:07 PM - Found 0 errors.')"), sink=sink)
        await supervisor.wait()
        assert sink.messages == ["[tsc] Found 0 errors."]

    @pytest.mark.asyncio
    async def test_error_pattern_highlights(self, sink):
        code = "print('a.ts(1,1): error TS2304: nope'); print('Watching for file changes.')"
        supervisor = await supervise("tsc", python(code), re.compile(r"\berror TS\d+:"), sink=sink)
        await supervisor.wait()
        assert sink.lines == [
            ("[tsc] a.ts(1,1): error TS2304: nope", True),
            ("[tsc] Watching for file changes.", False),
        ]

    @pytest.mark.asyncio
    async def test_no_pattern_never_highlights(self, sink):
        supervisor = await supervise("tool", python("print('ERROR: everything')"), sink=sink)
        await supervisor.wait()
        assert sink.errors == []

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_not_fatal(self, sink):
        code = "import sys; print('bye'); sys.exit(3)"
        supervisor = await supervise("tool", python(code), sink=sink)
        assert await supervisor.wait() == 3
        assert supervisor.returncode == 3
        assert sink.messages == ["[tool] bye"]

    @pytest.mark.asyncio
    async def test_string_command_is_split(self, sink, tmp_path):
        script = tmp_path / "say.py"
        script.write_text("import sys; print(' '.join(sys.argv[1:]))")
        supervisor = await supervise("say", f'"{PY}" "{script}" two words', sink=sink)
        await supervisor.wait()
        assert sink.messages == ["[say] two words"]

    @pytest.mark.asyncio
    async def test_missing_executable_exits(self, sink):
        """Scenario: a nonexistent executable ends the program with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            await supervise("ghost", "definitely-not-a-real-compiler-xyz --watch", sink=sink)

        assert exc_info.value.code == 1
        assert not any(m.startswith("[ghost]") for m in sink.messages)
        assert len(sink.errors) == 1

    @pytest.mark.asyncio
    async def test_wait_before_start(self, sink):
        supervisor = ProcessSupervisor(ProcessSession(label="x", command="true"), sink)
        with pytest.raises(RuntimeError):
            await supervisor.wait()

    def test_emit_classifies_chunk(self, sink):
        supervisor = ProcessSupervisor(ProcessSession(label="webpack", command="webpack"), sink)
        supervisor.emit(b"Child\n  \nbuilt in 3s   \n")
        assert sink.messages == ["[webpack] built in 3s"]


class TestRunToCompletion:
    @pytest.mark.asyncio
    async def test_success(self, sink):
        session = ProcessSession(label="lint", command=python("print('clean')"))
        assert await run_to_completion(session, sink=sink) == 0
        assert sink.messages == []

    @pytest.mark.asyncio
    async def test_failure_logs_stderr(self, sink):
        code = "import sys; print('ignored'); sys.stderr.write('bad thing\\n'); sys.exit(2)"
        session = ProcessSession(label="lint", command=python(code))

        with pytest.raises(StepFailed) as exc_info:
            await run_to_completion(session, sink=sink)

        assert exc_info.value.returncode == 2
        assert exc_info.value.label == "lint"
        assert sink.lines == [("bad thing", True)]

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_stdout(self, sink):
        code = "import sys; print('src/a.py:1: error'); sys.exit(1)"
        session = ProcessSession(label="types", command=python(code))

        with pytest.raises(StepFailed):
            await run_to_completion(session, sink=sink)

        assert sink.errors == ["src/a.py:1: error"]

    @pytest.mark.asyncio
    async def test_missing_executable_exits(self, sink):
        session = ProcessSession(label="ghost", command=["definitely-not-a-real-compiler-xyz"])
        with pytest.raises(SystemExit) as exc_info:
            await run_to_completion(session, sink=sink)
        assert exc_info.value.code == 1
