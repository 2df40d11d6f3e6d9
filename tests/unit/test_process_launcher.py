"""Tests for spawning workers and capturing their output."""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

from worker_supervisor.errors import SpawnFailureError
from worker_supervisor.process_launcher import ProcessLauncher
from worker_supervisor.process_launcher_helpers import LaunchMode, LaunchSpec
from worker_supervisor.process_launcher_helpers.launch_log import CRASH_DUMP_HEADER


def _python_spec(tmp_path, code: str) -> LaunchSpec:
    return LaunchSpec(
        executable_path=sys.executable,
        argv=("-c", code),
        working_dir=str(tmp_path),
        env=dict(os.environ),
        mode=LaunchMode.CLASSPATH,
    )


class TestProcessLauncher:
    """Real child processes stand in for the worker."""

    @pytest.mark.asyncio
    async def test_captures_stdout_and_stderr(self, tmp_path):
        launcher = ProcessLauncher(log_dir=tmp_path / "logs", buffer_lines=10)
        worker = await launcher.launch(
            _python_spec(tmp_path, "import sys; print('hello'); print('oops', file=sys.stderr)")
        )

        exit_code = await asyncio.wait_for(worker.wait(), timeout=30)

        assert exit_code == 0
        assert worker.pid > 0
        assert sorted(worker.output_tail()) == ["[stderr] oops", "[stdout] hello"]
        log_text = worker.log_path.read_text()
        assert "Launch: classpath" in log_text
        assert "Process exited with code 0" in log_text
        assert CRASH_DUMP_HEADER not in log_text

    @pytest.mark.asyncio
    async def test_non_zero_exit_writes_crash_dump_of_last_lines(self, tmp_path):
        launcher = ProcessLauncher(log_dir=tmp_path / "logs", buffer_lines=5)
        worker = await launcher.launch(
            _python_spec(tmp_path, "import sys\nfor i in range(30):\n    print(f'line {i}')\nsys.exit(3)")
        )

        assert await asyncio.wait_for(worker.wait(), timeout=30) == 3

        log_text = worker.log_path.read_text()
        dump = log_text.split(CRASH_DUMP_HEADER, 1)[1]
        assert "Exit code: 3" in dump
        assert [f"[stdout] line {i}" for i in range(25, 30)] == [line for line in dump.splitlines() if line.startswith("[")]
        assert worker.output_tail(2) == ["[stdout] line 28", "[stdout] line 29"]

    @pytest.mark.asyncio
    async def test_requested_stop_suppresses_crash_dump(self, tmp_path):
        launcher = ProcessLauncher(log_dir=tmp_path / "logs")
        worker = await launcher.launch(_python_spec(tmp_path, "import sys; sys.exit(1)"))
        worker.mark_stop_requested()

        await asyncio.wait_for(worker.wait(), timeout=30)

        assert CRASH_DUMP_HEADER not in worker.log_path.read_text()

    @pytest.mark.asyncio
    async def test_wait_is_idempotent(self, tmp_path):
        launcher = ProcessLauncher(log_dir=tmp_path / "logs")
        worker = await launcher.launch(_python_spec(tmp_path, "pass"))

        first, second = await asyncio.wait_for(asyncio.gather(worker.wait(), worker.wait()), timeout=30)

        assert first == second == 0
        assert worker.log_path.read_text().count("Process exited") == 1

    @pytest.mark.asyncio
    async def test_close_stdin_ends_reading_worker(self, tmp_path):
        launcher = ProcessLauncher(log_dir=tmp_path / "logs")
        worker = await launcher.launch(_python_spec(tmp_path, "import sys; sys.stdin.read(); print('eof')"))

        await worker.close_stdin()

        assert await asyncio.wait_for(worker.wait(), timeout=30) == 0
        assert worker.output_tail() == ["[stdout] eof"]

    @pytest.mark.asyncio
    async def test_release_stops_capture_of_running_process(self, tmp_path):
        launcher = ProcessLauncher(log_dir=tmp_path / "logs")
        worker = await launcher.launch(_python_spec(tmp_path, "import time; time.sleep(30)"))
        try:
            worker.release()
            await asyncio.wait(worker._readers, timeout=5)

            assert not worker.log_file.is_open
            assert worker.returncode is None
            assert all(reader.done() for reader in worker._readers)
        finally:
            worker.process.kill()
            await asyncio.wait_for(worker.process.wait(), timeout=30)

    @pytest.mark.asyncio
    async def test_missing_executable_raises_spawn_failure_without_log(self, tmp_path):
        launcher = ProcessLauncher(log_dir=tmp_path / "logs")
        spec = LaunchSpec(executable_path=str(tmp_path / "no-such-runtime"), argv=(), working_dir=None)

        with pytest.raises(SpawnFailureError) as excinfo:
            await launcher.launch(spec)

        assert excinfo.value.executable == str(tmp_path / "no-such-runtime")
        assert not (tmp_path / "logs").exists()

    @pytest.mark.asyncio
    async def test_spawn_without_pid_is_discarded(self, tmp_path):
        process = MagicMock()
        process.pid = None
        process.wait = AsyncMock(return_value=-9)
        launcher = ProcessLauncher(log_dir=tmp_path / "logs", spawner=AsyncMock(return_value=process))

        with pytest.raises(SpawnFailureError, match="did not report a PID"):
            await launcher.launch(_python_spec(tmp_path, "pass"))

        process.kill.assert_called_once()
        assert not (tmp_path / "logs").exists()
