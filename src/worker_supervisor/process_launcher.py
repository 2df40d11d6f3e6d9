"""
Spawns the worker process and captures its output.

Each :meth:`ProcessLauncher.launch` produces a :class:`LaunchedWorker` that
exclusively owns the launch's ring buffer and log file. All three standard
streams are piped; stdout and stderr are drained by reader tasks into both.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from .errors import SpawnFailureError
from .logging_config import WORKER_OUTPUT_LOGGER
from .process_launcher_helpers import LaunchLogFile, LaunchResult, LaunchSpec, OutputRingBuffer, OutputStream
from .settings import DEFAULT_LOG_BUFFER_LINES

logger = logging.getLogger(__name__)
worker_output_logger = logging.getLogger(WORKER_OUTPUT_LOGGER)

STREAM_LIMIT_BYTES = 1024 * 1024

Spawner = Callable[..., Awaitable[asyncio.subprocess.Process]]


def _platform_spawn_kwargs() -> dict[str, Any]:
    if sys.platform.startswith("win"):
        return {"creationflags": getattr(subprocess, "CREATE_NO_WINDOW", 0)}
    return {}


class LaunchedWorker:
    """A running (or finished) worker process and the output it produced."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        spec: LaunchSpec,
        started_at: datetime,
        buffer: OutputRingBuffer,
        log_file: LaunchLogFile,
    ) -> None:
        self.process = process
        self.spec = spec
        self.started_at = started_at
        self.buffer = buffer
        self.log_file = log_file
        self.stop_requested = False
        self._readers: list[asyncio.Task] = []
        self._exit_code: Optional[int] = None
        self._finished = asyncio.Event()

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def result(self) -> LaunchResult:
        return LaunchResult(pid=self.pid, start_time=self.started_at)

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def log_path(self) -> Path:
        return self.log_file.path

    def start_readers(self) -> None:
        self._readers = [
            asyncio.create_task(self._pump(self.process.stdout, OutputStream.STDOUT), name=f"worker-{self.pid}-stdout"),
            asyncio.create_task(self._pump(self.process.stderr, OutputStream.STDERR), name=f"worker-{self.pid}-stderr"),
        ]

    def output_tail(self, limit: Optional[int] = None) -> list[str]:
        return self.buffer.lines(limit)

    def mark_stop_requested(self) -> None:
        """Record that the coming exit was asked for, so it is not dumped as a crash."""
        self.stop_requested = True

    async def close_stdin(self) -> None:
        stdin = self.process.stdin
        if stdin is None or stdin.is_closing():
            return
        stdin.close()
        try:
            await stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError):  # Worker already gone  # policy_guard: allow-silent-handler
            logger.debug("Worker %d stdin already closed", self.pid)

    def release(self) -> None:
        """Stop capturing output of a process that is left running: cancel the readers and close the log."""
        for reader in self._readers:
            reader.cancel()
        self.log_file.close()

    async def wait(self) -> int:
        """
        Wait for the process to exit and its output to drain.

        Safe to await from several tasks; the exit is recorded exactly once.

        Returns:
            The process exit code
        """
        if self._finished.is_set():
            return self._exit_code  # type: ignore[return-value]

        exit_code = await self.process.wait()
        if self._readers:
            await asyncio.gather(*self._readers, return_exceptions=True)
        if not self._finished.is_set():
            self._record_exit(exit_code)
        return exit_code

    def _record_exit(self, exit_code: int) -> None:
        self._exit_code = exit_code
        self.log_file.write_exit(exit_code)
        if exit_code != 0 and not self.stop_requested:
            self.log_file.write_crash_dump(exit_code, self.buffer.lines())
        self.log_file.close()
        self._finished.set()

    async def _pump(self, stream: Optional[asyncio.StreamReader], name: OutputStream) -> None:
        if stream is None:
            return
        while True:
            try:
                raw = await stream.readline()
            except ValueError:  # Line exceeded the stream limit  # policy_guard: allow-silent-handler
                raw = await stream.read(STREAM_LIMIT_BYTES)
            if not raw:
                return
            text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            self.buffer.append(name, text)
            self.log_file.write_line(name, text)
            worker_output_logger.debug("[%s] %s", name.value, text)


class ProcessLauncher:
    """Spawns worker processes from :class:`LaunchSpec` descriptions."""

    def __init__(
        self,
        *,
        log_dir: Path = Path("logs"),
        buffer_lines: int = DEFAULT_LOG_BUFFER_LINES,
        spawner: Optional[Spawner] = None,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.buffer_lines = buffer_lines
        self.spawner = spawner or asyncio.create_subprocess_exec

    async def launch(self, spec: LaunchSpec) -> LaunchedWorker:
        """
        Spawn the worker described by *spec*.

        Returns:
            The launched worker, with output readers already running

        Raises:
            SpawnFailureError: If the spawn fails or yields no PID; nothing is
                left running or open in that case
        """
        logger.info("Launching worker: %s", " ".join(spec.command))
        try:
            process = await self.spawner(
                *spec.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=spec.working_dir,
                env=spec.env or None,
                limit=STREAM_LIMIT_BYTES,
                **_platform_spawn_kwargs(),
            )
        except (OSError, ValueError) as exc:
            raise SpawnFailureError.os_error(spec.executable_path, str(exc)) from exc

        if not process.pid:
            await _discard(process)
            raise SpawnFailureError.no_pid(spec.executable_path)

        started_at = datetime.now().astimezone()
        log_file = LaunchLogFile(self.log_dir, started_at)
        log_file.open(spec.mode, spec.development_mode, started_at)

        worker = LaunchedWorker(process, spec, started_at, OutputRingBuffer(self.buffer_lines), log_file)
        worker.start_readers()
        logger.info("Worker process started with PID %d (log: %s)", worker.pid, log_file.path)
        return worker


async def _discard(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except OSError:  # policy_guard: allow-silent-handler
        return
    await process.wait()


__all__ = ["LaunchedWorker", "ProcessLauncher"]
