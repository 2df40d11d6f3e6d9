"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

# Set required environment variables for tests
os.environ.setdefault("WORKER_ARCHIVE_PATH", "backend/worker.jar")
os.environ.setdefault("WORKER_PORT_RANGE_START", "8080")
os.environ.setdefault("WORKER_PORT_RANGE_END", "8083")
os.environ.setdefault("WORKER_READY_TIMEOUT_SECONDS", "120")
os.environ.setdefault("WORKER_STOP_TIMEOUT_SECONDS", "5")

from worker_supervisor.config import runtime as config_runtime  # noqa: E402
from worker_supervisor.process_launcher_helpers import LaunchResult, LaunchSpec  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_file_defaults():
    """Keep developer .env / JSON defaults files out of the tests."""
    config_runtime._DEFAULT_VALUES = {}
    yield
    config_runtime._DEFAULT_VALUES = None


class FakeWorker:
    """Stand-in for a launched worker whose exit the test controls."""

    def __init__(self, pid: int = 4321, output: tuple[str, ...] = ()) -> None:
        self.pid = pid
        self.started_at = datetime.now().astimezone()
        self.log_path = Path("logs") / f"worker-{pid}.log"
        self.stop_requested = False
        self.stdin_closed = False
        self.released = False
        self._output = list(output)
        self._exit_code: Optional[int] = None
        self._exited = asyncio.Event()

    @property
    def result(self) -> LaunchResult:
        return LaunchResult(pid=self.pid, start_time=self.started_at)

    @property
    def returncode(self) -> Optional[int]:
        return self._exit_code

    def exit(self, code: int) -> None:
        self._exit_code = code
        self._exited.set()

    def output_tail(self, limit: Optional[int] = None) -> list[str]:
        return self._output[-limit:] if limit else list(self._output)

    def mark_stop_requested(self) -> None:
        self.stop_requested = True

    async def close_stdin(self) -> None:
        self.stdin_closed = True

    def release(self) -> None:
        self.released = True

    async def wait(self) -> int:
        await self._exited.wait()
        return self._exit_code


class FakeLauncher:
    """Records launch specs and hands out :class:`FakeWorker` instances."""

    def __init__(self, delay: float = 0.0, error: Optional[BaseException] = None) -> None:
        self.delay = delay
        self.error = error
        self.specs: list[LaunchSpec] = []
        self.workers: list[FakeWorker] = []

    async def launch(self, spec: LaunchSpec) -> FakeWorker:
        self.specs.append(spec)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        worker = FakeWorker(pid=4321 + len(self.workers))
        self.workers.append(worker)
        return worker


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def make_launcher():
    return FakeLauncher

