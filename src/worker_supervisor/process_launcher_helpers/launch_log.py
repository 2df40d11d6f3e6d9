"""Best-effort per-launch log file for worker output."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import IO, Iterable, Optional

from .types import LaunchMode, OutputStream

logger = logging.getLogger(__name__)

LOG_HEADER = "=== Worker Process Log ==="
CRASH_DUMP_HEADER = "=== Process Crash Dump ==="


def launch_log_name(started_at: datetime) -> str:
    """``worker-<iso timestamp>.log`` with ``:`` and ``.`` replaced by ``-``."""
    stamp = started_at.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    return f"worker-{stamp}.log"


class LaunchLogFile:
    """Append-only log of one launch.

    Every write is best-effort: a failure is logged at debug level and the
    file is abandoned, never raised to the caller.
    """

    def __init__(self, log_dir: Path, started_at: datetime) -> None:
        self.path = Path(log_dir) / launch_log_name(started_at)
        self._handle: Optional[IO[str]] = None
        self._failed = False

    def open(self, mode: LaunchMode, development_mode: bool, started_at: datetime) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        except OSError as exc:  # Best-effort logging  # policy_guard: allow-silent-handler
            logger.debug("Cannot open worker log file %s: %s", self.path, exc)
            self._failed = True
            return
        self._write(
            f"{LOG_HEADER}\n"
            f"Started: {started_at.isoformat()}\n"
            f"Mode: {'Development' if development_mode else 'Production'}\n"
            f"Launch: {mode.value}\n\n"
        )

    def write_line(self, stream: OutputStream, text: str) -> None:
        self._write(f"[{stream.value}] {text}\n")

    def write_exit(self, exit_code: Optional[int]) -> None:
        self._write(f"\nProcess exited with code {exit_code} at {datetime.now().astimezone().isoformat()}\n")

    def write_crash_dump(self, exit_code: Optional[int], lines: Iterable[str]) -> None:
        body = "\n".join(lines)
        self._write(f"\n{CRASH_DUMP_HEADER}\nExit code: {exit_code}\n{body}\n")

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            self._handle.close()
        except OSError as exc:  # Best-effort logging  # policy_guard: allow-silent-handler
            logger.debug("Closing worker log file %s failed: %s", self.path, exc)
        self._handle = None

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def _write(self, text: str) -> None:
        if self._handle is None or self._failed:
            return
        try:
            self._handle.write(text)
            self._handle.flush()
        except (OSError, ValueError) as exc:  # Best-effort logging  # policy_guard: allow-silent-handler
            logger.debug("Writing worker log file %s failed: %s", self.path, exc)
            self._failed = True
