"""Termination through the platform's process-kill utility (``taskkill``)."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from .base import TerminationStrategy
from .types import TerminationMethod, TerminationResult

logger = logging.getLogger(__name__)

KILL_UTILITY = "taskkill"
UTILITY_TIMEOUT_SECONDS = 10.0

CommandRunner = Callable[[Sequence[str]], Awaitable[tuple[int, str]]]


async def run_command(argv: Sequence[str]) -> tuple[int, str]:
    """Run *argv* and return ``(exit_code, combined_output)``."""
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        output, _ = await asyncio.wait_for(process.communicate(), timeout=UTILITY_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise
    return process.returncode, output.decode("utf-8", errors="replace").strip()


class UtilityTerminationStrategy(TerminationStrategy):
    """Graceful = ``taskkill /PID <pid> /T``; forced adds ``/F``."""

    name = "utility"

    def __init__(self, runner: Optional[CommandRunner] = None) -> None:
        self.runner = runner or run_command

    async def terminate(self, pid: int) -> TerminationResult:
        return await self._invoke(pid, forced=False)

    async def force_kill(self, pid: int) -> TerminationResult:
        return await self._invoke(pid, forced=True)

    @staticmethod
    def build_command(pid: int, forced: bool) -> list[str]:
        argv = [KILL_UTILITY]
        if forced:
            argv.append("/F")
        argv.extend(["/T", "/PID", str(pid)])
        return argv

    async def _invoke(self, pid: int, *, forced: bool) -> TerminationResult:
        argv = self.build_command(pid, forced)
        try:
            exit_code, output = await self.runner(argv)
        except (OSError, asyncio.TimeoutError) as exc:  # policy_guard: allow-silent-handler
            return TerminationResult(
                success=False,
                method=TerminationMethod.PLATFORM_UTILITY,
                error=f"{KILL_UTILITY} could not be run for {pid}: {exc!r}",
            )
        if exit_code != 0:
            return TerminationResult(
                success=False,
                method=TerminationMethod.PLATFORM_UTILITY,
                error=f"{KILL_UTILITY} exited with {exit_code} for {pid}: {output}",
            )
        logger.debug("%s %s succeeded", KILL_UTILITY, " ".join(argv[1:]))
        return TerminationResult(success=True, method=TerminationMethod.PLATFORM_UTILITY)
