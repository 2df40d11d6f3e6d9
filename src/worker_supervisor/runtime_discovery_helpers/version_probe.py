"""Invokes a runtime executable to learn its version and architecture."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from .types import ProbeResult
from .version_utils import extract_architecture, extract_version

logger = logging.getLogger(__name__)

VERSION_FLAG = "-version"
PROPERTIES_FLAGS = ("-XshowSettings:properties", "-version")


class RuntimeProbe:
    """Runs ``<exe> -version`` style probes with a bounded per-probe timeout."""

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self.timeout_seconds = timeout_seconds

    async def probe(self, executable: str) -> Optional[ProbeResult]:
        """
        Probe *executable* for its version and architecture.

        Returns:
            ProbeResult, or ``None`` when the executable cannot be run, times
            out, or prints no recognisable version line
        """
        output = await self._run(executable, (VERSION_FLAG,))
        if output is None:
            return None

        version = extract_version(output)
        if version is None:
            logger.debug("No version line in probe output of %s", executable)
            return None

        properties = await self._run(executable, PROPERTIES_FLAGS)
        architecture = extract_architecture(properties) if properties else None
        return ProbeResult(version=version, architecture=architecture)

    async def _run(self, executable: str, flags: Sequence[str]) -> Optional[str]:
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *flags,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:  # Expected for broken candidates  # policy_guard: allow-silent-handler
            logger.debug("Cannot execute runtime candidate %s: %s", executable, exc)
            return None

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:  # policy_guard: allow-silent-handler
            logger.debug("Runtime probe of %s timed out after %.1fs", executable, self.timeout_seconds)
            await _kill_quietly(process)
            return None

        # The runtime prints version banners on stderr; some builds use stdout.
        return stderr.decode("utf-8", errors="replace") + stdout.decode("utf-8", errors="replace")


async def _kill_quietly(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:  # Already exited  # policy_guard: allow-silent-handler
        return
    await process.wait()
