"""Signal-based termination for POSIX hosts."""

from __future__ import annotations

import logging

import psutil

from .base import TerminationStrategy
from .types import TerminationMethod, TerminationResult

logger = logging.getLogger(__name__)

SIGNAL_NAMES = {TerminationMethod.GRACEFUL: "SIGTERM", TerminationMethod.FORCED: "SIGKILL"}


class SignalTerminationStrategy(TerminationStrategy):
    """Graceful = ``SIGTERM`` via ``Process.terminate``; forced = ``SIGKILL`` via ``Process.kill``."""

    name = "signal"

    async def terminate(self, pid: int) -> TerminationResult:
        return self._send(pid, TerminationMethod.GRACEFUL)

    async def force_kill(self, pid: int) -> TerminationResult:
        return self._send(pid, TerminationMethod.FORCED)

    @staticmethod
    def _send(pid: int, method: TerminationMethod) -> TerminationResult:
        signal_name = SIGNAL_NAMES[method]
        try:
            proc = psutil.Process(pid)
            if method is TerminationMethod.FORCED:
                proc.kill()
            else:
                proc.terminate()
        except psutil.NoSuchProcess:  # policy_guard: allow-silent-handler
            return TerminationResult(success=False, method=method, error=f"No such process: {pid}")
        except psutil.AccessDenied:  # policy_guard: allow-silent-handler
            return TerminationResult(success=False, method=method, error=f"Permission denied sending {signal_name} to {pid}")
        except OSError as exc:  # policy_guard: allow-silent-handler
            return TerminationResult(success=False, method=method, error=f"Failed to send {signal_name} to {pid}: {exc}")
        logger.debug("Sent %s to process %d", signal_name, pid)
        return TerminationResult(success=True, method=method)
