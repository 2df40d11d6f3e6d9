"""Abstract interface shared by every termination strategy."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .types import TerminationResult


class TerminationStrategy(ABC):
    """Platform primitive for ending a process.

    Implementations never raise for an unreachable or nonexistent process;
    they report ``success=False`` with a diagnostic instead.
    """

    name: str = "abstract"

    @abstractmethod
    async def terminate(self, pid: int) -> TerminationResult:
        """Ask the process to exit cooperatively."""

    @abstractmethod
    async def force_kill(self, pid: int) -> TerminationResult:
        """End the process without giving it a chance to clean up."""
