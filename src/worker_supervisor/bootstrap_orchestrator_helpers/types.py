"""Bootstrap states, broadcast events and user-facing diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class BootstrapState(Enum):
    """Startup progress. Moves forward only; ``restart()`` returns it to ``IDLE``."""

    IDLE = "idle"
    STARTING_WORKER = "startingWorker"
    WAITING_FOR_HEALTH = "waitingForHealth"
    READY = "ready"
    FAILED = "failed"


ALLOWED_TRANSITIONS = {
    BootstrapState.IDLE: frozenset({BootstrapState.STARTING_WORKER, BootstrapState.FAILED}),
    BootstrapState.STARTING_WORKER: frozenset({BootstrapState.WAITING_FOR_HEALTH, BootstrapState.FAILED}),
    BootstrapState.WAITING_FOR_HEALTH: frozenset({BootstrapState.READY, BootstrapState.FAILED}),
    BootstrapState.READY: frozenset({BootstrapState.IDLE}),
    BootstrapState.FAILED: frozenset({BootstrapState.IDLE}),
}


@dataclass(frozen=True)
class BootstrapDiagnostic:
    """What to tell the user when startup fails, and how the host should exit."""

    title: str
    message: str
    remediation: tuple[str, ...] = ()
    exit_code: int = 1

    def render(self) -> str:
        lines = [self.title, "", self.message]
        if self.remediation:
            lines.append("")
            lines.extend(f"  - {step}" for step in self.remediation)
        return "\n".join(lines)


@dataclass(frozen=True)
class BootstrapEvent:
    """Pushed to observers on every bootstrap state change."""

    state: BootstrapState
    previous: BootstrapState
    message: str = ""
    diagnostic: Optional[BootstrapDiagnostic] = None
