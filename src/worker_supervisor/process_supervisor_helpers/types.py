"""State, snapshots and operation results for the process supervisor."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..termination_strategy_helpers import TerminationResult


class ProcessState(Enum):
    """Lifecycle of the supervised worker process."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


STARTABLE_STATES = frozenset({ProcessState.IDLE, ProcessState.STOPPED, ProcessState.ERROR})
PID_STATES = frozenset({ProcessState.RUNNING, ProcessState.STOPPING})

STATUS_LABELS = {
    ProcessState.IDLE: "Idle",
    ProcessState.STARTING: "Starting",
    ProcessState.RUNNING: "Running",
    ProcessState.STOPPING: "Stopping",
    ProcessState.STOPPED: "Stopped",
    ProcessState.ERROR: "Error",
}


@dataclass(frozen=True)
class ProcessStatus:
    """Read-only snapshot of the supervisor's view of its worker."""

    state: ProcessState = ProcessState.IDLE
    pid: Optional[int] = None
    port: Optional[int] = None
    start_time: Optional[datetime] = None
    last_error: Optional[BaseException] = None

    @property
    def is_running(self) -> bool:
        return self.state is ProcessState.RUNNING


class SupervisorEventKind(Enum):
    STATUS_CHANGED = "statusChanged"
    STARTED = "started"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass(frozen=True)
class SupervisorEvent:
    """Message published on the supervisor's status channel."""

    kind: SupervisorEventKind
    status: ProcessStatus
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class StopResult:
    """Outcome of one ``stop()`` call."""

    was_running: bool
    exited: bool
    forced: bool = False
    attempts: tuple[TerminationResult, ...] = ()
    error: Optional[BaseException] = None

    @property
    def clean(self) -> bool:
        return self.exited and self.error is None

    @classmethod
    def not_running(cls) -> "StopResult":
        return cls(was_running=False, exited=True)


@dataclass(frozen=True)
class RestartResult:
    """Outcome of ``restart()``: the stop phase, then the start phase if it ran."""

    stop: StopResult
    status: ProcessStatus
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.status.is_running


@dataclass(frozen=True)
class ProcessInfo:
    """Human-oriented process summary for status displays."""

    status: str
    pid: Optional[int]
    port: Optional[int]
    running: bool
    error: Optional[str]
    uptime_seconds: Optional[float]


@dataclass(frozen=True)
class ConfigurationInfo:
    """Where the worker listens and what it was launched from."""

    api_port: Optional[int]
    management_port: Optional[int]
    development_mode: bool
    classpath: tuple[str, ...] = ()
    main_class: Optional[str] = None
    archive_path: Optional[str] = None
    resources_dir: Optional[str] = None
    runtime_path: Optional[str] = None
    runtime_version: Optional[str] = None
