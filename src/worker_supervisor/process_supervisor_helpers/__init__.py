"""Types used by :mod:`worker_supervisor.process_supervisor`."""

from .types import (
    PID_STATES,
    STARTABLE_STATES,
    STATUS_LABELS,
    ConfigurationInfo,
    ProcessInfo,
    ProcessState,
    ProcessStatus,
    RestartResult,
    StopResult,
    SupervisorEvent,
    SupervisorEventKind,
)

__all__ = [
    "ConfigurationInfo",
    "PID_STATES",
    "ProcessInfo",
    "ProcessState",
    "ProcessStatus",
    "RestartResult",
    "STARTABLE_STATES",
    "STATUS_LABELS",
    "StopResult",
    "SupervisorEvent",
    "SupervisorEventKind",
]
