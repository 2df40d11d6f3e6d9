from __future__ import annotations

"""Exception taxonomy for worker supervision and bootstrap failures."""

from typing import Optional, Sequence


class WorkerSupervisorError(RuntimeError):
    """Base class for every failure raised by the worker supervisor."""


class RuntimeNotFoundError(WorkerSupervisorError):
    """Raised when no usable runtime installation could be located."""

    def __init__(self, message: str, *, min_version: str = "", max_version: str = "") -> None:
        super().__init__(message)
        self.min_version = min_version
        self.max_version = max_version

    @classmethod
    def no_compatible_runtime(cls, min_version: str, max_version: str, searched: int = 0) -> "RuntimeNotFoundError":
        """Create error for an exhausted discovery pass."""
        msg = f"No compatible runtime found (requires version {min_version} to {max_version})"
        if searched:
            msg += f"; {searched} candidate(s) inspected"
        return cls(msg, min_version=min_version, max_version=max_version)


class VersionIncompatibleError(WorkerSupervisorError):
    """Raised when a specific runtime reports a version outside the accepted window."""

    def __init__(self, message: str, *, path: str = "", version: str = "") -> None:
        super().__init__(message)
        self.path = path
        self.version = version

    @classmethod
    def out_of_range(cls, path: str, version: str, min_version: str, max_version: str) -> "VersionIncompatibleError":
        """Create error for a runtime outside ``[min_version, max_version]``."""
        return cls(
            f"Runtime at {path} reports version {version}; supported range is {min_version} to {max_version}",
            path=path,
            version=version,
        )


class PortUnavailableError(WorkerSupervisorError):
    """Raised when a single port cannot be bound."""

    def __init__(self, message: str, *, port: int) -> None:
        super().__init__(message)
        self.port = port

    @classmethod
    def bind_failed(cls, host: str, port: int, reason: str = "") -> "PortUnavailableError":
        """Create error for a failed bind on ``host:port``."""
        msg = f"Could not bind {host}:{port}"
        if reason:
            msg += f": {reason}"
        return cls(msg, port=port)


class PortRangeExhaustedError(WorkerSupervisorError):
    """Raised when every port in the allocation window is occupied."""

    def __init__(self, message: str, *, start: int, end: int) -> None:
        super().__init__(message)
        self.start = start
        self.end = end

    @classmethod
    def for_range(cls, start: int, end: int) -> "PortRangeExhaustedError":
        """Create error for an exhausted ``[start, end]`` window."""
        return cls(f"No available port in range {start}-{end}", start=start, end=end)


class LaunchValidationError(WorkerSupervisorError):
    """Raised when the launch configuration references missing files."""

    @classmethod
    def archive_missing(cls, archive_path: str) -> "LaunchValidationError":
        """Create error for a missing executable archive."""
        return cls(f"Worker archive not found: {archive_path}")

    @classmethod
    def classpath_entries_missing(cls, entries: Sequence[str]) -> "LaunchValidationError":
        """Create error for missing classpath entries."""
        return cls(f"Classpath entries not found: {', '.join(entries)}")

    @classmethod
    def no_launch_target(cls) -> "LaunchValidationError":
        """Create error for a configuration naming neither archive nor classpath."""
        return cls("Launch configuration requires an archive path or a classpath with a main class")


class SpawnFailureError(WorkerSupervisorError):
    """Raised when the operating system refuses to start the worker process."""

    def __init__(self, message: str, *, executable: str = "") -> None:
        super().__init__(message)
        self.executable = executable

    @classmethod
    def no_pid(cls, executable: str) -> "SpawnFailureError":
        """Create error for a spawn that returned no process identifier."""
        return cls(f"Worker process started from {executable} did not report a PID", executable=executable)

    @classmethod
    def os_error(cls, executable: str, reason: str) -> "SpawnFailureError":
        """Create error for an operating-system level spawn failure."""
        return cls(f"Failed to spawn worker process {executable}: {reason}", executable=executable)


class ProcessCrashedError(WorkerSupervisorError):
    """Raised (or reported) when the worker exits non-zero after reaching ``running``."""

    def __init__(self, message: str, *, exit_code: Optional[int], output_tail: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output_tail = tuple(output_tail)

    @classmethod
    def exited(cls, pid: int, exit_code: Optional[int], output_tail: Sequence[str] = ()) -> "ProcessCrashedError":
        """Create error for an unexpected worker exit."""
        return cls(
            f"Worker process {pid} exited unexpectedly with code {exit_code}",
            exit_code=exit_code,
            output_tail=output_tail,
        )


class HealthCheckTimeoutError(WorkerSupervisorError):
    """Raised when the worker never reports ready within the bootstrap window."""

    def __init__(self, message: str, *, timeout_seconds: float, url: str = "") -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.url = url

    @classmethod
    def not_ready(cls, url: str, timeout_seconds: float) -> "HealthCheckTimeoutError":
        """Create error for an expired readiness wait."""
        return cls(
            f"Worker did not become ready at {url} within {timeout_seconds:g}s",
            timeout_seconds=timeout_seconds,
            url=url,
        )


class TerminationFailedError(WorkerSupervisorError):
    """Raised when a process survives both graceful and forced termination."""

    def __init__(self, message: str, *, pid: int) -> None:
        super().__init__(message)
        self.pid = pid

    @classmethod
    def survived(cls, pid: int, detail: str = "") -> "TerminationFailedError":
        """Create error for a process that outlived forced termination."""
        msg = f"Worker process {pid} is still alive after forced termination"
        if detail:
            msg += f": {detail}"
        return cls(msg, pid=pid)


class WorkerRequestError(WorkerSupervisorError):
    """Raised when the worker is reachable but rejects or garbles a call."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    @classmethod
    def http_status(cls, status: int, reason: str, body: str) -> "WorkerRequestError":
        """Create error for a non-2xx response."""
        return cls(f"API request failed: {status} {reason} - {body}", status=status, body=body)

    @classmethod
    def invalid_json(cls, command: str, body: str) -> "WorkerRequestError":
        """Create error for a response body that is not a JSON object."""
        return cls(f"Invalid JSON response for command {command!r}", body=body)

    @classmethod
    def command_rejected(cls, command: str, detail: str) -> "WorkerRequestError":
        """Create error for an envelope reporting ``success: false``."""
        return cls(f"Worker rejected command {command!r}: {detail}")

    @classmethod
    def connection_exhausted(cls, command: str, attempts: int, reason: str) -> "WorkerRequestError":
        """Create error for a command that never reached the worker."""
        return cls(f"Command {command!r} failed after {attempts} attempt(s): {reason}")


class SupervisorStateError(WorkerSupervisorError):
    """Raised when an operation is not allowed in the supervisor's current state."""

    @classmethod
    def cannot_start(cls, state: str) -> "SupervisorStateError":
        """Create error for ``start()`` outside idle/stopped/error."""
        return cls(f"Cannot start worker while supervisor is {state}")

    @classmethod
    def restart_blocked(cls, reason: str) -> "SupervisorStateError":
        """Create error for a restart whose stop phase did not complete cleanly."""
        return cls(f"Restart aborted because the previous worker did not stop cleanly: {reason}")

    @classmethod
    def ports_not_assigned(cls) -> "SupervisorStateError":
        """Create error for a restart before any ports were ever assigned."""
        return cls("Cannot restart worker: no port allocation from a previous start")

    @classmethod
    def bootstrap_not_idle(cls, state: str) -> "SupervisorStateError":
        """Create error for running the bootstrap sequence twice without a restart."""
        return cls(f"Bootstrap already ran (state {state}); call restart() to run it again")

    @classmethod
    def illegal_bootstrap_transition(cls, current: str, target: str) -> "SupervisorStateError":
        """Create error for a bootstrap transition the state machine does not allow."""
        return cls(f"Illegal bootstrap transition {current} -> {target}")


__all__ = [
    "HealthCheckTimeoutError",
    "LaunchValidationError",
    "PortRangeExhaustedError",
    "PortUnavailableError",
    "ProcessCrashedError",
    "RuntimeNotFoundError",
    "SpawnFailureError",
    "SupervisorStateError",
    "TerminationFailedError",
    "VersionIncompatibleError",
    "WorkerRequestError",
    "WorkerSupervisorError",
]
