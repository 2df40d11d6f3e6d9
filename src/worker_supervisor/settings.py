"""
Settings for discovering, launching and supervising the backend worker.

Every value has a production default and can be overridden through a
``WORKER_*`` environment variable (or the .env / JSON defaults files read by
:mod:`worker_supervisor.config`). Durations are expressed in seconds.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import ConfigurationError, env_bool, env_int, env_list, env_path, env_seconds, env_str

DEFAULT_MIN_RUNTIME_VERSION = "11"
DEFAULT_MAX_RUNTIME_VERSION = "21"
DEFAULT_RUNTIME_SEARCH_DEPTH = 3
DEFAULT_VERSION_PROBE_TIMEOUT_SECONDS = 5.0

DEFAULT_PORT_RANGE_START = 8080
DEFAULT_PORT_RANGE_END = 8083
DEFAULT_BIND_HOST = "127.0.0.1"
MAX_TCP_PORT = 65535

DEFAULT_MEMORY_MIN_MB = 256
DEFAULT_MEMORY_MAX_MB = 1024
DEFAULT_LOG_BUFFER_LINES = 100

DEFAULT_HEALTH_PATH = "/api/health"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 2.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 0.3
DEFAULT_READY_TIMEOUT_SECONDS = 120.0
DEFAULT_READY_INTERVAL_SECONDS = 1.5

DEFAULT_STOP_TIMEOUT_SECONDS = 5.0
DEFAULT_STOP_POLL_INTERVAL_SECONDS = 0.2
DEFAULT_RESTART_PAUSE_SECONDS = 1.0


@dataclass(frozen=True)
class RuntimeSettings:
    """Runtime discovery window and search bounds."""

    min_version: str = DEFAULT_MIN_RUNTIME_VERSION
    max_version: str = DEFAULT_MAX_RUNTIME_VERSION
    search_depth: int = DEFAULT_RUNTIME_SEARCH_DEPTH
    probe_timeout_seconds: float = DEFAULT_VERSION_PROBE_TIMEOUT_SECONDS


@dataclass(frozen=True)
class PortSettings:
    """Contiguous port window the worker may bind."""

    range_start: int = DEFAULT_PORT_RANGE_START
    range_end: int = DEFAULT_PORT_RANGE_END
    host: str = DEFAULT_BIND_HOST


@dataclass(frozen=True)
class LaunchSettings:
    """What to launch and how the launched worker is configured."""

    archive_path: Optional[Path] = None
    classpath: tuple[str, ...] = ()
    main_class: Optional[str] = None
    resources_dir: Optional[Path] = None
    log_dir: Path = Path("logs")
    memory_min_mb: int = DEFAULT_MEMORY_MIN_MB
    memory_max_mb: int = DEFAULT_MEMORY_MAX_MB
    extra_runtime_flags: tuple[str, ...] = ()
    development_mode: bool = False
    log_buffer_lines: int = DEFAULT_LOG_BUFFER_LINES
    extra_env: dict[str, str] = field(default_factory=dict)

    @property
    def uses_archive(self) -> bool:
        return self.archive_path is not None


@dataclass(frozen=True)
class HealthSettings:
    """Request, retry and readiness-polling parameters for the worker API."""

    health_path: str = DEFAULT_HEALTH_PATH
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    ready_timeout_seconds: float = DEFAULT_READY_TIMEOUT_SECONDS
    ready_interval_seconds: float = DEFAULT_READY_INTERVAL_SECONDS


@dataclass(frozen=True)
class StopSettings:
    """Termination timing."""

    timeout_seconds: float = DEFAULT_STOP_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_STOP_POLL_INTERVAL_SECONDS
    restart_pause_seconds: float = DEFAULT_RESTART_PAUSE_SECONDS


@dataclass(frozen=True)
class SupervisorSettings:
    """Complete configuration for one supervised worker."""

    runtime: RuntimeSettings = field(default_factory=RuntimeSettings)
    ports: PortSettings = field(default_factory=PortSettings)
    launch: LaunchSettings = field(default_factory=LaunchSettings)
    health: HealthSettings = field(default_factory=HealthSettings)
    stop: StopSettings = field(default_factory=StopSettings)

    def validate(self) -> "SupervisorSettings":
        """Check cross-field constraints and return ``self``.

        Raises:
            ConfigurationError: If any constraint is violated
        """
        _validate_ports(self.ports)
        _validate_runtime(self.runtime)
        _validate_launch(self.launch)
        if self.health.max_attempts < 1:
            raise ConfigurationError.invalid_value("WORKER_REQUEST_MAX_ATTEMPTS", self.health.max_attempts, "Must be at least 1")
        if not self.health.health_path.startswith("/"):
            raise ConfigurationError.invalid_format("WORKER_HEALTH_PATH", self.health.health_path, "a path starting with '/'")
        return self


def _validate_ports(ports: PortSettings) -> None:
    for name, value in (("WORKER_PORT_RANGE_START", ports.range_start), ("WORKER_PORT_RANGE_END", ports.range_end)):
        if not 1 <= value <= MAX_TCP_PORT:
            raise ConfigurationError.invalid_value(name, value, f"Ports must be within 1-{MAX_TCP_PORT}")
    if ports.range_start > ports.range_end:
        raise ConfigurationError.invalid_value(
            "WORKER_PORT_RANGE_END", ports.range_end, f"Range end must not precede start {ports.range_start}"
        )
    # The management port is always primary + 1.
    if ports.range_end + 1 > MAX_TCP_PORT:
        raise ConfigurationError.invalid_value(
            "WORKER_PORT_RANGE_END", ports.range_end, "No room for the management port above the range end"
        )


def _validate_runtime(runtime: RuntimeSettings) -> None:
    from .runtime_discovery_helpers.version_utils import compare_versions

    if compare_versions(runtime.min_version, runtime.max_version) > 0:
        raise ConfigurationError.invalid_value(
            "WORKER_MIN_RUNTIME_VERSION", runtime.min_version, f"Minimum exceeds maximum {runtime.max_version}"
        )
    if runtime.search_depth < 0:
        raise ConfigurationError.invalid_value("WORKER_RUNTIME_SEARCH_DEPTH", runtime.search_depth, "Must be non-negative")


def _validate_launch(launch: LaunchSettings) -> None:
    if launch.archive_path is None and not (launch.classpath and launch.main_class):
        raise ConfigurationError.missing_value(
            "WORKER_ARCHIVE_PATH", "set it, or set both WORKER_CLASSPATH and WORKER_MAIN_CLASS"
        )
    if launch.memory_min_mb <= 0 or launch.memory_max_mb < launch.memory_min_mb:
        raise ConfigurationError.invalid_value(
            "WORKER_MEMORY_MAX_MB", launch.memory_max_mb, f"Must be >= WORKER_MEMORY_MIN_MB ({launch.memory_min_mb}) and positive"
        )
    if launch.log_buffer_lines < 1:
        raise ConfigurationError.invalid_value("WORKER_LOG_BUFFER_LINES", launch.log_buffer_lines, "Must be at least 1")


def load_settings(*, validate: bool = True) -> SupervisorSettings:
    """Build settings from ``WORKER_*`` environment variables, validated by default."""

    runtime = RuntimeSettings(
        min_version=env_str("WORKER_MIN_RUNTIME_VERSION", DEFAULT_MIN_RUNTIME_VERSION),
        max_version=env_str("WORKER_MAX_RUNTIME_VERSION", DEFAULT_MAX_RUNTIME_VERSION),
        search_depth=env_int("WORKER_RUNTIME_SEARCH_DEPTH", DEFAULT_RUNTIME_SEARCH_DEPTH),
        probe_timeout_seconds=env_seconds("WORKER_VERSION_PROBE_TIMEOUT_SECONDS", DEFAULT_VERSION_PROBE_TIMEOUT_SECONDS),
    )
    ports = PortSettings(
        range_start=env_int("WORKER_PORT_RANGE_START", DEFAULT_PORT_RANGE_START),
        range_end=env_int("WORKER_PORT_RANGE_END", DEFAULT_PORT_RANGE_END),
        host=env_str("WORKER_HOST", DEFAULT_BIND_HOST),
    )
    launch = LaunchSettings(
        archive_path=env_path("WORKER_ARCHIVE_PATH"),
        classpath=env_list("WORKER_CLASSPATH", or_value=(), separator=os.pathsep),
        main_class=env_str("WORKER_MAIN_CLASS"),
        resources_dir=env_path("WORKER_RESOURCES_DIR"),
        log_dir=env_path("WORKER_LOG_DIR", Path("logs")),
        memory_min_mb=env_int("WORKER_MEMORY_MIN_MB", DEFAULT_MEMORY_MIN_MB),
        memory_max_mb=env_int("WORKER_MEMORY_MAX_MB", DEFAULT_MEMORY_MAX_MB),
        extra_runtime_flags=env_list("WORKER_EXTRA_RUNTIME_FLAGS", or_value=(), separator=" ", unique=False),
        development_mode=bool(env_bool("WORKER_DEVELOPMENT_MODE", or_value=False)),
        log_buffer_lines=env_int("WORKER_LOG_BUFFER_LINES", DEFAULT_LOG_BUFFER_LINES),
    )
    health = HealthSettings(
        health_path=env_str("WORKER_HEALTH_PATH", DEFAULT_HEALTH_PATH),
        request_timeout_seconds=env_seconds("WORKER_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS),
        probe_timeout_seconds=env_seconds("WORKER_PROBE_TIMEOUT_SECONDS", DEFAULT_PROBE_TIMEOUT_SECONDS),
        max_attempts=env_int("WORKER_REQUEST_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
        retry_base_delay_seconds=env_seconds("WORKER_RETRY_BASE_DELAY_SECONDS", DEFAULT_RETRY_BASE_DELAY_SECONDS),
        ready_timeout_seconds=env_seconds("WORKER_READY_TIMEOUT_SECONDS", DEFAULT_READY_TIMEOUT_SECONDS),
        ready_interval_seconds=env_seconds("WORKER_READY_INTERVAL_SECONDS", DEFAULT_READY_INTERVAL_SECONDS),
    )
    stop = StopSettings(
        timeout_seconds=env_seconds("WORKER_STOP_TIMEOUT_SECONDS", DEFAULT_STOP_TIMEOUT_SECONDS),
        poll_interval_seconds=env_seconds("WORKER_STOP_POLL_INTERVAL_SECONDS", DEFAULT_STOP_POLL_INTERVAL_SECONDS),
        restart_pause_seconds=env_seconds("WORKER_RESTART_PAUSE_SECONDS", DEFAULT_RESTART_PAUSE_SECONDS),
    )
    settings = SupervisorSettings(runtime=runtime, ports=ports, launch=launch, health=health, stop=stop)
    return settings.validate() if validate else settings


__all__ = [
    "HealthSettings",
    "LaunchSettings",
    "PortSettings",
    "RuntimeSettings",
    "StopSettings",
    "SupervisorSettings",
    "load_settings",
]
