"""Maps bootstrap failures to specific, user-actionable diagnostics."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional

from ..config import ConfigurationError
from ..errors import (
    HealthCheckTimeoutError,
    LaunchValidationError,
    PortRangeExhaustedError,
    ProcessCrashedError,
    RuntimeNotFoundError,
    SpawnFailureError,
    VersionIncompatibleError,
)
from ..runtime_discovery_helpers import installation_recommendations
from ..settings import SupervisorSettings
from .types import BootstrapDiagnostic

logger = logging.getLogger(__name__)

EXIT_GENERIC = 1
EXIT_CONFIGURATION = 2
EXIT_RUNTIME = 3
EXIT_PORTS = 4
EXIT_LAUNCH = 5
EXIT_CRASHED = 6
EXIT_NOT_READY = 7

CRASH_TAIL_LINES = 20

FatalHandler = Callable[[BootstrapDiagnostic], None]


def log_fatal(diagnostic: BootstrapDiagnostic) -> None:
    """Default fatal handler: log the rendered diagnostic."""
    logger.critical("%s", diagnostic.render())


class BootstrapErrorReporter:
    """Builds a :class:`BootstrapDiagnostic` per error type and hands it to the host."""

    def __init__(
        self,
        settings: SupervisorSettings,
        *,
        platform: Optional[str] = None,
        fatal_handler: FatalHandler = log_fatal,
    ) -> None:
        self.settings = settings
        self.platform = platform or sys.platform
        self.fatal_handler = fatal_handler

    def diagnose(self, error: BaseException) -> BootstrapDiagnostic:
        if isinstance(error, PortRangeExhaustedError):
            return BootstrapDiagnostic(
                title="No free port for the worker",
                message=str(error),
                remediation=(
                    f"Close other processes using ports {error.start}-{error.end}.",
                    "Or choose another range with WORKER_PORT_RANGE_START / WORKER_PORT_RANGE_END.",
                ),
                exit_code=EXIT_PORTS,
            )
        if isinstance(error, VersionIncompatibleError):
            runtime = self.settings.runtime
            return BootstrapDiagnostic(
                title="Installed Java version is not supported",
                message=str(error),
                remediation=tuple(installation_recommendations(self.platform, runtime.min_version, runtime.max_version)),
                exit_code=EXIT_RUNTIME,
            )
        if isinstance(error, RuntimeNotFoundError):
            runtime = self.settings.runtime
            return BootstrapDiagnostic(
                title="Java runtime not found",
                message=str(error),
                remediation=tuple(installation_recommendations(self.platform, runtime.min_version, runtime.max_version)),
                exit_code=EXIT_RUNTIME,
            )
        if isinstance(error, LaunchValidationError):
            return BootstrapDiagnostic(
                title="Worker files are missing",
                message=str(error),
                remediation=("Reinstall the application, or check WORKER_ARCHIVE_PATH / WORKER_CLASSPATH.",),
                exit_code=EXIT_LAUNCH,
            )
        if isinstance(error, SpawnFailureError):
            return BootstrapDiagnostic(
                title="Worker process could not be started",
                message=str(error),
                remediation=(
                    f"Check that {error.executable or 'the Java executable'} can be run by the current user.",
                    "Security software may be blocking it.",
                ),
                exit_code=EXIT_LAUNCH,
            )
        if isinstance(error, ProcessCrashedError):
            tail = error.output_tail[-CRASH_TAIL_LINES:]
            return BootstrapDiagnostic(
                title="Worker process stopped unexpectedly",
                message=str(error),
                remediation=(f"See the worker log in {self.settings.launch.log_dir} for details.",) + tuple(tail),
                exit_code=EXIT_CRASHED,
            )
        if isinstance(error, HealthCheckTimeoutError):
            return BootstrapDiagnostic(
                title="Worker did not become ready",
                message=str(error),
                remediation=(
                    "First start can be slow; try again.",
                    f"If it keeps failing, inspect the worker log in {self.settings.launch.log_dir}.",
                ),
                exit_code=EXIT_NOT_READY,
            )
        if isinstance(error, ConfigurationError):
            return BootstrapDiagnostic(
                title="Invalid supervisor configuration",
                message=str(error),
                remediation=("Fix the WORKER_* setting named above.",),
                exit_code=EXIT_CONFIGURATION,
            )
        return BootstrapDiagnostic(title="Worker startup failed", message=str(error) or repr(error), exit_code=EXIT_GENERIC)
