"""Types and error reporting for the bootstrap sequence."""

from .error_reporter import BootstrapErrorReporter, FatalHandler, log_fatal
from .types import ALLOWED_TRANSITIONS, BootstrapDiagnostic, BootstrapEvent, BootstrapState

__all__ = [
    "ALLOWED_TRANSITIONS",
    "BootstrapDiagnostic",
    "BootstrapErrorReporter",
    "BootstrapEvent",
    "BootstrapState",
    "FatalHandler",
    "log_fatal",
]
