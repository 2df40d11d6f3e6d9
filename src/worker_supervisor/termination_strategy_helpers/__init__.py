"""Platform-specific process termination primitives."""

from .base import TerminationStrategy
from .liveness import is_process_alive
from .signal_strategy import SignalTerminationStrategy
from .types import TerminationMethod, TerminationResult
from .utility_strategy import UtilityTerminationStrategy

__all__ = [
    "SignalTerminationStrategy",
    "TerminationMethod",
    "TerminationResult",
    "TerminationStrategy",
    "UtilityTerminationStrategy",
    "is_process_alive",
]
