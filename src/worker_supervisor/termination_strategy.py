"""Selects the termination strategy for the host operating system."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from .termination_strategy_helpers import (
    SignalTerminationStrategy,
    TerminationMethod,
    TerminationResult,
    TerminationStrategy,
    UtilityTerminationStrategy,
    is_process_alive,
)

logger = logging.getLogger(__name__)


def create_termination_strategy(platform: Optional[str] = None) -> TerminationStrategy:
    """Return the utility strategy on Windows and the signal strategy elsewhere."""
    target = platform or sys.platform
    if target.startswith("win") or target == "cygwin":
        strategy: TerminationStrategy = UtilityTerminationStrategy()
    else:
        strategy = SignalTerminationStrategy()
    logger.debug("Using %s termination strategy for platform %s", strategy.name, target)
    return strategy


__all__ = [
    "SignalTerminationStrategy",
    "TerminationMethod",
    "TerminationResult",
    "TerminationStrategy",
    "UtilityTerminationStrategy",
    "create_termination_strategy",
    "is_process_alive",
]
