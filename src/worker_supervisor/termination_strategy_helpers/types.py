"""Result records produced by termination attempts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TerminationMethod(Enum):
    """How a termination attempt tried to end the process."""

    GRACEFUL = "graceful"
    FORCED = "forced"
    PLATFORM_UTILITY = "platformUtility"


@dataclass(frozen=True)
class TerminationResult:
    """Outcome of one terminate or force-kill attempt."""

    success: bool
    method: TerminationMethod
    error: Optional[str] = None
