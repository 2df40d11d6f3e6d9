"""Linear backoff for worker requests."""

from __future__ import annotations

from dataclasses import dataclass

from ..settings import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_BASE_DELAY_SECONDS


@dataclass(frozen=True)
class RetryPolicy:
    """``max_attempts`` total tries, waiting ``base_delay * attempt`` after each failure."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS

    def delay_for(self, attempt: int) -> float:
        """
        Delay to wait after failed attempt number *attempt* (1-based).

        Args:
            attempt: Attempt number that just failed

        Returns:
            Delay in seconds
        """
        return self.base_delay_seconds * attempt

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts
