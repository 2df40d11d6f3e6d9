"""HTTP session management for the worker API."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)

SESSION_CLOSE_TIMEOUT_SECONDS = 5.0


class WorkerSessionManager:
    """Owns one lazily created ``aiohttp.ClientSession``."""

    def __init__(self, request_timeout: float, user_agent: str = "worker-supervisor/1.0") -> None:
        self.request_timeout = request_timeout
        self.user_agent = user_agent
        self.session: Optional[aiohttp.ClientSession] = None

    async def ensure_session(self) -> aiohttp.ClientSession:
        """Return the open session, creating one if needed."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                headers={"User-Agent": self.user_agent},
            )
            logger.debug("Created worker API session")
        return self.session

    async def close_session(self) -> None:
        if self.session is None:
            return
        try:
            if not self.session.closed:
                await asyncio.wait_for(self.session.close(), timeout=SESSION_CLOSE_TIMEOUT_SECONDS)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:  # policy_guard: allow-silent-handler
            logger.warning("Error closing worker API session: %s", exc)
        finally:
            self.session = None
