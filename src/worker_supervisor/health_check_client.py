"""
HTTP client for the worker's command and readiness endpoints.

Commands are ``POST /api/{command}`` with a JSON ``{command, args}`` body.
Only connection-level failures are retried; any HTTP response, including an
error status, is final because it proves the worker was reachable.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import aiohttp

from .errors import WorkerRequestError
from .health_check_client_helpers import CONNECTION_ERROR_TYPES, ResponseParser, RetryPolicy, WorkerSessionManager
from .settings import DEFAULT_BIND_HOST, HealthSettings

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}
HTTP_OK = 200

Sleeper = Callable[[float], Awaitable[None]]


class HealthCheckClient:
    """Retrying request client plus readiness polling for one worker port."""

    def __init__(
        self,
        port: int,
        *,
        host: str = DEFAULT_BIND_HOST,
        settings: Optional[HealthSettings] = None,
        session_manager: Optional[WorkerSessionManager] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.host = host
        self.port = port
        self.settings = settings or HealthSettings()
        self.retry_policy = RetryPolicy(self.settings.max_attempts, self.settings.retry_base_delay_seconds)
        self.sessions = session_manager or WorkerSessionManager(self.settings.request_timeout_seconds)
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def health_url(self) -> str:
        return f"{self.base_url}{self.settings.health_path}"

    def rebind(self, port: int) -> None:
        """Point the client at the port the worker actually bound."""
        if port != self.port:
            logger.info("Worker API client now targeting port %d (was %d)", port, self.port)
        self.port = port

    async def __aenter__(self) -> "HealthCheckClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.sessions.close_session()

    async def request(self, command: str, args: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """
        Send *command* to the worker, retrying connection failures.

        Returns:
            The decoded JSON response object

        Raises:
            WorkerRequestError: On a non-2xx or malformed response (not
                retried), or once every attempt failed to connect
        """
        url = f"{self.base_url}/api/{command}"
        payload = {"command": command, "args": dict(args or {})}
        policy = self.retry_policy

        last_error: Optional[BaseException] = None
        for attempt in range(1, policy.max_attempts + 1):
            try:
                return await self._post_once(url, command, payload)
            except CONNECTION_ERROR_TYPES as exc:
                last_error = exc
                if not policy.should_retry(attempt):
                    break
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Command %s attempt %d/%d could not reach worker (%s); retrying in %.2fs",
                    command,
                    attempt,
                    policy.max_attempts,
                    exc.__class__.__name__,
                    delay,
                )
                await self._sleep(delay)

        raise WorkerRequestError.connection_exhausted(command, policy.max_attempts, repr(last_error)) from last_error

    async def execute_command(self, command: str, args: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """Entry point used by UI-facing bridges; identical to :meth:`request`."""
        logger.debug("Executing worker command %s", command)
        return await self.request(command, args)

    async def check_connection(self, timeout: Optional[float] = None) -> bool:
        """Single readiness probe; ``True`` only for HTTP 200."""
        probe_timeout = self.settings.probe_timeout_seconds if timeout is None else timeout
        try:
            return await self._probe(probe_timeout)
        except asyncio.TimeoutError:  # Expected while the worker boots  # policy_guard: allow-silent-handler
            return False
        except (aiohttp.ClientError, OSError) as exc:  # policy_guard: allow-silent-handler
            logger.info("Readiness probe of %s failed: %s", self.health_url, exc)
            return False

    async def wait_for_ready(self, timeout_seconds: Optional[float] = None, interval_seconds: Optional[float] = None) -> bool:
        """
        Poll the readiness endpoint until it answers 200 or *timeout_seconds* elapse.

        Individual probe failures are swallowed; only non-timeout errors are logged.

        Returns:
            ``True`` when the worker became ready in time
        """
        timeout = self.settings.ready_timeout_seconds if timeout_seconds is None else timeout_seconds
        interval = self.settings.ready_interval_seconds if interval_seconds is None else interval_seconds
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout

        polls = 0
        while True:
            polls += 1
            if await self.check_connection():
                logger.info("Worker ready at %s after %d poll(s) in %.1fs", self.health_url, polls, loop.time() - started)
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning("Worker not ready at %s after %.1fs", self.health_url, timeout)
                return False
            await self._sleep(min(interval, remaining))

    async def _probe(self, timeout: float) -> bool:
        session = await self.sessions.ensure_session()
        async with session.get(self.health_url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
            if response.status != HTTP_OK:
                logger.debug("Readiness probe returned HTTP %d", response.status)
            return response.status == HTTP_OK

    async def _post_once(self, url: str, command: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        session = await self.sessions.ensure_session()
        async with session.post(
            url,
            json=payload,
            headers=JSON_HEADERS,
            timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout_seconds),
        ) as response:
            body = await response.text()
            return ResponseParser.parse(command, response.status, response.reason or "", body)


__all__ = ["HealthCheckClient"]
