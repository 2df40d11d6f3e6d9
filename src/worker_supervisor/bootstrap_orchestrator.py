"""
Startup sequencing for the host application.

Steps, short-circuiting on the first failure::

    host ready -> STARTING_WORKER -> allocate ports -> start worker
               -> WAITING_FOR_HEALTH -> poll readiness -> READY

Any failure moves to ``FAILED``, stops a worker that was already launched,
and hands a diagnostic to the error reporter. Each transition is pushed to
observers that called :meth:`BootstrapOrchestrator.subscribe`.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from .bootstrap_orchestrator_helpers import (
    ALLOWED_TRANSITIONS,
    BootstrapDiagnostic,
    BootstrapErrorReporter,
    BootstrapEvent,
    BootstrapState,
)
from .config import ConfigurationError
from .errors import HealthCheckTimeoutError, ProcessCrashedError, SupervisorStateError, WorkerSupervisorError
from .event_channel import EventChannel, Subscription
from .health_check_client import HealthCheckClient
from .port_allocator import PortAllocator
from .process_supervisor import ProcessSupervisor
from .process_supervisor_helpers import ProcessState, StopResult
from .settings import SupervisorSettings

logger = logging.getLogger(__name__)

HostReady = Callable[[], Awaitable[None]]


async def _host_already_ready() -> None:
    return None


class BootstrapOrchestrator:
    """Drives the worker from nothing to ready and reports fatal failures."""

    def __init__(
        self,
        settings: SupervisorSettings,
        *,
        supervisor: Optional[ProcessSupervisor] = None,
        port_allocator: Optional[PortAllocator] = None,
        client: Optional[HealthCheckClient] = None,
        error_reporter: Optional[BootstrapErrorReporter] = None,
        host_ready: HostReady = _host_already_ready,
    ) -> None:
        self.settings = settings
        self.supervisor = supervisor or ProcessSupervisor(settings)
        self.port_allocator = port_allocator or PortAllocator(settings.ports.host)
        self.client = client or HealthCheckClient(
            settings.ports.range_start, host=settings.ports.host, settings=settings.health
        )
        self.error_reporter = error_reporter or BootstrapErrorReporter(settings)
        self.host_ready = host_ready

        self._state = BootstrapState.IDLE
        self._channel: EventChannel[BootstrapEvent] = EventChannel("bootstrap")
        self.diagnostic: Optional[BootstrapDiagnostic] = None

    @property
    def state(self) -> BootstrapState:
        return self._state

    def subscribe(self) -> Subscription[BootstrapEvent]:
        return self._channel.subscribe()

    async def run(self) -> bool:
        """
        Execute the bootstrap sequence once.

        Returns:
            ``True`` when the worker is ready, ``False`` after a reported failure

        Raises:
            SupervisorStateError: If called again without :meth:`restart`
        """
        if self._state is not BootstrapState.IDLE:
            raise SupervisorStateError.bootstrap_not_idle(self._state.value)

        try:
            await self.host_ready()
            self._transition(BootstrapState.STARTING_WORKER, "Starting worker process")

            ports = self.port_allocator.allocate_from_settings(self.settings.ports)
            await self.supervisor.start(ports)
            self.client.rebind(ports.api_port)

            self._transition(BootstrapState.WAITING_FOR_HEALTH, f"Waiting for worker API on port {ports.api_port}")
            health = self.settings.health
            ready = await self.client.wait_for_ready(health.ready_timeout_seconds, health.ready_interval_seconds)
            if not ready:
                raise self._readiness_failure()
        except (WorkerSupervisorError, ConfigurationError) as exc:
            await self._fail(exc)
            return False
        except Exception as exc:  # policy_guard: allow-silent-handler
            logger.exception("Unexpected bootstrap failure in state %s", self._state.value)
            await self._fail(exc)
            return False

        self._transition(BootstrapState.READY, "Worker ready")
        return True

    async def restart(self) -> bool:
        """Stop any worker, reset to ``IDLE`` and run the sequence again."""
        if self._state not in (BootstrapState.READY, BootstrapState.FAILED):
            raise SupervisorStateError.bootstrap_not_idle(self._state.value)
        await self.supervisor.stop()
        self.diagnostic = None
        self._transition(BootstrapState.IDLE, "Restarting")
        return await self.run()

    async def shutdown(self, timeout: Optional[float] = None) -> StopResult:
        """Stop the worker and release the HTTP session."""
        try:
            return await self.supervisor.stop(timeout)
        finally:
            await self.client.close()

    def _readiness_failure(self) -> WorkerSupervisorError:
        status = self.supervisor.status
        if status.state is ProcessState.ERROR and isinstance(status.last_error, ProcessCrashedError):
            return status.last_error
        return HealthCheckTimeoutError.not_ready(self.client.health_url, self.settings.health.ready_timeout_seconds)

    async def _fail(self, error: BaseException) -> None:
        logger.error("Bootstrap failed in state %s: %s", self._state.value, error)
        if self.supervisor.status.state is ProcessState.RUNNING:
            stop_result = await self.supervisor.stop()
            if stop_result.error is not None:
                logger.error("Worker cleanup after failed bootstrap was incomplete: %s", stop_result.error)

        diagnostic = self.error_reporter.diagnose(error)
        self.diagnostic = diagnostic
        self._transition(BootstrapState.FAILED, diagnostic.title, diagnostic)
        self.error_reporter.fatal_handler(diagnostic)

    def _transition(
        self,
        state: BootstrapState,
        message: str = "",
        diagnostic: Optional[BootstrapDiagnostic] = None,
    ) -> None:
        previous = self._state
        if state not in ALLOWED_TRANSITIONS[previous]:
            raise SupervisorStateError.illegal_bootstrap_transition(previous.value, state.value)
        self._state = state
        logger.info("Bootstrap %s -> %s%s", previous.value, state.value, f": {message}" if message else "")
        self._channel.publish(BootstrapEvent(state=state, previous=previous, message=message, diagnostic=diagnostic))


__all__ = ["BootstrapOrchestrator"]
