"""
Supervision of the single worker process.

State machine::

    idle -> starting -> running -> stopping -> stopped
      (any state) -> error

All state changes happen on the event loop inside this class and are
published as :class:`SupervisorEvent` messages on a status channel.
Consumers obtain their own stream with :meth:`ProcessSupervisor.subscribe`.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from .errors import (
    ProcessCrashedError,
    SupervisorStateError,
    TerminationFailedError,
    WorkerSupervisorError,
)
from .event_channel import EventChannel, Subscription
from .port_allocator import PortAllocation
from .process_launcher import LaunchedWorker, ProcessLauncher
from .process_launcher_helpers import CommandBuilder, LaunchValidator
from .process_supervisor_helpers import (
    PID_STATES,
    STARTABLE_STATES,
    STATUS_LABELS,
    ConfigurationInfo,
    ProcessInfo,
    ProcessState,
    ProcessStatus,
    RestartResult,
    StopResult,
    SupervisorEvent,
    SupervisorEventKind,
)
from .runtime_discovery import RuntimeDiscovery
from .runtime_discovery_helpers import RuntimeCandidate
from .settings import SupervisorSettings
from .termination_strategy import TerminationStrategy, create_termination_strategy, is_process_alive

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class ProcessSupervisor:
    """Owns the worker's lifecycle: start, stop, restart and crash detection."""

    def __init__(
        self,
        settings: SupervisorSettings,
        *,
        discovery: Optional[RuntimeDiscovery] = None,
        launcher: Optional[ProcessLauncher] = None,
        termination: Optional[TerminationStrategy] = None,
        liveness: Callable[[int], bool] = is_process_alive,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.discovery = discovery or RuntimeDiscovery.from_settings(settings.runtime, settings.launch.resources_dir)
        self.launcher = launcher or ProcessLauncher(
            log_dir=settings.launch.log_dir, buffer_lines=settings.launch.log_buffer_lines
        )
        self.termination = termination or create_termination_strategy()
        self.liveness = liveness
        self._sleep = sleep

        self._status = ProcessStatus()
        self._channel: EventChannel[SupervisorEvent] = EventChannel("process-supervisor")
        self._worker: Optional[LaunchedWorker] = None
        self._ports: Optional[PortAllocation] = None
        self._runtime: Optional[RuntimeCandidate] = None
        self._start_task: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None
        self._exit_watch: Optional[asyncio.Task] = None

    @property
    def status(self) -> ProcessStatus:
        return self._status

    @property
    def ports(self) -> Optional[PortAllocation]:
        return self._ports

    @property
    def runtime(self) -> Optional[RuntimeCandidate]:
        return self._runtime

    def subscribe(self) -> Subscription[SupervisorEvent]:
        """Open a new stream of status events for one consumer."""
        return self._channel.subscribe()

    async def start(self, ports: PortAllocation) -> ProcessStatus:
        """
        Discover a runtime, launch the worker and move to ``running``.

        Concurrent callers share one in-flight start; only one process is
        ever spawned for it.

        Returns:
            Status snapshot after the worker is running

        Raises:
            SupervisorStateError: If the supervisor is running or stopping
            WorkerSupervisorError: Discovery, validation or spawn failures; the
                supervisor is left in ``error`` with the cause attached
        """
        if self._start_task is not None and not self._start_task.done():
            logger.info("Start already in progress; joining it")
            return await asyncio.shield(self._start_task)

        if self._status.state not in STARTABLE_STATES:
            raise SupervisorStateError.cannot_start(self._status.state.value)

        self._ports = ports
        self._transition(ProcessState.STARTING, port=ports.api_port, start_time=None, last_error=None)
        self._start_task = asyncio.create_task(self._start(ports), name="worker-start")
        return await asyncio.shield(self._start_task)

    async def _start(self, ports: PortAllocation) -> ProcessStatus:
        runtime_settings = self.settings.runtime
        try:
            LaunchValidator.validate(self.settings.launch)
            runtime = await self.discovery.require_runtime(runtime_settings.min_version, runtime_settings.max_version)
            spec = CommandBuilder.build(runtime, self.settings.launch, ports)
            worker = await self.launcher.launch(spec)
        except Exception as exc:
            logger.error("Worker start failed: %s", exc)
            self._transition(ProcessState.ERROR, last_error=exc)
            self._publish(SupervisorEventKind.ERROR, error=exc)
            raise

        self._runtime = runtime
        self._worker = worker
        launched = worker.result
        self._transition(ProcessState.RUNNING, pid=launched.pid, start_time=launched.start_time)
        self._publish(SupervisorEventKind.STARTED)
        self._exit_watch = asyncio.create_task(self._watch_exit(worker), name=f"worker-{worker.pid}-exit")
        return self._status

    async def stop(self, timeout: Optional[float] = None) -> StopResult:
        """
        Stop the worker: graceful terminate, poll liveness, force-kill once.

        A no-op (no events) when nothing is running.

        Returns:
            StopResult describing the attempts made; ``error`` is set when the
            process survived forced termination
        """
        if self._start_task is not None and not self._start_task.done():
            await asyncio.wait({self._start_task})

        if self._stop_task is not None and not self._stop_task.done():
            return await asyncio.shield(self._stop_task)

        if self._worker is None or self._status.state not in PID_STATES:
            return StopResult.not_running()

        stop_timeout = self.settings.stop.timeout_seconds if timeout is None else timeout
        self._stop_task = asyncio.create_task(self._stop(self._worker, stop_timeout), name="worker-stop")
        return await asyncio.shield(self._stop_task)

    async def _stop(self, worker: LaunchedWorker, timeout: float) -> StopResult:
        pid = worker.pid
        worker.mark_stop_requested()
        self._transition(ProcessState.STOPPING)
        logger.info("Stopping worker process %d", pid)

        await worker.close_stdin()
        attempts = [await self.termination.terminate(pid)]
        if not attempts[0].success:
            logger.warning("Graceful termination of %d failed: %s", pid, attempts[0].error)

        exited = await self._wait_for_exit(worker, timeout)
        forced = False
        error: Optional[TerminationFailedError] = None
        if not exited:
            logger.warning("Worker %d still alive after %.1fs; forcing termination", pid, timeout)
            forced = True
            forced_result = await self.termination.force_kill(pid)
            attempts.append(forced_result)
            exited = await self._wait_for_exit(worker, timeout)
            if not exited:
                error = TerminationFailedError.survived(pid, forced_result.error or "")
                logger.error("%s; marking the worker stopped anyway", error)

        if exited:
            await self._drain(worker)
        else:
            self._abandon(worker)

        self._worker = None
        self._transition(ProcessState.STOPPED, last_error=error)
        self._publish(SupervisorEventKind.STOPPED, error=error)
        return StopResult(was_running=True, exited=exited, forced=forced, attempts=tuple(attempts), error=error)

    async def restart(self, ports: Optional[PortAllocation] = None) -> RestartResult:
        """
        Stop, pause briefly, then start again on *ports* (default: the previous ports).

        A stop that did not end the process blocks the start; the result then
        carries a :class:`SupervisorStateError` and nothing is launched.
        """
        target_ports = ports or self._ports
        if target_ports is None:
            raise SupervisorStateError.ports_not_assigned()

        stop_result = await self.stop()
        if not stop_result.clean:
            blocked = SupervisorStateError.restart_blocked(str(stop_result.error or "process still alive"))
            logger.error("%s", blocked)
            return RestartResult(stop=stop_result, status=self._status, error=blocked)

        await self._sleep(self.settings.stop.restart_pause_seconds)
        try:
            status = await self.start(target_ports)
        except WorkerSupervisorError as exc:
            return RestartResult(stop=stop_result, status=self._status, error=exc)
        return RestartResult(stop=stop_result, status=status)

    def process_info(self) -> ProcessInfo:
        status = self._status
        uptime = None
        if status.start_time is not None and status.state in PID_STATES:
            uptime = (datetime.now().astimezone() - status.start_time).total_seconds()
        return ProcessInfo(
            status=STATUS_LABELS[status.state],
            pid=status.pid,
            port=status.port,
            running=status.is_running,
            error=str(status.last_error) if status.last_error else None,
            uptime_seconds=uptime,
        )

    def configuration_info(self) -> ConfigurationInfo:
        launch = self.settings.launch
        return ConfigurationInfo(
            api_port=self._ports.api_port if self._ports else None,
            management_port=self._ports.management_port if self._ports else None,
            development_mode=launch.development_mode,
            classpath=launch.classpath,
            main_class=launch.main_class,
            archive_path=str(launch.archive_path) if launch.archive_path else None,
            resources_dir=str(launch.resources_dir) if launch.resources_dir else None,
            runtime_path=self._runtime.path if self._runtime else None,
            runtime_version=self._runtime.version if self._runtime else None,
        )

    def output_tail(self, limit: Optional[int] = None) -> list[str]:
        return self._worker.output_tail(limit) if self._worker else []

    async def _watch_exit(self, worker: LaunchedWorker) -> None:
        exit_code = await worker.wait()
        if self._worker is not worker or self._status.state is not ProcessState.RUNNING:
            # stop() owns exits it requested.
            return

        self._worker = None
        if exit_code == 0:
            logger.info("Worker process %d exited cleanly", worker.pid)
            self._transition(ProcessState.STOPPED)
            self._publish(SupervisorEventKind.STOPPED)
            return

        crash = ProcessCrashedError.exited(worker.pid, exit_code, worker.output_tail())
        logger.error("%s (log: %s)", crash, worker.log_path)
        self._transition(ProcessState.ERROR, last_error=crash)
        self._publish(SupervisorEventKind.ERROR, error=crash)

    async def _wait_for_exit(self, worker: LaunchedWorker, timeout: float) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        interval = self.settings.stop.poll_interval_seconds
        while True:
            if not self._is_alive(worker):
                return True
            if loop.time() >= deadline:
                return False
            await self._sleep(interval)

    def _is_alive(self, worker: LaunchedWorker) -> bool:
        if worker.returncode is not None:
            return False
        return self.liveness(worker.pid)

    async def _drain(self, worker: LaunchedWorker) -> None:
        try:
            await asyncio.wait_for(worker.wait(), timeout=self.settings.stop.timeout_seconds)
        except asyncio.TimeoutError:  # policy_guard: allow-silent-handler
            logger.warning("Output of worker %d did not drain after exit", worker.pid)

    def _abandon(self, worker: LaunchedWorker) -> None:
        worker.release()
        if self._exit_watch is not None:
            self._exit_watch.cancel()
            self._exit_watch = None

    def _transition(self, state: ProcessState, **changes) -> None:
        previous = self._status.state
        if state not in PID_STATES:
            changes["pid"] = None
        self._status = dataclasses.replace(self._status, state=state, **changes)
        logger.debug("Worker state %s -> %s", previous.value, state.value)
        self._publish(SupervisorEventKind.STATUS_CHANGED)

    def _publish(self, kind: SupervisorEventKind, error: Optional[BaseException] = None) -> None:
        self._channel.publish(SupervisorEvent(kind=kind, status=self._status, error=error))


__all__ = ["ProcessSupervisor"]
