"""Tests for the worker lifecycle state machine."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from worker_supervisor.errors import (
    LaunchValidationError,
    ProcessCrashedError,
    RuntimeNotFoundError,
    SupervisorStateError,
    TerminationFailedError,
)
from worker_supervisor.port_allocator import PortAllocation
from worker_supervisor.process_supervisor import ProcessSupervisor
from worker_supervisor.process_supervisor_helpers import PID_STATES, ProcessState, SupervisorEventKind
from worker_supervisor.runtime_discovery_helpers import RuntimeCandidate, RuntimeOrigin
from worker_supervisor.settings import LaunchSettings, StopSettings, SupervisorSettings
from worker_supervisor.termination_strategy_helpers import TerminationMethod, TerminationResult

RUNTIME = RuntimeCandidate(
    path="/opt/jdk/bin/java", version="17.0.9", architecture="x86_64", origin=RuntimeOrigin.EMBEDDED, executable_valid=True
)
PORTS = PortAllocation(api_port=8081, management_port=8082)

GRACEFUL_OK = TerminationResult(success=True, method=TerminationMethod.GRACEFUL)
FORCED_OK = TerminationResult(success=True, method=TerminationMethod.FORCED)


@pytest.fixture
def settings(tmp_path) -> SupervisorSettings:
    archive = tmp_path / "worker.jar"
    archive.write_bytes(b"PK")
    return SupervisorSettings(
        launch=LaunchSettings(archive_path=archive, log_dir=tmp_path / "logs"),
        stop=StopSettings(timeout_seconds=0.05, poll_interval_seconds=0.01, restart_pause_seconds=0),
    )


@pytest.fixture
def discovery():
    fake = MagicMock()
    fake.require_runtime = AsyncMock(return_value=RUNTIME)
    return fake


@pytest.fixture
def termination(fake_launcher):
    """Graceful termination makes the most recent worker exit."""
    strategy = MagicMock()

    async def terminate(pid):
        fake_launcher.workers[-1].exit(143)
        return GRACEFUL_OK

    strategy.terminate = AsyncMock(side_effect=terminate)
    strategy.force_kill = AsyncMock(return_value=FORCED_OK)
    return strategy


@pytest.fixture
def supervisor(settings, discovery, fake_launcher, termination):
    return ProcessSupervisor(
        settings,
        discovery=discovery,
        launcher=fake_launcher,
        termination=termination,
        liveness=lambda pid: True,
    )


async def _next_event(subscription, kind):
    async for event in subscription:
        if event.kind is kind:
            return event
    raise AssertionError(f"channel closed before {kind}")


class TestStart:
    """Discovery, launch and the transition into running."""

    @pytest.mark.asyncio
    async def test_start_reaches_running_and_publishes_events(self, supervisor, fake_launcher, discovery):
        events = supervisor.subscribe()

        status = await supervisor.start(PORTS)

        assert status.state is ProcessState.RUNNING
        assert status.pid == fake_launcher.workers[0].pid
        assert status.port == 8081
        assert status.start_time is not None
        discovery.require_runtime.assert_awaited_once_with("11", "21")
        assert "--server.port=8081" in fake_launcher.specs[0].argv
        assert [(e.kind, e.status.state) for e in events.drain()] == [
            (SupervisorEventKind.STATUS_CHANGED, ProcessState.STARTING),
            (SupervisorEventKind.STATUS_CHANGED, ProcessState.RUNNING),
            (SupervisorEventKind.STARTED, ProcessState.RUNNING),
        ]
        assert supervisor.runtime == RUNTIME
        assert supervisor.ports == PORTS

    @pytest.mark.asyncio
    async def test_concurrent_starts_spawn_once(self, settings, discovery, termination, make_launcher):
        launcher = make_launcher(delay=0.02)
        supervisor = ProcessSupervisor(settings, discovery=discovery, launcher=launcher, termination=termination)

        first, second = await asyncio.gather(supervisor.start(PORTS), supervisor.start(PORTS))

        assert len(launcher.specs) == 1
        assert first == second
        assert first.state is ProcessState.RUNNING

    @pytest.mark.asyncio
    async def test_start_while_running_is_rejected(self, supervisor):
        await supervisor.start(PORTS)
        with pytest.raises(SupervisorStateError, match="running"):
            await supervisor.start(PORTS)

    @pytest.mark.asyncio
    async def test_discovery_failure_moves_to_error(self, supervisor, discovery, fake_launcher):
        discovery.require_runtime.side_effect = RuntimeNotFoundError.no_compatible_runtime("11", "21")
        events = supervisor.subscribe()

        with pytest.raises(RuntimeNotFoundError):
            await supervisor.start(PORTS)

        assert supervisor.status.state is ProcessState.ERROR
        assert isinstance(supervisor.status.last_error, RuntimeNotFoundError)
        assert supervisor.status.pid is None
        assert fake_launcher.specs == []
        kinds = [e.kind for e in events.drain()]
        assert kinds[-1] is SupervisorEventKind.ERROR

        # error is a startable state
        discovery.require_runtime.side_effect = None
        assert (await supervisor.start(PORTS)).state is ProcessState.RUNNING

    @pytest.mark.asyncio
    async def test_missing_archive_fails_before_discovery(self, settings, supervisor, discovery):
        Path(settings.launch.archive_path).unlink()

        with pytest.raises(LaunchValidationError):
            await supervisor.start(PORTS)

        discovery.require_runtime.assert_not_awaited()
        assert supervisor.status.state is ProcessState.ERROR


class TestStop:
    """Graceful, forced and failed termination."""

    @pytest.mark.asyncio
    async def test_stop_when_idle_is_a_silent_no_op(self, supervisor, termination):
        events = supervisor.subscribe()

        result = await supervisor.stop()

        assert result.clean
        assert not result.was_running
        assert events.drain() == []
        termination.terminate.assert_not_awaited()
        assert supervisor.status.state is ProcessState.IDLE

    @pytest.mark.asyncio
    async def test_graceful_stop(self, supervisor, fake_launcher, termination):
        await supervisor.start(PORTS)
        events = supervisor.subscribe()

        result = await supervisor.stop()

        assert result.clean
        assert result.was_running
        assert not result.forced
        termination.force_kill.assert_not_awaited()
        assert fake_launcher.workers[0].stop_requested
        assert fake_launcher.workers[0].stdin_closed
        assert supervisor.status.state is ProcessState.STOPPED
        assert supervisor.status.pid is None
        kinds = [(e.kind, e.status.state) for e in events.drain()]
        assert kinds == [
            (SupervisorEventKind.STATUS_CHANGED, ProcessState.STOPPING),
            (SupervisorEventKind.STATUS_CHANGED, ProcessState.STOPPED),
            (SupervisorEventKind.STOPPED, ProcessState.STOPPED),
        ]

    @pytest.mark.asyncio
    async def test_force_kill_after_timeout(self, supervisor, fake_launcher, termination):
        termination.terminate = AsyncMock(return_value=GRACEFUL_OK)

        async def force_kill(pid):
            fake_launcher.workers[-1].exit(-9)
            return FORCED_OK

        termination.force_kill = AsyncMock(side_effect=force_kill)
        await supervisor.start(PORTS)

        result = await supervisor.stop()

        assert result.clean
        assert result.forced
        assert [attempt.method for attempt in result.attempts] == [TerminationMethod.GRACEFUL, TerminationMethod.FORCED]
        termination.force_kill.assert_awaited_once_with(fake_launcher.workers[0].pid)

    @pytest.mark.asyncio
    async def test_unkillable_process_forces_once_and_still_marks_stopped(self, supervisor, fake_launcher, termination):
        termination.terminate = AsyncMock(return_value=GRACEFUL_OK)
        termination.force_kill = AsyncMock(return_value=FORCED_OK)
        await supervisor.start(PORTS)

        result = await supervisor.stop()

        termination.terminate.assert_awaited_once()
        termination.force_kill.assert_awaited_once()
        assert not result.exited
        assert isinstance(result.error, TerminationFailedError)
        assert supervisor.status.state is ProcessState.STOPPED
        assert supervisor.status.pid is None
        assert fake_launcher.workers[0].released

        # The orphan's eventual exit no longer reaches the supervisor.
        events = supervisor.subscribe()
        fake_launcher.workers[0].exit(0)
        await asyncio.sleep(0)
        assert events.drain() == []
        assert supervisor.status.state is ProcessState.STOPPED

    @pytest.mark.asyncio
    async def test_concurrent_stops_share_one_termination(self, supervisor, termination):
        await supervisor.start(PORTS)

        first, second = await asyncio.gather(supervisor.stop(), supervisor.stop())

        assert first == second
        termination.terminate.assert_awaited_once()


class TestAbandonedCalls:
    """Callers time out on their own; there is no cancellation of the underlying operation."""

    @pytest.mark.asyncio
    async def test_timed_out_start_still_completes_in_background(self, settings, discovery, termination, make_launcher):
        launcher = make_launcher(delay=0.05)
        supervisor = ProcessSupervisor(settings, discovery=discovery, launcher=launcher, termination=termination)
        events = supervisor.subscribe()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(supervisor.start(PORTS), timeout=0.001)

        assert supervisor.status.state is ProcessState.STARTING
        started = await asyncio.wait_for(_next_event(events, SupervisorEventKind.STARTED), timeout=5)

        assert started.status.state is ProcessState.RUNNING
        assert supervisor.status.state is ProcessState.RUNNING
        assert len(launcher.specs) == 1
        assert supervisor.status.pid == launcher.workers[0].pid

    @pytest.mark.asyncio
    async def test_timed_out_stop_still_completes_in_background(self, supervisor, fake_launcher, termination):
        await supervisor.start(PORTS)
        worker = fake_launcher.workers[0]

        async def terminate(pid):
            asyncio.get_running_loop().call_later(0.02, worker.exit, 143)
            return GRACEFUL_OK

        termination.terminate = AsyncMock(side_effect=terminate)
        events = supervisor.subscribe()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(supervisor.stop(), timeout=0.001)

        stopped = await asyncio.wait_for(_next_event(events, SupervisorEventKind.STOPPED), timeout=5)

        assert stopped.error is None
        assert supervisor.status.state is ProcessState.STOPPED
        termination.terminate.assert_awaited_once_with(worker.pid)
        termination.force_kill.assert_not_awaited()


class TestRestart:
    @pytest.mark.asyncio
    async def test_restart_launches_fresh_worker(self, supervisor, fake_launcher):
        await supervisor.start(PORTS)

        result = await supervisor.restart()

        assert result.succeeded
        assert len(fake_launcher.workers) == 2
        assert supervisor.status.pid == fake_launcher.workers[1].pid

    @pytest.mark.asyncio
    async def test_restart_blocked_when_stop_fails(self, supervisor, fake_launcher, termination):
        termination.terminate = AsyncMock(return_value=GRACEFUL_OK)
        await supervisor.start(PORTS)

        result = await supervisor.restart()

        assert not result.succeeded
        assert isinstance(result.error, SupervisorStateError)
        assert len(fake_launcher.specs) == 1
        fake_launcher.workers[0].exit(0)

    @pytest.mark.asyncio
    async def test_restart_without_previous_ports(self, supervisor):
        with pytest.raises(SupervisorStateError):
            await supervisor.restart()


class TestExitWatch:
    """Exits that were not requested."""

    @pytest.mark.asyncio
    async def test_crash_publishes_error_with_output_tail(self, supervisor, fake_launcher):
        await supervisor.start(PORTS)
        events = supervisor.subscribe()
        worker = fake_launcher.workers[0]
        worker._output = ["[stderr] Exception in thread main"]

        worker.exit(1)
        event = await asyncio.wait_for(_next_event(events, SupervisorEventKind.ERROR), timeout=1)

        assert isinstance(event.error, ProcessCrashedError)
        assert event.error.exit_code == 1
        assert event.error.output_tail == ("[stderr] Exception in thread main",)
        assert supervisor.status.state is ProcessState.ERROR
        assert supervisor.status.pid is None

    @pytest.mark.asyncio
    async def test_clean_exit_moves_to_stopped(self, supervisor, fake_launcher):
        await supervisor.start(PORTS)
        events = supervisor.subscribe()

        fake_launcher.workers[0].exit(0)
        event = await asyncio.wait_for(_next_event(events, SupervisorEventKind.STOPPED), timeout=1)

        assert event.error is None
        assert supervisor.status.state is ProcessState.STOPPED

    @pytest.mark.asyncio
    async def test_requested_stop_is_not_reported_as_crash(self, supervisor):
        await supervisor.start(PORTS)
        events = supervisor.subscribe()

        await supervisor.stop()
        await asyncio.sleep(0)

        assert SupervisorEventKind.ERROR not in [e.kind for e in events.drain()]


@pytest.mark.asyncio
async def test_pid_only_present_while_running_or_stopping(supervisor):
    events = supervisor.subscribe()
    await supervisor.start(PORTS)
    await supervisor.stop()

    for event in events.drain():
        if event.status.state in PID_STATES:
            assert event.status.pid is not None
        else:
            assert event.status.pid is None


@pytest.mark.asyncio
async def test_info_snapshots(supervisor, settings):
    await supervisor.start(PORTS)

    info = supervisor.process_info()
    config = supervisor.configuration_info()

    assert info.status == "Running"
    assert info.running
    assert info.uptime_seconds >= 0
    assert config.api_port == 8081
    assert config.management_port == 8082
    assert config.archive_path == str(settings.launch.archive_path)
    assert config.runtime_version == "17.0.9"
