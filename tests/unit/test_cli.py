"""Tests for the command-line host."""

import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from worker_supervisor import cli
from worker_supervisor.bootstrap_orchestrator_helpers import BootstrapDiagnostic
from worker_supervisor.bootstrap_orchestrator_helpers.error_reporter import EXIT_CONFIGURATION
from worker_supervisor.event_channel import EventChannel
from worker_supervisor.runtime_discovery_helpers import RuntimeCandidate, RuntimeInventory, RuntimeOrigin


@pytest.fixture
def no_launch_env(monkeypatch):
    for name in ("WORKER_ARCHIVE_PATH", "WORKER_CLASSPATH", "WORKER_MAIN_CLASS"):
        monkeypatch.delenv(name, raising=False)


def test_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("WORKER_ARCHIVE_PATH", "env.jar")
    args = cli.build_parser().parse_args(["--archive", "cli.jar", "--port-start", "9000", "--port-end", "9005", "--dev"])

    settings = cli.settings_from_args(args)

    assert settings.launch.archive_path == Path("cli.jar")
    assert settings.launch.development_mode
    assert (settings.ports.range_start, settings.ports.range_end) == (9000, 9005)


def test_classpath_argument_replaces_environment_archive(monkeypatch):
    monkeypatch.setenv("WORKER_ARCHIVE_PATH", "env.jar")
    args = cli.build_parser().parse_args(
        ["--classpath", os.pathsep.join(["lib/*", "classes"]), "--main-class", "com.example.Main"]
    )

    settings = cli.settings_from_args(args)

    assert settings.launch.archive_path is None
    assert settings.launch.classpath == ("lib/*", "classes")
    assert settings.launch.main_class == "com.example.Main"


def test_missing_launch_target_exits_with_configuration_code(no_launch_env, capsys):
    assert cli.main([]) == EXIT_CONFIGURATION
    assert "WORKER_ARCHIVE_PATH" in capsys.readouterr().err


def test_list_runtimes_needs_no_launch_target(no_launch_env, monkeypatch):
    calls = {}

    def fake_run(factory, **kwargs):
        calls.update(kwargs)
        return 0

    monkeypatch.setattr(cli, "run_async_service", fake_run)

    assert cli.main(["--list-runtimes", "--log-level", "DEBUG"]) == 0
    assert calls["service_name"] == "worker_supervisor"
    assert calls["log_level"] == 10


@pytest.mark.asyncio
async def test_list_runtimes_prints_inventory(monkeypatch, capsys):
    candidate = RuntimeCandidate(
        path="/usr/lib/jvm/jdk-17/bin/java", version="17.0.9", architecture="x86_64", origin=RuntimeOrigin.PATH_ENV, executable_valid=True
    )
    discovery = MagicMock()
    discovery.find_all_runtimes = AsyncMock(
        return_value=RuntimeInventory(candidates=(candidate,), compatible=(candidate,), recommended=candidate)
    )
    monkeypatch.setattr(cli.RuntimeDiscovery, "from_settings", classmethod(lambda cls, *a, **kw: discovery))
    args = cli.build_parser().parse_args(["--list-runtimes"])

    exit_code = await cli.list_runtimes(cli.settings_from_args(args, validate=False))

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "* 17.0.9" in out
    assert "/usr/lib/jvm/jdk-17/bin/java" in out


@pytest.mark.asyncio
async def test_supervise_returns_diagnostic_exit_code_on_failure(monkeypatch):
    diagnostic = BootstrapDiagnostic(title="No free port", message="busy", exit_code=4)
    orchestrator = MagicMock()
    orchestrator.subscribe.return_value = EventChannel("test").subscribe()
    orchestrator.supervisor.subscribe.return_value = EventChannel("test").subscribe()
    orchestrator.run = AsyncMock(return_value=False)
    orchestrator.shutdown = AsyncMock()
    orchestrator.diagnostic = diagnostic
    monkeypatch.setattr(cli, "BootstrapOrchestrator", lambda settings, **kwargs: orchestrator)

    args = cli.build_parser().parse_args(["--archive", "worker.jar"])
    assert await cli.supervise(cli.settings_from_args(args)) == 4
    orchestrator.shutdown.assert_awaited_once()


def test_diagnostic_printed_to_stderr(capsys):
    cli._print_diagnostic(BootstrapDiagnostic(title="Java runtime not found", message="none", remediation=("Install it",)))
    err = capsys.readouterr().err
    assert err.startswith("Java runtime not found")
    assert "  - Install it" in err
