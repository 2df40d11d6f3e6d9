"""Command-line host: bootstrap the worker, keep it running, shut it down on a signal."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .bootstrap_orchestrator import BootstrapOrchestrator
from .bootstrap_orchestrator_helpers import BootstrapDiagnostic, BootstrapErrorReporter, BootstrapEvent
from .bootstrap_orchestrator_helpers.error_reporter import EXIT_CONFIGURATION, EXIT_CRASHED
from .config import ConfigurationError
from .event_channel import Subscription
from .process_supervisor_helpers import SupervisorEvent, SupervisorEventKind
from .runtime_discovery import RuntimeDiscovery
from .service_runner import install_shutdown_handlers, remove_shutdown_handlers, run_async_service
from .settings import SupervisorSettings, load_settings

SERVICE_NAME = "worker_supervisor"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="worker-supervisor", description="Launch and supervise the backend worker process.")
    target = parser.add_argument_group("launch target")
    target.add_argument("--archive", type=Path, help="Executable archive to run with -jar")
    target.add_argument("--classpath", help=f"Classpath entries separated by {os.pathsep!r}")
    target.add_argument("--main-class", help="Entry point class for classpath mode")
    target.add_argument("--resources-dir", type=Path, help="Application resources (embedded runtime, working dir)")
    parser.add_argument("--port-start", type=int, help="First port of the allocation window")
    parser.add_argument("--port-end", type=int, help="Last port of the allocation window")
    parser.add_argument("--dev", action="store_true", help="Launch the worker in development mode")
    parser.add_argument("--list-runtimes", action="store_true", help="List discovered runtimes and exit")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Console log level")
    return parser


def settings_from_args(
    args: argparse.Namespace, base: Optional[SupervisorSettings] = None, *, validate: bool = True
) -> SupervisorSettings:
    """Overlay command-line options on environment settings, validating unless told otherwise."""
    # Command-line options may supply what the environment lacks, so validate after merging.
    settings = base or load_settings(validate=False)

    launch_changes: dict = {}
    if args.archive is not None:
        launch_changes["archive_path"] = args.archive
    if args.classpath:
        launch_changes["classpath"] = tuple(entry for entry in args.classpath.split(os.pathsep) if entry)
        if args.archive is None:
            launch_changes["archive_path"] = None
    if args.main_class:
        launch_changes["main_class"] = args.main_class
    if args.resources_dir is not None:
        launch_changes["resources_dir"] = args.resources_dir
    if args.dev:
        launch_changes["development_mode"] = True

    port_changes: dict = {}
    if args.port_start is not None:
        port_changes["range_start"] = args.port_start
    if args.port_end is not None:
        port_changes["range_end"] = args.port_end

    merged = dataclasses.replace(
        settings,
        launch=dataclasses.replace(settings.launch, **launch_changes),
        ports=dataclasses.replace(settings.ports, **port_changes),
    )
    return merged.validate() if validate else merged


def _print_diagnostic(diagnostic: BootstrapDiagnostic) -> None:
    sys.stderr.write(diagnostic.render() + "\n")


async def _print_bootstrap_events(events: Subscription[BootstrapEvent]) -> None:
    async for event in events:
        suffix = f" - {event.message}" if event.message else ""
        print(f"[bootstrap] {event.state.value}{suffix}")


async def _wait_for_worker_exit(events: Subscription[SupervisorEvent]) -> SupervisorEvent:
    async for event in events:
        if event.kind in (SupervisorEventKind.ERROR, SupervisorEventKind.STOPPED):
            return event
    raise ConnectionAbortedError("Supervisor event stream closed")


async def list_runtimes(settings: SupervisorSettings) -> int:
    discovery = RuntimeDiscovery.from_settings(settings.runtime, settings.launch.resources_dir)
    inventory = await discovery.find_all_runtimes(settings.runtime.min_version, settings.runtime.max_version)
    for candidate in inventory.candidates:
        marker = "*" if candidate == inventory.recommended else " "
        print(f"{marker} {candidate.version:<12} {candidate.origin.value:<15} {candidate.architecture or '?':<8} {candidate.path}")
    for note in inventory.notes:
        print(note)
    return 0 if inventory.recommended is not None else 1


async def supervise(settings: SupervisorSettings) -> int:
    """Bootstrap the worker and keep it alive until a shutdown signal or a worker exit."""
    reporter = BootstrapErrorReporter(settings, fatal_handler=_print_diagnostic)
    orchestrator = BootstrapOrchestrator(settings, error_reporter=reporter)
    bootstrap_events = orchestrator.subscribe()
    printer = asyncio.create_task(_print_bootstrap_events(bootstrap_events))
    worker_events = orchestrator.supervisor.subscribe()

    stop_event = asyncio.Event()
    hooked = install_shutdown_handlers(stop_event, logger)
    try:
        if not await orchestrator.run():
            await orchestrator.shutdown()
            return orchestrator.diagnostic.exit_code if orchestrator.diagnostic else 1

        print(f"Worker ready on {orchestrator.client.base_url} (Ctrl+C to stop)")
        stop_waiter = asyncio.create_task(stop_event.wait())
        exit_waiter = asyncio.create_task(_wait_for_worker_exit(worker_events))
        done, pending = await asyncio.wait({stop_waiter, exit_waiter}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()

        exit_code = 0
        if exit_waiter in done and not exit_waiter.cancelled():
            event = exit_waiter.result()
            if event.kind is SupervisorEventKind.ERROR:
                sys.stderr.write(f"{event.error}\n")
                exit_code = EXIT_CRASHED

        result = await orchestrator.shutdown()
        if result.error is not None:
            sys.stderr.write(f"{result.error}\n")
        return exit_code
    finally:
        remove_shutdown_handlers(hooked)
        worker_events.close()
        bootstrap_events.close()
        await printer


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        # Listing runtimes needs no launch target.
        settings = settings_from_args(args, validate=not args.list_runtimes)
    except ConfigurationError as exc:
        sys.stderr.write(f"Configuration error: {exc}\n")
        return EXIT_CONFIGURATION

    level = getattr(logging, args.log_level)
    if args.list_runtimes:
        return run_async_service(lambda: list_runtimes(settings), service_name=SERVICE_NAME, log_level=level)
    return run_async_service(lambda: supervise(settings), service_name=SERVICE_NAME, log_level=level)


__all__ = ["build_parser", "list_runtimes", "main", "settings_from_args", "supervise"]
