from __future__ import annotations

"""Utilities for running the async supervisor host with consistent shutdown handling."""

import asyncio
import logging
import signal
from typing import Any, Callable, Coroutine, Optional

from .logging_config import setup_logging

ServiceFactory = Callable[[], Coroutine[Any, Any, int]]

SHUTDOWN_SIGNALS = tuple(sig for sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)) if sig is not None)


def install_shutdown_handlers(stop_event: asyncio.Event, logger: logging.Logger) -> list[int]:
    """Set *stop_event* on SIGINT/SIGTERM. Returns the signals actually hooked."""

    loop = asyncio.get_running_loop()
    installed: list[int] = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, _request_stop, stop_event, logger, sig)
        except (NotImplementedError, RuntimeError):  # Windows event loops  # policy_guard: allow-silent-handler
            logger.debug("Signal handler for %s not supported on this loop", signal.Signals(sig).name)
            continue
        installed.append(sig)
    return installed


def remove_shutdown_handlers(signals: list[int]) -> None:
    loop = asyncio.get_running_loop()
    for sig in signals:
        loop.remove_signal_handler(sig)


def _request_stop(stop_event: asyncio.Event, logger: logging.Logger, sig: int) -> None:
    logger.info("Received %s; shutting down", signal.Signals(sig).name)
    stop_event.set()


def run_async_service(
    factory: ServiceFactory,
    *,
    service_name: str,
    logger_name: Optional[str] = None,
    configure_logging: bool = True,
    log_level: int = logging.INFO,
    shutdown_message: Optional[str] = None,
) -> int:
    """Run an async service and translate Ctrl+C into a friendly shutdown.

    Args:
        factory: Callable returning the coroutine to execute; its result is the exit code.
        service_name: Identifier used for logging configuration.
        logger_name: Optional logger name override.
        configure_logging: Whether to configure logging via ``setup_logging``.
        log_level: Console log level passed to ``setup_logging``.
        shutdown_message: Optional custom message when interrupted.

    Returns:
        Process exit code
    """

    if configure_logging:
        setup_logging(service_name, level=log_level)

    logger = logging.getLogger(logger_name or f"worker_supervisor.{service_name}")
    try:
        return asyncio.run(factory())
    except KeyboardInterrupt:  # Expected exception in operation  # policy_guard: allow-silent-handler
        if shutdown_message:
            logger.info(shutdown_message)
        else:
            logger.info("%s interrupted by user", service_name)
        return 130
