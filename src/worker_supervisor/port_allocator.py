from __future__ import annotations

"""Loopback port allocation for the worker's HTTP listeners."""

import contextlib
import logging
import socket
from dataclasses import dataclass
from typing import Callable

from .errors import PortRangeExhaustedError, PortUnavailableError
from .settings import DEFAULT_BIND_HOST, PortSettings

logger = logging.getLogger(__name__)

MANAGEMENT_PORT_OFFSET = 1


@dataclass(frozen=True)
class PortAllocation:
    """Ports handed to one worker launch; fixed for that process's lifetime."""

    api_port: int
    management_port: int


def bind_probe(host: str, port: int) -> None:
    """Bind and immediately release a throwaway listener on ``host:port``.

    Raises:
        PortUnavailableError: If the bind fails
    """
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as sock:
        try:
            sock.bind((host, port))
        except OSError as exc:
            raise PortUnavailableError.bind_failed(host, port, exc.strerror or str(exc)) from exc


class PortAllocator:
    """Scans a port window for the first port that can be bound on loopback."""

    def __init__(self, host: str = DEFAULT_BIND_HOST, probe: Callable[[str, int], None] = bind_probe) -> None:
        self.host = host
        self.probe = probe

    def is_port_free(self, port: int) -> bool:
        try:
            self.probe(self.host, port)
        except PortUnavailableError as exc:
            logger.debug("%s", exc)
            return False
        return True

    def find_available_port(self, start: int, end: int) -> int:
        """
        Return the first bindable port in ``[start, end]``.

        Raises:
            PortRangeExhaustedError: If every port in the window is taken
        """
        for port in range(start, end + 1):
            if self.is_port_free(port):
                logger.info("Allocated port %d from range %d-%d", port, start, end)
                return port
        raise PortRangeExhaustedError.for_range(start, end)

    def allocate(self, start: int, end: int) -> PortAllocation:
        """
        Allocate the API port and derive the management port from it.

        Known limitation: the management port is ``api_port + 1`` and is not
        checked, so it can collide with an unrelated listener. The worker then
        fails to bind it and the failure surfaces as a crash or health timeout.
        """
        api_port = self.find_available_port(start, end)
        return PortAllocation(api_port=api_port, management_port=api_port + MANAGEMENT_PORT_OFFSET)

    def allocate_from_settings(self, settings: PortSettings) -> PortAllocation:
        return self.allocate(settings.range_start, settings.range_end)


__all__ = ["PortAllocation", "PortAllocator", "bind_probe"]
