"""Discover a compatible runtime, launch the backend worker on free ports and keep it healthy."""

from .bootstrap_orchestrator import BootstrapOrchestrator
from .errors import WorkerSupervisorError
from .health_check_client import HealthCheckClient
from .port_allocator import PortAllocation, PortAllocator
from .process_supervisor import ProcessSupervisor
from .runtime_discovery import RuntimeDiscovery
from .settings import SupervisorSettings, load_settings

__all__ = [
    "BootstrapOrchestrator",
    "HealthCheckClient",
    "PortAllocation",
    "PortAllocator",
    "ProcessSupervisor",
    "RuntimeDiscovery",
    "SupervisorSettings",
    "WorkerSupervisorError",
    "load_settings",
]
