"""Process liveness probing."""

from __future__ import annotations

import psutil


def is_process_alive(pid: int) -> bool:
    """Return ``True`` while *pid* exists and has not become a zombie."""
    if pid <= 0:
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:  # policy_guard: allow-silent-handler
        return False
    except psutil.AccessDenied:  # policy_guard: allow-silent-handler
        # The process exists but belongs to someone else.
        return True
