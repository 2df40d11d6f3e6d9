"""Bounded in-memory capture of worker output."""

from __future__ import annotations

from collections import deque
from typing import Optional

from .types import OutputStream


class OutputRingBuffer:
    """Keeps the last *capacity* output lines as ``[stream] text`` entries."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("Ring buffer capacity must be at least 1")
        self._lines: deque[str] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._lines.maxlen or 0

    def append(self, stream: OutputStream, text: str) -> None:
        self._lines.append(f"[{stream.value}] {text}")

    def lines(self, limit: Optional[int] = None) -> list[str]:
        """Return buffered lines oldest first, optionally only the last *limit*."""
        snapshot = list(self._lines)
        if limit is None:
            return snapshot
        return snapshot[-limit:] if limit > 0 else []

    def __len__(self) -> int:
        return len(self._lines)
