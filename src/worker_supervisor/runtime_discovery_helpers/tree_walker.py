"""Depth-limited walk of installation roots looking for runtime homes."""

from __future__ import annotations

import logging
import os
from collections import deque
from pathlib import Path
from typing import Callable, Iterable

logger = logging.getLogger(__name__)


class BoundedTreeWalker:
    """Breadth-first directory walk bounded by depth and a visited set.

    Symlinked directories are followed, but each real directory is expanded at
    most once, so link cycles cannot extend the walk.
    """

    def __init__(self, max_depth: int, executable_for_home: Callable[[Path], Path]) -> None:
        self.max_depth = max_depth
        self.executable_for_home = executable_for_home

    def find_executables(self, roots: Iterable[Path]) -> list[Path]:
        """Return runtime executables found under *roots*, in walk order."""
        visited: set[str] = set()
        found: list[Path] = []
        queue: deque[tuple[Path, int]] = deque((root, 0) for root in roots)

        while queue:
            directory, depth = queue.popleft()
            if not directory.is_dir():
                continue
            real = os.path.realpath(directory)
            if real in visited:
                continue
            visited.add(real)

            executable = self.executable_for_home(directory)
            if executable.is_file():
                found.append(executable)
                continue

            if depth >= self.max_depth:
                continue
            for child in self._child_directories(directory):
                queue.append((child, depth + 1))

        return found

    @staticmethod
    def _child_directories(directory: Path) -> list[Path]:
        try:
            return sorted(entry for entry in directory.iterdir() if entry.is_dir())
        except OSError as exc:  # Unreadable directories are skipped  # policy_guard: allow-silent-handler
            logger.debug("Skipping unreadable directory %s: %s", directory, exc)
            return []
