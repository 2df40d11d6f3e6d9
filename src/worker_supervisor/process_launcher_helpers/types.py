"""Launch descriptions and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class LaunchMode(Enum):
    """How the worker's code is handed to the runtime."""

    CLASSPATH = "classpath"
    EXECUTABLE_ARCHIVE = "executableArchive"


class OutputStream(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class LaunchSpec:
    """Everything needed to spawn one worker process. Built fresh per launch."""

    executable_path: str
    argv: tuple[str, ...]
    working_dir: Optional[str]
    env: dict[str, str] = field(default_factory=dict)
    mode: LaunchMode = LaunchMode.EXECUTABLE_ARCHIVE
    development_mode: bool = False

    @property
    def command(self) -> list[str]:
        return [self.executable_path, *self.argv]


@dataclass(frozen=True)
class LaunchResult:
    """Identity of a freshly spawned worker."""

    pid: int
    start_time: datetime
