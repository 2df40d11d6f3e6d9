"""Types describing discovered runtime installations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RuntimeOrigin(Enum):
    """Where a runtime candidate was found, in search-priority order."""

    EMBEDDED = "embedded"
    PATH_ENV = "pathEnv"
    DISCOVERED_TREE = "discoveredTree"


@dataclass(frozen=True)
class ProbeResult:
    """Raw facts reported by a runtime executable."""

    version: str
    architecture: Optional[str] = None


@dataclass(frozen=True)
class RuntimeCandidate:
    """A runtime executable that answered the version probe."""

    path: str
    version: str
    architecture: Optional[str]
    origin: RuntimeOrigin
    executable_valid: bool

    @property
    def dedupe_key(self) -> tuple[str, str]:
        return (self.path, self.version)


@dataclass(frozen=True)
class RuntimeInventory:
    """Every runtime found across all origins plus the recommended choice."""

    candidates: tuple[RuntimeCandidate, ...] = ()
    compatible: tuple[RuntimeCandidate, ...] = ()
    recommended: Optional[RuntimeCandidate] = None
    min_version: str = ""
    max_version: str = ""
    notes: tuple[str, ...] = field(default_factory=tuple)
