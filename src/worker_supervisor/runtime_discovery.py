"""
Runtime discovery for the worker process.

Candidates are searched in priority order, first compatible match wins:

1. the runtime bundled with the application (``embedded``)
2. the runtime reachable through ``PATH`` / ``JAVA_HOME`` (``pathEnv``)
3. a depth-limited walk of platform installation roots (``discoveredTree``)

Every candidate is validated by running it with ``-version``. Broken or
incompatible candidates are skipped; discovery itself never raises for a
single bad candidate.
"""

from __future__ import annotations

import logging
import os
import sys
from functools import cmp_to_key
from pathlib import Path
from typing import Iterator, Mapping, Optional

from .errors import RuntimeNotFoundError, VersionIncompatibleError
from .runtime_discovery_helpers import (
    BoundedTreeWalker,
    CandidateSources,
    RuntimeCandidate,
    RuntimeInventory,
    RuntimeOrigin,
    RuntimeProbe,
    compare_versions,
    is_compatible,
)
from .settings import DEFAULT_RUNTIME_SEARCH_DEPTH, RuntimeSettings

logger = logging.getLogger(__name__)

_VERSION_KEY = cmp_to_key(compare_versions)


class RuntimeDiscovery:
    """Finds and validates runtime installations capable of hosting the worker."""

    def __init__(
        self,
        *,
        resources_dir: Optional[Path] = None,
        platform: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        probe: Optional[RuntimeProbe] = None,
        search_depth: int = DEFAULT_RUNTIME_SEARCH_DEPTH,
    ) -> None:
        self.resources_dir = resources_dir
        self.platform = platform or sys.platform
        self.sources = CandidateSources(self.platform, os.environ if environ is None else environ)
        self.probe = probe or RuntimeProbe()
        self.walker = BoundedTreeWalker(search_depth, self.sources.executable_for_home)

    @classmethod
    def from_settings(cls, settings: RuntimeSettings, resources_dir: Optional[Path] = None) -> "RuntimeDiscovery":
        return cls(
            resources_dir=resources_dir,
            probe=RuntimeProbe(settings.probe_timeout_seconds),
            search_depth=settings.search_depth,
        )

    async def find_best_runtime(self, min_version: str, max_version: str) -> Optional[RuntimeCandidate]:
        """
        Return the first compatible runtime in priority order.

        Returns:
            The winning candidate, or ``None`` when nothing compatible exists
        """
        winner, _ = await self._search(min_version, max_version)
        return winner

    async def require_runtime(self, min_version: str, max_version: str) -> RuntimeCandidate:
        """
        Like :meth:`find_best_runtime` but raise when nothing is usable.

        Raises:
            VersionIncompatibleError: Runtimes exist but none is in range
            RuntimeNotFoundError: No runtime answered the version probe at all
        """
        winner, rejected = await self._search(min_version, max_version)
        if winner is not None:
            return winner
        if rejected:
            newest = max(rejected, key=_version_sort_key)
            raise VersionIncompatibleError.out_of_range(newest.path, newest.version, min_version, max_version)
        raise RuntimeNotFoundError.no_compatible_runtime(min_version, max_version)

    async def _search(self, min_version: str, max_version: str) -> tuple[Optional[RuntimeCandidate], list[RuntimeCandidate]]:
        rejected: list[RuntimeCandidate] = []
        async for candidate in self._iter_candidates():
            if is_compatible(candidate.version, min_version, max_version):
                logger.info(
                    "Selected %s runtime %s (version %s, arch %s)",
                    candidate.origin.value,
                    candidate.path,
                    candidate.version,
                    candidate.architecture or "unknown",
                )
                return candidate, rejected
            logger.info("Skipping runtime %s: version %s outside %s-%s", candidate.path, candidate.version, min_version, max_version)
            rejected.append(candidate)
        return None, rejected

    async def find_all_runtimes(self, min_version: str, max_version: str) -> RuntimeInventory:
        """
        Collect every runtime from every origin.

        The recommended runtime is the embedded one when it is compatible,
        otherwise the newest compatible runtime found elsewhere.
        """
        candidates = [candidate async for candidate in self._iter_candidates()]
        compatible = [c for c in candidates if is_compatible(c.version, min_version, max_version)]

        recommended: Optional[RuntimeCandidate] = None
        embedded = [c for c in compatible if c.origin is RuntimeOrigin.EMBEDDED]
        if embedded:
            recommended = embedded[0]
        elif compatible:
            recommended = max(compatible, key=_version_sort_key)

        notes = []
        if not candidates:
            notes.append("No runtime installations were found")
        elif not compatible:
            notes.append(f"Found {len(candidates)} runtime(s), none within {min_version}-{max_version}")

        return RuntimeInventory(
            candidates=tuple(candidates),
            compatible=tuple(compatible),
            recommended=recommended,
            min_version=min_version,
            max_version=max_version,
            notes=tuple(notes),
        )

    async def validate_candidate(self, executable: Path, origin: RuntimeOrigin) -> Optional[RuntimeCandidate]:
        """Probe one executable; ``None`` when it is missing or does not answer."""
        if not executable.is_file():
            return None
        result = await self.probe.probe(str(executable))
        if result is None:
            return None
        return RuntimeCandidate(
            path=str(executable),
            version=result.version,
            architecture=result.architecture,
            origin=origin,
            executable_valid=os.access(executable, os.X_OK),
        )

    def _stages(self) -> Iterator[tuple[RuntimeOrigin, list[Path]]]:
        yield RuntimeOrigin.EMBEDDED, self.sources.embedded_executables(self.resources_dir)
        yield RuntimeOrigin.PATH_ENV, self.sources.path_executables()
        # The tree walk only runs if the earlier stages were exhausted.
        yield RuntimeOrigin.DISCOVERED_TREE, self.walker.find_executables(self.sources.installation_roots())

    async def _iter_candidates(self):
        probed_paths: set[str] = set()
        seen: set[tuple[str, str]] = set()

        for origin, executables in self._stages():
            for executable in executables:
                real_path = os.path.realpath(executable)
                if real_path in probed_paths:
                    continue
                probed_paths.add(real_path)

                candidate = await self.validate_candidate(Path(real_path), origin)
                if candidate is None or candidate.dedupe_key in seen:
                    continue
                seen.add(candidate.dedupe_key)
                yield candidate


def _version_sort_key(candidate: RuntimeCandidate):
    return _VERSION_KEY(candidate.version)


__all__ = ["RuntimeDiscovery"]
