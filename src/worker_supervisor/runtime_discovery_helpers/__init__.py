"""Helpers for locating and validating runtime installations."""

from .candidate_sources import CandidateSources, platform_family
from .recommendations import installation_recommendations
from .tree_walker import BoundedTreeWalker
from .types import ProbeResult, RuntimeCandidate, RuntimeInventory, RuntimeOrigin
from .version_probe import RuntimeProbe
from .version_utils import compare_versions, is_compatible, normalize_version

__all__ = [
    "BoundedTreeWalker",
    "CandidateSources",
    "ProbeResult",
    "RuntimeCandidate",
    "RuntimeInventory",
    "RuntimeOrigin",
    "RuntimeProbe",
    "compare_versions",
    "installation_recommendations",
    "is_compatible",
    "normalize_version",
    "platform_family",
]
