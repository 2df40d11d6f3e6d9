"""Version string parsing and comparison for runtime candidates."""

from __future__ import annotations

import re
from typing import Optional

_LEADING_VERSION = re.compile(r"[\d.]+")
_VERSION_LINE = re.compile(r'version "(.+?)"')
_ARCH_LINE = re.compile(r"os\.arch\s*=\s*(.+)")


def normalize_version(version: str) -> str:
    """Return the leading run of digits and dots (``"17.0.2+8"`` -> ``"17.0.2"``)."""
    match = _LEADING_VERSION.match(version.strip())
    if not match:
        return ""
    return match.group(0).strip(".")


def version_tuple(version: str) -> tuple[int, ...]:
    """Convert a version string into a tuple of integers; blank segments count as 0."""
    normalized = normalize_version(version)
    if not normalized:
        return (0,)
    return tuple(int(part) if part else 0 for part in normalized.split("."))


def compare_versions(left: str, right: str) -> int:
    """Compare two versions element-wise after zero-padding to equal length.

    Returns:
        Negative if ``left < right``, zero if equal, positive if ``left > right``
    """
    left_parts = version_tuple(left)
    right_parts = version_tuple(right)
    width = max(len(left_parts), len(right_parts))
    left_padded = left_parts + (0,) * (width - len(left_parts))
    right_padded = right_parts + (0,) * (width - len(right_parts))
    if left_padded < right_padded:
        return -1
    if left_padded > right_padded:
        return 1
    return 0


def is_compatible(version: str, min_version: str, max_version: str) -> bool:
    """Return ``True`` iff ``min_version <= version <= max_version``."""
    if not normalize_version(version):
        return False
    return compare_versions(version, min_version) >= 0 and compare_versions(version, max_version) <= 0


def extract_version(probe_output: str) -> Optional[str]:
    """Pull the quoted version out of ``-version`` output."""
    match = _VERSION_LINE.search(probe_output)
    return match.group(1) if match else None


def extract_architecture(properties_output: str) -> Optional[str]:
    """Pull ``os.arch`` out of ``-XshowSettings:properties`` output."""
    match = _ARCH_LINE.search(properties_output)
    return match.group(1).strip() if match else None
