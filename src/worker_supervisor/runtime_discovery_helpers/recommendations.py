"""Remediation text for hosts without a usable runtime."""

from __future__ import annotations

from .candidate_sources import platform_family

RECOMMENDED_RUNTIME_VERSION = "17"


def installation_recommendations(platform: str, min_version: str, max_version: str) -> list[str]:
    """Return human-readable steps for installing a compatible runtime on *platform*."""
    lines = [
        f"Install a Java runtime between versions {min_version} and {max_version} "
        f"(Java {RECOMMENDED_RUNTIME_VERSION} LTS is recommended).",
    ]
    family = platform_family(platform)
    if family == "win32":
        lines.append("Download an installer from https://adoptium.net/ and enable the 'Set JAVA_HOME' option.")
        lines.append(f"Or run: winget install EclipseAdoptium.Temurin.{RECOMMENDED_RUNTIME_VERSION}.JRE")
    elif family == "darwin":
        lines.append(f"Run: brew install openjdk@{RECOMMENDED_RUNTIME_VERSION}")
        lines.append("Or download a package from https://adoptium.net/")
    else:
        lines.append(f"Debian/Ubuntu: sudo apt install openjdk-{RECOMMENDED_RUNTIME_VERSION}-jre")
        lines.append(f"Fedora/RHEL: sudo dnf install java-{RECOMMENDED_RUNTIME_VERSION}-openjdk")
    lines.append("Then make sure the 'java' executable is on PATH or JAVA_HOME points at the installation.")
    return lines
