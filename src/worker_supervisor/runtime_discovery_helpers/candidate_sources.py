"""Platform-specific locations where runtime installations live."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Mapping, Optional

RUNTIME_HOME_ENV_VARS = ("JAVA_HOME", "JDK_HOME", "JRE_HOME")
EMBEDDED_BASE_DIRS = ("jre", "java", "runtime", "jvm")
EMBEDDED_PLATFORM_DIRS = {
    "win32": ("jre/win", "java/windows"),
    "darwin": ("jre/macos", "java/macos", "jre/Contents/Home"),
    "linux": ("jre/linux", "java/linux"),
}


def platform_family(platform: str) -> str:
    """Collapse ``sys.platform`` values into ``win32``, ``darwin`` or ``linux``."""
    if platform.startswith("win") or platform == "cygwin":
        return "win32"
    if platform == "darwin":
        return "darwin"
    return "linux"


class CandidateSources:
    """Enumerates candidate runtime homes and executables for one platform."""

    def __init__(self, platform: str, environ: Mapping[str, str]) -> None:
        self.family = platform_family(platform)
        self.environ = environ

    @property
    def executable_name(self) -> str:
        return "java.exe" if self.family == "win32" else "java"

    def executable_for_home(self, home: Path) -> Path:
        return home / "bin" / self.executable_name

    def embedded_executables(self, resources_dir: Optional[Path]) -> list[Path]:
        """Executables inside the application's bundled runtime directories."""
        if resources_dir is None:
            return []
        relative_homes = EMBEDDED_BASE_DIRS + EMBEDDED_PLATFORM_DIRS.get(self.family, ())
        return [self.executable_for_home(resources_dir / relative) for relative in relative_homes]

    def path_executables(self) -> list[Path]:
        """The executable resolved via ``PATH`` followed by the ``*_HOME`` variables."""
        found: list[Path] = []
        resolved = shutil.which(self.executable_name, path=self.environ.get("PATH"))
        if resolved:
            found.append(Path(resolved))
        for variable in RUNTIME_HOME_ENV_VARS:
            home = self.environ.get(variable)
            if home:
                found.append(self.executable_for_home(Path(home)))
        return found

    def installation_roots(self) -> list[Path]:
        """Conventional installation roots to walk for this platform."""
        if self.family == "win32":
            roots: list[Path] = []
            program_files = self.environ.get("ProgramFiles") or self.environ.get("PROGRAMFILES") or r"C:\Program Files"
            roots.append(Path(program_files) / "Java")
            roots.append(Path(program_files) / "Java" / "jre")
            program_files_x86 = self.environ.get("ProgramFiles(x86)") or self.environ.get("PROGRAMFILES(X86)")
            if program_files_x86:
                roots.append(Path(program_files_x86) / "Java")
            return roots
        if self.family == "darwin":
            return [
                Path("/Library/Java/JavaVirtualMachines"),
                Path("/Library/Java/Home"),
                Path("/System/Library/Frameworks/JavaVM.framework/Versions/Current"),
            ]
        return [
            Path("/usr/lib/jvm"),
            Path("/usr/lib/jvm/java"),
            Path("/usr/lib/java"),
            Path("/usr/lib/jvm-default-java"),
            Path("/usr/java/default"),
        ]
