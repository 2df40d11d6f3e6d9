"""Builds the worker's argument vector and launch environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from ..port_allocator import PortAllocation
from ..runtime_discovery_helpers import RuntimeCandidate
from ..settings import LaunchSettings
from .types import LaunchMode, LaunchSpec

HOST_MODE_ENV = "WORKER_HOST_MODE"
HOST_MODE_VALUE = "embedded"
DEVELOPMENT_PROFILE = "development"
PRODUCTION_PROFILE = "desktop"
WORKING_SUBDIR = "java"


class CommandBuilder:
    """Produces argv in the fixed order ``[runtime flags, mode flags, port flag]``."""

    @staticmethod
    def runtime_flags(settings: LaunchSettings) -> list[str]:
        flags = [
            "-Dfile.encoding=UTF-8",
            "-Djava.awt.headless=true",
            f"-Xms{settings.memory_min_mb}m",
            f"-Xmx{settings.memory_max_mb}m",
            "-XX:+UseG1GC",
            "-XX:+ExitOnOutOfMemoryError",
        ]
        flags.extend(settings.extra_runtime_flags)
        return flags

    @staticmethod
    def mode_flags(settings: LaunchSettings, ports: PortAllocation) -> list[str]:
        if settings.archive_path is not None:
            flags = ["-jar", str(settings.archive_path)]
        else:
            flags = ["-cp", os.pathsep.join(settings.classpath), str(settings.main_class)]
        profile = DEVELOPMENT_PROFILE if settings.development_mode else PRODUCTION_PROFILE
        flags.append(f"--spring.profiles.active={profile}")
        flags.append(f"--management.server.port={ports.management_port}")
        return flags

    @staticmethod
    def port_flag(ports: PortAllocation) -> str:
        return f"--server.port={ports.api_port}"

    @staticmethod
    def launch_mode(settings: LaunchSettings) -> LaunchMode:
        return LaunchMode.EXECUTABLE_ARCHIVE if settings.archive_path is not None else LaunchMode.CLASSPATH

    @staticmethod
    def working_dir(settings: LaunchSettings) -> Optional[str]:
        """``<resources>/java`` when present, else the resources dir, else inherit."""
        if settings.resources_dir is None:
            return None
        preferred = Path(settings.resources_dir) / WORKING_SUBDIR
        if preferred.is_dir():
            return str(preferred)
        if Path(settings.resources_dir).is_dir():
            return str(settings.resources_dir)
        return None

    @staticmethod
    def environment(settings: LaunchSettings, base_env: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        env = dict(os.environ if base_env is None else base_env)
        env.update(settings.extra_env)
        env[HOST_MODE_ENV] = HOST_MODE_VALUE
        return env

    @classmethod
    def build(
        cls,
        runtime: RuntimeCandidate,
        settings: LaunchSettings,
        ports: PortAllocation,
        base_env: Optional[Mapping[str, str]] = None,
    ) -> LaunchSpec:
        argv = cls.runtime_flags(settings) + cls.mode_flags(settings, ports) + [cls.port_flag(ports)]
        return LaunchSpec(
            executable_path=runtime.path,
            argv=tuple(argv),
            working_dir=cls.working_dir(settings),
            env=cls.environment(settings, base_env),
            mode=cls.launch_mode(settings),
            development_mode=settings.development_mode,
        )
