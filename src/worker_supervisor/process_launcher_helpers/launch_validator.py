"""Pre-spawn checks on the files a launch refers to."""

from __future__ import annotations

from pathlib import Path

from ..errors import LaunchValidationError
from ..settings import LaunchSettings


class LaunchValidator:
    """Rejects launches whose archive or classpath entries do not exist."""

    @staticmethod
    def validate(settings: LaunchSettings) -> None:
        """
        Raises:
            LaunchValidationError: If the launch target is missing or incomplete
        """
        if settings.archive_path is not None:
            if not Path(settings.archive_path).is_file():
                raise LaunchValidationError.archive_missing(str(settings.archive_path))
            return

        if not settings.classpath or not settings.main_class:
            raise LaunchValidationError.no_launch_target()

        missing = [entry for entry in settings.classpath if not LaunchValidator._classpath_entry_exists(entry)]
        if missing:
            raise LaunchValidationError.classpath_entries_missing(missing)

    @staticmethod
    def _classpath_entry_exists(entry: str) -> bool:
        # "lib/*" wildcards name a directory of archives.
        if entry.endswith("*"):
            return Path(entry.rstrip("*")).is_dir()
        return Path(entry).exists()
