"""Dotenv file loading utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from ..errors import ConfigurationError


class DotenvLoader:
    """Loads ``KEY=value`` pairs from .env-style files."""

    @staticmethod
    def load_from_file(path: Path) -> Dict[str, str]:
        """
        Load key-value pairs from a .env file.

        Blank lines, ``#`` comments and an optional leading ``export`` are
        ignored. Surrounding single or double quotes are stripped from values.

        Args:
            path: Path to .env file

        Returns:
            Mapping of variable names to raw string values (empty when absent)

        Raises:
            ConfigurationError: If the file exists but cannot be read
        """
        if not path.is_file():
            return {}

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError.load_failed("dotenv defaults", str(path)) from exc

        values: Dict[str, str] = {}
        for line in text.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = DotenvLoader._parse_line(stripped)
            if key:
                values[key] = value
        return values

    @staticmethod
    def _parse_line(line: str) -> tuple[str, str]:
        key, raw_value = line.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export ") :].strip()
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return key, value
