"""JSON defaults file loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

from ..errors import ConfigurationError


class JsonDefaultsLoader:
    """Loads a flat JSON object of defaults and stringifies its scalar values."""

    @staticmethod
    def load_from_file(path: Path) -> Dict[str, str]:
        """
        Load defaults from a JSON object file.

        Args:
            path: Path to the JSON file

        Returns:
            Mapping of names to string values; nested containers are skipped

        Raises:
            ConfigurationError: If the file is unreadable, not JSON, or not an object
        """
        if not path.is_file():
            return {}

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError.load_failed("JSON defaults", str(path)) from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError.invalid_format(str(path), "<unparseable>", "a JSON object") from exc

        if not isinstance(payload, dict):
            raise ConfigurationError.invalid_format(str(path), type(payload).__name__, "a JSON object at the top level")

        values: Dict[str, str] = {}
        for key, value in payload.items():
            if isinstance(value, (dict, list)) or value is None:
                continue
            if isinstance(value, bool):
                values[str(key)] = "true" if value else "false"
            else:
                values[str(key)] = str(value)
        return values
