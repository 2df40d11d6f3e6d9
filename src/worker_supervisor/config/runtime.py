from __future__ import annotations

"""Runtime helpers for working with environment-backed configuration."""


import os
from pathlib import Path
from typing import Optional, Sequence

from .errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "t", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "f", "no", "n", "off"}

_DOTENV_CANDIDATES = (Path(".env"), Path.home() / ".env")
_JSON_DEFAULT_CANDIDATES = (Path("config/worker_supervisor.json"), Path.home() / ".worker_supervisor.json")

_DEFAULT_VALUES: dict[str, str] | None = None


def _load_default_values() -> dict[str, str]:
    """Load fallback values from .env files first, then JSON defaults files."""
    from .runtime_helpers import DotenvLoader, JsonDefaultsLoader

    global _DEFAULT_VALUES
    if _DEFAULT_VALUES is not None:
        return _DEFAULT_VALUES

    defaults: dict[str, str] = {}
    for path in _DOTENV_CANDIDATES:
        for key, value in DotenvLoader.load_from_file(path).items():
            defaults.setdefault(key, value)
    for path in _JSON_DEFAULT_CANDIDATES:
        for key, value in JsonDefaultsLoader.load_from_file(path).items():
            defaults.setdefault(key, value)

    _DEFAULT_VALUES = defaults
    return defaults


def reset_default_values() -> None:
    """Drop cached file defaults so the next lookup re-reads them."""
    global _DEFAULT_VALUES
    _DEFAULT_VALUES = None


def _normalize(value: str | None, *, strip: bool) -> str | None:
    if value is None:
        return None
    return value.strip() if strip else value


def env_str(
    name: str,
    or_value: str | None = None,
    *,
    required: bool = False,
    strip: bool = True,
    allow_blank: bool = False,
) -> str | None:
    """Fetch an environment variable as a string, falling back to file defaults."""

    value = _normalize(os.getenv(name), strip=strip)

    if value is None or (not allow_blank and value == ""):
        configured_default = _load_default_values().get(name)
        if configured_default is not None:
            value = _normalize(configured_default, strip=strip)

    if value is None or (not allow_blank and value == ""):
        if required:
            raise ConfigurationError.missing_value(name, "required environment variable is not set")
        return or_value
    return value


def env_int(name: str, or_value: int | None = None, *, required: bool = False) -> int | None:
    """Fetch an environment variable and coerce it to ``int``."""

    raw = env_str(name)
    if raw is None:
        if required and or_value is None:
            raise ConfigurationError.missing_value(name, "required environment variable is not set")
        return or_value
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid_format(name, raw, "an integer") from exc


def env_float(name: str, or_value: float | None = None, *, required: bool = False) -> float | None:
    """Fetch an environment variable and coerce it to ``float``."""

    raw = env_str(name)
    if raw is None:
        if required and or_value is None:
            raise ConfigurationError.missing_value(name, "required environment variable is not set")
        return or_value
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid_format(name, raw, "a float") from exc


def env_bool(name: str, or_value: bool | None = None, *, required: bool = False) -> bool | None:
    """Fetch an environment variable and coerce it to ``bool``."""

    raw = env_str(name)
    if raw is None:
        if required and or_value is None:
            raise ConfigurationError.missing_value(name, "required environment variable is not set")
        return or_value

    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError.invalid_format(name, raw, "a boolean (true/false, yes/no, 1/0, on/off)")


def env_list(
    name: str,
    *,
    or_value: Sequence[str] | None = None,
    separator: str = ",",
    strip_items: bool = True,
    unique: bool = True,
    required: bool = False,
) -> tuple[str, ...] | None:
    """Fetch a delimited list from the environment."""
    from .runtime_helpers import ListNormalizer

    raw = env_str(name)
    if raw is None:
        if required and not or_value:
            raise ConfigurationError.missing_value(name, "required environment variable is not set")
        return None if or_value is None else tuple(or_value)

    items = ListNormalizer.split_and_normalize(raw, separator, strip_items)
    if not items and required:
        raise ConfigurationError.missing_value(name, "must contain at least one value")
    if unique:
        return ListNormalizer.deduplicate_preserving_order(items)
    return tuple(items)


def env_seconds(name: str, or_value: float | None = None, *, required: bool = False) -> float | None:
    """Fetch a non-negative duration stored as (possibly fractional) seconds."""

    value = env_float(name, or_value=or_value, required=required)
    if value is None:
        return None
    if value < 0:
        raise ConfigurationError.invalid_value(name, value, "Durations must be non-negative")
    return value


def env_path(name: str, or_value: Optional[Path] = None, *, required: bool = False) -> Optional[Path]:
    """Fetch an environment variable as a user-expanded :class:`Path`."""

    raw = env_str(name, required=required)
    if raw is None:
        return or_value
    return Path(raw).expanduser()
