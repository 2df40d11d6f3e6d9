"""List normalization utilities for environment variables."""

from __future__ import annotations

from typing import Sequence


class ListNormalizer:
    """Normalizes delimited list values from environment variables."""

    @staticmethod
    def split_and_normalize(raw_value: str, separator: str, strip_items: bool) -> list[str]:
        """Split *raw_value* on *separator*, optionally stripping and dropping blank items."""
        parts = raw_value.split(separator) if separator else [raw_value]
        if not strip_items:
            return list(parts)
        return [item.strip() for item in parts if item.strip()]

    @staticmethod
    def deduplicate_preserving_order(items: Sequence[str]) -> tuple[str, ...]:
        """Remove duplicates while preserving first-seen order."""
        return tuple(dict.fromkeys(items))
