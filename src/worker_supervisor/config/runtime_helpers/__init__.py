"""Helpers that feed default values into the environment-backed config layer."""

from .dotenv_loader import DotenvLoader
from .json_defaults_loader import JsonDefaultsLoader
from .list_normalizer import ListNormalizer

__all__ = ["DotenvLoader", "JsonDefaultsLoader", "ListNormalizer"]
