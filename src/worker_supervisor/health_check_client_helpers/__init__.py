"""Helpers for the worker API client."""

from .network_errors import CONNECTION_ERROR_TYPES
from .response_parser import ResponseParser
from .retry_policy import RetryPolicy
from .session_manager import WorkerSessionManager

__all__ = [
    "CONNECTION_ERROR_TYPES",
    "ResponseParser",
    "RetryPolicy",
    "WorkerSessionManager",
]
