"""
Classification of connection-level failures.

Only these failures are worth retrying: they mean the worker could not be
reached at all. An HTTP response of any status means it was reached.
"""

import asyncio

import aiohttp

CONNECTION_ERROR_TYPES = (
    aiohttp.ClientConnectionError,
    asyncio.TimeoutError,
    ConnectionError,
)


__all__ = ["CONNECTION_ERROR_TYPES"]
