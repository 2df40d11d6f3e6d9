"""Turns raw worker responses into results or errors."""

from __future__ import annotations

import json
from typing import Any

from ..errors import WorkerRequestError

HTTP_SUCCESS_MIN = 200
HTTP_SUCCESS_MAX = 299


class ResponseParser:
    """Validates status, JSON shape and the ``{success, error?}`` envelope."""

    @staticmethod
    def parse(command: str, status: int, reason: str, body: str) -> dict[str, Any]:
        """
        Parse one command response.

        Returns:
            The decoded JSON object

        Raises:
            WorkerRequestError: Non-2xx status, non-object body, or an envelope
                with ``success: false``
        """
        if not HTTP_SUCCESS_MIN <= status <= HTTP_SUCCESS_MAX:
            raise WorkerRequestError.http_status(status, reason, body)

        try:
            payload = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            raise WorkerRequestError.invalid_json(command, body) from exc

        if not isinstance(payload, dict):
            raise WorkerRequestError.invalid_json(command, body)

        if payload.get("success") is False:
            detail = payload.get("error") or "no error detail supplied"
            raise WorkerRequestError.command_rejected(command, str(detail))
        return payload
