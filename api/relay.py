"""
Single-target relay: forward a JSON body (and the caller's bearer token) to
the configured external API and translate its answer.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """The relay could not produce an upstream answer (config, network, parse)."""


def _upstream_message(response: requests.Response, default: str = "External API error") -> str:
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
    return default


def relay_json(
    url: str | None,
    payload: Any,
    authorization: str | None = None,
    timeout: float = 30.0,
) -> tuple[dict[str, Any], int]:
    """
    POST `payload` to `url` and return the JSON body and status to send back.

    Upstream error statuses are passed through with the upstream `message`
    when it has one.
    """

    if not url:
        raise RelayError("EXTERNAL_API_URL is not defined in the environment variables.")

    headers = {"Content-Type": "application/json"}
    if authorization:
        headers["Authorization"] = authorization

    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise RelayError(f"External API request failed: {exc}") from exc

    if not response.ok:
        message = _upstream_message(response)
        logger.warning("External API %s answered %s: %s", url, response.status_code, message)
        return {"success": False, "message": message}, response.status_code

    try:
        data = response.json()
    except ValueError as exc:
        raise RelayError("External API returned a non-JSON response") from exc

    return {"success": True, "data": data}, 200
