"""
Concurrent search fan-out.

Each configured endpoint receives `{"query": term}`; every call settles on its
own (success or error) and one failure never cancels the others.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


def call_endpoint(label: str, url: str, term: str, timeout: float = DEFAULT_TIMEOUT) -> dict[str, Any]:
    """Call one search endpoint; never raises."""

    try:
        # requests applies `timeout` to the connect and to each read, not to the
        # whole call; an upstream that trickles bytes can exceed it.
        response = requests.post(
            url,
            json={"query": term},
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
        return {"success": True, "data": response.json()}
    except Exception as exc:
        logger.warning("Error calling %s (%s): %s", label, url, exc)
        return {"success": False, "error": str(exc) or "Unknown error"}


def fan_out_search(
    endpoints: dict[str, str],
    term: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, dict[str, Any]]:
    """
    Query every endpoint in parallel and collect the settled results, keyed by
    label in the order the endpoints were given.
    """

    if not endpoints:
        return {}

    results: dict[str, dict[str, Any]] = {}
    with ThreadPoolExecutor(max_workers=len(endpoints)) as executor:
        futures = {
            label: executor.submit(call_endpoint, label, url, term, timeout)
            for label, url in endpoints.items()
        }
        for label, future in futures.items():
            try:
                results[label] = future.result()
            except Exception as exc:
                results[label] = {"success": False, "error": str(exc) or "Request failed"}
    return results
