"""Thin ``requests`` wrapper that maps every failure to a backend error."""

from __future__ import annotations

import logging
from typing import Any

import requests

from docrag.errors import BackendTransportError

logger = logging.getLogger(__name__)


def post_json(
    backend: str,
    url: str,
    payload: dict[str, Any],
    *,
    timeout: float,
    stream: bool = False,
) -> requests.Response:
    """POST *payload* and return the response once its status is known to be 2xx.

    Timeouts, connection errors and non-2xx statuses raise
    :class:`BackendTransportError`.
    """
    logger.debug("[%s] POST %s (stream=%s)", backend, url, stream)
    try:
        resp = requests.post(url, json=payload, timeout=timeout, stream=stream)
    except requests.RequestException as exc:
        raise BackendTransportError(backend, f"request to {url} failed: {exc}") from exc

    if resp.status_code >= 400:
        message = f"HTTP {resp.status_code} from {url}"
        if not stream and resp.text:
            message += f": {resp.text[:300]}"
        resp.close()
        raise BackendTransportError(backend, message)
    return resp


def read_json(backend: str, resp: requests.Response) -> dict[str, Any]:
    """Decode a JSON object body, raising :class:`BackendTransportError` otherwise."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise BackendTransportError(backend, f"malformed JSON response: {exc}") from exc
    if not isinstance(data, dict):
        raise BackendTransportError(backend, f"unexpected response type {type(data).__name__}")
    return data
