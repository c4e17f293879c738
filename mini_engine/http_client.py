"""Outbound HTTP helper."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx

from mini_engine.core.errors import HttpRequestError
from mini_engine.core.logging_config import get_logger

logger = get_logger(__name__)

MAX_REDIRECTS = 10
TIMEOUT_SECONDS = 30


def http(
    url: str,
    method: str = "GET",
    data: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    *,
    client: Optional[httpx.Client] = None,
) -> str:
    """
    Perform a request and return the response body.

    Args:
        url: Target URL
        method: HTTP method
        data: Request body; bytes/str are sent as-is, mappings form-encoded
        headers: Extra request headers
        client: Client to use instead of a fresh one (tests pass a mock transport)

    Raises:
        HttpRequestError: The final status is outside 200-299.
    """
    request_kwargs: dict = {"headers": dict(headers or {})}
    if isinstance(data, (bytes, str)):
        request_kwargs["content"] = data
    elif data is not None:
        request_kwargs["data"] = data

    owns_client = client is None
    if client is None:
        client = httpx.Client(follow_redirects=True, max_redirects=MAX_REDIRECTS, timeout=TIMEOUT_SECONDS)
    try:
        response = client.request(method, url, **request_kwargs)
    finally:
        if owns_client:
            client.close()

    logger.debug(f"{method} {url} -> {response.status_code}")
    if response.status_code < 200 or response.status_code >= 300:
        raise HttpRequestError(response.status_code, response.text)
    return response.text
