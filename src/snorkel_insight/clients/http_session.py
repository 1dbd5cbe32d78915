"""Lightweight httpx.AsyncClient configuration helpers with retries and timeouts."""
from __future__ import annotations

from typing import Iterable, Mapping

import httpx

RETRYABLE_STATUS = frozenset((429, 500, 502, 503, 504))


def configure_client(
    *,
    headers: Mapping[str, str] | None,
    timeout_seconds: float,
    retries: int,
    max_connections: int = 32,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient with shared header/timeout/connection-retry configuration.

    Transport-level retries only cover connection failures; status-based
    retries (``RETRYABLE_STATUS``) are handled by the caller's request loop.
    """
    if transport is None:
        transport = httpx.AsyncHTTPTransport(
            retries=retries,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
        )
    return httpx.AsyncClient(
        headers=dict(headers or {}),
        timeout=httpx.Timeout(timeout_seconds),
        transport=transport,
    )


def is_retryable(status_code: int, status_forcelist: Iterable[int] = RETRYABLE_STATUS) -> bool:
    """Return True for throttling and transient upstream errors."""
    return status_code in frozenset(status_forcelist)
