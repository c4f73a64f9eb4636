"""Per-host httpx transports.

The upstream site, its blob storage host and arbitrary image hosts are all
reached through plain ``httpx.AsyncClient`` instances. Registering a transport
for a host swaps the network for something else (an in-process ASGI app in
tests, a TLS-impersonating transport in deployments that need one).
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("sparkproxy")

_TRANSPORTS: dict[str, httpx.AsyncBaseTransport] = {}


def _host_of(url: str) -> str:
    return urlparse(url).netloc.strip().lower()


def register_upstream_transport(host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Register a transport for a host (netloc, e.g. 'www.genspark.ai')."""
    if not host:
        raise ValueError("host is required")
    normalized = host.strip().lower()
    _TRANSPORTS[normalized] = transport
    logger.debug("Registered upstream transport for host '%s'", normalized)


def register_upstream_transport_for_url(
    url: str, transport: httpx.AsyncBaseTransport
) -> None:
    """Register a transport for the netloc extracted from a URL."""
    register_upstream_transport(urlparse(url).netloc, transport)


def clear_upstream_transports() -> None:
    """Forget every registration (used between tests)."""
    _TRANSPORTS.clear()


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    """Return the transport registered for the URL's host, if any."""
    if not url:
        return None
    host = _host_of(url)
    if not host:
        return None
    return _TRANSPORTS.get(host)
