"""Request classification.

A pure function of the request and configuration, decided once per request
before any I/O begins.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from offlinecache.config import RoutingSettings
    from offlinecache.models.http import FetchRequest

_DEFAULT_PORTS = {"http": 80, "https": 443}


class Disposition(StrEnum):
    PASSTHROUGH = "passthrough"
    NETWORK_FIRST = "network_first"
    CACHE_FIRST = "cache_first"


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` with the default port dropped.

    ``'HTTPS://App.Example.com:443/x'`` → ``'https://app.example.com'``
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is None or port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def classify(request: FetchRequest, routing: RoutingSettings) -> Disposition:
    # Cross-origin requests are never intercepted
    if origin_of(request.url) != origin_of(routing.scope):
        return Disposition.PASSTHROUGH

    hostname = urlsplit(request.url).hostname or ""
    if routing.api_host and routing.api_host in hostname:
        return Disposition.NETWORK_FIRST

    return Disposition.CACHE_FIRST
