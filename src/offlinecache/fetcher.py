"""Network fetch abstraction.

All network I/O goes through a single Fetcher instance shared by every event
handler. The Fetcher receives an httpx.AsyncClient via constructor injection;
the worker lifespan owns the client lifecycle.

Any HTTP status is a response, not an error: a 404 is returned to the
strategy, which decides whether it is worth storing. Only transport failures
(connectivity loss, DNS, TLS, protocol errors) raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog

from offlinecache.errors import ErrorCode, OfflineCacheError
from offlinecache.models.http import StoredResponse

if TYPE_CHECKING:
    from offlinecache.config import FetcherSettings
    from offlinecache.models.http import FetchRequest

log = structlog.get_logger()


def build_http_client(settings: FetcherSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
    )


class Fetcher:
    """httpx-backed implementation of FetcherProtocol."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, request: FetchRequest) -> StoredResponse:
        """Send ``request`` and return a fully buffered snapshot of the response.

        Raises OfflineCacheError(NETWORK_ERROR) when the transport fails.
        """
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
            await response.aread()
        except httpx.HTTPError as exc:
            log.info("fetch_failed", url=request.url, method=request.method, error=str(exc))
            raise OfflineCacheError(
                code=ErrorCode.NETWORK_ERROR,
                message=f"Network error fetching {request.url}: {exc}",
                recoverable=True,
            ) from exc

        log.debug(
            "fetch_complete",
            url=request.url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return StoredResponse.from_httpx(response)
