"""Generation Manager: populate the static generation, retire stale ones.

A generation is one named store. Exactly two are current at any time: the
static generation (application shell, tagged with the release version) and
the runtime generation (responses cached while the app runs). Every other
store is stale and is deleted on teardown.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from offlinecache.errors import ErrorCode, OfflineCacheError
from offlinecache.models.http import FetchRequest

if TYPE_CHECKING:
    from collections.abc import Iterable

    from offlinecache.models.http import StoredResponse
    from offlinecache.state import AppState

log = structlog.get_logger()


async def _fetch_ok(state: AppState, url: str, failure_code: ErrorCode) -> StoredResponse:
    response = await state.fetcher.fetch(FetchRequest(url=url))
    if not response.ok:
        raise OfflineCacheError(
            code=failure_code,
            message=f"HTTP {response.status} fetching {url}",
        )
    return response


async def add_all(
    state: AppState,
    store_name: str,
    urls: Iterable[str],
    *,
    failure_code: ErrorCode = ErrorCode.POPULATE_FAILED,
) -> int:
    """Fetch every URL and store all responses in ``store_name``, or none of them.

    Relative URLs resolve against the configured scope. Nothing is written
    (and the store is not created) unless every fetch returns a 2xx status.
    Any failure raises OfflineCacheError with ``failure_code``; setup passes
    SETUP_FAILED, runtime population keeps the POPULATE_FAILED default.
    """
    resolved = [state.settings.routing.resolve(url) for url in urls]
    responses = await asyncio.gather(
        *(_fetch_ok(state, url, failure_code) for url in resolved), return_exceptions=True
    )
    try:
        for response in responses:
            if isinstance(response, BaseException):
                raise response
        store = await state.store.open(store_name)
        await store.put_all(
            [
                (FetchRequest(url=url).identity, response.clone())
                for url, response in zip(resolved, responses, strict=True)
            ]
        )
    except OfflineCacheError as exc:
        if exc.code == failure_code:
            raise
        raise OfflineCacheError(
            code=failure_code,
            message=f"Could not populate {store_name!r}: {exc.message}",
        ) from exc
    log.info("store_populated", store=store_name, count=len(resolved))
    return len(resolved)


async def setup(state: AppState) -> None:
    """Pre-populate the static generation, then ask to take over immediately."""
    static_tag = state.settings.generations.static_tag
    log.info("static_assets_caching", store=static_tag)
    await add_all(
        state, static_tag, state.settings.assets.static_urls, failure_code=ErrorCode.SETUP_FAILED
    )
    state.lifecycle.skip_waiting()


async def teardown(state: AppState) -> list[str]:
    """Delete every non-current generation and claim all connected clients.

    Stores are deleted one at a time; the first failure propagates and the
    clients are left unclaimed. Returns the names of the deleted stores.
    """
    active = state.settings.generations.active
    stale = [name for name in await state.store.keys() if name not in active]
    for name in stale:
        await state.store.delete(name)
        log.info("stale_generation_deleted", store=name)

    await state.clients.claim(state.lifecycle.version)
    return stale
