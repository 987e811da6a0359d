"""Cache-first and network-first strategies.

Each strategy makes at most one fallback attempt per failure. Writes after a
successful fetch are best-effort: they are registered on the event with
``wait_until`` and a failure to store never fails the request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from offlinecache.errors import ErrorCode, OfflineCacheError

if TYPE_CHECKING:
    from offlinecache.events import FetchEvent
    from offlinecache.models.http import FetchRequest, StoredResponse
    from offlinecache.state import AppState

log = structlog.get_logger()


def _worth_storing(request: FetchRequest, response: StoredResponse) -> bool:
    return request.cacheable and response.status == 200


async def _store_copy(state: AppState, request: FetchRequest, copy: StoredResponse) -> None:
    """Write ``copy`` into the runtime generation. Non-fatal on failure."""
    runtime_tag = state.settings.generations.runtime_tag
    try:
        store = await state.store.open(runtime_tag)
        await store.put(request.identity, copy)
    except OfflineCacheError:
        log.warning("runtime_store_write_error", url=request.identity, exc_info=True)
        return
    log.debug("runtime_store_write", store=runtime_tag, url=request.identity)


def _remember(event: FetchEvent, state: AppState, response: StoredResponse) -> None:
    if _worth_storing(event.request, response):
        event.wait_until(_store_copy(state, event.request, response.clone()))


async def cache_first(event: FetchEvent, state: AppState) -> StoredResponse:
    """Serve application assets from the local store, populating it on a miss.

    Probes the static generation, then the runtime generation. On a miss the
    network is tried; if that fails the offline fallback document is served
    from the static generation, and failing that the network error propagates.
    """
    request = event.request
    generations = state.settings.generations
    bound = log.bind(strategy="cache_first", url=request.identity)

    if request.cacheable:
        for tag in (generations.static_tag, generations.runtime_tag):
            store = await state.store.open(tag)
            cached = await store.match(request.identity)
            if cached is not None:
                bound.debug("cache_hit", store=tag)
                return cached

    try:
        response = await state.fetcher.fetch(request)
    except OfflineCacheError as exc:
        if exc.code != ErrorCode.NETWORK_ERROR:
            raise
        bound.info("network_unavailable_trying_fallback")
        static = await state.store.open(generations.static_tag)
        fallback_url = state.settings.routing.resolve(state.settings.assets.offline_fallback)
        offline = await static.match(fallback_url)
        if offline is not None:
            bound.info("offline_fallback_served", fallback=fallback_url)
            return offline
        bound.warning("offline_fallback_missing", fallback=fallback_url)
        raise

    _remember(event, state, response)
    return response


async def network_first(event: FetchEvent, state: AppState) -> StoredResponse:
    """Prefer a live response; fall back to any stored copy when offline."""
    request = event.request
    generations = state.settings.generations
    bound = log.bind(strategy="network_first", url=request.identity)

    try:
        response = await state.fetcher.fetch(request)
    except OfflineCacheError as exc:
        if exc.code != ErrorCode.NETWORK_ERROR:
            raise
        bound.info("network_unavailable_trying_cache")
        if request.cacheable:
            cached = await state.store.match(
                request.identity,
                probe_order=(generations.runtime_tag, generations.static_tag),
            )
            if cached is not None:
                bound.info("stale_response_served")
                return cached
        raise

    _remember(event, state, response)
    return response
