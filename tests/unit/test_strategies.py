"""Unit tests for the cache-first and network-first strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
import respx

from offlinecache.errors import ErrorCode, OfflineCacheError
from offlinecache.events import FetchEvent
from offlinecache.models.http import FetchRequest, StoredResponse
from offlinecache.store import StoreHandle
from offlinecache.strategies import cache_first, network_first

if TYPE_CHECKING:
    from offlinecache.state import AppState

STATIC = "renovation-accounting-v1.0.0"
RUNTIME = "runtime-cache-v1"
APP = "http://localhost:8080"
API = "https://api.jsonbin.io/v3/b/ledger"


def _snapshot(url: str, body: bytes, status: int = 200) -> StoredResponse:
    return StoredResponse(url=url, status=status, headers={}, body=body)


async def _seed(state: AppState, store_name: str, url: str, body: bytes) -> None:
    handle = await state.store.open(store_name)
    await handle.put(url, _snapshot(url, body))


async def _runtime_entry(state: AppState, url: str) -> StoredResponse | None:
    handle = await state.store.open(RUNTIME)
    return await handle.match(url)


async def _run(strategy, state: AppState, request: FetchRequest) -> StoredResponse:
    event = FetchEvent(request)
    try:
        return await strategy(event, state)
    finally:
        await event.settled()


async def _failing_put(self, identity, response) -> None:
    raise OfflineCacheError(code=ErrorCode.STORE_ERROR, message="disk full")


# ---------------------------------------------------------------------------
# Cache-first
# ---------------------------------------------------------------------------


class TestCacheFirst:
    async def test_static_hit_skips_network(self, state: AppState) -> None:
        await _seed(state, STATIC, f"{APP}/index.html", b"shell")
        with respx.mock:  # Any request would fail as unmocked
            response = await _run(cache_first, state, FetchRequest(url=f"{APP}/index.html"))
        assert response.body == b"shell"

    async def test_runtime_hit_skips_network(self, state: AppState) -> None:
        await _seed(state, RUNTIME, f"{APP}/app.js", b"js")
        with respx.mock:
            response = await _run(cache_first, state, FetchRequest(url=f"{APP}/app.js"))
        assert response.body == b"js"

    async def test_fragment_ignored_on_lookup(self, state: AppState) -> None:
        await _seed(state, STATIC, f"{APP}/index.html", b"shell")
        with respx.mock:
            response = await _run(cache_first, state, FetchRequest(url=f"{APP}/index.html#top"))
        assert response.body == b"shell"

    async def test_miss_fetches_and_stores_in_runtime(self, state: AppState) -> None:
        with respx.mock:
            route = respx.get(f"{APP}/style.css").mock(
                return_value=httpx.Response(200, content=b"body{}")
            )
            response = await _run(cache_first, state, FetchRequest(url=f"{APP}/style.css"))
        assert route.call_count == 1
        assert response.body == b"body{}"

        stored = await _runtime_entry(state, f"{APP}/style.css")
        assert stored is not None
        assert stored.body == b"body{}"

        static = await state.store.open(STATIC)
        assert await static.match(f"{APP}/style.css") is None

    async def test_miss_with_error_status_is_not_stored(self, state: AppState) -> None:
        with respx.mock:
            respx.get(f"{APP}/gone").mock(return_value=httpx.Response(404))
            response = await _run(cache_first, state, FetchRequest(url=f"{APP}/gone"))
        assert response.status == 404
        assert await _runtime_entry(state, f"{APP}/gone") is None

    async def test_non_get_bypasses_store(self, state: AppState) -> None:
        await _seed(state, STATIC, f"{APP}/save", b"stale")
        with respx.mock:
            route = respx.post(f"{APP}/save").mock(return_value=httpx.Response(200, text="saved"))
            response = await _run(
                cache_first, state, FetchRequest(url=f"{APP}/save", method="POST")
            )
        assert route.called
        assert response.text == "saved"
        stored = await _runtime_entry(state, f"{APP}/save")
        assert stored is None

    async def test_offline_serves_fallback_document(self, state: AppState) -> None:
        await _seed(state, STATIC, f"{APP}/index.html", b"offline shell")
        with respx.mock:
            respx.get(f"{APP}/reports").mock(side_effect=httpx.ConnectError("offline"))
            response = await _run(cache_first, state, FetchRequest(url=f"{APP}/reports"))
        assert response.body == b"offline shell"

    async def test_offline_without_fallback_fails(self, state: AppState) -> None:
        with respx.mock:
            respx.get(f"{APP}/reports").mock(side_effect=httpx.ConnectError("offline"))
            with pytest.raises(OfflineCacheError) as exc_info:
                await _run(cache_first, state, FetchRequest(url=f"{APP}/reports"))
        assert exc_info.value.code == ErrorCode.NETWORK_ERROR

    async def test_fallback_only_read_from_static_generation(self, state: AppState) -> None:
        await _seed(state, RUNTIME, f"{APP}/index.html", b"runtime copy")
        with respx.mock:
            respx.get(f"{APP}/reports").mock(side_effect=httpx.ConnectError("offline"))
            with pytest.raises(OfflineCacheError):
                await _run(cache_first, state, FetchRequest(url=f"{APP}/reports"))

    async def test_store_write_failure_does_not_fail_request(
        self, state: AppState, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(StoreHandle, "put", _failing_put)
        with respx.mock:
            respx.get(f"{APP}/style.css").mock(return_value=httpx.Response(200, content=b"css"))
            response = await _run(cache_first, state, FetchRequest(url=f"{APP}/style.css"))
        assert response.body == b"css"


# ---------------------------------------------------------------------------
# Network-first
# ---------------------------------------------------------------------------


class TestNetworkFirst:
    async def test_fresh_response_wins_over_cached_copy(self, state: AppState) -> None:
        await _seed(state, RUNTIME, API, b"stale")
        with respx.mock:
            respx.get(API).mock(return_value=httpx.Response(200, content=b"fresh"))
            response = await _run(network_first, state, FetchRequest(url=API))
        assert response.body == b"fresh"

        stored = await _runtime_entry(state, API)
        assert stored is not None
        assert stored.body == b"fresh"

    async def test_offline_returns_cached_copy(self, state: AppState) -> None:
        await _seed(state, RUNTIME, API, b"cached")
        with respx.mock:
            respx.get(API).mock(side_effect=httpx.ConnectError("offline"))
            response = await _run(network_first, state, FetchRequest(url=API))
        assert response.body == b"cached"

    async def test_offline_searches_every_store(self, state: AppState) -> None:
        await _seed(state, "renovation-accounting-v0.9.0", API, b"from old generation")
        with respx.mock:
            respx.get(API).mock(side_effect=httpx.ConnectError("offline"))
            response = await _run(network_first, state, FetchRequest(url=API))
        assert response.body == b"from old generation"

    async def test_runtime_checked_before_static(self, state: AppState) -> None:
        await _seed(state, STATIC, API, b"static")
        await _seed(state, RUNTIME, API, b"runtime")
        with respx.mock:
            respx.get(API).mock(side_effect=httpx.ConnectError("offline"))
            response = await _run(network_first, state, FetchRequest(url=API))
        assert response.body == b"runtime"

    async def test_offline_without_cached_copy_fails(self, state: AppState) -> None:
        with respx.mock:
            respx.get(API).mock(side_effect=httpx.ConnectError("offline"))
            with pytest.raises(OfflineCacheError) as exc_info:
                await _run(network_first, state, FetchRequest(url=API))
        assert exc_info.value.code == ErrorCode.NETWORK_ERROR

    async def test_error_status_returned_without_fallback(self, state: AppState) -> None:
        await _seed(state, RUNTIME, API, b"cached")
        with respx.mock:
            respx.get(API).mock(return_value=httpx.Response(503))
            response = await _run(network_first, state, FetchRequest(url=API))
        assert response.status == 503

        stored = await _runtime_entry(state, API)
        assert stored is not None
        assert stored.body == b"cached"

    async def test_store_write_failure_does_not_fail_request(
        self, state: AppState, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(StoreHandle, "put", _failing_put)
        with respx.mock:
            respx.get(API).mock(return_value=httpx.Response(200, content=b"fresh"))
            response = await _run(network_first, state, FetchRequest(url=API))
        assert response.body == b"fresh"
