"""Shared test fixtures for the offlinecache test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import httpx
import pytest

from offlinecache.config import Settings
from offlinecache.fetcher import Fetcher
from offlinecache.lifecycle import WorkerLifecycle
from offlinecache.state import AppState
from offlinecache.store import BlobStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@pytest.fixture()
def settings() -> Settings:
    """Defaults, with the store kept in memory."""
    return Settings(
        routing={"scope": "http://localhost:8080/", "api_host": "jsonbin.io"},
        store={"db_path": ":memory:"},
    )

@pytest.fixture()
async def store() -> AsyncGenerator[BlobStore, None]:
    async with aiosqlite.connect(":memory:") as db:
        blob_store = BlobStore(db)
        await blob_store.init_db()
        yield blob_store

@pytest.fixture()
async def state(settings: Settings, store: BlobStore) -> AsyncGenerator[AppState, None]:
    """AppState wired with an in-memory store and a real (respx-mockable) client."""
    async with httpx.AsyncClient() as client:
        yield AppState(
            settings=settings,
            store=store,
            fetcher=Fetcher(client),
            lifecycle=WorkerLifecycle(settings.generations.static_tag),
        )
