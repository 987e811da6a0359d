"""Integration test fixtures.

Provides an OfflineWorker built through ``open_worker`` with an in-memory
store. HTTP traffic is mocked per test with respx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from offlinecache.config import Settings
from offlinecache.worker import OfflineWorker, open_worker

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@pytest.fixture()
async def worker(settings: Settings) -> AsyncGenerator[OfflineWorker, None]:
    async with open_worker(settings) as offline_worker:
        yield offline_worker


@pytest.fixture()
async def api_worker() -> AsyncGenerator[OfflineWorker, None]:
    """Worker whose own origin is the remote data host."""
    settings = Settings(
        routing={"scope": "https://api.jsonbin.io/", "api_host": "jsonbin.io"},
        store={"db_path": ":memory:"},
    )
    async with open_worker(settings) as offline_worker:
        yield offline_worker
