"""Worker entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the ``open_worker`` lifespan context manager
- Register one handler per lifecycle event and dispatch to it
- Prime the offline store from the command line
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import aiosqlite
import structlog

from offlinecache import __version__, generations
from offlinecache.config import Settings
from offlinecache.control import handle_message
from offlinecache.errors import OfflineCacheError
from offlinecache.events import (
    ActivateEvent,
    ExtendableEvent,
    FetchEvent,
    InstallEvent,
    MessageEvent,
    SyncEvent,
)
from offlinecache.fetcher import Fetcher, build_http_client
from offlinecache.lifecycle import WorkerLifecycle, WorkerState
from offlinecache.router import Disposition, classify
from offlinecache.state import AppState
from offlinecache.store import BlobStore
from offlinecache.strategies import cache_first, network_first
from offlinecache.sync import handle_sync

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from offlinecache.clients import Client
    from offlinecache.models.http import FetchRequest, StoredResponse

log = structlog.get_logger()

E = TypeVar("E", bound=ExtendableEvent)


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class OfflineWorker:
    """Routes lifecycle events to their handlers and enforces the keep-alive contract.

    Every dispatch awaits ``event.settled()`` before returning, so work a
    handler registered with ``wait_until`` has finished once the call returns.
    """

    def __init__(self, state: AppState) -> None:
        self.state = state

    @property
    def lifecycle(self) -> WorkerLifecycle:
        return self.state.lifecycle

    # -- handlers ---------------------------------------------------------

    def _on_install(self, event: InstallEvent) -> None:
        log.info("worker_installing", version=self.lifecycle.version)
        event.wait_until(generations.setup(self.state))

    def _on_activate(self, event: ActivateEvent) -> None:
        log.info("worker_activating", version=self.lifecycle.version)
        event.wait_until(generations.teardown(self.state))

    def _on_fetch(self, event: FetchEvent) -> None:
        disposition = classify(event.request, self.state.settings.routing)
        if disposition is Disposition.PASSTHROUGH:
            return
        if disposition is Disposition.NETWORK_FIRST:
            event.respond_with(network_first(event, self.state))
            return
        event.respond_with(cache_first(event, self.state))

    def _on_message(self, event: MessageEvent) -> None:
        handle_message(event, self.state)

    def _on_sync(self, event: SyncEvent) -> None:
        handle_sync(event, self.state)

    # -- lifecycle --------------------------------------------------------

    async def _run_phase(
        self,
        event: E,
        handler: Callable[[E], None],
        running: WorkerState,
        done: WorkerState,
    ) -> None:
        self.lifecycle.transition(running)
        handler(event)
        try:
            await event.settled()
        except Exception:
            self.lifecycle.transition(WorkerState.REDUNDANT)
            log.error("worker_phase_failed", phase=str(running), exc_info=True)
            raise
        self.lifecycle.transition(done)
        log.info("worker_state", version=self.lifecycle.version, state=str(done))

    async def install(self) -> None:
        """Populate the static generation. Failure leaves the worker redundant."""
        await self._run_phase(
            InstallEvent(), self._on_install, WorkerState.INSTALLING, WorkerState.INSTALLED
        )

    async def activate(self) -> None:
        """Retire stale generations and take control of connected clients."""
        await self._run_phase(
            ActivateEvent(), self._on_activate, WorkerState.ACTIVATING, WorkerState.ACTIVATED
        )

    async def start(self) -> None:
        """Install, wait until allowed to take over, then activate."""
        await self.install()
        await self.lifecycle.wait_for_clearance(self.state.clients)
        await self.activate()

    # -- runtime events ---------------------------------------------------

    async def fetch(self, request: FetchRequest) -> StoredResponse:
        """Answer ``request``; unintercepted requests go straight to the network."""
        if not self.lifecycle.intercepts_fetches:
            return await self.state.fetcher.fetch(request)

        event = FetchEvent(request)
        self._on_fetch(event)
        if not event.handled:
            return await self.state.fetcher.fetch(request)
        try:
            return await event.response()
        finally:
            await event.settled()

    async def post_message(self, data: Any, source: Client | None = None) -> None:
        event = MessageEvent(data, source)
        self._on_message(event)
        await event.settled()

    async def sync(self, tag: str) -> None:
        event = SyncEvent(tag)
        self._on_sync(event)
        await event.settled()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def open_worker(settings: Settings) -> AsyncGenerator[OfflineWorker, None]:
    """Create and tear down all shared resources for the worker's lifetime."""
    db_path = settings.store.db_path
    if db_path != ":memory:":
        path = Path(db_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        db_path = str(path)

    db = await aiosqlite.connect(db_path)
    store = BlobStore(db)
    await store.init_db()
    http_client = build_http_client(settings.fetcher)

    state = AppState(
        settings=settings,
        store=store,
        fetcher=Fetcher(http_client),
        lifecycle=WorkerLifecycle(settings.generations.static_tag),
    )
    log.info(
        "worker_starting",
        version=__version__,
        static_generation=settings.generations.static_tag,
        runtime_generation=settings.generations.runtime_tag,
    )

    try:
        yield OfflineWorker(state)
    finally:
        await http_client.aclose()
        await db.close()
        log.info("worker_stopping")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def _prime(settings: Settings) -> None:
    async with open_worker(settings) as worker:
        await worker.start()
        log.info("offline_store_primed", stores=await worker.state.store.keys())


def main() -> None:
    """Install and activate the current generation so the app works offline."""
    settings = Settings()
    _setup_logging(settings)
    try:
        asyncio.run(_prime(settings))
    except OfflineCacheError as exc:
        log.error("prime_failed", **exc.to_dict()["error"])
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
