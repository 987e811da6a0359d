"""Application state container.

AppState is created once inside ``open_worker`` and passed to every event
handler, strategy and component function.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from offlinecache.clients import ClientRegistry

if TYPE_CHECKING:
    from offlinecache.config import Settings
    from offlinecache.lifecycle import WorkerLifecycle
    from offlinecache.protocols import BlobStoreProtocol, FetcherProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every handler."""

    settings: Settings
    store: BlobStoreProtocol
    fetcher: FetcherProtocol
    lifecycle: WorkerLifecycle
    clients: ClientRegistry = field(default_factory=ClientRegistry)
