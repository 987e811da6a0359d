"""Sync notifier: tell connected clients that connectivity came back.

The application owns the actual synchronisation; this only broadcasts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from offlinecache.models.messages import BACKGROUND_SYNC_NOTIFICATION

if TYPE_CHECKING:
    from offlinecache.events import SyncEvent
    from offlinecache.state import AppState

log = structlog.get_logger()


async def notify_clients(state: AppState) -> int:
    """Post a background-sync notification to every client this worker controls."""
    clients = await state.clients.match_all(controlled_by=state.lifecycle.version)
    for client in clients:
        await client.post_message(dict(BACKGROUND_SYNC_NOTIFICATION))
    log.info("background_sync_broadcast", clients=len(clients))
    return len(clients)


def handle_sync(event: SyncEvent, state: AppState) -> None:
    if event.tag != state.settings.sync.tag:
        log.debug("sync_tag_ignored", tag=event.tag)
        return
    event.wait_until(notify_clients(state))
