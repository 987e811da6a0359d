from __future__ import annotations

from offlinecache.models.http import FetchRequest, StoredResponse
from offlinecache.models.messages import (
    BACKGROUND_SYNC_NOTIFICATION,
    SKIP_WAITING,
    CacheUrlsMessage,
    ControlMessage,
    SkipWaitingMessage,
)

__all__ = [
    # http
    "FetchRequest",
    "StoredResponse",
    # control channel
    "SKIP_WAITING",
    "SkipWaitingMessage",
    "CacheUrlsMessage",
    "ControlMessage",
    "BACKGROUND_SYNC_NOTIFICATION",
]
