from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

SKIP_WAITING = "skipWaiting"


class SkipWaitingMessage(BaseModel):
    """Bare ``"skipWaiting"`` signal from the application."""

    model_config = ConfigDict(frozen=True)


class CacheUrlsMessage(BaseModel):
    """``{"type": "CACHE_URLS", "urls": [...]}``"""

    model_config = ConfigDict(frozen=True)

    type: Literal["CACHE_URLS"]
    urls: tuple[str, ...]


ControlMessage = SkipWaitingMessage | CacheUrlsMessage

BACKGROUND_SYNC_NOTIFICATION: dict[str, str] = {"type": "BACKGROUND_SYNC"}
