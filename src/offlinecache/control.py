"""Control channel: commands posted by the application to the worker."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from offlinecache.generations import add_all
from offlinecache.models.messages import (
    SKIP_WAITING,
    CacheUrlsMessage,
    ControlMessage,
    SkipWaitingMessage,
)

if TYPE_CHECKING:
    from offlinecache.events import MessageEvent
    from offlinecache.state import AppState

log = structlog.get_logger()


def parse_message(data: Any) -> ControlMessage | None:
    """Return the command carried by ``data``, or None if it is not one."""
    if data == SKIP_WAITING:
        return SkipWaitingMessage()
    if isinstance(data, dict) and data.get("type") == "CACHE_URLS":
        try:
            return CacheUrlsMessage.model_validate(data)
        except ValidationError:
            log.warning("control_message_invalid", message_type="CACHE_URLS", exc_info=True)
    return None


def handle_message(event: MessageEvent, state: AppState) -> None:
    """Apply a control command. Unrecognised messages are ignored."""
    message = parse_message(event.data)
    if message is None:
        log.debug("control_message_ignored")
        return

    if isinstance(message, SkipWaitingMessage):
        state.lifecycle.skip_waiting()
        return

    log.info("control_cache_urls", count=len(message.urls))
    event.wait_until(add_all(state, state.settings.generations.runtime_tag, message.urls))
