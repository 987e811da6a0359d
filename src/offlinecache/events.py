"""Extendable lifecycle events.

Every handler receives an event and may register pending work with
``wait_until``. The dispatcher awaits ``settled()`` before it considers the
event handled, so registered work is never abandoned at a suspension point.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from offlinecache.clients import Client
    from offlinecache.models.http import FetchRequest, StoredResponse


class ExtendableEvent:
    def __init__(self) -> None:
        self._pending: list[asyncio.Future[Any]] = []

    def wait_until(self, work: Awaitable[Any]) -> None:
        """Keep the event alive until ``work`` completes."""
        self._pending.append(asyncio.ensure_future(work))

    async def settled(self) -> None:
        """Await every registered piece of work, including work added meanwhile.

        Raises the first failure after all pending work has finished.
        """
        while self._pending:
            pending, self._pending = self._pending, []
            results = await asyncio.gather(*pending, return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    raise result


class InstallEvent(ExtendableEvent):
    pass


class ActivateEvent(ExtendableEvent):
    pass


class FetchEvent(ExtendableEvent):
    """An intercepted request. Handlers that do not call respond_with pass through."""

    def __init__(self, request: FetchRequest) -> None:
        super().__init__()
        self.request = request
        self._response: asyncio.Future[StoredResponse] | None = None

    @property
    def handled(self) -> bool:
        return self._response is not None

    def respond_with(self, response: Awaitable[StoredResponse]) -> None:
        if self._response is not None:
            raise RuntimeError("respond_with() already called for this event")
        self._response = asyncio.ensure_future(response)

    async def response(self) -> StoredResponse:
        if self._response is None:
            raise RuntimeError("event was not handled")
        return await self._response


class MessageEvent(ExtendableEvent):
    def __init__(self, data: Any, source: Client | None = None) -> None:
        super().__init__()
        self.data = data
        self.source = source


class SyncEvent(ExtendableEvent):
    def __init__(self, tag: str) -> None:
        super().__init__()
        self.tag = tag
