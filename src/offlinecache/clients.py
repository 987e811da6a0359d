"""Registry of connected application instances."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog

log = structlog.get_logger()


@dataclass
class Client:
    """One connected application instance (a window or tab)."""

    id: str
    url: str
    # Version tag of the worker controlling this client, if any
    controller: str | None = None
    inbox: asyncio.Queue[Any] = field(default_factory=asyncio.Queue)

    async def post_message(self, message: Any) -> None:
        self.inbox.put_nowait(message)


class ClientRegistry:
    """Connected clients. Once a version has claimed them, new clients join under it."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}
        self._active_version: str | None = None

    def connect(self, url: str, *, controller: str | None = None) -> Client:
        if controller is None:
            controller = self._active_version
        client = Client(id=uuid.uuid4().hex, url=url, controller=controller)
        self._clients[client.id] = client
        log.debug("client_connected", client_id=client.id, url=url, controller=controller)
        return client

    def disconnect(self, client_id: str) -> None:
        self._clients.pop(client_id, None)

    def has_foreign_clients(self, version: str) -> bool:
        """True if any client is controlled by a worker version other than ``version``."""
        return any(c.controller not in (None, version) for c in self._clients.values())

    async def match_all(self, *, controlled_by: str | None = None) -> list[Client]:
        """Connected clients, optionally only those controlled by ``controlled_by``."""
        clients = list(self._clients.values())
        if controlled_by is None:
            return clients
        return [c for c in clients if c.controller == controlled_by]

    async def claim(self, version: str) -> int:
        """Make ``version`` the controller of every connected client."""
        self._active_version = version
        for client in self._clients.values():
            client.controller = version
        log.info("clients_claimed", version=version, count=len(self._clients))
        return len(self._clients)
