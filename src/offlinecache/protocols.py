"""Protocol interfaces for swappable components.

Strategies, the Generation Manager and AppState reference these protocols,
not the concrete implementations. This allows:
- Tests to use lightweight in-memory implementations
- The blob store to be backed by another platform primitive without changing
  strategy code
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from offlinecache.models.http import FetchRequest, StoredResponse


class StoreHandleProtocol(Protocol):
    """A single named store (one cache generation)."""

    name: str

    async def match(self, identity: str) -> StoredResponse | None: ...

    async def put(self, identity: str, response: StoredResponse) -> None: ...

    async def put_all(self, entries: Sequence[tuple[str, StoredResponse]]) -> None: ...

    async def delete(self, identity: str) -> bool: ...

    async def keys(self) -> list[str]: ...


class BlobStoreProtocol(Protocol):
    """Named, persistent key-value stores keyed by request identity."""

    async def open(self, name: str) -> StoreHandleProtocol: ...

    async def has(self, name: str) -> bool: ...

    async def delete(self, name: str) -> bool: ...

    async def keys(self) -> list[str]: ...

    async def match(
        self, identity: str, probe_order: Sequence[str] = ()
    ) -> StoredResponse | None: ...


class FetcherProtocol(Protocol):
    """Interface for the network fetch abstraction."""

    async def fetch(self, request: FetchRequest) -> StoredResponse: ...
