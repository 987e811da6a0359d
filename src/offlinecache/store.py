"""SQLite blob store: named cache generations keyed by request identity.

Read failures are logged and degrade to a miss, so a broken store never stops
a strategy from reaching the network. Write, delete and enumeration failures
raise ``OfflineCacheError(STORE_ERROR)``: batch population during setup must be
able to fail, and best-effort writers catch the error themselves.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from offlinecache.errors import ErrorCode, OfflineCacheError
from offlinecache.models.http import StoredResponse

if TYPE_CHECKING:
    from collections.abc import Sequence

log = structlog.get_logger()

_CREATE_STORES_TABLE = """
CREATE TABLE IF NOT EXISTS stores (
    name       TEXT PRIMARY KEY,
    created_at TEXT NOT NULL
)
"""

_CREATE_ENTRIES_TABLE = """
CREATE TABLE IF NOT EXISTS entries (
    store_name TEXT NOT NULL REFERENCES stores(name) ON DELETE CASCADE,
    url        TEXT NOT NULL,
    status     INTEGER NOT NULL,
    headers    TEXT NOT NULL DEFAULT '{}',
    body       BLOB NOT NULL,
    stored_at  TEXT NOT NULL,
    PRIMARY KEY (store_name, url)
)
"""

_INSERT_ENTRY = (
    "INSERT OR REPLACE INTO entries (store_name, url, status, headers, body, stored_at) "
    "VALUES (?, ?, ?, ?, ?, ?)"
)


def _store_error(action: str, name: str, exc: Exception) -> OfflineCacheError:
    return OfflineCacheError(
        code=ErrorCode.STORE_ERROR,
        message=f"Store {action} failed for {name!r}: {exc}",
        recoverable=False,
    )


def _row_to_response(row: aiosqlite.Row | tuple) -> StoredResponse:
    return StoredResponse(
        url=row[0],
        status=row[1],
        headers=json.loads(row[2]),
        body=bytes(row[3]),
    )


class StoreHandle:
    """One named store, implementing StoreHandleProtocol."""

    def __init__(self, db: aiosqlite.Connection, name: str) -> None:
        self._db = db
        self.name = name

    def __repr__(self) -> str:
        return f"StoreHandle({self.name!r})"

    def _params(self, identity: str, response: StoredResponse, now: str) -> tuple:
        return (
            self.name,
            identity,
            response.status,
            json.dumps(response.headers),
            response.body,
            now,
        )

    async def match(self, identity: str) -> StoredResponse | None:
        """Read one entry. Returns ``None`` on miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT url, status, headers, body FROM entries "
                "WHERE store_name = ? AND url = ?",
                (self.name, identity),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_read_error", store=self.name, url=identity, exc_info=True)
            return None
        return None if row is None else _row_to_response(row)

    async def put(self, identity: str, response: StoredResponse) -> None:
        """Write one entry. Last write wins for a given identity."""
        await self.put_all([(identity, response)])

    async def put_all(self, entries: Sequence[tuple[str, StoredResponse]]) -> None:
        """Write every entry in one transaction, or none of them."""
        now = datetime.now(UTC).isoformat()
        try:
            await self._db.executemany(
                _INSERT_ENTRY,
                [self._params(identity, response, now) for identity, response in entries],
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            await self._db.rollback()
            raise _store_error("write", self.name, exc) from exc
        log.debug("store_put", store=self.name, count=len(entries))

    async def delete(self, identity: str) -> bool:
        try:
            cursor = await self._db.execute(
                "DELETE FROM entries WHERE store_name = ? AND url = ?",
                (self.name, identity),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise _store_error("delete", self.name, exc) from exc
        return cursor.rowcount > 0

    async def keys(self) -> list[str]:
        try:
            cursor = await self._db.execute(
                "SELECT url FROM entries WHERE store_name = ? ORDER BY rowid",
                (self.name,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise _store_error("enumerate", self.name, exc) from exc
        return [row[0] for row in rows]


class BlobStore:
    """SQLite-backed collection of named stores implementing BlobStoreProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute("PRAGMA foreign_keys = ON")
        await self._db.execute(_CREATE_STORES_TABLE)
        await self._db.execute(_CREATE_ENTRIES_TABLE)
        await self._db.commit()

    async def open(self, name: str) -> StoreHandle:
        """Return a handle to ``name``, creating the store if it does not exist."""
        try:
            await self._db.execute(
                "INSERT OR IGNORE INTO stores (name, created_at) VALUES (?, ?)",
                (name, datetime.now(UTC).isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise _store_error("open", name, exc) from exc
        return StoreHandle(self._db, name)

    async def has(self, name: str) -> bool:
        try:
            cursor = await self._db.execute("SELECT 1 FROM stores WHERE name = ?", (name,))
            return await cursor.fetchone() is not None
        except aiosqlite.Error:
            log.warning("store_read_error", store=name, exc_info=True)
            return False

    async def delete(self, name: str) -> bool:
        """Delete a store and every entry in it. Irreversible."""
        try:
            cursor = await self._db.execute("DELETE FROM stores WHERE name = ?", (name,))
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise _store_error("delete", name, exc) from exc
        return cursor.rowcount > 0

    async def keys(self) -> list[str]:
        """Store names in creation order."""
        try:
            cursor = await self._db.execute("SELECT name FROM stores ORDER BY rowid")
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise _store_error("enumerate", "*", exc) from exc
        return [row[0] for row in rows]

    async def match(
        self, identity: str, probe_order: Sequence[str] = ()
    ) -> StoredResponse | None:
        """Unscoped lookup across every store.

        Stores named in ``probe_order`` are probed first, in that order; the
        remaining stores follow in creation order. First hit wins. Returns
        ``None`` on miss or read failure.
        """
        try:
            cursor = await self._db.execute(
                "SELECT e.store_name, e.url, e.status, e.headers, e.body FROM entries e "
                "JOIN stores s ON s.name = e.store_name "
                "WHERE e.url = ? ORDER BY s.rowid",
                (identity,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error:
            log.warning("store_read_error", store="*", url=identity, exc_info=True)
            return None

        if not rows:
            return None
        by_store = {row[0]: row[1:] for row in rows}
        for name in probe_order:
            if name in by_store:
                return _row_to_response(by_store[name])
        return _row_to_response(rows[0][1:])
