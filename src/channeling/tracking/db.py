# src/channeling/tracking/db.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path

import aiosqlite

from ..errors import PersistenceError, ReferentialIntegrityError

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class Database:
    """
    Async SQLite handle shared by StatusStore and TaskStore.

    Connection model:
    - file databases: one short-lived connection per operation
    - ":memory:": a single shared connection (otherwise every call would see an empty db),
      used by one caller at a time; `connect()` and `transaction()` hold a lock for the
      whole body so concurrent coroutines cannot interleave statements or transactions

    Every connection runs with foreign keys ON; SQLite defaults them to OFF.
    Connections are opened in autocommit mode and writes go through
    `transaction()`, which issues BEGIN IMMEDIATE / COMMIT / ROLLBACK itself.
    """

    def __init__(self, path: str | Path = MEMORY) -> None:
        self._path = str(path)
        self._shared: aiosqlite.Connection | None = None
        self._shared_lock = asyncio.Lock()
        if self._path != MEMORY:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> str:
        return self._path

    async def close(self) -> None:
        """Only needed for ":memory:" databases; file connections are closed per call."""
        async with self._shared_lock:
            if self._shared is not None:
                await self._shared.close()
                self._shared = None

    async def _open(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self._path, timeout=30.0, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        if self._path != MEMORY:
            with contextlib.suppress(aiosqlite.Error):
                await conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _exclusive(self) -> contextlib.AbstractAsyncContextManager:
        # File connections are private to one call; SQLite locking covers them.
        if self._path == MEMORY:
            return self._shared_lock
        return contextlib.nullcontext()

    @contextlib.asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            if self._path == MEMORY:
                if self._shared is None:
                    self._shared = await self._open()
                yield self._shared
            else:
                conn = await self._open()
                try:
                    yield conn
                finally:
                    await conn.close()
        except aiosqlite.IntegrityError as e:
            raise ReferentialIntegrityError(str(e)) from e
        except aiosqlite.Error as e:
            raise PersistenceError(str(e)) from e

    @contextlib.asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a configured connection; storage errors surface as PersistenceError."""
        async with self._exclusive(), self._connection() as conn:
            yield conn

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run the body in one write transaction.

        BEGIN IMMEDIATE takes the write lock up front, so a read-then-write body
        (lookup + insert/update) cannot interleave with another writer.
        Do not call `connect()` from inside the body on a ":memory:" database.
        """
        async with self._exclusive(), self._connection() as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                with contextlib.suppress(aiosqlite.Error):
                    await conn.execute("ROLLBACK")
                raise
            await conn.execute("COMMIT")
