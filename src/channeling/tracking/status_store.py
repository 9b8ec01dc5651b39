# src/channeling/tracking/status_store.py

from __future__ import annotations

import logging
import time

import aiosqlite

from ..errors import NotFoundError, ReservedStatusError
from .db import Database
from .models import DefaultStatus, Status

logger = logging.getLogger(__name__)


class StatusStore:
    """
    Catalog of statuses a task can be in.

    The two built-in statuses (see DefaultStatus) are seeded by initialize()
    and guarded against deletion here, not left to foreign-key side effects.
    Names are not validated: empty and duplicate names are accepted.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def initialize(self) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS status (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL
                )
                """
            )
            # INSERT OR IGNORE keeps seeding idempotent across restarts.
            await conn.executemany(
                "INSERT OR IGNORE INTO status (id, name) VALUES (?, ?)",
                [(int(s), s.label) for s in DefaultStatus],
            )
        logger.info("StatusStore ready db=%s", self._db.path)

    @staticmethod
    def _row_to_status(row: aiosqlite.Row) -> Status:
        return Status(id=int(row["id"]), name=str(row["name"] or ""))

    async def list(self) -> list[Status]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT id, name FROM status ORDER BY id ASC")
            rows = await cur.fetchall()
            return [self._row_to_status(r) for r in rows]

    async def get(self, status_id: int) -> Status:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT id, name FROM status WHERE id = ?", (int(status_id),))
            row = await cur.fetchone()
        if row is None:
            raise NotFoundError(f"status {status_id} not found")
        return self._row_to_status(row)

    async def create(self, name: str) -> None:
        async with self._db.transaction() as conn:
            cur = await conn.execute("INSERT INTO status (name) VALUES (?)", (name,))
            logger.debug("Status added id=%s name=%r", cur.lastrowid, name)

    async def delete(self, status_id: int) -> int:
        """
        Delete a user-created status.

        Tasks still pointing at it are moved back to New in the same
        transaction. Returns the number of deleted status rows (0 if the id
        does not exist).
        """
        reserved = DefaultStatus.of(status_id)
        if reserved is not None:
            raise ReservedStatusError(int(reserved))

        async with self._db.transaction() as conn:
            cur = await conn.execute(
                "UPDATE task SET status_id = ?, updated_at = ? WHERE status_id = ?",
                (int(DefaultStatus.NEW), time.time(), int(status_id)),
            )
            moved = cur.rowcount
            cur = await conn.execute("DELETE FROM status WHERE id = ?", (int(status_id),))
            deleted = cur.rowcount

        logger.info("Status deleted id=%s deleted=%s tasks_reset=%s", status_id, deleted, moved)
        return int(deleted)
