# src/channeling/tracking/task_store.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

import aiosqlite

from .db import Database
from .models import DefaultStatus, Task, decode_tags, encode_tags, merge_tags

logger = logging.getLogger(__name__)

_SELECT_TASKS = """
    SELECT task.id, task.channel, task.message_ref, task.status_id, task.tags,
           task.created_at, task.updated_at, status.name AS status_name
    FROM task
    JOIN status ON status.id = task.status_id
"""


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    The status table must exist before initialize() runs (status_id is a
    foreign key with ON DELETE SET DEFAULT back to New).
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def initialize(self) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS task (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    channel TEXT NOT NULL,
                    message_ref TEXT NOT NULL,
                    status_id INTEGER NOT NULL DEFAULT {int(DefaultStatus.NEW)}
                        REFERENCES status(id) ON DELETE SET DEFAULT,
                    tags TEXT NOT NULL DEFAULT '',
                    created_at REAL NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL DEFAULT 0,
                    UNIQUE (channel, message_ref)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur = await conn.execute("PRAGMA table_info(task)")
            cols = {row["name"] for row in await cur.fetchall()}

            async def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                await conn.execute(f"ALTER TABLE task ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            await add_col("created_at", "REAL NOT NULL DEFAULT 0")
            await add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            await conn.execute("CREATE INDEX IF NOT EXISTS idx_task_status ON task(status_id)")

        logger.info("TaskStore ready db=%s total=%s", self._db.path, await self.count())

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        return Task(
            id=int(row["id"]),
            channel=str(row["channel"]),
            message_ref=str(row["message_ref"]),
            status_id=int(row["status_id"]),
            status_name=str(row["status_name"] or ""),
            tags=decode_tags(row["tags"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- public API ----

    async def count(self) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT COUNT(*) FROM task")
            (n,) = await cur.fetchone()
            return int(n)

    async def list(self) -> list[Task]:
        async with self._db.connect() as conn:
            cur = await conn.execute(_SELECT_TASKS + " ORDER BY task.id ASC")
            return [self._row_to_task(r) for r in await cur.fetchall()]

    async def get(self, task_id: int) -> Task | None:
        async with self._db.connect() as conn:
            cur = await conn.execute(_SELECT_TASKS + " WHERE task.id = ?", (int(task_id),))
            row = await cur.fetchone()
            return self._row_to_task(row) if row else None

    async def find(self, channel: str, message_ref: str) -> Task | None:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                _SELECT_TASKS + " WHERE task.channel = ? AND task.message_ref = ?",
                (channel, message_ref),
            )
            row = await cur.fetchone()
            return self._row_to_task(row) if row else None

    async def create_or_merge_tags(
        self,
        channel: str,
        message_ref: str,
        tags: Iterable[str],
    ) -> Task:
        """
        Create the task for (channel, message_ref) or toggle tags on the existing one.

        - absent  -> insert with `tags` and status New
        - present -> tags := current XOR incoming

        Lookup and write share one BEGIN IMMEDIATE transaction, so two calls
        for the same message cannot both insert.
        """
        incoming = frozenset(t.strip() for t in tags if t and t.strip())
        if not channel or not message_ref:
            raise ValueError("channel and message_ref are required")

        now = time.time()
        async with self._db.transaction() as conn:
            cur = await conn.execute(
                "SELECT id, tags FROM task WHERE channel = ? AND message_ref = ?",
                (channel, message_ref),
            )
            row = await cur.fetchone()

            if row is None:
                if not incoming:
                    raise ValueError("tags are required to create a task")
                cur = await conn.execute(
                    """
                    INSERT INTO task (channel, message_ref, tags, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (channel, message_ref, encode_tags(incoming), now, now),
                )
                rowid = cur.lastrowid
                if rowid is None:
                    raise RuntimeError("SQLite did not return lastrowid for task insert")
                task_id = int(rowid)
                logger.debug("Task added id=%s channel=%s ref=%s tags=%s", task_id, channel, message_ref, sorted(incoming))
            else:
                task_id = int(row["id"])
                merged = merge_tags(decode_tags(row["tags"]), incoming)
                await conn.execute(
                    "UPDATE task SET tags = ?, updated_at = ? WHERE id = ?",
                    (encode_tags(merged), now, task_id),
                )
                logger.debug("Task merged id=%s tags=%s", task_id, sorted(merged))

            cur = await conn.execute(_SELECT_TASKS + " WHERE task.id = ?", (task_id,))
            return self._row_to_task(await cur.fetchone())

    async def update_status(self, task_id: int, status_id: int) -> int:
        """
        Reassign a task's status. Returns rows affected (0 for an unknown task).

        An unknown status_id is rejected by the foreign key and raises
        ReferentialIntegrityError.
        """
        async with self._db.transaction() as conn:
            cur = await conn.execute(
                "UPDATE task SET status_id = ?, updated_at = ? WHERE id = ?",
                (int(status_id), time.time(), int(task_id)),
            )
            changed = cur.rowcount
        logger.debug("Task status id=%s -> %s changed=%s", task_id, status_id, changed)
        return int(changed)
