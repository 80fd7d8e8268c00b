# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQLite async adapter using aiosqlite."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiosqlite

from .base import DbAdapter, RowTransaction


class SqliteRowTransaction(RowTransaction):
    """Row transaction bound to one aiosqlite connection."""

    def __init__(
        self,
        adapter: SqliteAdapter,
        conn: aiosqlite.Connection,
        table: str,
        where: dict[str, Any],
    ):
        self.adapter = adapter
        self.conn = conn
        self.table = table
        self.where = where
        self.row: dict[str, Any] | None = None

    async def load(self) -> None:
        query = f"SELECT * FROM {self.table}{self.adapter._where_sql(self.where)} LIMIT 1"
        async with self.conn.execute(query, self.where) as cursor:
            row = await cursor.fetchone()
            if row is not None:
                cols = [c[0] for c in cursor.description]
                self.row = dict(zip(cols, row, strict=True))

    async def update(self, values: dict[str, Any]) -> None:
        query, params = self.adapter._update_sql(self.table, values, self.where)
        await self.conn.execute(query, params)


class SqliteAdapter(DbAdapter):
    """SQLite async adapter. Opens connection per-operation for thread safety."""

    # Seconds a row transaction waits for the write lock held by another one.
    busy_timeout = 30.0

    def __init__(self, db_path: str):
        """Initialize SQLite adapter.

        Args:
            db_path: Path to SQLite file.
        """
        self.db_path = db_path

    async def connect(self) -> None:
        """SQLite connections are opened per-operation, this is a no-op."""
        pass

    async def close(self) -> None:
        """SQLite connections are closed per-operation, this is a no-op."""
        pass

    async def execute(self, query: str, params: dict[str, Any] | None = None) -> int:
        """Execute query, return affected row count."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(query, params or {})
            await db.commit()
            return cursor.rowcount

    async def fetch_one(
        self, query: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Execute query, return single row as dict or None."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(query, params or {}) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                cols = [c[0] for c in cursor.description]
                return dict(zip(cols, row, strict=True))

    async def fetch_all(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query, return all rows as list of dicts."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(query, params or {}) as cursor:
                rows = await cursor.fetchall()
                cols = [c[0] for c in cursor.description]
                return [dict(zip(cols, row, strict=True)) for row in rows]

    async def execute_script(self, script: str) -> None:
        """Execute multiple statements (for schema creation)."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(script)
            await db.commit()

    async def table_columns(self, table: str) -> set[str]:
        rows = await self.fetch_all(f"PRAGMA table_info({table})")
        return {row["name"] for row in rows}

    @asynccontextmanager
    async def row_transaction(
        self, table: str, where: dict[str, Any]
    ) -> AsyncIterator[SqliteRowTransaction]:
        """Read-modify-write under BEGIN IMMEDIATE on a single connection.

        BEGIN IMMEDIATE takes the database write lock before the row is read,
        so a concurrent transaction blocks (up to ``busy_timeout``) until this
        one commits and then reads the committed row.
        """
        async with aiosqlite.connect(
            self.db_path, isolation_level=None, timeout=self.busy_timeout
        ) as db:
            await db.execute("BEGIN IMMEDIATE")
            transaction = SqliteRowTransaction(self, db, table, where)
            try:
                await transaction.load()
                yield transaction
            except BaseException:
                await db.execute("ROLLBACK")
                raise
            await db.execute("COMMIT")
