# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base adapter class for async database backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence


class RowTransaction(ABC):
    """One row read under the database write lock.

    ``row`` is the row as read when the transaction started (None if no row
    matched). ``update`` writes on the same connection, inside the same
    transaction.
    """

    row: dict[str, Any] | None

    @abstractmethod
    async def update(self, values: dict[str, Any]) -> None:
        ...


class DbAdapter(ABC):
    """Abstract base class for async database adapters.

    All queries use :name placeholders. The CRUD helpers (insert, select_one,
    update) build their SQL from the primitives below, so a backend only
    implements connection handling, raw execution and row transactions.
    """

    def pk_column(self, name: str) -> str:
        """Return SQL definition for autoincrement primary key column."""
        return f'"{name}" INTEGER PRIMARY KEY AUTOINCREMENT'

    def _placeholder(self, name: str) -> str:
        return f":{name}"

    def _sql_name(self, name: str) -> str:
        return f'"{name}"'

    @abstractmethod
    async def connect(self) -> None:
        """Establish database connection."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close database connection."""
        ...

    @abstractmethod
    async def execute(self, query: str, params: dict[str, Any] | None = None) -> int:
        """Execute query, return affected row count."""
        ...

    @abstractmethod
    async def fetch_one(
        self, query: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Execute query, return single row as dict or None."""
        ...

    @abstractmethod
    async def fetch_all(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query, return all rows as list of dicts."""
        ...

    @abstractmethod
    async def execute_script(self, script: str) -> None:
        """Execute multiple statements (for schema creation)."""
        ...

    @abstractmethod
    async def table_columns(self, table: str) -> set[str]:
        """Return the names of the columns currently present in a table."""
        ...

    @abstractmethod
    def row_transaction(
        self, table: str, where: dict[str, Any]
    ) -> AbstractAsyncContextManager[RowTransaction]:
        """Open a read-modify-write transaction on the row matching ``where``.

        The write lock is held from the read until the block exits: the
        transaction commits on normal exit and rolls back if the block raises.
        Concurrent transactions on the same row run one after the other.
        """
        ...

    # -------------------------------------------------------------------------
    # CRUD helpers
    # -------------------------------------------------------------------------

    def _where_sql(self, where: dict[str, Any] | None) -> str:
        if not where:
            return ""
        conditions = [f"{self._sql_name(k)} = {self._placeholder(k)}" for k in where]
        return " WHERE " + " AND ".join(conditions)

    async def insert(self, table: str, data: dict[str, Any]) -> int:
        """Insert a row, return affected row count."""
        col_list = ", ".join(self._sql_name(c) for c in data)
        placeholders = ", ".join(self._placeholder(c) for c in data)
        return await self.execute(
            f"INSERT INTO {table} ({col_list}) VALUES ({placeholders})", data
        )

    async def select_one(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        where: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        cols_sql = ", ".join(self._sql_name(c) for c in columns) if columns else "*"
        return await self.fetch_one(
            f"SELECT {cols_sql} FROM {table}{self._where_sql(where)} LIMIT 1", where
        )

    def _update_sql(
        self, table: str, values: dict[str, Any], where: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """Build an UPDATE statement. Value and where params are namespaced."""
        params: dict[str, Any] = {}
        set_parts = []
        for key, value in values.items():
            params[f"v_{key}"] = value
            set_parts.append(f"{self._sql_name(key)} = {self._placeholder('v_' + key)}")
        conditions = []
        for key, value in where.items():
            params[f"w_{key}"] = value
            conditions.append(f"{self._sql_name(key)} = {self._placeholder('w_' + key)}")
        query = f"UPDATE {table} SET {', '.join(set_parts)} WHERE {' AND '.join(conditions)}"
        return query, params

    async def update(
        self, table: str, values: dict[str, Any], where: dict[str, Any]
    ) -> int:
        """Update rows matching where, return affected row count."""
        query, params = self._update_sql(table, values, where)
        return await self.execute(query, params)
