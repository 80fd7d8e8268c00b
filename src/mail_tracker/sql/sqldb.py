# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Database manager holding an adapter and a registry of tables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .adapters import get_adapter

if TYPE_CHECKING:
    from .table import Table


class SqlDb:
    """Async database with table registration.

    Example:
        db = SqlDb("/data/tracker.db")
        await db.connect()
        db.add_table(SentEmailsTable)
        await db.check_structure()
        row = await db.table("sent_emails").select_one(where={"hash": "abc"})
        await db.close()
    """

    def __init__(self, connection_string: str):
        self.connection_string = connection_string
        self.adapter = get_adapter(connection_string)
        self.tables: dict[str, Table] = {}

    def add_table(self, table_class: type[Table]) -> Table:
        """Instantiate and register a table manager."""
        table = table_class(self)
        self.tables[table.name] = table
        return table

    def table(self, name: str) -> Table:
        try:
            return self.tables[name]
        except KeyError:
            raise KeyError(f"Table '{name}' is not registered") from None

    async def connect(self) -> None:
        await self.adapter.connect()

    async def close(self) -> None:
        await self.adapter.close()

    async def check_structure(self) -> None:
        """Create every registered table that does not exist yet."""
        script = ";\n".join(t.create_table_sql() for t in self.tables.values())
        if script:
            await self.adapter.execute_script(script + ";")


__all__ = ["SqlDb"]
