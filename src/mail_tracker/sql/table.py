# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Table base class with Columns-based schema (async version)."""

from __future__ import annotations

import copy
import json
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any

from .column import Columns

if TYPE_CHECKING:
    from .adapters.base import RowTransaction
    from .sqldb import SqlDb


class RecordUpdater:
    """Async context manager for a single-record read-modify-write.

    Usage:
        async with table.record(pk) as record:
            record['field'] = 'value'
        # → UPDATE of the changed values, same transaction as the read

    The context manager:
    - __aenter__: opens an adapter row transaction (the write lock is taken
      before the read), keeps a copy of the row as old_record
    - __aexit__: writes the changed fields if the block raised nothing and the
      record exists, then commits; rolls back otherwise
    """

    def __init__(self, table: Table, pkey: str, pkey_value: Any):
        self.table = table
        self.pkey = pkey
        self.pkey_value = pkey_value
        self.record: dict[str, Any] | None = None
        self.old_record: dict[str, Any] | None = None
        self._transaction: AbstractAsyncContextManager[RowTransaction] | None = None
        self._row: RowTransaction | None = None

    async def __aenter__(self) -> dict[str, Any] | None:
        self._transaction = self.table.db.adapter.row_transaction(
            self.table.name, {self.pkey: self.pkey_value}
        )
        self._row = await self._transaction.__aenter__()
        if self._row.row is not None:
            self.old_record = self.table._decode_json_fields(self._row.row)
            self.record = copy.deepcopy(self.old_record)
        return self.record

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool | None:
        if self._transaction is None or self._row is None:
            return None
        if exc_type is None and self.record is not None:
            changed = {
                k: v for k, v in self.record.items()
                if k != self.pkey and self.old_record.get(k) != v  # type: ignore[union-attr]
            }
            if changed:
                try:
                    await self._row.update(self.table._encode_json_fields(changed))
                except Exception as exc:
                    await self._transaction.__aexit__(type(exc), exc, exc.__traceback__)
                    raise
        return await self._transaction.__aexit__(exc_type, exc_val, exc_tb)


class Table:
    """Base class for async table managers.

    Subclasses define columns via configure() hook and implement
    domain-specific operations.

    Attributes:
        name: Table name in database.
        db: SqlDb instance reference.
        columns: Column definitions.
    """

    name: str

    def __init__(self, db: SqlDb) -> None:
        self.db = db
        if not hasattr(self, "name") or not self.name:
            raise ValueError(f"{type(self).__name__} must define 'name'")

        self.columns = Columns()
        self.configure()

    def configure(self) -> None:
        """Override to define columns. Called during __init__."""
        pass

    # -------------------------------------------------------------------------
    # Trigger Hooks
    # -------------------------------------------------------------------------

    async def trigger_on_inserting(self, record: dict[str, Any]) -> dict[str, Any]:
        """Called before insert. Can modify record. Return the record to insert."""
        return record

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def create_table_sql(self) -> str:
        """Generate CREATE TABLE IF NOT EXISTS statement."""
        col_defs = []
        for col in self.columns.values():
            if col.primary_key and col.type_ == "INTEGER":
                # Use adapter's pk_column for autoincrement primary key
                col_defs.append(self.db.adapter.pk_column(col.name))
            else:
                col_defs.append(col.to_sql())

        return f"CREATE TABLE IF NOT EXISTS {self.name} (\n    " + ",\n    ".join(col_defs) + "\n)"

    async def sync_schema(self) -> None:
        """Sync table schema by adding any missing columns.

        Safe to call on every startup - existing columns are left alone.
        """
        known = await self.db.adapter.table_columns(self.name)
        for col in self.columns.values():
            if col.primary_key or col.name in known:
                continue
            await self.db.adapter.execute(
                f"ALTER TABLE {self.name} ADD COLUMN {col.to_sql()}"
            )

    # -------------------------------------------------------------------------
    # JSON Encoding/Decoding
    # -------------------------------------------------------------------------

    def _encode_json_fields(self, data: dict[str, Any]) -> dict[str, Any]:
        """Encode JSON fields for storage."""
        result = dict(data)
        for col_name in self.columns.json_columns():
            if col_name in result and result[col_name] is not None:
                result[col_name] = json.dumps(result[col_name])
        return result

    def _decode_json_fields(self, row: dict[str, Any]) -> dict[str, Any]:
        """Decode JSON fields from storage."""
        result = dict(row)
        for col_name in self.columns.json_columns():
            if col_name in result and result[col_name] is not None:
                result[col_name] = json.loads(result[col_name])
        return result

    def _decode_rows(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Decode JSON fields in multiple rows."""
        return [self._decode_json_fields(row) for row in rows]

    # -------------------------------------------------------------------------
    # CRUD Operations
    # -------------------------------------------------------------------------

    async def insert(self, data: dict[str, Any]) -> int:
        """Insert a row. Calls trigger_on_inserting before writing."""
        record = await self.trigger_on_inserting(dict(data))
        encoded = self._encode_json_fields(record)
        return await self.db.adapter.insert(self.name, encoded)

    async def select_one(
        self,
        columns: list[str] | None = None,
        where: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Select single row."""
        row = await self.db.adapter.select_one(self.name, columns, where)
        return self._decode_json_fields(row) if row else None

    def record(
        self,
        pkey_value: Any,
        pkey: str | None = None,
    ) -> RecordUpdater:
        """Return async context manager for record update.

        Args:
            pkey_value: Key value to look up.
            pkey: Key column name (primary key if None).

        Usage:
            async with table.record('abc123', pkey='hash') as rec:
                if rec is not None:
                    rec['subject'] = 'New subject'
        """
        if pkey is None:
            pkey = self.columns.primary_key()
            if pkey is None:
                raise ValueError(f"Table {self.name} has no primary key defined")

        return RecordUpdater(self, pkey, pkey_value)

    async def update(self, values: dict[str, Any], where: dict[str, Any]) -> int:
        """Update rows."""
        encoded = self._encode_json_fields(values)
        return await self.db.adapter.update(self.name, encoded, where)

    # -------------------------------------------------------------------------
    # Raw Query
    # -------------------------------------------------------------------------

    async def fetch_all(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute raw query, return all rows."""
        rows = await self.db.adapter.fetch_all(query, params)
        return self._decode_rows(rows)

    async def execute(
        self, query: str, params: dict[str, Any] | None = None
    ) -> int:
        """Execute raw query, return affected row count."""
        return await self.db.adapter.execute(query, params)


__all__ = ["Table", "RecordUpdater"]
