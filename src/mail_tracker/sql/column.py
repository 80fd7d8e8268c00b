# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Column definitions used by Table.configure()."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

Integer = "INTEGER"
String = "TEXT"


@dataclass
class Column:
    """Single column definition.

    Attributes:
        name: Column name.
        type_: SQL type (Integer or String).
        primary_key: Column is the table primary key.
        nullable: Column accepts NULL.
        unique: Column carries a UNIQUE constraint.
        default: SQL default (literal value or SQL keyword such as CURRENT_TIMESTAMP).
        json_encoded: Value is stored as JSON text and decoded on read.
    """

    name: str
    type_: str
    primary_key: bool = False
    nullable: bool = True
    unique: bool = False
    default: Any = None
    json_encoded: bool = False

    def to_sql(self) -> str:
        parts = [f'"{self.name}"', self.type_]
        if self.primary_key:
            parts.append("PRIMARY KEY")
        if not self.nullable and not self.primary_key:
            parts.append("NOT NULL")
        if self.unique and not self.primary_key:
            parts.append("UNIQUE")
        if self.default is not None:
            parts.append(f"DEFAULT {self._default_sql()}")
        return " ".join(parts)

    def _default_sql(self) -> str:
        if isinstance(self.default, bool):
            return "1" if self.default else "0"
        if isinstance(self.default, (int, float)):
            return str(self.default)
        if self.default in ("CURRENT_TIMESTAMP", "NULL"):
            return self.default
        escaped = str(self.default).replace("'", "''")
        return f"'{escaped}'"


class Columns(dict[str, Column]):
    """Ordered mapping of column name to Column."""

    def column(self, name: str, type_: str, **kwargs: Any) -> Column:
        """Define a column and return it."""
        col = Column(name, type_, **kwargs)
        self[name] = col
        return col

    def json_columns(self) -> list[str]:
        return [c.name for c in self.values() if c.json_encoded]

    def primary_key(self) -> str | None:
        for col in self.values():
            if col.primary_key:
                return col.name
        return None


__all__ = ["Column", "Columns", "Integer", "String"]
