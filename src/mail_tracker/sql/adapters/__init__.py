# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Database adapters."""

from .base import DbAdapter
from .sqlite import SqliteAdapter


def get_adapter(connection_string: str) -> DbAdapter:
    """Create database adapter from connection string.

    Connection string formats:
        - "sqlite:/path/to/db.sqlite" or just "/path/to/db.sqlite"
        - a relative path, treated as an SQLite file

    Raises:
        ValueError: If the connection string names an unsupported backend.
    """
    if ":" not in connection_string or connection_string.startswith("/"):
        return SqliteAdapter(connection_string)

    db_type, connection_info = connection_string.split(":", 1)
    if db_type.lower() == "sqlite":
        return SqliteAdapter(connection_info)
    # Windows drive letters ("C:\\data\\tracker.db")
    if len(db_type) == 1:
        return SqliteAdapter(connection_string)

    raise ValueError(
        f"Unknown database type: '{db_type}'. "
        "Supported: sqlite"
    )


__all__ = ["DbAdapter", "SqliteAdapter", "get_adapter"]
