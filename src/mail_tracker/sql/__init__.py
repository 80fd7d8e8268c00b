# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Async SQL layer with adapter pattern and table registration.

Usage:
    db = SqlDb("/data/tracker.db")
    await db.connect()
    db.add_table(SentEmailsTable)
    await db.check_structure()
    record = await db.table("sent_emails").select_one(where={"hash": "abc"})
    await db.close()
"""

from .adapters import DbAdapter, SqliteAdapter, get_adapter
from .column import Column, Columns, Integer, String
from .sqldb import SqlDb
from .table import RecordUpdater, Table

__all__ = [
    "SqlDb",
    "Table",
    "RecordUpdater",
    "Column",
    "Columns",
    "Integer",
    "String",
    "DbAdapter",
    "SqliteAdapter",
    "get_adapter",
]
