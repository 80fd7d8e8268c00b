# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mail tracker database manager with pre-registered tables.

Extends SqlDb with the sent_emails table and implements the correlation
store contract on top of it.

Example:
    db = TrackerDb("/data/mail_tracker.db")
    await db.init_db()

    await db.create({"hash": token, "recipient_email": "r@example.com"})
    await db.set_message_id(token, "0100018c-provider-id")
    record = await db.find_by_message_id("0100018c-provider-id")
    await db.update(token, meta_merger({"success": False}))
"""

from __future__ import annotations

from typing import Any

from .entities import SentEmailsTable
from .sql import SqlDb
from .store import MetaMutator


class TrackerDb(SqlDb):
    """Tracker database with pre-registered tables."""

    def __init__(self, connection_string: str = "/data/mail_tracker.db"):
        """Initialize the tracker database.

        Args:
            connection_string: Database connection string. Formats:
                - "/path/to/db.sqlite" - SQLite file
                - "sqlite:/path/to/db" - SQLite explicit
        """
        super().__init__(connection_string)
        self.add_table(SentEmailsTable)

    @property
    def sent_emails(self) -> SentEmailsTable:
        return self.table("sent_emails")  # type: ignore[return-value]

    async def init_db(self) -> None:
        """Initialize database: connect, create schema, add missing columns."""
        await self.connect()
        await self.check_structure()
        await self.sent_emails.sync_schema()
        await self.sent_emails.create_indexes()

    # -------------------------------------------------------------------------
    # Correlation store
    # -------------------------------------------------------------------------
    async def find_by_token(self, token: str) -> dict[str, Any] | None:
        return await self.sent_emails.get_by_hash(token)

    async def find_by_message_id(self, message_id: str) -> dict[str, Any] | None:
        return await self.sent_emails.get_by_message_id(message_id)

    async def create(self, record: dict[str, Any]) -> None:
        await self.sent_emails.add(record)

    async def update(self, token: str, mutator: MetaMutator) -> dict[str, Any] | None:
        return await self.sent_emails.update_meta(token, mutator)

    async def set_message_id(self, token: str, message_id: str) -> bool:
        return await self.sent_emails.set_message_id(token, message_id)

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------
    async def remove_older_than(self, threshold_ts: int) -> list[dict[str, Any]]:
        """Delete records created before ``threshold_ts``.

        Returns the removed rows (id, hash, message_id, meta, created_at) so the
        caller can clean up anything referenced by their meta, such as
        ``content_file_path``.
        """
        removed = await self.sent_emails.list_created_before(threshold_ts)
        if removed:
            await self.sent_emails.remove_created_before(threshold_ts)
        return removed


__all__ = ["TrackerDb"]
