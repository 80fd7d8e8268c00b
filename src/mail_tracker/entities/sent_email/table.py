# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Sent emails table manager: one correlation record per tracked message.

Fields:
- hash: Correlation token carried by the message (unique)
- message_id: Provider message id, set once the transport reports it
- headers: Header block of the outbound message
- sender_*/recipient_*/subject: Envelope snapshot
- content: Original HTML before tracking injection
- opens/clicks: Engagement counters maintained by the tracking endpoints
- meta: JSON document (see SentEmailMeta) with merge-on-write semantics
- created_at: Unix timestamp of creation, used by purge routines
"""

from __future__ import annotations

import time
from typing import Any

from ...sql import Integer, String, Table
from ...store import MetaMutator


class SentEmailsTable(Table):
    """Sent emails table: correlation records keyed by token."""

    name = "sent_emails"

    def configure(self) -> None:
        c = self.columns
        c.column("id", Integer, primary_key=True)  # autoincrement
        c.column("hash", String, nullable=False, unique=True)
        c.column("message_id", String)
        c.column("headers", String)
        c.column("sender_name", String)
        c.column("sender_email", String)
        c.column("recipient_name", String)
        c.column("recipient_email", String)
        c.column("subject", String)
        c.column("content", String)
        c.column("opens", Integer, nullable=False, default=0)
        c.column("clicks", Integer, nullable=False, default=0)
        c.column("meta", String, json_encoded=True)
        c.column("created_at", Integer, nullable=False)

    async def trigger_on_inserting(self, record: dict[str, Any]) -> dict[str, Any]:
        record.setdefault("created_at", int(time.time()))
        record.setdefault("opens", 0)
        record.setdefault("clicks", 0)
        if record.get("meta") is None:
            record["meta"] = {}
        return record

    async def create_indexes(self) -> None:
        await self.execute(
            "CREATE INDEX IF NOT EXISTS idx_sent_emails_message_id ON sent_emails (message_id)"
        )
        await self.execute(
            "CREATE INDEX IF NOT EXISTS idx_sent_emails_created_at ON sent_emails (created_at)"
        )

    async def add(self, record: dict[str, Any]) -> None:
        """Insert a new record. The UNIQUE constraint rejects a reused hash."""
        if not record.get("hash"):
            raise ValueError("record requires a hash")
        await self.insert(record)

    async def get_by_hash(self, token: str) -> dict[str, Any] | None:
        return await self.select_one(where={"hash": token})

    async def get_by_message_id(self, message_id: str) -> dict[str, Any] | None:
        return await self.select_one(where={"message_id": message_id})

    async def set_message_id(self, token: str, message_id: str) -> bool:
        """Store the provider message id. Returns False if the hash is unknown."""
        updated = await self.update({"message_id": message_id}, {"hash": token})
        return updated > 0

    async def update_meta(self, token: str, mutator: MetaMutator) -> dict[str, Any] | None:
        """Atomic read-modify-write of the meta document.

        Read, mutation and write happen in one row transaction, so concurrent
        updates of the same record apply one after the other.

        ``mutator`` receives a private copy of the current document and
        returns the document to store. Returns the updated record, or None
        when no record has this hash.
        """
        async with self.record(token, pkey="hash") as rec:
            if rec is None:
                return None
            rec["meta"] = mutator(dict(rec.get("meta") or {}))
        return rec

    async def list_created_before(self, threshold_ts: int) -> list[dict[str, Any]]:
        return await self.fetch_all(
            """
            SELECT id, hash, message_id, meta, created_at
            FROM sent_emails
            WHERE created_at < :threshold_ts
            ORDER BY created_at ASC, id ASC
            """,
            {"threshold_ts": threshold_ts},
        )

    async def remove_created_before(self, threshold_ts: int) -> int:
        return await self.execute(
            "DELETE FROM sent_emails WHERE created_at < :threshold_ts",
            {"threshold_ts": threshold_ts},
        )


__all__ = ["SentEmailsTable"]
