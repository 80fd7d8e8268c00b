# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for SentEmailsTable and the TrackerDb correlation store."""

import asyncio
import sqlite3
import time

import pytest

from mail_tracker.entities import SentEmailMeta, meta_merger
from mail_tracker.tracker_db import TrackerDb


@pytest.fixture
async def db(tmp_path):
    db = TrackerDb(str(tmp_path / "test.db"))
    await db.init_db()
    yield db
    await db.close()


class TestSentEmailsTable:
    async def test_create_sets_defaults(self, db):
        before = int(time.time())
        await db.create({"hash": "h1", "recipient_email": "r@example.com"})
        record = await db.find_by_token("h1")
        assert record["recipient_email"] == "r@example.com"
        assert record["opens"] == 0
        assert record["clicks"] == 0
        assert record["meta"] == {}
        assert record["message_id"] is None
        assert record["created_at"] >= before

    async def test_hash_is_unique(self, db):
        await db.create({"hash": "dup"})
        with pytest.raises(sqlite3.IntegrityError):
            await db.create({"hash": "dup"})

    async def test_hash_required(self, db):
        with pytest.raises(ValueError):
            await db.create({"subject": "no hash"})

    async def test_unknown_token(self, db):
        assert await db.find_by_token("missing") is None

    async def test_set_message_id_and_lookup(self, db):
        await db.create({"hash": "h1"})
        assert await db.set_message_id("h1", "provider-1") is True
        assert await db.set_message_id("nope", "provider-2") is False
        record = await db.find_by_message_id("provider-1")
        assert record["hash"] == "h1"
        assert await db.find_by_message_id("provider-2") is None

    async def test_sync_schema_is_repeatable(self, db):
        await db.init_db()
        columns = await db.adapter.table_columns("sent_emails")
        assert {"hash", "message_id", "meta", "created_at"} <= columns

    async def test_sync_schema_adds_missing_columns(self, tmp_path):
        path = str(tmp_path / "old.db")
        with sqlite3.connect(path) as conn:
            conn.execute(
                "CREATE TABLE sent_emails (id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "hash TEXT NOT NULL UNIQUE, created_at INTEGER NOT NULL)"
            )
        db = TrackerDb(path)
        await db.init_db()
        columns = await db.adapter.table_columns("sent_emails")
        assert {"message_id", "meta", "opens", "clicks", "content"} <= columns


class TestMetaUpdate:
    async def test_update_merges_meta(self, db):
        await db.create({"hash": "h1", "meta": {"content_file_path": "/tmp/x.html"}})
        updated = await db.update("h1", meta_merger({"success": False}))
        assert updated["meta"] == {"content_file_path": "/tmp/x.html", "success": False}
        stored = await db.find_by_token("h1")
        assert stored["meta"] == updated["meta"]

    async def test_update_overwrites_existing_keys(self, db):
        await db.create({"hash": "h1"})
        await db.update("h1", meta_merger({"failures": [{"emailAddress": "a@x"}]}))
        await db.update("h1", meta_merger({"failures": [{"emailAddress": "b@x"}]}))
        stored = await db.find_by_token("h1")
        assert stored["meta"]["failures"] == [{"emailAddress": "b@x"}]

    async def test_concurrent_updates_all_applied(self, db):
        await db.create({"hash": "h1"})
        await asyncio.gather(*(db.update("h1", meta_merger({f"key{i}": i})) for i in range(12)))
        stored = await db.find_by_token("h1")
        assert stored["meta"] == {f"key{i}": i for i in range(12)}

    async def test_update_unknown_token(self, db):
        assert await db.update("missing", meta_merger({"success": False})) is None

    async def test_unknown_meta_keys_survive(self, db):
        await db.create({"hash": "h1", "meta": {"opened_by": "proxy"}})
        updated = await db.update("h1", meta_merger({"complaint": True}))
        assert updated["meta"] == {"opened_by": "proxy", "complaint": True}

    async def test_mutator_receives_copy(self, db):
        await db.create({"hash": "h1", "meta": {"failures": []}})

        def mutate(document):
            document["failures"].append({"emailAddress": "a@x"})
            return document

        updated = await db.update("h1", mutate)
        assert updated["meta"]["failures"] == [{"emailAddress": "a@x"}]
        stored = await db.find_by_token("h1")
        assert stored["meta"]["failures"] == [{"emailAddress": "a@x"}]


class TestRetention:
    async def test_remove_older_than(self, db):
        now = int(time.time())
        await db.create({"hash": "old", "created_at": now - 10_000, "meta": {"content_file_path": "/f"}})
        await db.create({"hash": "new", "created_at": now})
        removed = await db.remove_older_than(now - 100)
        assert [r["hash"] for r in removed] == ["old"]
        assert removed[0]["meta"] == {"content_file_path": "/f"}
        assert await db.find_by_token("old") is None
        assert await db.find_by_token("new") is not None

    async def test_remove_nothing(self, db):
        await db.create({"hash": "new"})
        assert await db.remove_older_than(0) == []


class TestSentEmailMeta:
    def test_defaults(self):
        meta = SentEmailMeta.from_document(None)
        assert meta.success is True
        assert meta.failures == []
        assert meta.complaint is False
        assert meta.to_document() == {}

    def test_merged_keeps_written_keys_only(self):
        meta = SentEmailMeta.from_document({"custom": 1}).merged({"complaint": True})
        assert meta.to_document() == {"custom": 1, "complaint": True}

    def test_merge_is_idempotent(self):
        changes = {"success": False, "failures": [{"emailAddress": "a@x"}]}
        once = meta_merger(changes)({})
        twice = meta_merger(changes)(once)
        assert once == twice
