# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for CLI commands and helper functions."""

import json
import time

import pytest
from click.testing import CliRunner

from mail_tracker.cli import main, run_async
from mail_tracker.tracker_db import TrackerDb


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "cli.db")

    async def seed():
        db = TrackerDb(path)
        await db.init_db()
        await db.create({
            "hash": "tok1",
            "recipient_email": "rcpt@example.com",
            "subject": "Hello",
        })
        await db.set_message_id("tok1", "ses-1")
        await db.create({"hash": "old1", "created_at": int(time.time()) - 90 * 86400})

    run_async(seed())
    return path


def fetch(db_path, token):
    async def _fetch():
        db = TrackerDb(db_path)
        await db.init_db()
        return await db.find_by_token(token)

    return run_async(_fetch())


def test_run_async():
    async def answer():
        return 42

    assert run_async(answer()) == 42


class TestFeedbackCommand:
    def test_applies_bounce(self, db_path, tmp_path):
        notification = tmp_path / "bounce.json"
        notification.write_text(json.dumps({
            "notificationType": "Bounce",
            "mail": {"messageId": "ses-1"},
            "bounce": {
                "bounceType": "Permanent",
                "bouncedRecipients": [{"emailAddress": "rcpt@example.com"}],
            },
        }))

        result = CliRunner().invoke(main, ["--db", db_path, "feedback", str(notification)])

        assert result.exit_code == 0, result.output
        assert "Updated record tok1" in result.output
        assert "PermanentBounceEvent: rcpt@example.com" in result.output
        assert fetch(db_path, "tok1")["meta"]["success"] is False

    def test_unknown_message_id(self, db_path, tmp_path):
        notification = tmp_path / "complaint.json"
        notification.write_text(json.dumps({
            "notificationType": "Complaint",
            "mail": {"messageId": "unknown"},
            "complaint": {"timestamp": 1, "complainedRecipients": [{"emailAddress": "x@y"}]},
        }))

        result = CliRunner().invoke(main, ["--db", db_path, "feedback", str(notification)])

        assert result.exit_code == 0
        assert "nothing recorded" in result.output

    def test_malformed_notification(self, db_path, tmp_path):
        notification = tmp_path / "bad.json"
        notification.write_text('{"notificationType": "Bounce", "mail": {}}')

        result = CliRunner().invoke(main, ["--db", db_path, "feedback", str(notification)])

        assert result.exit_code == 1
        assert fetch(db_path, "tok1")["meta"] == {}


class TestShowCommand:
    def test_show_table(self, db_path):
        result = CliRunner().invoke(main, ["--db", db_path, "show", "tok1"])
        assert result.exit_code == 0, result.output
        assert "rcpt@example.com" in result.output
        assert "ses-1" in result.output

    def test_show_json(self, db_path):
        result = CliRunner().invoke(main, ["--db", db_path, "show", "tok1", "--json"])
        assert result.exit_code == 0
        assert '"hash": "tok1"' in result.output

    def test_show_missing(self, db_path):
        result = CliRunner().invoke(main, ["--db", db_path, "show", "missing"])
        assert result.exit_code == 1


class TestPurgeCommand:
    def test_purge_old_records(self, db_path):
        result = CliRunner().invoke(main, ["--db", db_path, "purge", "--days", "30"])
        assert result.exit_code == 0, result.output
        assert "Removed 1 record(s)" in result.output
        assert fetch(db_path, "old1") is None
        assert fetch(db_path, "tok1") is not None

    def test_purge_uses_configured_retention(self, db_path, tmp_path):
        config_file = tmp_path / "config.ini"
        config_file.write_text("[tracker]\nexpire_days = 365\n")
        result = CliRunner().invoke(
            main, ["--config", str(config_file), "--db", db_path, "purge"]
        )
        assert result.exit_code == 0
        assert "Removed 0 record(s)" in result.output
        assert fetch(db_path, "old1") is not None

    def test_purge_disabled(self, db_path):
        result = CliRunner().invoke(main, ["--db", db_path, "purge", "--days", "0"])
        assert result.exit_code == 0
        assert fetch(db_path, "old1") is not None

    def test_purge_removes_content_files(self, db_path, tmp_path):
        snapshot = tmp_path / "snapshot.html"
        snapshot.write_text("<html></html>")

        async def seed():
            db = TrackerDb(db_path)
            await db.create({
                "hash": "old2",
                "created_at": int(time.time()) - 90 * 86400,
                "meta": {"content_file_path": str(snapshot)},
            })

        run_async(seed())
        result = CliRunner().invoke(main, ["--db", db_path, "purge", "--days", "30"])
        assert result.exit_code == 0
        assert not snapshot.exists()
