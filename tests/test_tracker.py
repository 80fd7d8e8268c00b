# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for the send-path hooks of MailTracker."""

import email
from email import policy
from email.message import EmailMessage
from unittest.mock import patch

import pytest

from mail_tracker.config_loader import TrackerConfig
from mail_tracker.events import EmailSentEvent, EventDispatcher
from mail_tracker.prometheus import TrackerMetrics
from mail_tracker.tracker import NO_TRACK_HEADER, TOKEN_HEADER, MailTracker
from mail_tracker.tracker_db import TrackerDb

HTML = '<html><body><a href="https://example.org/offer?a=1&amp;b=2">Offer</a></body></html>\n'


@pytest.fixture
async def db(tmp_path):
    db = TrackerDb(str(tmp_path / "tracker.db"))
    await db.init_db()
    yield db
    await db.close()


@pytest.fixture
def config():
    return TrackerConfig(base_url="https://mail.example.com")


@pytest.fixture
def metrics():
    return TrackerMetrics()


@pytest.fixture
def tracker(db, config, metrics):
    return MailTracker(db, config, metrics=metrics)


def make_message(html=HTML) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = "Shop <shop@example.com>"
    msg["To"] = "Jane Doe <jane@example.org>, bob@example.org"
    msg["Subject"] = "Weekly offers"
    msg["Message-ID"] = "<local-1@example.com>"
    msg.set_content("Plain version\n")
    msg.add_alternative(html, subtype="html")
    return msg


class TestMessageSending:
    async def test_tracks_message(self, tracker, db, metrics):
        msg = make_message()
        token = await tracker.message_sending(msg)

        assert len(token) == 32
        assert msg[TOKEN_HEADER] == token

        record = await db.find_by_token(token)
        assert record["sender_name"] == "Shop"
        assert record["sender_email"] == "shop@example.com"
        assert record["recipient_name"] == "Jane Doe"
        assert record["recipient_email"] == "jane@example.org"
        assert record["subject"] == "Weekly offers"
        assert record["content"] == HTML
        assert f"{TOKEN_HEADER}: {token}" in record["headers"]
        assert record["meta"] == {}
        assert b"mt_tracked_total 1.0" in metrics.generate_latest()

        parsed = email.message_from_bytes(msg.as_bytes(), policy=policy.default)
        html = parsed.get_body(preferencelist=("html",)).get_content()
        assert f"https://mail.example.com/email/t/{token}" in html
        assert "https://mail.example.com/email/n?" in html
        plain = parsed.get_body(preferencelist=("plain",)).get_content()
        assert plain == "Plain version\n"

    async def test_distinct_tokens(self, tracker):
        first = await tracker.message_sending(make_message())
        second = await tracker.message_sending(make_message())
        assert first != second

    async def test_no_track_header(self, tracker, db):
        msg = make_message()
        msg[NO_TRACK_HEADER] = "1"
        original = msg.get_body(preferencelist=("html",)).get_content()

        assert await tracker.message_sending(msg) is None

        assert NO_TRACK_HEADER not in msg
        assert TOKEN_HEADER not in msg
        assert msg.get_body(preferencelist=("html",)).get_content() == original
        assert await db.sent_emails.fetch_all("SELECT hash FROM sent_emails") == []

    async def test_plain_message_gets_record(self, tracker, db):
        msg = EmailMessage()
        msg["To"] = "a@example.org"
        msg.set_content("just text")
        token = await tracker.message_sending(msg)
        record = await db.find_by_token(token)
        assert record["content"] == ""
        assert msg.get_content() == "just text\n"

    async def test_disabled_injection(self, db):
        config = TrackerConfig(inject_pixel=False, track_links=False)
        tracker = MailTracker(db, config)
        msg = make_message()
        token = await tracker.message_sending(msg)
        assert msg[TOKEN_HEADER] == token
        html = msg.get_body(preferencelist=("html",)).get_content()
        assert html == HTML

    async def test_injection_failure_sends_untracked(self, tracker, db, metrics, caplog):
        msg = make_message()
        with patch.object(tracker.rewriter, "rewrite", side_effect=LookupError("bad charset")):
            token = await tracker.message_sending(msg)

        assert token is not None
        assert msg.get_body(preferencelist=("html",)).get_content() == HTML
        assert await db.find_by_token(token) is not None
        assert "sending untracked" in caplog.text
        assert b"mt_untracked_total 1.0" in metrics.generate_latest()

    async def test_sent_event(self, db, config):
        events = EventDispatcher()
        received = []
        events.listen(EmailSentEvent, received.append)
        tracker = MailTracker(db, config, events=events)

        token = await tracker.message_sending(make_message())

        assert len(received) == 1
        assert received[0].sent_email["hash"] == token
        assert received[0].sent_email["id"] is not None


class TestMessageSent:
    async def test_stores_message_id_header(self, tracker, db):
        msg = make_message()
        token = await tracker.message_sending(msg)
        assert await tracker.message_sent(msg) is True
        record = await db.find_by_message_id("<local-1@example.com>")
        assert record["hash"] == token

    async def test_prefers_ses_header(self, tracker, db):
        msg = make_message()
        token = await tracker.message_sending(msg)
        msg["X-SES-Message-ID"] = "0100018c-ses"
        await tracker.message_sent(msg)
        assert (await db.find_by_message_id("0100018c-ses"))["hash"] == token

    async def test_explicit_provider_id(self, tracker, db):
        msg = make_message()
        token = await tracker.message_sending(msg)
        await tracker.message_sent(msg, provider_message_id="transport-42")
        assert (await db.find_by_message_id("transport-42"))["hash"] == token

    async def test_custom_resolver(self, tracker, db):
        msg = make_message()
        token = await tracker.message_sending(msg)
        tracker.resolve_message_id_using(lambda m: "resolved-" + m[TOKEN_HEADER][:4])
        await tracker.message_sent(msg)
        record = await db.find_by_message_id("resolved-" + token[:4])
        assert record["hash"] == token

    async def test_untracked_message_is_ignored(self, tracker):
        msg = make_message()
        assert await tracker.message_sent(msg) is False

    async def test_no_message_id(self, tracker):
        msg = EmailMessage()
        msg.set_content("x")
        await tracker.message_sending(msg)
        assert await tracker.message_sent(msg) is False
