# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Send-path tracking of outbound messages.

Hook ``message_sending`` right before a message is handed to the transport
and ``message_sent`` right after the transport accepted it::

    tracker = MailTracker(db, config)
    token = await tracker.message_sending(message)
    response = await smtp.send_message(message)
    await tracker.message_sent(message)

A message carrying an ``X-No-Track`` header is sent as is (the header is
removed). Otherwise it gets an ``X-Mailer-Hash`` header with its token, its
HTML parts get the tracking pixel and tracked links, and a send record is
stored for later correlation.
"""

from __future__ import annotations

from collections.abc import Callable
from email.message import Message
from email.utils import getaddresses
from typing import TYPE_CHECKING, Any

from .events import EmailSentEvent, EventDispatcher
from .injector import ContentInjector, InjectorOptions, TrackingUrls
from .logger import get_logger
from .mime import MimeRewriter, from_message, replace_body, to_message
from .tokens import TokenAllocator

if TYPE_CHECKING:
    from logging import Logger

    from .config_loader import TrackerConfig
    from .prometheus import TrackerMetrics
    from .tracker_db import TrackerDb

TOKEN_HEADER = "X-Mailer-Hash"
NO_TRACK_HEADER = "X-No-Track"
SES_MESSAGE_ID_HEADER = "X-SES-Message-ID"

MessageIdResolver = Callable[[Message], str | None]


def default_message_id_resolver(message: Message) -> str | None:
    """Provider id: the SES header when present, the Message-ID otherwise."""
    for header in (SES_MESSAGE_ID_HEADER, "Message-ID"):
        value = message.get(header)
        if value:
            return str(value).strip()
    return None


def _first_address(message: Message, header: str) -> tuple[str, str]:
    addresses = getaddresses([str(v) for v in message.get_all(header, [])])
    return addresses[0] if addresses else ("", "")


class MailTracker:
    """Instruments outbound messages and records them for correlation."""

    def __init__(
        self,
        db: TrackerDb,
        config: TrackerConfig,
        events: EventDispatcher | None = None,
        metrics: TrackerMetrics | None = None,
        logger: Logger | None = None,
    ):
        self.db = db
        self.config = config
        self.events = events or EventDispatcher()
        self.metrics = metrics
        self.logger = logger or get_logger("MailTracker")
        self.allocator = TokenAllocator(db, length=config.token_length, logger=self.logger)
        self.rewriter = MimeRewriter(
            ContentInjector(
                TrackingUrls(config.base_url, config.open_path, config.click_path),
                InjectorOptions(
                    inject_pixel=config.inject_pixel,
                    track_links=config.track_links,
                ),
            )
        )
        self._message_id_resolver: MessageIdResolver = default_message_id_resolver

    def resolve_message_id_using(self, resolver: MessageIdResolver) -> MailTracker:
        """Replace the callable that extracts the provider message id."""
        self._message_id_resolver = resolver
        return self

    async def message_sending(self, message: Message) -> str | None:
        """Inject tracking into ``message`` and store its send record.

        Returns:
            The token, or None if the message opted out of tracking.

        Raises:
            AllocationExhaustedError: If no free token could be generated.
        """
        if NO_TRACK_HEADER in message:
            del message[NO_TRACK_HEADER]
            self.logger.debug("Tracking disabled by %s header", NO_TRACK_HEADER)
            return None

        token = await self.allocator.allocate()
        message[TOKEN_HEADER] = token

        original_html = self._inject(message, token)

        sender_name, sender_email = _first_address(message, "From")
        recipient_name, recipient_email = _first_address(message, "To")
        record: dict[str, Any] = {
            "hash": token,
            "headers": self._header_block(message),
            "sender_name": sender_name,
            "sender_email": sender_email,
            "recipient_name": recipient_name,
            "recipient_email": recipient_email,
            "subject": str(message.get("Subject", "")),
            "content": original_html,
        }
        await self.db.create(record)
        stored = await self.db.find_by_token(token)
        await self.events.dispatch(EmailSentEvent(sent_email=stored or record))
        return token

    async def message_sent(self, message: Message, provider_message_id: str | None = None) -> bool:
        """Store the provider message id on the record of a tracked message.

        Returns:
            True if a record was updated.
        """
        token = message.get(TOKEN_HEADER)
        if not token:
            return False
        message_id = provider_message_id or self._message_id_resolver(message)
        if not message_id:
            self.logger.warning("No provider message id for token %s", token)
            return False
        return await self.db.set_message_id(str(token), message_id)

    def _inject(self, message: Message, token: str) -> str:
        """Rewrite the body in place; on failure leave it untouched."""
        try:
            tree = from_message(message)
            new_tree, original_html = self.rewriter.rewrite(tree, token)
            body = to_message(new_tree)
        except Exception as exc:
            self.logger.warning(
                "Tracking injection failed for token %s, sending untracked: %s", token, exc
            )
            if self.metrics:
                self.metrics.inc_untracked()
            return ""
        replace_body(message, body)
        if self.metrics:
            self.metrics.inc_tracked()
        return original_html

    @staticmethod
    def _header_block(message: Message) -> str:
        return "".join(f"{name}: {value}\r\n" for name, value in message.items())


__all__ = [
    "MailTracker",
    "NO_TRACK_HEADER",
    "TOKEN_HEADER",
    "default_message_id_resolver",
]
