# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Delivery feedback processing: bounces and complaints.

Each handler call processes one provider notification, which may list
several recipients:

1. validate the notification (malformed input raises before any write)
2. resolve the send record by provider message id; unknown ids are a
   silent no-op
3. merge the outcome into the record's meta in one read-modify-write
4. emit one event per recipient, after the merge is stored

Merges overwrite the keys they write, so redelivery of the same
notification leaves the record unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..entities.sent_email.schema import meta_merger
from ..events import (
    ComplaintEvent,
    EventDispatcher,
    PermanentBounceEvent,
    TransientBounceEvent,
)
from ..logger import get_logger
from .schema import (
    BounceNotification,
    ComplaintNotification,
    decode_notification,
    to_document,
    validate_notification,
)

if TYPE_CHECKING:
    from logging import Logger

    from ..prometheus import TrackerMetrics
    from ..store import CorrelationStore

PERMANENT_BOUNCE = "Permanent"


class DeliveryFeedbackProcessor:
    """Applies bounce and complaint notifications to send records."""

    def __init__(
        self,
        store: CorrelationStore,
        events: EventDispatcher | None = None,
        metrics: TrackerMetrics | None = None,
        logger: Logger | None = None,
    ):
        self._store = store
        self.events = events or EventDispatcher()
        self.metrics = metrics
        self.logger = logger or get_logger("DeliveryFeedback")

    async def handle_bounce(self, notification: Mapping[str, Any]) -> dict[str, Any] | None:
        """Record a bounce notification.

        Returns:
            The updated send record, or None if the message id is unknown.

        Raises:
            MalformedNotificationError: If required fields are missing.
        """
        parsed: BounceNotification = validate_notification(BounceNotification, notification)
        document = to_document(notification)
        bounce = parsed.bounce

        record = await self._merge(
            parsed.mail.message_id,
            {
                "failures": document["bounce"]["bouncedRecipients"],
                "success": False,
                "sns_message_bounce": document,
            },
            "bounce",
        )
        if record is None:
            return None

        self.logger.info(
            "Bounce recorded: message_id=%s type=%s subtype=%s recipients=%d",
            parsed.mail.message_id,
            bounce.bounce_type,
            bounce.bounce_sub_type,
            len(bounce.bounced_recipients),
        )

        for recipient in bounce.bounced_recipients:
            if self.metrics:
                self.metrics.inc_bounce(bounce.bounce_type)
            if bounce.bounce_type == PERMANENT_BOUNCE:
                event: PermanentBounceEvent | TransientBounceEvent = PermanentBounceEvent(
                    email_address=recipient.email_address,
                    sent_email=record,
                )
            else:
                event = TransientBounceEvent(
                    email_address=recipient.email_address,
                    bounce_sub_type=bounce.bounce_sub_type or "",
                    diagnostic_code=recipient.diagnostic_code or "",
                    sent_email=record,
                )
            await self.events.dispatch(event)
        return record

    async def handle_complaint(self, notification: Mapping[str, Any]) -> dict[str, Any] | None:
        """Record a complaint notification.

        Returns:
            The updated send record, or None if the message id is unknown.

        Raises:
            MalformedNotificationError: If required fields are missing.
        """
        parsed: ComplaintNotification = validate_notification(
            ComplaintNotification, notification
        )
        document = to_document(notification)
        complaint = parsed.complaint

        record = await self._merge(
            parsed.mail.message_id,
            {
                "complaint": True,
                "success": False,
                "complaint_time": document["complaint"]["timestamp"],
                "sns_message_complaint": document,
            },
            "complaint",
        )
        if record is None:
            return None

        self.logger.info(
            "Complaint recorded: message_id=%s recipients=%d",
            parsed.mail.message_id,
            len(complaint.complained_recipients),
        )

        for recipient in complaint.complained_recipients:
            if self.metrics:
                self.metrics.inc_complaint()
            await self.events.dispatch(
                ComplaintEvent(email_address=recipient.email_address, sent_email=record)
            )
        return record

    async def handle_notification(
        self, payload: str | bytes | Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """Route a raw notification (JSON text, mapping or SNS envelope).

        ``notificationType`` selects the handler; without it the presence of
        a ``bounce`` or ``complaint`` object decides. Other notification
        types (Delivery, Send, ...) are ignored.
        """
        document = decode_notification(payload)
        if document is None:
            self.logger.debug("Ignoring SNS message that is not a notification")
            return None

        kind = document.get("notificationType") or document.get("eventType")
        if kind is None:
            if "bounce" in document:
                kind = "Bounce"
            elif "complaint" in document:
                kind = "Complaint"

        match kind:
            case "Bounce":
                return await self.handle_bounce(document)
            case "Complaint":
                return await self.handle_complaint(document)
            case _:
                self.logger.debug("Ignoring notification of type %s", kind)
                return None

    async def _merge(
        self, message_id: str, changes: dict[str, Any], kind: str
    ) -> dict[str, Any] | None:
        record = await self._store.find_by_message_id(message_id)
        updated = None
        if record is not None:
            updated = await self._store.update(record["hash"], meta_merger(changes))
        if updated is None:
            self.logger.debug("No send record for %s message_id=%s", kind, message_id)
            if self.metrics:
                self.metrics.inc_unresolved()
        return updated


__all__ = ["DeliveryFeedbackProcessor", "PERMANENT_BOUNCE"]
