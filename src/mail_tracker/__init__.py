# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Outbound mail tracking and delivery feedback correlation.

Features:
    - Unique correlation token per outbound message (X-Mailer-Hash header)
    - Open-tracking pixel and click-tracking links injected into HTML parts
    - Structure-preserving rewrite of nested multipart bodies
    - Bounce and complaint notifications merged into send records
    - Domain events for sends, permanent/transient bounces and complaints
    - Prometheus metrics for monitoring
    - SQLite persistence with retention purge

Example::

    from mail_tracker import MailTracker, TrackerDb, load_tracker_config

    config = load_tracker_config("/etc/mail-tracker/config.ini")
    db = TrackerDb(config.db_path)
    await db.init_db()

    tracker = MailTracker(db, config)
    await tracker.message_sending(message)
"""

from .config_loader import TrackerConfig, load_tracker_config
from .events import (
    ComplaintEvent,
    EmailSentEvent,
    EventDispatcher,
    PermanentBounceEvent,
    TransientBounceEvent,
)
from .feedback import DeliveryFeedbackProcessor, MalformedNotificationError
from .tokens import AllocationExhaustedError, TokenAllocator
from .tracker import MailTracker
from .tracker_db import TrackerDb

__all__ = [
    "AllocationExhaustedError",
    "ComplaintEvent",
    "DeliveryFeedbackProcessor",
    "EmailSentEvent",
    "EventDispatcher",
    "MailTracker",
    "MalformedNotificationError",
    "PermanentBounceEvent",
    "TokenAllocator",
    "TrackerConfig",
    "TrackerDb",
    "TransientBounceEvent",
    "load_tracker_config",
]
