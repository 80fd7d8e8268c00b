# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Domain events and an in-process dispatcher.

Event types:
- EmailSentEvent: a tracked message is about to be transmitted
- PermanentBounceEvent: a recipient bounced permanently
- TransientBounceEvent: a recipient bounced with any other bounce type
- ComplaintEvent: a recipient reported the message as spam

Every event carries the correlated send record as stored after the change.
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from .logger import get_logger

if TYPE_CHECKING:
    from logging import Logger


@dataclass(frozen=True)
class EmailSentEvent:
    sent_email: dict[str, Any]


@dataclass(frozen=True)
class PermanentBounceEvent:
    email_address: str
    sent_email: dict[str, Any]


@dataclass(frozen=True)
class TransientBounceEvent:
    email_address: str
    bounce_sub_type: str
    diagnostic_code: str
    sent_email: dict[str, Any]


@dataclass(frozen=True)
class ComplaintEvent:
    email_address: str
    sent_email: dict[str, Any]


TrackerEvent = Union[EmailSentEvent, PermanentBounceEvent, TransientBounceEvent, ComplaintEvent]
Listener = Callable[[Any], Union[None, Awaitable[None]]]


class EventDispatcher:
    """Delivers events to listeners registered per event class.

    Dispatch is best-effort: a failing listener is logged and does not stop
    the remaining listeners nor propagate to the caller, whose state change
    is already committed when events are emitted.
    """

    def __init__(self, logger: Logger | None = None):
        self._listeners: dict[type, list[Listener]] = defaultdict(list)
        self.logger = logger or get_logger("Events")

    def listen(self, event_type: type, listener: Listener) -> None:
        """Register ``listener`` (sync or async callable) for ``event_type``."""
        self._listeners[event_type].append(listener)

    async def dispatch(self, event: TrackerEvent) -> None:
        for listener in list(self._listeners.get(type(event), ())):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self.logger.exception(
                    "Listener %r failed on %s: %s", listener, type(event).__name__, exc
                )


__all__ = [
    "ComplaintEvent",
    "EmailSentEvent",
    "EventDispatcher",
    "PermanentBounceEvent",
    "TrackerEvent",
    "TransientBounceEvent",
]
