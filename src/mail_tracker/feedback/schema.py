# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic schemas for provider delivery notifications.

Wire shape (Amazon SES via SNS)::

    {
      "notificationType": "Bounce",
      "mail": {"messageId": "..."},
      "bounce": {
        "bounceType": "Permanent",
        "bounceSubType": "General",
        "bouncedRecipients": [{"emailAddress": "...", "diagnosticCode": "..."}]
      }
    }

    {
      "notificationType": "Complaint",
      "mail": {"messageId": "..."},
      "complaint": {
        "timestamp": "2012-05-25T14:59:38.623Z",
        "complainedRecipients": [{"emailAddress": "..."}]
      }
    }

Provider fields not modelled here are accepted and ignored by validation.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MalformedNotificationError(ValueError):
    """A notification lacks required fields or is not valid JSON."""


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class MailInfo(_Payload):
    message_id: Annotated[str, Field(alias="messageId", min_length=1)]


class BouncedRecipient(_Payload):
    email_address: Annotated[str, Field(alias="emailAddress", min_length=1)]
    diagnostic_code: Annotated[str | None, Field(default=None, alias="diagnosticCode")]


class Bounce(_Payload):
    bounce_type: Annotated[str, Field(alias="bounceType")]
    bounce_sub_type: Annotated[str | None, Field(default=None, alias="bounceSubType")]
    bounced_recipients: Annotated[list[BouncedRecipient], Field(alias="bouncedRecipients")]


class ComplainedRecipient(_Payload):
    email_address: Annotated[str, Field(alias="emailAddress", min_length=1)]


class Complaint(_Payload):
    timestamp: int | float | str
    complained_recipients: Annotated[
        list[ComplainedRecipient], Field(alias="complainedRecipients")
    ]


class BounceNotification(_Payload):
    mail: MailInfo
    bounce: Bounce


class ComplaintNotification(_Payload):
    mail: MailInfo
    complaint: Complaint


def validate_notification(model: type[_Payload], payload: Mapping[str, Any]) -> Any:
    """Validate ``payload`` against ``model``.

    Raises:
        MalformedNotificationError: On any validation failure.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise MalformedNotificationError(
            f"Malformed {model.__name__}: {exc.error_count()} error(s): {exc}"
        ) from exc


def to_document(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Plain JSON copy of a notification, as stored for audit."""
    return json.loads(json.dumps(payload, default=str))


def decode_notification(payload: str | bytes | Mapping[str, Any]) -> dict[str, Any] | None:
    """Turn an inbound payload into a notification document.

    Accepts a notification mapping, its JSON text, or an SNS envelope whose
    ``Message`` holds the notification JSON. Returns None for SNS messages
    that are not notifications (subscription confirmations and the like).

    Raises:
        MalformedNotificationError: If the payload is not valid JSON or not
            a JSON object.
    """
    document = _load_json(payload) if isinstance(payload, (str, bytes)) else dict(payload)

    sns_type = document.get("Type")
    if sns_type is not None:
        if sns_type != "Notification":
            return None
        message = document.get("Message")
        if message is None:
            raise MalformedNotificationError("SNS notification without Message")
        document = _load_json(message) if isinstance(message, (str, bytes)) else dict(message)
    return document


def _load_json(raw: str | bytes) -> dict[str, Any]:
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedNotificationError(f"Notification is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise MalformedNotificationError("Notification JSON must be an object")
    return document


__all__ = [
    "BounceNotification",
    "ComplaintNotification",
    "MalformedNotificationError",
    "decode_notification",
    "to_document",
    "validate_notification",
]
