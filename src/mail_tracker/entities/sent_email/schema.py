# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic schema for the send record metadata document."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ...store import MetaMutator


class SentEmailMeta(BaseModel):
    """Typed view over the ``meta`` JSON document of a send record.

    Merging follows the stored-document contract: keys present in the update
    overwrite, new keys are added, nothing is deleted. Keys unknown to this
    model are kept as extras so records written by other tools survive a
    round trip.

    Attributes:
        success: False once a bounce or complaint was recorded.
        failures: Recipient entries of the last bounce notification.
        complaint: A recipient flagged the message as spam.
        complaint_time: Timestamp reported by the complaint notification.
        sns_message_bounce: Raw copy of the last bounce notification.
        sns_message_complaint: Raw copy of the last complaint notification.
        content_file_path: Location of a stored body snapshot, if any.
    """

    model_config = ConfigDict(extra="allow")

    success: bool = True
    failures: list[dict[str, Any]] = Field(default_factory=list)
    complaint: bool = False
    complaint_time: Any = None
    sns_message_bounce: dict[str, Any] | None = None
    sns_message_complaint: dict[str, Any] | None = None
    content_file_path: str | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any] | None) -> SentEmailMeta:
        return cls.model_validate(dict(document or {}))

    def merged(self, changes: Mapping[str, Any]) -> SentEmailMeta:
        """Return a new meta with ``changes`` applied (overwrite or add)."""
        return type(self).model_validate({**self.to_document(), **changes})

    def to_document(self) -> dict[str, Any]:
        """Dump only the keys that were actually written."""
        written = set(self.model_fields_set) | set(self.model_extra or {})
        return {
            name: value
            for name, value in self.model_dump(mode="json").items()
            if name in written
        }


def meta_merger(changes: Mapping[str, Any]) -> MetaMutator:
    """Return a store mutator that merges ``changes`` into a meta document."""

    def apply(document: dict[str, Any]) -> dict[str, Any]:
        return SentEmailMeta.from_document(document).merged(changes).to_document()

    return apply


__all__ = ["SentEmailMeta", "meta_merger"]
