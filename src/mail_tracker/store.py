# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Correlation store contract consumed by the allocator and feedback processor."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

MetaMutator = Callable[[dict[str, Any]], dict[str, Any]]


class CorrelationStore(Protocol):
    """Keyed access to send records.

    Implementations must enforce uniqueness of the token.
    """

    async def find_by_token(self, token: str) -> dict[str, Any] | None: ...

    async def find_by_message_id(self, message_id: str) -> dict[str, Any] | None: ...

    async def create(self, record: dict[str, Any]) -> None: ...

    async def update(self, token: str, mutator: MetaMutator) -> dict[str, Any] | None:
        """Apply ``mutator`` to the record's meta document in one read-modify-write.

        Returns the updated record, or None if no record has this token.
        """
        ...


__all__ = ["CorrelationStore", "MetaMutator"]
