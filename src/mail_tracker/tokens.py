# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Correlation token allocation."""

from __future__ import annotations

import secrets
import string
from typing import TYPE_CHECKING

from .logger import get_logger

if TYPE_CHECKING:
    from logging import Logger

    from .store import CorrelationStore

TOKEN_ALPHABET = string.ascii_letters + string.digits
DEFAULT_TOKEN_LENGTH = 32
DEFAULT_MAX_ATTEMPTS = 16


class AllocationExhaustedError(RuntimeError):
    """Raised when every generated token collided with an existing record."""

    def __init__(self, attempts: int, length: int):
        self.attempts = attempts
        self.length = length
        super().__init__(
            f"No free token after {attempts} attempts (length={length}); "
            "token space is too small or the store is misbehaving"
        )


class TokenAllocator:
    """Produces tokens not yet bound to any committed send record.

    The check against the store is a pre-check: a concurrent writer may commit
    the same token after it ran, so the store's UNIQUE constraint on the token
    column stays the authoritative guard.
    """

    def __init__(
        self,
        store: CorrelationStore,
        length: int = DEFAULT_TOKEN_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        logger: Logger | None = None,
    ):
        if length < 1:
            raise ValueError("token length must be positive")
        self._store = store
        self.length = length
        self.max_attempts = max_attempts
        self.logger = logger or get_logger("TokenAllocator")

    def generate(self) -> str:
        return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(self.length))

    async def allocate(self) -> str:
        """Return a fresh token.

        Raises:
            AllocationExhaustedError: After ``max_attempts`` consecutive
                collisions.
        """
        for attempt in range(1, self.max_attempts + 1):
            token = self.generate()
            if await self._store.find_by_token(token) is None:
                return token
            self.logger.debug("Token collision on attempt %d", attempt)
        raise AllocationExhaustedError(self.max_attempts, self.length)


__all__ = ["AllocationExhaustedError", "TokenAllocator", "TOKEN_ALPHABET"]
