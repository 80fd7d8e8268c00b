# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for correlation token allocation."""

import pytest

from mail_tracker.tokens import TOKEN_ALPHABET, AllocationExhaustedError, TokenAllocator
from mail_tracker.tracker_db import TrackerDb


class ScriptedAllocator(TokenAllocator):
    """Allocator that replays a fixed sequence of candidate tokens."""

    def __init__(self, store, candidates, **kwargs):
        super().__init__(store, **kwargs)
        self._candidates = iter(candidates)

    def generate(self) -> str:
        return next(self._candidates)


class AlwaysTakenStore:
    def __init__(self):
        self.lookups = 0

    async def find_by_token(self, token):
        self.lookups += 1
        return {"hash": token}


@pytest.fixture
async def db(tmp_path):
    db = TrackerDb(str(tmp_path / "tokens.db"))
    await db.init_db()
    yield db
    await db.close()


def test_generate_uses_alphabet_and_length():
    allocator = TokenAllocator(AlwaysTakenStore(), length=12)
    token = allocator.generate()
    assert len(token) == 12
    assert set(token) <= set(TOKEN_ALPHABET)


def test_default_length_is_32():
    assert len(TokenAllocator(AlwaysTakenStore()).generate()) == 32


def test_invalid_length():
    with pytest.raises(ValueError):
        TokenAllocator(AlwaysTakenStore(), length=0)


async def test_allocate_skips_committed_tokens(db):
    await db.create({"hash": "taken-1"})
    await db.create({"hash": "taken-2"})
    allocator = ScriptedAllocator(db, ["taken-1", "taken-2", "fresh"])
    assert await allocator.allocate() == "fresh"


async def test_allocate_returns_distinct_tokens(db):
    allocator = TokenAllocator(db, length=8)
    seen = set()
    for _ in range(20):
        token = await allocator.allocate()
        assert token not in seen
        await db.create({"hash": token})
        seen.add(token)


async def test_exhaustion_raises_after_max_attempts():
    store = AlwaysTakenStore()
    allocator = TokenAllocator(store, length=4, max_attempts=5)
    with pytest.raises(AllocationExhaustedError) as exc_info:
        await allocator.allocate()
    assert store.lookups == 5
    assert exc_info.value.attempts == 5
    assert exc_info.value.length == 4
