# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Message body tree and tracking rewriter."""

from .rewriter import MimeRewriter
from .tree import (
    CompositeKind,
    CompositePart,
    LeafPart,
    MimeNode,
    from_message,
    replace_body,
    to_message,
)

__all__ = [
    "CompositeKind",
    "CompositePart",
    "LeafPart",
    "MimeNode",
    "MimeRewriter",
    "from_message",
    "replace_body",
    "to_message",
]
