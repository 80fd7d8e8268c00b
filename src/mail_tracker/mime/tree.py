# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Message body tree.

A body is either a leaf part or a composite of kind mixed, alternative or
related with ordered children. Any other container (multipart/signed,
multipart/report, message/rfc822, ...) is carried as an opaque leaf and is
never looked into.

Nodes keep a reference to the ``email.message.Message`` they were read from.
``to_message`` hands back that original object for every node the rewriter
did not replace, so untouched parts are serialized exactly as they came in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from email.message import Message, MIMEPart
from enum import Enum
from typing import Union


class CompositeKind(str, Enum):
    """Multipart subtypes the tracker descends into."""

    MIXED = "mixed"
    ALTERNATIVE = "alternative"
    RELATED = "related"


_KINDS = {kind.value for kind in CompositeKind}

# Headers regenerated by set_content() when a leaf is rebuilt.
_GENERATED_HEADERS = {"content-type", "content-transfer-encoding", "mime-version"}


@dataclass(frozen=True)
class LeafPart:
    """Single body part.

    ``body`` is the transfer-decoded payload; ``headers`` holds the extra
    Content-* headers (Content-ID, Content-Disposition, ...) to restore when
    the part is rebuilt.
    """

    maintype: str
    subtype: str
    body: bytes = b""
    charset: str | None = None
    headers: tuple[tuple[str, str], ...] = ()
    source: Message | None = field(default=None, compare=False, repr=False)

    @property
    def is_html(self) -> bool:
        return self.maintype == "text" and self.subtype == "html"

    def text(self) -> str:
        return self.body.decode(self.charset or "utf-8")


@dataclass(frozen=True)
class CompositePart:
    """Multipart container with ordered children."""

    kind: CompositeKind
    children: tuple[MimeNode, ...] = ()
    headers: tuple[tuple[str, str], ...] = ()
    source: Message | None = field(default=None, compare=False, repr=False)


MimeNode = Union[LeafPart, CompositePart]


def _content_headers(part: Message, skip: set[str] | None = None) -> tuple[tuple[str, str], ...]:
    skip = skip or set()
    return tuple(
        (name, str(value))
        for name, value in part.items()
        if name.lower().startswith("content-") and name.lower() not in skip
    )


def from_message(part: Message) -> MimeNode:
    """Build the body tree of ``part`` (usually the message itself)."""
    maintype = part.get_content_maintype()
    subtype = part.get_content_subtype()

    if maintype == "multipart" and subtype in _KINDS and part.is_multipart():
        return CompositePart(
            kind=CompositeKind(subtype),
            children=tuple(from_message(child) for child in part.get_payload()),
            headers=_content_headers(part),
            source=part,
        )

    if part.is_multipart():
        return LeafPart(
            maintype=maintype,
            subtype=subtype,
            body=part.as_bytes(),
            headers=_content_headers(part),
            source=part,
        )

    return LeafPart(
        maintype=maintype,
        subtype=subtype,
        body=part.get_payload(decode=True) or b"",
        charset=part.get_content_charset(),
        headers=_content_headers(part, _GENERATED_HEADERS),
        source=part,
    )


def to_message(node: MimeNode) -> Message:
    """Turn a tree back into message parts, reusing every untouched original."""
    if node.source is not None:
        return node.source

    part = MIMEPart()
    match node:
        case CompositePart(kind=kind, children=children, headers=headers):
            for name, value in headers:
                part[name] = value
            if "Content-Type" not in part:
                part["Content-Type"] = f"multipart/{kind.value}"
            part.set_payload([to_message(child) for child in children])
        case LeafPart(maintype="text"):
            part.set_content(node.text(), subtype=node.subtype, charset=node.charset or "utf-8")
            for name, value in node.headers:
                part[name] = value
        case LeafPart():
            part.set_content(node.body, maintype=node.maintype, subtype=node.subtype)
            for name, value in node.headers:
                part[name] = value
    return part


def replace_body(message: Message, body: Message) -> None:
    """Install ``body`` as the content of ``message``, keeping its other headers."""
    if body is message:
        return
    for name in ("Content-Type", "Content-Transfer-Encoding"):
        del message[name]
        value = body.get(name)
        if value is not None:
            message[name] = str(value)
    message.set_payload(body.get_payload())


def iter_leaves(node: MimeNode):
    """Yield leaves in depth-first order."""
    if isinstance(node, CompositePart):
        for child in node.children:
            yield from iter_leaves(child)
    else:
        yield node


__all__ = [
    "CompositeKind",
    "CompositePart",
    "LeafPart",
    "MimeNode",
    "from_message",
    "iter_leaves",
    "replace_body",
    "to_message",
]
