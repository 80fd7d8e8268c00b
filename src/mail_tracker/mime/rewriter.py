# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Depth-first rewrite of a body tree, injecting tracking into HTML leaves."""

from __future__ import annotations

from dataclasses import replace

from ..injector import ContentInjector
from .tree import CompositePart, LeafPart, MimeNode


class MimeRewriter:
    """Rewrites every HTML leaf of a tree through a ContentInjector.

    Untouched nodes are returned as the very same objects, so a subtree
    without HTML comes back identical and keeps its original bytes.
    """

    def __init__(self, injector: ContentInjector):
        self.injector = injector

    def rewrite(self, tree: MimeNode, token: str) -> tuple[MimeNode, str]:
        """Return ``(new_tree, extracted_html)``.

        ``extracted_html`` is the pre-injection text of the last HTML leaf in
        traversal order, or ``""`` when the tree has no HTML leaf. Every HTML
        leaf is rewritten regardless.
        """
        extracted: list[str] = []
        return self._rewrite(tree, token, extracted), (extracted[-1] if extracted else "")

    def _rewrite(self, node: MimeNode, token: str, extracted: list[str]) -> MimeNode:
        match node:
            case CompositePart(children=children):
                rewritten = tuple(self._rewrite(child, token, extracted) for child in children)
                if all(new is old for new, old in zip(rewritten, children, strict=True)):
                    return node
                return replace(node, children=rewritten, source=None)
            case LeafPart(is_html=True):
                html = node.text()
                extracted.append(html)
                injected = self.injector.inject(html, token)
                if injected == html:
                    return node
                return replace(
                    node,
                    body=injected.encode(node.charset or "utf-8"),
                    source=None,
                )
            case _:
                return node


__all__ = ["MimeRewriter"]
