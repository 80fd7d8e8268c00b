# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tracking injection into a single HTML document.

Two independent transformations, each switched by InjectorOptions:

- pixel: a 1x1 image pointing at the open-tracking endpoint, placed right
  after the first ``<body ...>`` tag or, without a body tag, at the end of
  the document
- links: every ``<a ... href="...">`` is pointed at the click-tracking
  endpoint, carrying the original destination and the token

The token is always an argument; the injector holds no per-message state and
can be shared across concurrent sends.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from yarl import URL

# Opening body tag; the pixel goes after the first one only.
_BODY_TAG = re.compile(r"<body(?=[\s>/])[^>]*>", re.IGNORECASE)
# Attributes before href are consumed whole, quoted values included, so an
# "href=" inside another attribute value never matches.
_ANCHOR_HREF = re.compile(
    r"""(<a(?:\s+(?!href\s*=)[^\s=>/]+(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+))?)*"""
    r"""\s+href\s*=\s*)(["'])(.*?)\2""",
    re.IGNORECASE | re.DOTALL,
)


@dataclass(frozen=True)
class InjectorOptions:
    inject_pixel: bool = True
    track_links: bool = True


class TrackingUrls:
    """Builds the URLs of the open-pixel and click-redirect endpoints.

    Args:
        base_url: Site root, e.g. ``https://mail.example.com``. A path prefix
            is kept (``https://example.com/app`` → ``/app/email/t/...``).
        open_path: Path of the open endpoint; the token is appended.
        click_path: Path of the click endpoint; destination and token go in
            the ``l`` and ``h`` query parameters.
    """

    def __init__(
        self,
        base_url: str,
        open_path: str = "/email/t",
        click_path: str = "/email/n",
    ):
        self._base = URL(base_url)
        self._prefix = self._base.path.rstrip("/")
        self.open_path = "/" + open_path.strip("/")
        self.click_path = "/" + click_path.strip("/")

    @property
    def site_root(self) -> str:
        return str(self._base.with_path(self._prefix + "/"))

    def open_url(self, token: str) -> str:
        return str(self._base.with_path(f"{self._prefix}{self.open_path}/{token}"))

    def click_url(self, destination: str, token: str) -> str:
        url = self._base.with_path(self._prefix + self.click_path)
        return str(url.with_query({"l": destination, "h": token}))


class ContentInjector:
    """Injects the tracking pixel and click tracking into HTML."""

    def __init__(self, urls: TrackingUrls, options: InjectorOptions | None = None):
        self.urls = urls
        self.options = options or InjectorOptions()

    def inject(self, html: str, token: str) -> str:
        if self.options.inject_pixel:
            html = self.inject_pixel(html, token)
        if self.options.track_links:
            html = self.inject_links(html, token)
        return html

    def pixel_tag(self, token: str) -> str:
        return f'<img border=0 width=1 alt="" height=1 src="{self.urls.open_url(token)}" />'

    def inject_pixel(self, html: str, token: str) -> str:
        pixel = self.pixel_tag(token)
        match = _BODY_TAG.search(html)
        if match is None:
            return html + pixel
        return html[: match.end()] + pixel + html[match.end():]

    def inject_links(self, html: str, token: str) -> str:
        def track(match: re.Match[str]) -> str:
            prefix, quote, href = match.groups()
            destination = href.replace("&amp;", "&") if href else self.urls.site_root
            return f"{prefix}{quote}{self.urls.click_url(destination, token)}{quote}"

        return _ANCHOR_HREF.sub(track, html)


__all__ = ["ContentInjector", "InjectorOptions", "TrackingUrls"]
