"""Locate feeds for an HTML page.

The strategy has two steps:

1. Look for ``<link rel="alternate">`` declarations in the page (see
   ``link_extractor``).
2. Only when step 1 finds nothing, probe a fixed list of conventional feed
   paths on the page's origin.  All probes run concurrently and are joined
   before their results are read, so the output follows the candidate list and
   not completion order.

A probe that errors or times out simply counts as "not a feed".
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List
from urllib.parse import urlsplit

import httpx

from feedlens.main.errors import UpstreamTimeout
from feedlens.main.models import PROBE, DiscoveredFeed, DiscoverResult
from feedlens.main.tools.fetcher import FEED_ACCEPT, Fetcher
from feedlens.main.tools.link_extractor import extract_feed_links, is_feed_type

logger = logging.getLogger(__name__)

COMMON_PATHS = (
    "/feed",
    "/feed.xml",
    "/rss",
    "/rss.xml",
    "/atom.xml",
    "/index.xml",
    "/feed/index.xml",
    "/blog/feed",
    "/blog/rss",
)

PROBE_TYPE = "application/rss+xml"
SNIFF_LENGTH = 512
_ROOT_TAG_RE = re.compile(r"<(?:rss|feed|rdf)[\s:/>]", re.IGNORECASE)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*, dropping credentials and default ports."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def looks_like_feed(body: str) -> bool:
    """Content sniffing for servers that mislabel their feeds."""
    return body.lstrip().startswith("<?xml") or bool(_ROOT_TAG_RE.search(body[:SNIFF_LENGTH]))


def _title_for(url: str) -> str:
    return url.rstrip("/").split("/")[-1] or url


class FeedDiscoverer:
    """Combine HTML link extraction with a concurrent fallback probe."""

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    async def probe(self, url: str) -> bool:
        """Return ``True`` when *url* appears to serve a feed.

        A HEAD declaring a feed type is enough.  Otherwise a GET is issued and the
        declared type or the start of the body decides.
        """
        try:
            head = await self.fetcher.fetch(url, method="HEAD")
            if head.is_success and is_feed_type(head.headers.get("content-type")):
                return True
        except (httpx.HTTPError, UpstreamTimeout) as exc:
            logger.debug("HEAD probe of %s failed: %s", url, exc)

        try:
            response = await self.fetcher.fetch(url, accept=FEED_ACCEPT)
            if not response.is_success:
                return False
            if is_feed_type(response.headers.get("content-type")):
                return True
            return looks_like_feed(response.text)
        except (httpx.HTTPError, UpstreamTimeout) as exc:
            logger.debug("GET probe of %s failed: %s", url, exc)
            return False

    async def probe_common_paths(self, page_url: str, seen: set[str]) -> List[DiscoveredFeed]:
        origin = origin_of(page_url)
        candidates = [origin + path for path in COMMON_PATHS if origin + path not in seen]
        results = await asyncio.gather(*(self.probe(c) for c in candidates), return_exceptions=True)

        feeds: List[DiscoveredFeed] = []
        for candidate, ok in zip(candidates, results):
            if isinstance(ok, BaseException):
                logger.debug("Probe of %s raised %r", candidate, ok)
                continue
            if ok and candidate not in seen:
                seen.add(candidate)
                feeds.append(DiscoveredFeed(
                    url=candidate,
                    title=_title_for(candidate),
                    type=PROBE_TYPE,
                    source=PROBE,
                ))
        return feeds

    async def discover(self, page_url: str, html: str) -> DiscoverResult:
        """Return every feed found for the page at *page_url* with body *html*."""
        seen: set[str] = set()
        feeds: List[DiscoveredFeed] = []
        for feed in extract_feed_links(html, page_url):
            if feed.url in seen:
                continue
            seen.add(feed.url)
            feeds.append(feed)

        if not feeds:
            logger.info("No alternate links on %s, probing common feed paths", page_url)
            feeds.extend(await self.probe_common_paths(page_url, seen))

        logger.info("Discovered %d feed(s) for %s", len(feeds), page_url)
        return DiscoverResult(url=page_url, feeds=tuple(feeds))
