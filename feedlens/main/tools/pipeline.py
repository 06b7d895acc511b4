"""Request-scoped entry points shared by the HTTP and tool servers.

``FeedPipeline.fetch_feed`` turns a URL into a :class:`FeedResult`.  When the URL
serves an HTML page instead of a feed, discovery runs once on that page and the
first feed found is fetched in its place.  That second fetch never triggers
discovery again.

``FeedPipeline.discover`` fetches a page and returns every feed found on it.

Both methods raise :class:`~feedlens.main.errors.FeedError` subclasses only.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit
from xml.parsers.expat import ExpatError

import httpx

from feedlens.main.config import Settings
from feedlens.main.errors import (
    FeedError,
    InvalidURL,
    MissingParameter,
    NoFeedDiscovered,
    UnexpectedError,
    UpstreamHTTPError,
)
from feedlens.main.models import DiscoverResult, FeedResult
from feedlens.main.tools import xml_tree
from feedlens.main.tools.discovery import FeedDiscoverer
from feedlens.main.tools.feed_normalizer import normalize_feed
from feedlens.main.tools.fetcher import FEED_ACCEPT, HTML_ACCEPT, Fetcher, describe_status

logger = logging.getLogger(__name__)

_QUOTES = "\"'"


def clean_url(raw: Optional[str], label: str = "URL") -> str:
    """Strip stray quotes and whitespace from a ``url`` parameter and validate it.

    Raises ``MissingParameter`` for an empty value and ``InvalidURL`` when the
    value has no scheme or host.
    """
    url = (raw or "").strip().strip(_QUOTES).strip()
    if not url:
        raise MissingParameter(f"Missing {label} parameter")
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError for non-numeric or out-of-range ports
    except ValueError as exc:
        raise InvalidURL(f"Invalid URL: {url}") from exc
    if not parts.scheme or not parts.netloc:
        raise InvalidURL(f"Invalid URL: {url}")
    return url


def is_html(response: httpx.Response, body: str) -> bool:
    content_type = response.headers.get("content-type", "")
    return "text/html" in content_type.lower() or body.lstrip()[:9].lower() == "<!doctype"


class FeedPipeline:
    """Fetch feeds and discover feeds for one request at a time."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _fetcher(self) -> Fetcher:
        return Fetcher(self.settings, transport=self.transport)

    async def fetch_feed(self, url: str) -> FeedResult:
        try:
            async with self._fetcher() as fetcher:
                return await self._fetch_feed(fetcher, url, allow_discovery=True)
        except FeedError as exc:
            logger.error("[feed] Error syncing feed %s: %s", url, exc.message)
            raise
        except (httpx.HTTPError, ExpatError) as exc:
            logger.error("[feed] Error syncing feed %s: %s", url, exc)
            raise UnexpectedError(str(exc) or exc.__class__.__name__) from exc
        except Exception as exc:
            logger.exception("[feed] Unexpected failure for %s", url)
            raise UnexpectedError(str(exc) or exc.__class__.__name__) from exc

    async def _fetch_feed(self, fetcher: Fetcher, url: str, allow_discovery: bool) -> FeedResult:
        response = await fetcher.fetch(url, accept=FEED_ACCEPT)
        if not response.is_success:
            raise UpstreamHTTPError(
                f"Upstream feed responded with {describe_status(response)}", response.status_code
            )

        body = response.text
        if is_html(response, body):
            if not allow_discovery:
                raise NoFeedDiscovered(f"Discovered feed URL {url} serves an HTML page, not a feed.")
            result = await FeedDiscoverer(fetcher).discover(url, body)
            if not result.feeds:
                raise NoFeedDiscovered(
                    "No RSS/Atom feed found on that page. Try passing the feed URL directly, "
                    "or use /discover first."
                )
            target = result.feeds[0].url
            logger.info("[feed] %s is an HTML page, following discovered feed %s", url, target)
            return await self._fetch_feed(fetcher, target, allow_discovery=False)

        tree = xml_tree.parse(body)
        result = normalize_feed(tree, url)
        logger.info("[feed] Parsed %d articles from %s", len(result.articles), url)
        return result

    async def discover(self, url: str) -> DiscoverResult:
        try:
            async with self._fetcher() as fetcher:
                response = await fetcher.fetch(
                    url, accept=HTML_ACCEPT, user_agent=self.settings.discovery_user_agent
                )
                if not response.is_success:
                    raise UpstreamHTTPError(
                        f"Site responded with {describe_status(response)}", response.status_code
                    )
                return await FeedDiscoverer(fetcher).discover(url, response.text)
        except FeedError as exc:
            logger.error("[discover] Error discovering feeds %s: %s", url, exc.message)
            raise
        except httpx.HTTPError as exc:
            logger.error("[discover] Error discovering feeds %s: %s", url, exc)
            raise UnexpectedError(str(exc) or exc.__class__.__name__) from exc
        except Exception as exc:
            logger.exception("[discover] Unexpected failure for %s", url)
            raise UnexpectedError(str(exc) or exc.__class__.__name__) from exc
