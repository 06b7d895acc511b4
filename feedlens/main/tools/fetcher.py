"""Bounded-time upstream fetching.

The module provides :class:`Fetcher`, an async context manager around a single
``httpx.AsyncClient``.  Every call to :meth:`Fetcher.fetch` carries its own time
bound taken from :class:`~feedlens.main.config.Settings`; when it expires the call
raises :class:`~feedlens.main.errors.UpstreamTimeout` and nothing else is
affected.  No retries are made.  Other transport faults surface as
``httpx.HTTPError`` and are classified by the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from feedlens.main.config import Settings
from feedlens.main.errors import UpstreamTimeout

logger = logging.getLogger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml"
HTML_ACCEPT = "text/html,application/xhtml+xml"


class Fetcher:
    """Issue GET/HEAD requests with a per-operation timeout.

    ``transport`` is passed straight to ``httpx.AsyncClient``; tests use it to
    plug in an ``httpx.MockTransport``.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "Fetcher":
        self._client = httpx.AsyncClient(
            transport=self._transport,
            follow_redirects=True,
            timeout=self.settings.fetch_timeout,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        accept: str | None = None,
        user_agent: str | None = None,
    ) -> httpx.Response:
        """Fetch *url* and return the fully read response.

        Raises ``UpstreamTimeout`` when the operation exceeds the configured bound.
        """
        if self._client is None:
            raise RuntimeError("Fetcher must be used as an async context manager")
        headers = {"User-Agent": user_agent or self.settings.feed_user_agent}
        if accept:
            headers["Accept"] = accept
        try:
            response = await asyncio.wait_for(
                self._client.request(method, url, headers=headers),
                timeout=self.settings.fetch_timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            logger.warning("%s %s timed out after %d ms", method, url, self.settings.fetch_timeout_ms)
            raise UpstreamTimeout(
                f"Request to {url} timed out after {self.settings.fetch_timeout_ms} ms"
            ) from exc
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response


def describe_status(response: httpx.Response) -> str:
    """Return ``"404 Not Found"`` style text for error messages."""
    return f"{response.status_code} {response.reason_phrase}".strip()
