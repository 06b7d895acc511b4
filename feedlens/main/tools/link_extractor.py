"""Find ``<link rel="alternate">`` feed declarations in raw HTML.

Only one tag shape matters here, so instead of building a DOM the module scans
for ``<link ...>`` occurrences and reads their attributes with a permissive
pattern (double-quoted, single-quoted or bare values).  ``href`` values are
resolved against the page URL.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

from feedlens.main.models import HTML_LINK, DiscoveredFeed

logger = logging.getLogger(__name__)

FEED_TYPES = frozenset({
    "application/rss+xml",
    "application/atom+xml",
    "application/feed+json",
    "application/x-atom+xml",
    "application/rdf+xml",
    "text/xml",
})

_LINK_TAG_RE = re.compile(r"<link\b([^>]+)>", re.IGNORECASE)


def media_type(content_type: Optional[str]) -> str:
    """Lower-cased MIME type with any ``;`` parameters removed."""
    return (content_type or "").split(";")[0].strip().lower()


def is_feed_type(content_type: Optional[str]) -> bool:
    return media_type(content_type) in FEED_TYPES


def attr_value(attrs: str, name: str) -> Optional[str]:
    """Return the value of attribute *name* in an attribute string, or ``None``."""
    pattern = re.compile(
        r"(?<![\w-])" + re.escape(name) + r"""\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""",
        re.IGNORECASE,
    )
    match = pattern.search(attrs)
    if not match:
        return None
    for group in match.groups():
        if group is not None:
            return group
    return None


def to_absolute(href: str, base_url: str) -> str:
    """Resolve *href* against *base_url*; keep *href* unchanged if that fails."""
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href


def extract_feed_links(html: str, base_url: str) -> List[DiscoveredFeed]:
    """Return every declared alternate feed link in document order."""
    results: List[DiscoveredFeed] = []
    for match in _LINK_TAG_RE.finditer(html or ""):
        attrs = match.group(1)
        rel = attr_value(attrs, "rel")
        if not rel or "alternate" not in rel.lower():
            continue

        type_ = attr_value(attrs, "type") or ""
        if not is_feed_type(type_):
            continue

        href = attr_value(attrs, "href")
        if not href:
            continue

        title = attr_value(attrs, "title")
        results.append(DiscoveredFeed(
            url=to_absolute(href, base_url),
            title=title if title is not None else type_,
            type=type_,
            source=HTML_LINK,
        ))
    logger.debug("Found %d alternate feed links on %s", len(results), base_url)
    return results
