"""Map a generic parsed-XML tree onto the canonical article schema.

RSS 2.0 and Atom 1.0 describe the same things with different shapes.  This
module absorbs the differences so that both produce identical
:class:`~feedlens.main.models.FeedResult` objects:

* RSS items live under ``rss.channel.item``, Atom entries under ``feed.entry``;
* RSS links are element text, Atom links are ``href`` attributes, possibly on
  several ``<link>`` elements with different ``rel`` values;
* leaf values may be plain text, CDATA or attribute maps (see ``xml_tree``).

Items without a title or link are dropped rather than failing the feed.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from feedparser.datetimes import _parse_date

from feedlens.main.models import Article, FeedResult
from feedlens.main.tools.xml_tree import ATTR_PREFIX, CDATA_KEY, TEXT_KEY

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 300
ELLIPSIS = "..."

RSS = "rss"
ATOM = "feed"

_DATE_KEYS = ("pubDate", "published", "updated")
_CONTENT_KEYS = ("content:encoded", "content", "description")


class LeafKind(enum.Enum):
    MISSING = "missing"
    TEXT = "text"
    CDATA = "cdata"
    SCALAR = "scalar"
    ATTRIBUTES = "attributes"
    STRUCTURE = "structure"


class Leaf(NamedTuple):
    kind: LeafKind
    value: Any


def classify(node: Any) -> Leaf:
    """Tag a tree value with the shape it has."""
    if not node:
        return Leaf(LeafKind.MISSING, None)
    if isinstance(node, str):
        return Leaf(LeafKind.TEXT, node)
    if isinstance(node, (bool, int, float)):
        return Leaf(LeafKind.SCALAR, node)
    if isinstance(node, dict):
        if node.get(CDATA_KEY):
            return Leaf(LeafKind.CDATA, node[CDATA_KEY])
        if node.get(TEXT_KEY):
            return Leaf(LeafKind.TEXT, node[TEXT_KEY])
        if all(key.startswith(ATTR_PREFIX) for key in node):
            return Leaf(LeafKind.ATTRIBUTES, node)
    return Leaf(LeafKind.STRUCTURE, node)


def extract_text(node: Any) -> str:
    """Return the display text of a tree value.

    CDATA wins over plain text, which wins over scalar coercion.  Anything else
    falls back to the text of its non-attribute children; an attribute map on its
    own has no text.
    """
    leaf = classify(node)
    if leaf.kind is LeafKind.MISSING or leaf.kind is LeafKind.ATTRIBUTES:
        return ""
    if leaf.kind is LeafKind.TEXT or leaf.kind is LeafKind.CDATA:
        return str(leaf.value)
    if leaf.kind is LeafKind.SCALAR:
        if isinstance(leaf.value, bool):
            return "true" if leaf.value else "false"
        return str(leaf.value)
    value = leaf.value
    if isinstance(value, dict):
        parts: Iterable[Any] = (v for k, v in value.items() if not k.startswith(ATTR_PREFIX))
    elif isinstance(value, list):
        parts = value
    else:
        return str(value)
    return " ".join(text for text in (extract_text(p) for p in parts) if text)


def extract_link(item: Dict[str, Any]) -> str:
    raw = item.get("link")
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        href = raw.get(ATTR_PREFIX + "href")
        return href if isinstance(href, str) else ""
    if isinstance(raw, list):
        # Atom entries may carry several links; only rel="alternate" (or no rel)
        # points at the article itself.
        for link in raw:
            if isinstance(link, str) and link:
                return link
            if isinstance(link, dict):
                rel = link.get(ATTR_PREFIX + "rel")
                href = link.get(ATTR_PREFIX + "href")
                if (rel == "alternate" or not rel) and isinstance(href, str):
                    return href
    return ""


def format_timestamp(dt: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision, e.g. ``2024-01-01T00:00:00.000Z``."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(raw: str) -> Optional[datetime]:
    """Parse RFC 822, W3C-DTF and the other formats feedparser understands."""
    if not raw:
        return None
    parsed = _parse_date(raw)
    if parsed is None:
        return None
    try:
        return datetime(*parsed[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def make_snippet(content: str) -> str:
    if len(content) > SNIPPET_LENGTH:
        return content[:SNIPPET_LENGTH] + ELLIPSIS
    return content


def _first_present(item: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def _as_list(value: Any) -> List[Any]:
    if not value:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


def detect_format(tree: Dict[str, Any]) -> Optional[str]:
    """Return ``"rss"`` or ``"feed"`` depending on the root element, else ``None``."""
    if tree.get(RSS):
        return RSS
    if tree.get(ATOM):
        return ATOM
    return None


def normalize_item(item: Dict[str, Any], now: datetime) -> Optional[Article]:
    """Build an :class:`Article`, or return ``None`` when title or link is empty.

    An unparsable publish date is replaced by *now*, so ``pub_date`` is always a
    valid timestamp but may not reflect the upstream value.
    """
    title = extract_text(item.get("title"))
    link = extract_link(item)
    if not title or not link:
        return None

    published = parse_timestamp(extract_text(_first_present(item, _DATE_KEYS)))
    content = extract_text(_first_present(item, _CONTENT_KEYS))
    return Article(
        id=link or title,
        title=title,
        link=link,
        pub_date=format_timestamp(published or now),
        content_snippet=make_snippet(content),
        content=content,
    )


def normalize_feed(tree: Dict[str, Any], request_url: str, now: datetime | None = None) -> FeedResult:
    """Normalise a parsed RSS or Atom document into a :class:`FeedResult`.

    Parameters
    ----------
    tree:
        Output of :func:`feedlens.main.tools.xml_tree.parse`.
    request_url:
        URL the document was fetched from; used as the feed title when the
        document declares none.
    now:
        Processing time substituted for unparsable dates.  Defaults to the
        current UTC time.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    fmt = detect_format(tree)
    if fmt == RSS:
        container = _as_dict(_as_dict(tree[RSS]).get("channel"))
        raw_items = _as_list(container.get("item"))
    elif fmt == ATOM:
        container = _as_dict(tree[ATOM])
        raw_items = _as_list(container.get("entry"))
    else:
        logger.info("Document at %s has neither an rss nor a feed root", request_url)
        return FeedResult(feed_title=request_url)

    feed_title = extract_text(container.get("title")) or request_url
    articles = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        article = normalize_item(raw, now)
        if article is not None:
            articles.append(article)
    dropped = len(raw_items) - len(articles)
    if dropped:
        logger.debug("Dropped %d incomplete entries from %s", dropped, request_url)
    return FeedResult(feed_title=feed_title, articles=tuple(articles))
