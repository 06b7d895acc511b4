"""Canonical JSON shapes returned by Feedlens.

These are the service's contract.  ``to_dict`` produces the camelCase keys that
clients consume; do not rename fields lightly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

HTML_LINK = "html-link"
PROBE = "probe"


@dataclass(frozen=True)
class Article:
    id: str
    title: str
    link: str
    pub_date: str
    content_snippet: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "link": self.link,
            "pubDate": self.pub_date,
            "contentSnippet": self.content_snippet,
            "content": self.content,
        }


@dataclass(frozen=True)
class FeedResult:
    feed_title: str
    articles: Tuple[Article, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feedTitle": self.feed_title,
            "articles": [a.to_dict() for a in self.articles],
        }


@dataclass(frozen=True)
class DiscoveredFeed:
    url: str
    title: str
    type: str
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "title": self.title, "type": self.type, "source": self.source}


@dataclass(frozen=True)
class DiscoverResult:
    url: str
    feeds: Tuple[DiscoveredFeed, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "feeds": [f.to_dict() for f in self.feeds]}
