"""Tests for the RSS/Atom normaliser.

Documents are run through ``xml_tree.parse`` first so the normaliser sees the
same shapes it gets in production.  ``now`` is pinned wherever an unparsable
date would otherwise make the output depend on the clock.
"""

from datetime import datetime, timezone
from unittest import TestCase

from feedlens.main.tools.feed_normalizer import (
    LeafKind,
    classify,
    detect_format,
    extract_link,
    extract_text,
    normalize_feed,
)
from feedlens.main.tools.xml_tree import parse

NOW = datetime(2025, 6, 1, 12, 30, 0, tzinfo=timezone.utc)

RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Example</title>
<item><link>https://ex.com/a</link><title>A</title><pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate><description>hi</description></item>
<item><link>https://ex.com/b</link><title>B</title><pubDate>Tue, 02 Jan 2024 10:00:00 GMT</pubDate><description>there</description></item>
</channel></rss>"""

ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"><title type="text">Example</title>
<entry><title>A</title><link href="https://ex.com/a"/><published>2024-01-01T00:00:00Z</published><content type="html">hi</content></entry>
<entry><title>B</title><link rel="self" href="https://ex.com/b.atom"/><link rel="alternate" href="https://ex.com/b"/><updated>2024-01-02T10:00:00Z</updated><summary>x</summary><content>there</content></entry>
</feed>"""


class TestExtractText(TestCase):
    def test_precedence(self) -> None:
        self.assertEqual(extract_text({"__cdata": "c", "#text": "t"}), "c")
        self.assertEqual(extract_text({"@_type": "html", "#text": "t"}), "t")
        self.assertEqual(extract_text(42), "42")
        self.assertEqual(extract_text(True), "true")
        self.assertEqual(extract_text("plain"), "plain")

    def test_missing_and_attribute_only(self) -> None:
        self.assertEqual(extract_text(None), "")
        self.assertEqual(extract_text(""), "")
        self.assertEqual(extract_text({"@_href": "https://ex.com/"}), "")

    def test_structure_falls_back_to_child_text(self) -> None:
        node = {"@_type": "xhtml", "div": {"p": ["one", "two"]}}
        self.assertEqual(classify(node).kind, LeafKind.STRUCTURE)
        self.assertEqual(extract_text(node), "one two")


class TestExtractLink(TestCase):
    def test_plain_string(self) -> None:
        self.assertEqual(extract_link({"link": "https://ex.com/a"}), "https://ex.com/a")

    def test_single_href_object(self) -> None:
        self.assertEqual(extract_link({"link": {"@_href": "https://ex.com/a"}}), "https://ex.com/a")

    def test_list_prefers_alternate_or_missing_rel(self) -> None:
        links = [
            {"@_rel": "self", "@_href": "https://ex.com/self"},
            {"@_rel": "alternate", "@_href": "https://ex.com/alt"},
            {"@_href": "https://ex.com/plain"},
        ]
        self.assertEqual(extract_link({"link": links}), "https://ex.com/alt")
        self.assertEqual(extract_link({"link": links[::2][::-1]}), "https://ex.com/plain")

    def test_list_without_match_is_empty(self) -> None:
        links = [{"@_rel": "self", "@_href": "x"}, {"@_rel": "enclosure", "@_href": "y"}]
        self.assertEqual(extract_link({"link": links}), "")
        self.assertEqual(extract_link({}), "")


class TestNormalizeFeed(TestCase):
    def test_rss_scenario(self) -> None:
        xml = (
            "<rss><channel><item><link>https://ex.com/a</link><title>A</title>"
            "<pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate><description>hi</description>"
            "</item></channel></rss>"
        )
        result = normalize_feed(parse(xml), "https://ex.com/rss")
        self.assertEqual(result.feed_title, "https://ex.com/rss")
        self.assertEqual([a.to_dict() for a in result.articles], [{
            "id": "https://ex.com/a",
            "title": "A",
            "link": "https://ex.com/a",
            "pubDate": "2024-01-01T00:00:00.000Z",
            "contentSnippet": "hi",
            "content": "hi",
        }])

    def test_rss_and_atom_normalise_identically(self) -> None:
        rss = normalize_feed(parse(RSS), "https://ex.com/rss", now=NOW)
        atom = normalize_feed(parse(ATOM), "https://ex.com/atom", now=NOW)
        self.assertEqual(rss.feed_title, "Example")
        self.assertEqual(atom.feed_title, "Example")
        self.assertEqual(len(rss.articles), 2)
        self.assertEqual(rss.articles, atom.articles)

    def test_detect_format(self) -> None:
        self.assertEqual(detect_format(parse(RSS)), "rss")
        self.assertEqual(detect_format(parse(ATOM)), "feed")
        self.assertIsNone(detect_format(parse("<html><body/></html>")))

    def test_unknown_root_yields_no_articles(self) -> None:
        result = normalize_feed(parse("<opml><body/></opml>"), "https://ex.com/x")
        self.assertEqual(result.feed_title, "https://ex.com/x")
        self.assertEqual(result.articles, ())

    def test_incomplete_items_are_dropped(self) -> None:
        xml = (
            "<rss><channel><title>T</title>"
            "<item><title>No link</title></item>"
            "<item><link>https://ex.com/no-title</link></item>"
            "<item><title>Ok</title><link>https://ex.com/ok</link></item>"
            "</channel></rss>"
        )
        result = normalize_feed(parse(xml), "https://ex.com/rss", now=NOW)
        self.assertEqual([a.link for a in result.articles], ["https://ex.com/ok"])
        for article in result.articles:
            self.assertTrue(article.link and article.title)

    def test_empty_channel(self) -> None:
        result = normalize_feed(parse("<rss><channel><title>T</title></channel></rss>"), "https://ex.com/rss")
        self.assertEqual(result.feed_title, "T")
        self.assertEqual(result.articles, ())

    def test_unparsable_date_uses_processing_time(self) -> None:
        xml = "<rss><channel><item><title>A</title><link>https://ex.com/a</link><pubDate>not a date</pubDate></item></channel></rss>"
        result = normalize_feed(parse(xml), "https://ex.com/rss", now=NOW)
        self.assertEqual(result.articles[0].pub_date, "2025-06-01T12:30:00.000Z")

    def test_missing_date_uses_processing_time(self) -> None:
        xml = "<feed><entry><title>A</title><link href='https://ex.com/a'/></entry></feed>"
        result = normalize_feed(parse(xml), "https://ex.com/atom", now=NOW)
        self.assertEqual(result.articles[0].pub_date, "2025-06-01T12:30:00.000Z")

    def test_content_encoded_wins_over_description(self) -> None:
        xml = (
            "<rss><channel><item><title>A</title><link>https://ex.com/a</link>"
            "<description>short</description>"
            "<content:encoded><![CDATA[<p>full body</p>]]></content:encoded>"
            "</item></channel></rss>"
        )
        article = normalize_feed(parse(xml), "https://ex.com/rss", now=NOW).articles[0]
        self.assertEqual(article.content, "<p>full body</p>")

    def test_snippet_truncation(self) -> None:
        for length in (0, 1, 300, 301, 1000):
            body = "x" * length
            xml = f"<rss><channel><item><title>A</title><link>https://ex.com/a</link><description>{body}</description></item></channel></rss>"
            article = normalize_feed(parse(xml), "https://ex.com/rss", now=NOW).articles[0]
            self.assertEqual(article.content, body)
            self.assertLessEqual(len(article.content_snippet), 303)
            self.assertEqual(article.content_snippet.endswith("..."), length > 300)
            self.assertTrue(body.startswith(article.content_snippet.rstrip(".")))

    def test_same_input_normalises_identically(self) -> None:
        tree = parse(RSS)
        self.assertEqual(normalize_feed(tree, "u"), normalize_feed(tree, "u"))

    def test_duplicates_and_order_are_preserved(self) -> None:
        item = "<item><title>A</title><link>https://ex.com/a</link></item>"
        xml = f"<rss><channel>{item}<item><title>B</title><link>https://ex.com/b</link></item>{item}</channel></rss>"
        result = normalize_feed(parse(xml), "https://ex.com/rss", now=NOW)
        self.assertEqual([a.title for a in result.articles], ["A", "B", "A"])
