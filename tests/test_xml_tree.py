from unittest import TestCase
from xml.parsers.expat import ExpatError

from feedlens.main.tools.xml_tree import parse


class TestParse(TestCase):
    def test_text_only_elements_become_strings(self) -> None:
        tree = parse("<rss><channel><title>  Blog  </title></channel></rss>")
        self.assertEqual(tree, {"rss": {"channel": {"title": "Blog"}}})

    def test_repeated_siblings_become_a_list(self) -> None:
        tree = parse("<feed><entry><title>1</title></entry><entry><title>2</title></entry></feed>")
        self.assertEqual(tree["feed"]["entry"], [{"title": "1"}, {"title": "2"}])

    def test_attributes_and_text(self) -> None:
        tree = parse('<feed><title type="text">Hello</title><link href="https://ex.com/"/></feed>')
        self.assertEqual(tree["feed"]["title"], {"@_type": "text", "#text": "Hello"})
        self.assertEqual(tree["feed"]["link"], {"@_href": "https://ex.com/"})

    def test_cdata_is_kept_apart(self) -> None:
        tree = parse("<item><description><![CDATA[<p>hi</p>]]></description></item>")
        self.assertEqual(tree["item"]["description"], {"__cdata": "<p>hi</p>"})

    def test_prefixed_names_are_kept(self) -> None:
        tree = parse(
            '<rss xmlns:content="http://purl.org/rss/1.0/modules/content/">'
            "<item><content:encoded>full</content:encoded></item></rss>"
        )
        self.assertEqual(tree["rss"]["item"]["content:encoded"], "full")

    def test_html_entities_and_leading_whitespace(self) -> None:
        tree = parse('\n  <?xml version="1.0"?><title>a&nbsp;b &amp; c</title>')
        self.assertEqual(tree["title"], "a\xa0b & c")

    def test_bare_ampersands_are_tolerated(self) -> None:
        tree = parse('<item><title>AT&T &amp; co &unknown; &#38;</title><link href="/a?x=1&y=2"/></item>')
        self.assertEqual(tree["item"]["title"], "AT&T & co &unknown; &")
        self.assertEqual(tree["item"]["link"], {"@_href": "/a?x=1&y=2"})

    def test_cdata_payload_is_verbatim(self) -> None:
        tree = parse("<rss><d><![CDATA[a&nbsp;b &copy; c&d]]></d><e>x&nbsp;y</e></rss>")
        self.assertEqual(tree["rss"]["d"], {"__cdata": "a&nbsp;b &copy; c&d"})
        self.assertEqual(tree["rss"]["e"], "x\xa0y")

    def test_malformed_xml_raises(self) -> None:
        with self.assertRaises(ExpatError):
            parse("<rss><channel></rss>")
