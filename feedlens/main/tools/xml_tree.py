"""Generic XML to nested-dict parsing.

``parse`` turns an XML document into plain Python containers without knowing
anything about feeds:

* an element with only text becomes that text (stripped);
* an element with attributes, children or CDATA becomes a dict where attributes
  are stored under ``"@_" + name``, text under ``"#text"`` and CDATA under
  ``"__cdata"``;
* repeated sibling elements with the same name become a list, in document order.

Prefixed names are kept verbatim (``content:encoded``).  The result is keyed by
the root element's name, e.g. ``{"rss": {...}}``.

Parsing is best-effort about the defects feeds commonly ship with: bare ``&``
characters and HTML named entities are repaired before expat sees the document.
CDATA sections are left untouched.
"""

from __future__ import annotations

import re
from html.entities import name2codepoint
from typing import Any, Dict, List
from xml.parsers import expat

ATTR_PREFIX = "@_"
TEXT_KEY = "#text"
CDATA_KEY = "__cdata"

_XML_ENTITIES = {"amp", "lt", "gt", "quot", "apos"}
_AMPERSAND_RE = re.compile(r"&(?:(#\d+;|#x[0-9a-fA-F]+;)|([A-Za-z][A-Za-z0-9]*);)?")
_CDATA_RE = re.compile(r"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)


def _fix_ampersand(match: re.Match) -> str:
    if match.group(1):
        return match.group(0)
    name = match.group(2)
    if name is None:
        # Bare "&", as in "AT&T" or an unescaped query string.
        return "&amp;"
    if name in _XML_ENTITIES:
        return match.group(0)
    if name in name2codepoint:
        # HTML named entities (&nbsp;) that XML does not define.
        return f"&#{name2codepoint[name]};"
    return "&amp;" + name + ";"


def _repair_ampersands(text: str) -> str:
    """Make every ``&`` outside CDATA sections a reference expat accepts."""
    segments = _CDATA_RE.split(text)
    # Odd indices are the CDATA sections captured by the split; they stay verbatim.
    return "".join(
        segment if i % 2 else _AMPERSAND_RE.sub(_fix_ampersand, segment)
        for i, segment in enumerate(segments)
    )


class _Element:
    __slots__ = ("attrs", "children", "text", "cdata", "has_cdata")

    def __init__(self, attrs: Dict[str, str]):
        self.attrs = attrs
        self.children: Dict[str, Any] = {}
        self.text: List[str] = []
        self.cdata: List[str] = []
        self.has_cdata = False

    def add_child(self, name: str, node: Any) -> None:
        if name not in self.children:
            self.children[name] = node
        elif isinstance(self.children[name], list):
            self.children[name].append(node)
        else:
            self.children[name] = [self.children[name], node]

    def to_node(self) -> Any:
        text = "".join(self.text).strip()
        if not self.attrs and not self.children and not self.has_cdata:
            return text
        node: Dict[str, Any] = {ATTR_PREFIX + k: v for k, v in self.attrs.items()}
        node.update(self.children)
        if text:
            node[TEXT_KEY] = text
        if self.has_cdata:
            node[CDATA_KEY] = "".join(self.cdata)
        return node


class _TreeBuilder:
    def __init__(self):
        self.document = _Element({})
        self.stack: List[_Element] = [self.document]
        self.in_cdata = False

    def start(self, name: str, attrs: Dict[str, str]) -> None:
        self.stack.append(_Element(attrs))

    def end(self, name: str) -> None:
        element = self.stack.pop()
        self.stack[-1].add_child(name, element.to_node())

    def data(self, chunk: str) -> None:
        top = self.stack[-1]
        if self.in_cdata:
            top.cdata.append(chunk)
        else:
            top.text.append(chunk)

    def start_cdata(self) -> None:
        self.in_cdata = True
        self.stack[-1].has_cdata = True

    def end_cdata(self) -> None:
        self.in_cdata = False


def parse(text: str) -> Dict[str, Any]:
    """Parse *text* into the generic tree described in the module docstring.

    Raises ``xml.parsers.expat.ExpatError`` when the structure itself is broken
    (mismatched or unclosed tags) and cannot be repaired.
    """
    builder = _TreeBuilder()
    parser = expat.ParserCreate()
    parser.buffer_text = True
    parser.StartElementHandler = builder.start
    parser.EndElementHandler = builder.end
    parser.CharacterDataHandler = builder.data
    parser.StartCdataSectionHandler = builder.start_cdata
    parser.EndCdataSectionHandler = builder.end_cdata
    parser.Parse(_repair_ampersands(text.lstrip("\ufeff").lstrip()), True)
    return builder.document.children
