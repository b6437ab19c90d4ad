"""
Shared builders for frame-tree tests.

All geometry uses FONT at SIZE, so a line of the same paragraph sits
LINE points below the previous baseline:
(cap_height 0.7 + leading 0.65) × 10pt = 13.5pt.
"""

import pytest

from layout.frame.models import (
    Document,
    FontMetrics,
    Frame,
    Glyph,
    Page,
    Point,
    TextItem,
)
from layout.source import SourceFile, Span, SyntaxKind, utf16_len

FILE = "main.typ"
OTHER = "other.typ"
FONT = FontMetrics(name="Test", cap_height=0.7)
SIZE = 10.0
LINE = 13.5
CHAR_WIDTH = 5.0


def make_text(text, span=None, start=0, glyphs=None, width=None):
    """A TextItem with one single-unit glyph per code unit of *text*."""
    if glyphs is None:
        span = span or Span(FILE, 0)
        glyphs = [
            Glyph(span=span, start=start + k, length=1) for k in range(utf16_len(text))
        ]
    if width is None:
        width = CHAR_WIDTH * len(text)
    return TextItem(text=text, font=FONT, size=SIZE, width=width, glyphs=glyphs)


def make_page(*items):
    """A page from ``(x, y, item)`` triples."""
    frame = Frame()
    for x, y, item in items:
        frame.push(Point(x, y), item)
    return Page(frame=frame)


@pytest.fixture
def text():
    return make_text


@pytest.fixture
def page():
    return make_page


@pytest.fixture
def doc():
    def _doc(*pages):
        return Document(pages=list(pages))

    return _doc


@pytest.fixture
def source():
    """
    main.typ with two literal text nodes and one markup node:

    node 0: "Hello world" at 0..11
    node 1: "#emph[x]"    at 12..20 (MARKUP)
    node 2: "again"       at 21..26
    """
    src = SourceFile(path=FILE, text="Hello world\n#emph[x]\nagain")
    src.add_node(SyntaxKind.TEXT, 0, 11)
    src.add_node(SyntaxKind.MARKUP, 12, 20)
    src.add_node(SyntaxKind.TEXT, 21, 26)
    return src
