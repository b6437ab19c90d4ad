"""
Frame trees from PDF pages.

Walks PyMuPDF's ``rawdict`` output and rebuilds it as a Document: text
blocks become groups, spans become text items, image blocks and link
annotations become non-text items.  Every span's characters are also
appended to a :class:`SourceFile` (the PDF's raw text stream), and each
glyph carries a Span pointing back into it.
"""

import logging
from typing import List

import fitz

from layout.source import SourceFile, SyntaxKind, utf16_len

from .models import (
    FontMetrics,
    Frame,
    Glyph,
    GroupItem,
    ImageItem,
    MetaItem,
    MetaKind,
    Page,
    Point,
    TextItem,
)

logger = logging.getLogger(__name__)

# PDF fonts rarely expose a cap height; 0.7em is close for Latin faces.
DEFAULT_CAP_HEIGHT = 0.7

RAWDICT_FLAGS = (
    fitz.TEXT_PRESERVE_WHITESPACE
    | fitz.TEXT_PRESERVE_LIGATURES
    | fitz.TEXT_PRESERVE_IMAGES
)


class PdfFrameBuilder:
    """
    Converts PDF pages into frame trees that share one source file.

    Call :meth:`page` for each page in reading order, then read
    :attr:`source` for the text stream the spans point into.
    """

    def __init__(self, file_id: str):
        self._source = SourceFile(path=file_id)
        self._parts: List[str] = []
        self._offset = 0  # UTF-16 offset of the next source character

    @property
    def source(self) -> SourceFile:
        self._source.text = "".join(self._parts)
        return self._source

    def page(self, page: fitz.Page, number: int = 0) -> Page:
        """Build the frame tree for a single *page*."""
        rect = page.rect
        frame = Frame(width=rect.width, height=rect.height)

        try:
            text_dict = page.get_text("rawdict", flags=RAWDICT_FLAGS)
        except Exception as e:
            logger.warning("Failed to extract text on page %d: %s", number, e)
            return Page(frame=frame, number=number)

        for block_data in text_dict.get("blocks", []):
            x0, y0, x1, y1 = block_data.get("bbox", (0, 0, 0, 0))
            if block_data.get("type") == 1:
                frame.push(Point(x0, y0), ImageItem(width=x1 - x0, height=y1 - y0))
                continue
            if block_data.get("type") != 0:
                continue

            group = self._block(block_data, Point(x0, y0))
            group.width = x1 - x0
            group.height = y1 - y0
            if len(group):
                frame.push(Point(x0, y0), GroupItem(frame=group))

        for link in self._links(page):
            frame.push(*link)

        logger.debug("Page %d: %d top-level items", number, len(frame))
        return Page(frame=frame, number=number)

    def _block(self, block_data: dict, origin: Point) -> Frame:
        """Text items for one block, positioned relative to *origin*."""
        group = Frame()
        for line_data in block_data.get("lines", []):
            emitted = False
            for span_data in line_data.get("spans", []):
                item, pos = self._span(span_data)
                if item is None:
                    continue
                group.push(Point(pos.x - origin.x, pos.y - origin.y), item)
                emitted = True
            if emitted:
                self._append_source("\n")
        return group

    def _span(self, span_data: dict):
        """Build a TextItem from one rawdict span and record its source node."""
        chars = [c for c in span_data.get("chars", []) if c.get("c")]
        if not chars:
            return None, None

        text = "".join(c["c"] for c in chars)
        length = utf16_len(text)
        span = self._source.add_node(SyntaxKind.TEXT, self._offset, self._offset + length)
        self._append_source(text)

        glyphs = []
        cursor = 0
        for char_data in chars:
            n = utf16_len(char_data["c"])
            glyphs.append(Glyph(span=span, start=cursor, length=n))
            cursor += n

        ox, oy = chars[0].get("origin", span_data.get("origin", (0, 0)))
        bbox = span_data.get("bbox", (ox, oy, ox, oy))
        font = FontMetrics(
            name=span_data.get("font", ""),
            cap_height=DEFAULT_CAP_HEIGHT,
            ascender=span_data.get("ascender", 0.8),
            descender=span_data.get("descender", -0.2),
        )
        item = TextItem(
            text=text,
            font=font,
            size=span_data.get("size", 12.0),
            width=max(0.0, bbox[2] - ox),
            glyphs=glyphs,
        )
        return item, Point(ox, oy)

    @staticmethod
    def _links(page: fitz.Page):
        """Link annotations as positioned Meta items."""
        links = []
        for link in page.get_links():
            area = link.get("from")
            if area is None:
                continue
            if link.get("uri"):
                target = link["uri"]
            else:
                target = f"page:{link.get('page', -1)}"
            links.append(
                (
                    Point(area.x0, area.y0),
                    MetaItem(
                        kind=MetaKind.LINK,
                        target=target,
                        width=area.width,
                        height=area.height,
                    ),
                )
            )
        return links

    def _append_source(self, text: str) -> None:
        self._parts.append(text)
        self._offset += utf16_len(text)

    def __repr__(self) -> str:
        return f"PdfFrameBuilder('{self._source.path}', offset={self._offset})"
