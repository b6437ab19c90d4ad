"""
Frame tree → text chunks with per-character provenance.

:func:`document` walks every page depth-first, feeding text runs into a
:class:`Converter`.  The converter reinserts separators between runs
(see :mod:`extraction.whitespace`), records one mapping entry per UTF-16
code unit, and splits a page into several chunks at paragraph
boundaries once the configured size is exceeded.
"""

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Iterator, List, Optional, Tuple

from layout.frame.models import (
    Document,
    Frame,
    FrameItem,
    GroupItem,
    ImageItem,
    MetaItem,
    Page,
    Point,
    ShapeItem,
    TextItem,
)
from layout.source import Span, utf16_len

from .provenance import DETACHED_ENTRY, Chunk, Mapping, MappingEntry
from .whitespace import DEFAULT_POLICY, Separator, WhitespacePolicy, classify_gap

logger = logging.getLogger(__name__)


def _glyph_entries(item: TextItem) -> Iterator[MappingEntry]:
    """One entry per code unit each glyph accounts for, in glyph order."""
    for glyph in item.glyphs:
        if glyph.length <= 0:
            yield glyph.span, (glyph.start, glyph.start)
            continue
        for k in range(glyph.length):
            yield glyph.span, (glyph.start + k, glyph.start + k + 1)


class Converter:
    """
    Accumulates text and mapping for one chunk of one page.

    Flushed chunks are appended to ``out``; after a flush the converter
    resets to a fresh state and keeps consuming the same page.
    """

    def __init__(
        self,
        chunk_size: int,
        file_id: str,
        out: List[Chunk],
        page_index: int = 0,
        policy: WhitespacePolicy = DEFAULT_POLICY,
    ):
        self.chunk_size = chunk_size
        self.file_id = file_id
        self.page_index = page_index
        self.policy = policy
        self._out = out
        self._reset()

    def _reset(self) -> None:
        self._parts: List[str] = []
        self.mapping = Mapping()
        self.x = 0.0
        self.y = 0.0
        self.last_span: Tuple[Span, int] = (Span.detached(), 0)
        self.contains_file = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def frame(self, frame: Frame, pos: Point) -> None:
        for offset, item in frame.items:
            self.item(pos + offset, item)

    def item(self, pos: Point, item: FrameItem) -> None:
        if isinstance(item, GroupItem):
            self.frame(item.frame, pos)
        elif isinstance(item, TextItem):
            self.text_item(item, pos)
        elif isinstance(item, (ShapeItem, ImageItem, MetaItem)):
            pass
        else:
            logger.debug("Ignoring unknown frame item %r", type(item).__name__)

    def text_item(self, item: TextItem, pos: Point) -> None:
        if self.mapping:
            self.whitespace(item, pos)
        self.x = pos.x + item.width
        self.y = pos.y
        self._parts.append(item.text)

        entries = _glyph_entries(item)
        for _ in range(utf16_len(item.text)):
            span, sub_range = next(entries, DETACHED_ENTRY)
            if not span.is_detached:
                self.last_span = (span, sub_range[1])
                if span.file_id == self.file_id:
                    self.contains_file = True
            self.mapping.push(span, sub_range)

    # ------------------------------------------------------------------
    # Separators and chunking
    # ------------------------------------------------------------------

    def whitespace(self, item: TextItem, pos: Point) -> None:
        first = item.first_glyph_key
        continues = not first[0].is_detached and first == self.last_span
        separator = classify_gap(
            Point(self.x, self.y), pos, item.font, item.size, continues, self.policy
        )
        if separator == Separator.SPACE:
            self.insert_space()
        elif separator == Separator.PARAGRAPH:
            self.insert_parbreak()

    def insert_space(self) -> None:
        self._parts.append(" ")
        self.mapping.push_detached()

    def insert_parbreak(self) -> None:
        if len(self.mapping) > self.chunk_size:
            self.separate()
            return
        self._parts.append("\n\n")
        self.mapping.push_detached(2)

    def separate(self) -> None:
        """Emit the current chunk (if it references the file) and start afresh."""
        if self.contains_file:
            self._out.append(self.take())
            logger.debug(
                "Page %d: flushed chunk of %d chars",
                self.page_index,
                len(self._out[-1].mapping),
            )
        else:
            logger.debug(
                "Page %d: dropped %d chars without target file",
                self.page_index,
                len(self.mapping),
            )
        self._reset()

    def take(self) -> Chunk:
        return Chunk(text=self.text, mapping=self.mapping, page_index=self.page_index)


def page_chunks(
    page: Page,
    chunk_size: int,
    file_id: str,
    page_index: int = 0,
    policy: WhitespacePolicy = DEFAULT_POLICY,
) -> List[Chunk]:
    """Convert one page into its chunks, in reading order."""
    out: List[Chunk] = []
    converter = Converter(chunk_size, file_id, out, page_index, policy)
    converter.frame(page.frame, Point())
    if converter.contains_file:
        out.append(converter.take())
    return out


def document(
    doc: Document,
    chunk_size: int,
    file_id: str,
    policy: Optional[WhitespacePolicy] = None,
    workers: int = 1,
) -> List[Chunk]:
    """
    Extract the chunks of *doc* that reference *file_id*.

    Args:
        doc:        Laid-out document.
        chunk_size: Mapped-character count after which the next paragraph
                    boundary starts a new chunk.
        file_id:    Only chunks containing characters from this file are
                    returned.
        policy:     Separator heuristic parameters.
        workers:    Convert pages in this many worker processes.  Pages
                    and chunks are pickled across, so this pays off on
                    long documents only.  Output order is page order
                    regardless.

    Returns:
        Chunks in page order, and in reading order within a page.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if workers < 1:
        raise ValueError(f"workers must be positive, got {workers}")
    policy = policy or DEFAULT_POLICY

    per_page: List[List[Chunk]] = [[] for _ in doc.pages]
    if workers == 1 or len(doc.pages) < 2:
        for idx, page in enumerate(doc.pages):
            per_page[idx] = page_chunks(page, chunk_size, file_id, idx, policy)
    else:
        with ProcessPoolExecutor(max_workers=min(workers, len(doc.pages))) as executor:
            futures = {
                executor.submit(page_chunks, page, chunk_size, file_id, idx, policy): idx
                for idx, page in enumerate(doc.pages)
            }
            for future in as_completed(futures):
                per_page[futures[future]] = future.result()

    chunks = [chunk for page in per_page for chunk in page]
    logger.debug("Document: %d pages → %d chunks", len(doc.pages), len(chunks))
    return chunks
