"""
Extraction pipeline orchestrator: PDF → frame tree → chunks → source ranges.

Coordinates the full workflow:

1. **Frame building** — read each page's ``rawdict`` with PyMuPDF and
   rebuild it as a frame tree whose glyph spans point into the PDF's raw
   text stream (one :class:`SourceFile` for the whole run).
2. **Chunking** — walk the frame tree with :func:`extraction.converter.document`,
   reinserting separators and splitting at paragraph boundaries once a
   chunk exceeds ``chunk_size`` mapped characters.
3. **Resolution** — map suggestions returned by an external analysis
   service back to ranges of the source text.

Usage::

    from extraction.pipeline import ExtractionConfig, ExtractionPipeline

    pipeline = ExtractionPipeline(ExtractionConfig(chunk_size=1500))
    result = pipeline.extract("paper.pdf")
    for chunk in result.chunks:
        send_to_checker(chunk.text)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from tqdm import tqdm

from layout.frame.models import Document
from layout.frame.pdf_frames import PdfFrameBuilder
from layout.source import SourceFile

from .converter import document
from .provenance import Chunk, Suggestion
from .utils.pdf_adapter import PDFAdapter
from .whitespace import WhitespacePolicy

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class ExtractionConfig:
    """
    All tuneable parameters for the extraction pipeline.

    Attributes:
        chunk_size:         Mapped characters after which the next paragraph
                            boundary starts a new chunk.
        page_range:         ``(start, end)`` 0-based inclusive, or ``None`` for all.
        workers:            Processes used to convert pages into chunks.
        position_tolerance: Distance (pt) under which two positions compare equal.
        leading_em:         Line spacing added to the font extent, in em.
        font_extent:        Measure lines by ascender - descender (PyMuPDF's
                            line model) instead of the cap height.
        join_same_line:     Insert a space (not a paragraph break) between spans
                            on the same baseline.
        disable_tqdm:       Suppress progress bars.
    """

    chunk_size: int = 2000
    page_range: Optional[Tuple[int, int]] = None
    workers: int = 1

    # PDF coordinates are rounded; lines are stacked by the font extent
    position_tolerance: float = 1.0
    leading_em: float = 0.0
    join_same_line: bool = True
    font_extent: bool = True

    disable_tqdm: bool = False

    @property
    def policy(self) -> WhitespacePolicy:
        return WhitespacePolicy(
            tolerance=self.position_tolerance,
            leading_em=self.leading_em,
            join_same_line=self.join_same_line,
            font_extent=self.font_extent,
        )


# ------------------------------------------------------------------
# Result
# ------------------------------------------------------------------


@dataclass
class Resolution:
    """A suggestion resolved against the source text."""

    chunk_index: int
    suggestion: Suggestion
    excerpt: str
    ranges: List[Tuple[int, int]] = field(default_factory=list)
    source_text: str = ""

    @property
    def resolved(self) -> bool:
        return bool(self.ranges)


@dataclass
class ExtractionResult:
    """
    Output of :meth:`ExtractionPipeline.extract`.

    ``chunks[i].page_index`` is relative to ``first_page``.
    """

    pdf_path: str = ""
    source: Optional[SourceFile] = None
    chunks: List[Chunk] = field(default_factory=list)
    total_pages: int = 0
    first_page: int = 0
    pages_processed: int = 0
    time_frames: float = 0.0
    time_chunks: float = 0.0

    @property
    def total_chars(self) -> int:
        return sum(len(c.mapping) for c in self.chunks)

    def summary(self) -> str:
        """Format a human-readable summary of the extraction run."""
        return (
            f"{'=' * 60}\n"
            f"EXTRACTION COMPLETE\n"
            f"{'=' * 60}\n"
            f"  Input:        {self.pdf_path}\n"
            f"  Pages:        {self.pages_processed} / {self.total_pages}\n"
            f"  Chunks:       {len(self.chunks)}\n"
            f"  Characters:   {self.total_chars}\n"
            f"\n"
            f"  Frame building: {self.time_frames:.2f}s\n"
            f"  Chunking:       {self.time_chunks:.2f}s\n"
            f"{'=' * 60}"
        )


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class ExtractionPipeline:
    """End-to-end PDF text extraction with provenance."""

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()
        if self.config.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.config.chunk_size}")
        if self.config.workers < 1:
            raise ValueError(f"workers must be positive, got {self.config.workers}")

    def extract(self, pdf_path: str) -> ExtractionResult:
        """
        Extract size-bounded chunks from a PDF.

        Args:
            pdf_path: Path to the input PDF.

        Returns:
            :class:`ExtractionResult` with chunks, source and timings.
        """
        result = ExtractionResult(pdf_path=pdf_path)

        doc, result = self._phase_frames(pdf_path, result)
        result = self._phase_chunks(doc, result)

        logger.info("\n%s", result.summary())
        return result

    def resolve(
        self,
        result: ExtractionResult,
        suggestions: Sequence[Tuple[int, Suggestion]],
    ) -> List[Resolution]:
        """
        Map ``(chunk_index, suggestion)`` pairs back to source ranges.

        Suggestions that point at a missing chunk are logged and reported
        unresolved.
        """
        resolutions: List[Resolution] = []
        for chunk_index, suggestion in suggestions:
            if not 0 <= chunk_index < len(result.chunks):
                logger.warning(
                    "Suggestion refers to chunk %d, only %d chunks",
                    chunk_index,
                    len(result.chunks),
                )
                resolutions.append(Resolution(chunk_index, suggestion, excerpt=""))
                continue

            chunk = result.chunks[chunk_index]
            ranges = chunk.location(suggestion, result.source)
            resolutions.append(
                Resolution(
                    chunk_index=chunk_index,
                    suggestion=suggestion,
                    excerpt=chunk.excerpt(suggestion),
                    ranges=ranges,
                    source_text=result.source.slice(ranges),
                )
            )

        unresolved = sum(1 for r in resolutions if not r.resolved)
        if unresolved:
            logger.info("%d of %d suggestions had no source", unresolved, len(resolutions))
        return resolutions

    # ------------------------------------------------------------------
    # Phase 1 — Frame building
    # ------------------------------------------------------------------

    def _phase_frames(
        self, pdf_path: str, result: ExtractionResult
    ) -> Tuple[Document, ExtractionResult]:
        cfg = self.config
        t0 = time.perf_counter()
        logger.info("Phase 1: Building frame trees")

        builder = PdfFrameBuilder(pdf_path)
        doc = Document()

        with PDFAdapter(pdf_path) as pdf:
            result.total_pages = pdf.page_count
            start, end = pdf.clamp_range(cfg.page_range)
            result.first_page = start

            pbar = tqdm(
                range(start, end + 1),
                desc="Reading pages",
                unit="page",
                disable=cfg.disable_tqdm,
            )
            for idx in pbar:
                pbar.set_postfix(page=f"{idx + 1}/{pdf.page_count}")
                doc.pages.append(pdf.page(idx, builder))

        result.source = builder.source
        result.pages_processed = len(doc.pages)
        result.time_frames = time.perf_counter() - t0
        logger.info(
            "Frames complete: %d pages, %d source nodes in %.2fs",
            result.pages_processed,
            len(result.source.nodes),
            result.time_frames,
        )
        return doc, result

    # ------------------------------------------------------------------
    # Phase 2 — Chunking
    # ------------------------------------------------------------------

    def _phase_chunks(self, doc: Document, result: ExtractionResult) -> ExtractionResult:
        cfg = self.config
        t0 = time.perf_counter()
        logger.info("Phase 2: Chunking (chunk_size=%d)", cfg.chunk_size)

        result.chunks = document(
            doc,
            cfg.chunk_size,
            result.source.file_id,
            policy=cfg.policy,
            workers=cfg.workers,
        )

        result.time_chunks = time.perf_counter() - t0
        logger.info(
            "Chunking complete: %d chunks, %d chars in %.2fs",
            len(result.chunks),
            result.total_chars,
            result.time_chunks,
        )
        return result
