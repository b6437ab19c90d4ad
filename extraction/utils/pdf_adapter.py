"""
PyMuPDF adapter for the extraction pipeline.

Opens PDFs and turns their pages into frame trees whose spans all point
into one shared source file (the PDF's raw text stream).
"""

from typing import Optional, Tuple

import fitz

from layout.frame.models import Document, Page
from layout.frame.pdf_frames import PdfFrameBuilder
from layout.source import SourceFile


def open_pdf(pdf_path: str) -> fitz.Document:
    """
    Open a PDF document.

    Args:
        pdf_path: Path to the PDF file.

    Returns:
        A fitz.Document instance.

    Raises:
        RuntimeError: If fitz cannot open the file.
    """
    try:
        doc = fitz.open(pdf_path)
    except Exception as e:
        raise RuntimeError(f"Failed to open PDF '{pdf_path}': {e}") from e
    return doc


def get_page_count(pdf_path: str) -> int:
    """Return the total number of pages in the PDF."""
    doc = open_pdf(pdf_path)
    try:
        return doc.page_count
    finally:
        doc.close()


def build_document(
    pdf_path: str, page_range: Optional[Tuple[int, int]] = None
) -> Tuple[Document, SourceFile]:
    """
    Build the frame-tree Document and its source for a PDF in one pass.

    Args:
        pdf_path:   Path to the PDF file.
        page_range: ``(start, end)`` 0-based inclusive, or ``None`` for all.

    Returns:
        ``(document, source)``; every glyph span's file id is *pdf_path*.
    """
    with PDFAdapter(pdf_path) as pdf:
        start, end = pdf.clamp_range(page_range)
        builder = PdfFrameBuilder(pdf_path)
        doc = Document(pages=[pdf.page(idx, builder) for idx in range(start, end + 1)])
        return doc, builder.source


class PDFAdapter:
    """
    Stateful adapter that keeps the document open across multiple
    page operations.  Preferred over :func:`build_document` when the
    caller wants per-page progress reporting.
    """

    def __init__(self, pdf_path: str):
        self.pdf_path = pdf_path
        self.doc = open_pdf(pdf_path)
        self.page_count = self.doc.page_count

    # -- frames -------------------------------------------------------------

    def page(self, page_index: int, builder: PdfFrameBuilder) -> Page:
        """Frame tree for *page_index*, recording its text in *builder*."""
        if page_index < 0 or page_index >= self.page_count:
            raise IndexError(
                f"Page index {page_index} out of range "
                f"(document has {self.page_count} pages)"
            )
        return builder.page(self.doc.load_page(page_index), number=page_index)

    def clamp_range(self, page_range: Optional[Tuple[int, int]]) -> Tuple[int, int]:
        """Resolve an optional inclusive page range against this document."""
        start = page_range[0] if page_range else 0
        end = page_range[1] if page_range else self.page_count - 1
        return max(0, start), min(end, self.page_count - 1)

    # -- lifecycle ----------------------------------------------------------

    def close(self):
        if self.doc:
            self.doc.close()
            self.doc = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        return f"PDFAdapter('{self.pdf_path}', pages={self.page_count})"
