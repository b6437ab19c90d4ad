"""
Frame trees for laid-out documents.
Models only, plus a PyMuPDF-backed builder for PDF input.
"""

from .models import (
    Document,
    FontMetrics,
    Frame,
    FrameItem,
    Glyph,
    GroupItem,
    ImageItem,
    MetaItem,
    MetaKind,
    Page,
    Point,
    ShapeItem,
    TextItem,
)
from .pdf_frames import PdfFrameBuilder

__all__ = [
    "Document",
    "Page",
    "Frame",
    "FrameItem",
    "Point",
    "FontMetrics",
    "Glyph",
    "TextItem",
    "GroupItem",
    "ShapeItem",
    "ImageItem",
    "MetaItem",
    "MetaKind",
    "PdfFrameBuilder",
]
