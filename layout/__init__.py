"""
Input side of glyphmap: laid-out frame trees and source-file lookup.
No extraction logic lives here.
"""

from .frame import Document, Frame, Page, PdfFrameBuilder, Point, TextItem
from .source import Source, SourceFile, Span, SyntaxKind, SyntaxNode, utf16_len

__all__ = [
    "Document",
    "Page",
    "Frame",
    "Point",
    "TextItem",
    "PdfFrameBuilder",
    "Source",
    "SourceFile",
    "Span",
    "SyntaxKind",
    "SyntaxNode",
    "utf16_len",
]
