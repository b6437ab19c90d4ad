"""
glyphmap extraction: laid-out frames → size-bounded text chunks with
per-character provenance, and suggestion spans → source ranges.
"""

from .converter import Converter, document, page_chunks
from .pipeline import ExtractionConfig, ExtractionPipeline, ExtractionResult, Resolution
from .provenance import Chunk, Mapping, Suggestion, utf16_to_index
from .whitespace import Separator, WhitespacePolicy, classify_gap

__all__ = [
    "document",
    "page_chunks",
    "Converter",
    "Chunk",
    "Mapping",
    "Suggestion",
    "utf16_to_index",
    "Separator",
    "WhitespacePolicy",
    "classify_gap",
    "ExtractionConfig",
    "ExtractionPipeline",
    "ExtractionResult",
    "Resolution",
]
