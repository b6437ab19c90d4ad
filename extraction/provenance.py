"""
Provenance model for extracted text.

A :class:`Mapping` holds one ``(span, sub_range)`` entry per UTF-16 code
unit of the text it accompanies.  :meth:`Mapping.location` runs the
reverse direction: given a flagged span of the text, it returns the
source ranges that produced it.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from layout.source import Source, Span, SyntaxNode, utf16_len

logger = logging.getLogger(__name__)

SubRange = Tuple[int, int]
MappingEntry = Tuple[Span, SubRange]

DETACHED_ENTRY: MappingEntry = (Span.detached(), (0, 0))


def utf16_to_index(text: str, offset: int) -> int:
    """Convert a UTF-16 code-unit *offset* into a Python string index."""
    units = 0
    for index, ch in enumerate(text):
        if units >= offset:
            return index
        units += 2 if ord(ch) > 0xFFFF else 1
    return len(text)


@dataclass
class Suggestion:
    """
    A flagged range ``[start, end)`` of one chunk's text, in UTF-16 units.

    Produced by an external text-analysis service; ``message`` and
    ``replacements`` are passed through untouched.
    """

    start: int
    end: int
    message: str = ""
    replacements: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return max(0, self.end - self.start)


class Mapping:
    """Character-aligned provenance for one text buffer."""

    def __init__(self, chars: Optional[List[MappingEntry]] = None):
        self.chars: List[MappingEntry] = chars if chars is not None else []

    def push(self, span: Span, sub_range: SubRange) -> None:
        self.chars.append((span, sub_range))

    def push_detached(self, count: int = 1) -> None:
        self.chars.extend([DETACHED_ENTRY] * count)

    def location(self, suggestion: Suggestion, source: Source) -> List[Tuple[int, int]]:
        """
        Resolve *suggestion* into coalesced ranges of *source*'s text.

        Entries that are detached, belong to another file, or cannot be
        resolved are skipped.  Contiguous pieces of the same text node
        merge into one range; repeated whole-node ranges of non-text
        nodes are reported once.
        """
        start = max(0, suggestion.start)
        end = max(start, min(len(self.chars), suggestion.end))
        file_id = source.file_id

        locations: List[Tuple[int, int]] = []
        nodes: Dict[Span, Optional[SyntaxNode]] = {}

        for span, (sub_start, sub_end) in self.chars[start:end]:
            if span.is_detached or span.file_id != file_id:
                continue
            if span not in nodes:
                nodes[span] = source.find(span)
            node = nodes[span]
            if node is None:
                continue

            if node.is_text:
                found = (node.start + sub_start, node.start + sub_end)
                if locations and locations[-1][1] == found[0]:
                    locations[-1] = (locations[-1][0], found[1])
                else:
                    locations.append(found)
            else:
                found = node.range
                if not locations or locations[-1] != found:
                    locations.append(found)

        logger.debug(
            "Resolved [%d, %d) to %d source range(s)", start, end, len(locations)
        )
        return locations

    def references(self, file_id: str) -> bool:
        """True if any entry points into *file_id*."""
        return any(span.file_id == file_id for span, _ in self.chars)

    def __len__(self) -> int:
        return len(self.chars)

    def __iter__(self) -> Iterator[MappingEntry]:
        return iter(self.chars)

    def __getitem__(self, index):
        return self.chars[index]

    def __eq__(self, other) -> bool:
        return isinstance(other, Mapping) and self.chars == other.chars

    def __repr__(self) -> str:
        return f"Mapping(chars={len(self.chars)})"


@dataclass
class Chunk:
    """A bounded piece of one page's extracted text plus its provenance."""

    text: str
    mapping: Mapping
    page_index: int = 0

    @property
    def length(self) -> int:
        """Length in UTF-16 code units (always equals ``len(mapping)``)."""
        return utf16_len(self.text)

    def location(self, suggestion: Suggestion, source: Source) -> List[Tuple[int, int]]:
        return self.mapping.location(suggestion, source)

    def excerpt(self, suggestion: Suggestion) -> str:
        """The chunk text covered by *suggestion*."""
        lo = utf16_to_index(self.text, max(0, suggestion.start))
        hi = max(lo, utf16_to_index(self.text, max(0, suggestion.end)))
        return self.text[lo:hi]

    def __repr__(self) -> str:
        preview = self.text[:50].replace("\n", " ")
        return (
            f"Chunk(page={self.page_index}, chars={len(self.mapping)}, "
            f"'{preview}')"
        )
