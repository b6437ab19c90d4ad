"""
Source-file provenance: spans, syntax nodes, and the lookup interface.

A :class:`Span` ties a rendered glyph back to one node of one source
file.  The extraction core never parses markup; it only asks a
:class:`Source` to resolve spans into :class:`SyntaxNode` ranges.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, Optional, Tuple


def utf16_len(text: str) -> int:
    """Length of *text* in UTF-16 code units."""
    return len(text) + sum(1 for ch in text if ord(ch) > 0xFFFF)


@dataclass(frozen=True)
class Span:
    """
    Opaque provenance token.

    ``file_id`` is ``None`` for detached spans (synthetic characters
    such as inserted spaces and paragraph breaks).
    """

    file_id: Optional[str] = None
    node: int = 0

    @classmethod
    def detached(cls) -> "Span":
        return cls()

    @property
    def is_detached(self) -> bool:
        return self.file_id is None


class SyntaxKind(Enum):
    """Node kinds a source lookup can return."""

    TEXT = auto()  # literal text; glyph sub-ranges index into it
    MARKUP = auto()
    MATH = auto()
    CODE = auto()


@dataclass(frozen=True)
class SyntaxNode:
    """A resolved node with its half-open range in the source text."""

    kind: SyntaxKind
    start: int
    end: int

    @property
    def range(self) -> Tuple[int, int]:
        return (self.start, self.end)

    @property
    def is_text(self) -> bool:
        return self.kind == SyntaxKind.TEXT


class Source(ABC):
    """
    Lookup interface for one source file.

    Implementations own the file text and whatever tree they need to
    answer :meth:`find`.
    """

    @property
    @abstractmethod
    def file_id(self) -> str:
        """Identifier compared against :attr:`Span.file_id`."""

    @abstractmethod
    def find(self, span: Span) -> Optional[SyntaxNode]:
        """Resolve *span* to a node, or ``None`` if it is unknown."""


@dataclass
class SourceFile(Source):
    """
    In-memory source: the file text plus a node table keyed by span node id.

    Offsets are UTF-16 code units, matching glyph sub-ranges.
    """

    path: str
    text: str = ""
    nodes: Dict[int, SyntaxNode] = field(default_factory=dict)

    @property
    def file_id(self) -> str:
        return self.path

    def find(self, span: Span) -> Optional[SyntaxNode]:
        if span.file_id != self.path:
            return None
        return self.nodes.get(span.node)

    def add_node(self, kind: SyntaxKind, start: int, end: int) -> Span:
        """Register a node and return a span pointing at it."""
        node_id = len(self.nodes)
        self.nodes[node_id] = SyntaxNode(kind=kind, start=start, end=end)
        return Span(self.path, node_id)

    def slice(self, ranges: Iterable[Tuple[int, int]]) -> str:
        """Concatenate the source text covered by UTF-16 *ranges*."""
        raw = self.text.encode("utf-16-le")
        return "".join(
            raw[s * 2 : e * 2].decode("utf-16-le", errors="replace") for s, e in ranges
        )

    def __repr__(self) -> str:
        return f"SourceFile('{self.path}', nodes={len(self.nodes)})"
