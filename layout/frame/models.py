"""
Frame tree data models for laid-out documents.

A Document is an ordered list of Pages; each Page holds a Frame of
positioned items.  Positions are relative to the enclosing frame, in
points, with y growing downward and text items positioned at their
baseline.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Tuple, Union

from layout.source import Span


@dataclass(frozen=True)
class Point:
    """A 2D offset in points."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)


@dataclass(frozen=True)
class FontMetrics:
    """Font metrics in em units (multiply by the font size for points)."""

    name: str = ""
    cap_height: float = 0.7
    ascender: float = 0.8
    descender: float = -0.2


@dataclass(frozen=True)
class Glyph:
    """
    One rendered glyph and where it came from.

    ``start`` / ``length`` describe the glyph's sub-range inside the
    literal source text node referenced by ``span``, in UTF-16 code
    units.  A glyph covers ``length`` consecutive code units of the
    text item's string (ligatures cover several).
    """

    span: Span
    start: int = 0
    length: int = 1


@dataclass
class TextItem:
    """A positioned run of shaped text."""

    text: str
    font: FontMetrics
    size: float
    width: float
    glyphs: List[Glyph] = field(default_factory=list)

    @property
    def first_glyph_key(self) -> Tuple[Span, int]:
        """``(span, start)`` of the first glyph, detached if there is none."""
        if not self.glyphs:
            return (Span.detached(), 0)
        first = self.glyphs[0]
        return (first.span, first.start)


@dataclass
class GroupItem:
    """A nested frame; its items are positioned relative to the group."""

    frame: "Frame"


@dataclass
class ShapeItem:
    """Vector geometry. Carries no text."""

    width: float = 0.0
    height: float = 0.0


@dataclass
class ImageItem:
    """A raster or vector image. Carries no text."""

    width: float = 0.0
    height: float = 0.0
    xref: int = 0


class MetaKind(Enum):
    LINK = auto()
    ELEMENT = auto()
    HIDE = auto()


@dataclass
class MetaItem:
    """Introspection marker (link target, element location, hide flag)."""

    kind: MetaKind
    target: str = ""
    width: float = 0.0
    height: float = 0.0


FrameItem = Union[GroupItem, TextItem, ShapeItem, ImageItem, MetaItem]


@dataclass
class Frame:
    """An ordered sequence of positioned items."""

    items: List[Tuple[Point, FrameItem]] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0

    def push(self, pos: Point, item: FrameItem) -> None:
        self.items.append((pos, item))

    @property
    def text_items(self) -> List[TextItem]:
        """All text items in reading order, depth-first."""
        found = []
        for _, item in self.items:
            if isinstance(item, TextItem):
                found.append(item)
            elif isinstance(item, GroupItem):
                found.extend(item.frame.text_items)
        return found

    @property
    def text(self) -> str:
        return "".join(t.text for t in self.text_items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class Page:
    """A top-level frame plus its page number."""

    frame: Frame
    number: int = 0


@dataclass
class Document:
    """An ordered sequence of pages."""

    pages: List[Page] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.pages)

    def __repr__(self) -> str:
        return f"Document(pages={len(self.pages)})"
