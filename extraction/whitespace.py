"""
Geometric separator detection between consecutive text runs.

Layout drops the literal spaces and newlines between runs.  This module
decides which separator to put back using only the previous cursor, the
new run's baseline position and its font size.

Tolerances:

* ``tolerance`` (points) — two coordinates closer than this are equal.
  The default of 1e-4pt matches layout engines that place runs exactly;
  PDF input needs a looser value because coordinates are rounded.
* ``leading_em`` — the gap between one line's cap height and the next
  line's baseline.  A new run whose baseline sits
  ``(cap_height + leading_em) * size`` below the cursor is on the next
  line of the same paragraph.
* ``font_extent`` — measure a line by the font's ascender-to-descender
  extent instead of its cap height, the way PyMuPDF stacks the lines of
  a text box.  Extents of 1em or less fall back to 1.2em.
"""

from dataclasses import dataclass
from enum import Enum, auto

from layout.frame.models import FontMetrics, Point

LINE_SPACING_EM = 0.65
POSITION_TOLERANCE = 1e-4
FALLBACK_LINE_EXTENT = 1.2


class Separator(Enum):
    """What to insert before a new text run."""

    NONE = auto()
    SPACE = auto()
    PARAGRAPH = auto()


@dataclass(frozen=True)
class WhitespacePolicy:
    """
    Parameters for :func:`classify_gap`.

    Attributes:
        tolerance:      Maximum distance (pt) for two positions to compare equal.
        leading_em:     Line spacing added to the cap height (or the font
                        extent), in em.
        join_same_line: Treat a forward jump on the same baseline as a word
                        gap (one space) instead of a paragraph break.  Off by
                        default; useful for PDF spans.
        font_extent:    Use ascender - descender instead of the cap height.
    """

    tolerance: float = POSITION_TOLERANCE
    leading_em: float = LINE_SPACING_EM
    join_same_line: bool = False
    font_extent: bool = False

    def approx_eq(self, a: float, b: float) -> bool:
        return a == b or abs(a - b) < self.tolerance

    def line_offset(self, font: FontMetrics, size: float) -> float:
        """Baseline-to-baseline distance for a line set in *font* at *size*."""
        if not self.font_extent:
            return (font.cap_height + self.leading_em) * size
        extent = font.ascender - font.descender
        if extent <= 1:
            extent = FALLBACK_LINE_EXTENT
        return (extent + self.leading_em) * size


DEFAULT_POLICY = WhitespacePolicy()


def classify_gap(
    cursor: Point,
    pos: Point,
    font: FontMetrics,
    size: float,
    continues_run: bool,
    policy: WhitespacePolicy = DEFAULT_POLICY,
) -> Separator:
    """
    Decide the separator between the cursor and a run starting at *pos*.

    Args:
        cursor:        End of the previous run (x after its width, its baseline y).
        pos:           Baseline origin of the new run.
        font:          Font of the new run.
        size:          Font size of the new run.
        continues_run: Whether the new run's first glyph picks up exactly
                       where the last mapped glyph left off in the source.
        policy:        Tolerances and spacing constants.

    Returns:
        The :class:`Separator` to insert.
    """
    if policy.approx_eq(cursor.x, pos.x):
        return Separator.NONE

    next_line = policy.approx_eq(cursor.y + policy.line_offset(font, size), pos.y)
    if not next_line:
        if policy.join_same_line and policy.approx_eq(cursor.y, pos.y) and pos.x > cursor.x:
            return Separator.SPACE
        return Separator.PARAGRAPH

    if continues_run:
        return Separator.NONE
    return Separator.SPACE
