"""
Frame traversal, separator insertion and chunk flushing.
"""

import pytest

from extraction.converter import document, page_chunks
from extraction.provenance import DETACHED_ENTRY
from extraction.whitespace import WhitespacePolicy
from layout.frame.models import (
    Frame,
    Glyph,
    GroupItem,
    ImageItem,
    MetaItem,
    MetaKind,
    Page,
    Point,
    ShapeItem,
)
from layout.source import Span

from conftest import FILE, LINE, OTHER, make_page, make_text


def _chunks(page, chunk_size=1000, file_id=FILE):
    return page_chunks(page, chunk_size, file_id)


def _assert_aligned(chunks):
    for chunk in chunks:
        assert len(chunk.mapping) == chunk.length


# ----------------------------------------------------------------------
# Separators
# ----------------------------------------------------------------------


def test_run_at_previous_end_inserts_nothing():
    first = make_text("Hello")
    second = make_text(" world", start=5)
    (chunk,) = _chunks(make_page((0, 0, first), (25, 0, second)))

    assert chunk.text == "Hello world"
    assert len(chunk.mapping) == 11
    assert chunk.mapping[5] == (Span(FILE, 0), (5, 6))


def test_next_line_gets_detached_space():
    first = make_text("Hello", span=Span(FILE, 0))
    second = make_text("world", span=Span(FILE, 2))
    (chunk,) = _chunks(make_page((0, 0, first), (0, LINE, second)))

    assert chunk.text == "Hello world"
    assert chunk.mapping[5] == DETACHED_ENTRY
    _assert_aligned([chunk])


def test_line_wrap_inside_one_run_inserts_nothing():
    first = make_text("Hello ", span=Span(FILE, 0))
    second = make_text("world", span=Span(FILE, 0), start=6)
    (chunk,) = _chunks(make_page((0, 0, first), (0, LINE, second)))

    assert chunk.text == "Hello world"
    assert len(chunk.mapping) == 11


def test_paragraph_break_inserts_two_detached_newlines():
    first = make_text("One")
    second = make_text("Two", span=Span(FILE, 2))
    (chunk,) = _chunks(make_page((0, 0, first), (0, 100, second)))

    assert chunk.text == "One\n\nTwo"
    assert chunk.mapping[3] == DETACHED_ENTRY
    assert chunk.mapping[4] == DETACHED_ENTRY
    _assert_aligned([chunk])


def test_page_never_starts_with_separator():
    (chunk,) = _chunks(make_page((72, 300, make_text("Start"))))
    assert chunk.text == "Start"


def test_shape_between_runs_changes_nothing():
    first = make_text("Hello")
    second = make_text(" world", start=5)
    plain = _chunks(make_page((0, 0, first), (25, 0, second)))
    with_shape = _chunks(
        make_page(
            (0, 0, first),
            (300, 400, ShapeItem(width=10, height=10)),
            (0, 0, ImageItem(width=5, height=5)),
            (90, 7, MetaItem(kind=MetaKind.LINK, target="https://example.org")),
            (25, 0, second),
        )
    )
    assert with_shape == plain


def test_group_offsets_accumulate():
    inner = Frame()
    inner.push(Point(5, 0), make_text("Hello"))
    outer = Frame()
    outer.push(Point(10, 20), GroupItem(frame=inner))
    # absolute end of "Hello" is 10 + 5 + 25 = 40
    outer.push(Point(40, 20), make_text(" world", start=5))

    (chunk,) = _chunks(Page(frame=outer))
    assert chunk.text == "Hello world"


# ----------------------------------------------------------------------
# Glyph consumption
# ----------------------------------------------------------------------


def test_missing_glyphs_become_detached_entries():
    item = make_text("abc", glyphs=[Glyph(span=Span(FILE, 0), start=0, length=1)])
    (chunk,) = _chunks(make_page((0, 0, item)))

    assert list(chunk.mapping) == [
        (Span(FILE, 0), (0, 1)),
        DETACHED_ENTRY,
        DETACHED_ENTRY,
    ]


def test_ligature_glyph_covers_several_units():
    item = make_text("fix", glyphs=[
        Glyph(span=Span(FILE, 0), start=0, length=2),
        Glyph(span=Span(FILE, 0), start=2, length=1),
    ])
    (chunk,) = _chunks(make_page((0, 0, item)))

    assert [sub for _, sub in chunk.mapping] == [(0, 1), (1, 2), (2, 3)]


def test_astral_characters_count_two_units():
    item = make_text("a\U0001d4b3b")
    (chunk,) = _chunks(make_page((0, 0, item)))

    assert len(chunk.text) == 3
    assert len(chunk.mapping) == 4
    _assert_aligned([chunk])


def test_extra_glyphs_are_ignored():
    glyphs = [Glyph(span=Span(FILE, 0), start=k) for k in range(5)]
    (chunk,) = _chunks(make_page((0, 0, make_text("ab", glyphs=glyphs))))
    assert len(chunk.mapping) == 2


# ----------------------------------------------------------------------
# Target file filtering
# ----------------------------------------------------------------------


def test_page_without_target_file_emits_nothing():
    item = make_text("elsewhere", span=Span(OTHER, 0))
    assert _chunks(make_page((0, 0, item))) == []


def test_detached_only_text_emits_nothing():
    item = make_text("synthetic", glyphs=[])
    assert _chunks(make_page((0, 0, item))) == []


# ----------------------------------------------------------------------
# Chunk flushing
# ----------------------------------------------------------------------


def test_flush_after_exceeding_chunk_size():
    first = make_text("Elevenchars")  # 11 units
    second = make_text("Next", span=Span(FILE, 2))
    chunks = _chunks(make_page((0, 0, first), (0, 100, second)), chunk_size=10)

    assert [c.text for c in chunks] == ["Elevenchars", "Next"]
    assert len(chunks[0].mapping) == 11
    _assert_aligned(chunks)


def test_reaching_chunk_size_does_not_flush():
    first = make_text("Tenchars!!")  # 10 units
    second = make_text("Next", span=Span(FILE, 2))
    chunks = _chunks(make_page((0, 0, first), (0, 100, second)), chunk_size=10)

    assert [c.text for c in chunks] == ["Tenchars!!\n\nNext"]


def test_paragraph_is_never_split():
    lines = [(0, LINE * i, make_text("word%02d" % i, span=Span(FILE, i))) for i in range(6)]
    chunks = _chunks(make_page(*lines), chunk_size=5)

    assert len(chunks) == 1
    assert chunks[0].text == " ".join("word%02d" % i for i in range(6))


def test_flush_discards_chunk_without_target_file():
    foreign = make_text("Foreign text here", span=Span(OTHER, 0))
    ours = make_text("Ours", span=Span(FILE, 0))
    chunks = _chunks(make_page((0, 0, foreign), (0, 100, ours)), chunk_size=3)

    assert [c.text for c in chunks] == ["Ours"]


def test_every_chunk_references_target_file():
    items = []
    for i in range(8):
        span = Span(FILE if i % 3 == 0 else OTHER, i)
        items.append((0, 100.0 * i, make_text("paragraph %d" % i, span=span)))
    chunks = _chunks(make_page(*items), chunk_size=4)

    assert chunks
    for chunk in chunks:
        assert chunk.mapping.references(FILE)
    _assert_aligned(chunks)


def test_cursor_resets_after_flush():
    first = make_text("Elevenchars")
    # starts where a fresh converter's cursor sits
    second = make_text("Next", span=Span(FILE, 2))
    third = make_text("More", span=Span(FILE, 3))
    chunks = _chunks(
        make_page((0, 0, first), (0, 100, second), (20, 100, third)), chunk_size=10
    )
    assert [c.text for c in chunks] == ["Elevenchars", "NextMore"]


# ----------------------------------------------------------------------
# document()
# ----------------------------------------------------------------------


def _sample_doc(doc):
    pages = []
    for p in range(4):
        items = [
            (0, 100.0 * i, make_text("page %d para %d" % (p, i), span=Span(FILE, i)))
            for i in range(5)
        ]
        pages.append(make_page(*items))
    return doc(*pages)


def test_document_is_deterministic(doc):
    sample = _sample_doc(doc)
    assert document(sample, 20, FILE) == document(sample, 20, FILE)


def test_document_keeps_page_order(doc):
    chunks = document(_sample_doc(doc), 20, FILE)
    assert [c.page_index for c in chunks] == sorted(c.page_index for c in chunks)
    assert chunks[0].text.startswith("page 0")
    assert chunks[-1].page_index == 3


def test_parallel_matches_sequential(doc):
    sample = _sample_doc(doc)
    assert document(sample, 20, FILE, workers=4) == document(sample, 20, FILE)


def test_more_workers_than_pages(doc):
    sample = doc(make_page((0, 0, make_text("one"))), make_page((0, 0, make_text("two"))))
    chunks = document(sample, 100, FILE, workers=16)

    assert [(c.page_index, c.text) for c in chunks] == [(0, "one"), (1, "two")]
    assert all(span.file_id == FILE for c in chunks for span, _ in c.mapping)


def test_document_skips_pages_without_file(doc):
    foreign = make_page((0, 0, make_text("nope", span=Span(OTHER, 0))))
    ours = make_page((0, 0, make_text("yes")))
    chunks = document(doc(foreign, ours), 100, FILE)

    assert [(c.page_index, c.text) for c in chunks] == [(1, "yes")]


def test_document_uses_policy(doc):
    first = make_text("Hello")
    second = make_text("world", start=5)
    sample = doc(make_page((0, 0, first), (40, 0.3, second)))

    strict = document(sample, 100, FILE)
    loose = document(sample, 100, FILE, policy=WhitespacePolicy(tolerance=0.5, join_same_line=True))
    assert strict[0].text == "Hello\n\nworld"
    assert loose[0].text == "Hello world"


@pytest.mark.parametrize("chunk_size, workers", [(0, 1), (10, 0)])
def test_document_rejects_bad_arguments(doc, chunk_size, workers):
    with pytest.raises(ValueError):
        document(doc(), chunk_size, FILE, workers=workers)
