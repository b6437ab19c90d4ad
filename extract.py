#!/usr/bin/env python3
"""
glyphmap — CLI entry point.

Extracts size-bounded plain-text chunks from a PDF, keeping for every
character the location in the PDF's raw text stream it came from, and
optionally maps flagged spans from an external checker back to that
text.

Usage::

    python extract.py paper.pdf
    python extract.py paper.pdf --chunk-size 1500 --pages 1-4
    python extract.py paper.pdf --output chunks.json
    python extract.py paper.pdf --suggestions flagged.json -v 2

Suggestion files are JSON lists of objects::

    [{"chunk": 0, "start": 12, "end": 19, "message": "Possible typo"}]

Verbosity levels::

    -v 0   Quiet — warnings and errors only.
    -v 1   Normal — phase summaries and progress bars (default).
    -v 2   Debug — per-page and per-chunk detail.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Tuple

from extraction.pipeline import ExtractionConfig, ExtractionPipeline, ExtractionResult
from extraction.provenance import Suggestion

logger = logging.getLogger("extraction")

# -v level -> (logging level, format, date format)
_LOG_FORMATS = {
    0: (logging.WARNING, "[%(levelname)s] %(message)s", None),
    1: (logging.INFO, "%(message)s", None),
    2: (
        logging.DEBUG,
        "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s | %(message)s",
        "%H:%M:%S",
    ),
}
_LOGGER_NAMES = ("extraction", "layout")


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _parse_page_range(value: str) -> Tuple[int, int]:
    """``"4"`` → ``(3, 3)``, ``"3-10"`` → ``(2, 9)``; input is 1-based inclusive."""
    first, sep, last = value.strip().partition("-")
    if not first.isdigit() or (sep and not last.isdigit()):
        raise argparse.ArgumentTypeError(f"'{value}' is not a page range like 4 or 3-10")

    lo = int(first)
    hi = int(last) if sep else lo
    if lo == 0:
        raise argparse.ArgumentTypeError(f"'{value}': pages are numbered from 1")
    if hi < lo:
        raise argparse.ArgumentTypeError(f"'{value}': range ends before it starts")
    return lo - 1, hi - 1


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected an integer, got '{value}'")
    if n < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {n}")
    return n


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all pipeline options."""
    p = argparse.ArgumentParser(
        description="Extract PDF text in chunks with per-character provenance.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python extract.py paper.pdf\n"
            "  python extract.py paper.pdf --chunk-size 1500 --pages 1-4\n"
            "  python extract.py paper.pdf --output chunks.json\n"
            "  python extract.py paper.pdf --suggestions flagged.json -v 2\n"
        ),
    )

    p.add_argument("input", help="Path to the input PDF file")
    p.add_argument(
        "--pages",
        type=_parse_page_range,
        default=None,
        metavar="N-M",
        help="Page range, 1-based inclusive (e.g. 1-10). Default: all.",
    )

    # -- Chunking ----------------------------------------------------------
    chunking = p.add_argument_group("chunking")
    chunking.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=2000,
        metavar="N",
        help="Characters after which the next paragraph starts a new chunk "
        "(default: 2000)",
    )
    chunking.add_argument(
        "--workers",
        type=_positive_int,
        default=1,
        metavar="N",
        help="Worker processes used to chunk pages; helps on long documents "
        "(default: 1)",
    )

    # -- Heuristics --------------------------------------------------------
    heuristics = p.add_argument_group("heuristics")
    heuristics.add_argument(
        "--tolerance",
        type=float,
        default=1.0,
        metavar="PT",
        help="Position tolerance in points (default: 1.0)",
    )
    heuristics.add_argument(
        "--leading",
        type=float,
        default=0.0,
        metavar="EM",
        help="Extra line spacing beyond the font extent, in em (default: 0.0)",
    )
    heuristics.add_argument(
        "--cap-height-lines",
        action="store_true",
        help="Measure lines from the cap height instead of ascender - descender "
        "(pass --leading too, e.g. 0.5)",
    )
    heuristics.add_argument(
        "--no-join-same-line",
        action="store_true",
        help="Treat gaps between spans on one baseline as paragraph breaks",
    )

    # -- Input / output ----------------------------------------------------
    io = p.add_argument_group("input & output")
    io.add_argument(
        "--suggestions",
        default=None,
        metavar="FILE",
        help="JSON list of {chunk, start, end, message} to resolve",
    )
    io.add_argument(
        "--output",
        default=None,
        metavar="FILE",
        help="Write chunks (and resolved suggestions) as JSON to FILE",
    )
    io.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    io.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """Attach one stderr handler to the package loggers at the chosen -v level."""
    level, fmt, datefmt = _LOG_FORMATS.get(verbosity, _LOG_FORMATS[1])
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt))

    for name in _LOGGER_NAMES:
        package_logger = logging.getLogger(name)
        package_logger.handlers[:] = [handler]
        package_logger.setLevel(level)

    # MuPDF warnings are already reported per page by the frame builder
    logging.getLogger("fitz").setLevel(logging.ERROR)


# ------------------------------------------------------------------
# Suggestions and output
# ------------------------------------------------------------------


def _load_suggestions(path: Path) -> List[Tuple[int, Suggestion]]:
    """
    Read a suggestion file.

    Raises:
        ValueError: If the file is not a list of objects with integer
            ``chunk``, ``start`` and ``end`` fields.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("suggestion file must contain a JSON list")

    loaded = []
    for i, entry in enumerate(data):
        try:
            suggestion = Suggestion(
                start=int(entry["start"]),
                end=int(entry["end"]),
                message=str(entry.get("message", "")),
                replacements=[str(r) for r in entry.get("replacements", [])],
            )
            loaded.append((int(entry["chunk"]), suggestion))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"suggestion #{i} is malformed: {e}") from e
    return loaded


def _chunk_record(index: int, chunk, first_page: int) -> dict:
    return {
        "index": index,
        "page": first_page + chunk.page_index + 1,
        "text": chunk.text,
        "mapping": [
            [span.file_id, span.node, start, end]
            for span, (start, end) in chunk.mapping
        ],
    }


def _preview(result: ExtractionResult, width: int = 70) -> str:
    lines = []
    for i, chunk in enumerate(result.chunks):
        page = result.first_page + chunk.page_index + 1
        lines.append(f"--- chunk {i} (page {page}, {len(chunk.mapping)} chars) ---")
        text = chunk.text.strip()
        lines.append(text if len(text) <= width * 3 else text[: width * 3] + " …")
    return "\n".join(lines)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main():
    """Parse arguments, configure logging, and run the pipeline."""
    parser = _build_parser()
    args = parser.parse_args()

    _configure_logging(args.verbose)

    input_path = Path(args.input)
    if not input_path.exists():
        parser.error(f"Input file not found: {input_path}")
    if input_path.suffix.lower() != ".pdf":
        parser.error(f"Input must be a PDF file: {input_path}")

    suggestions: List[Tuple[int, Suggestion]] = []
    if args.suggestions:
        try:
            suggestions = _load_suggestions(Path(args.suggestions))
        except (OSError, ValueError) as e:
            parser.error(f"Cannot read suggestions: {e}")

    config = ExtractionConfig(
        chunk_size=args.chunk_size,
        page_range=args.pages,
        workers=args.workers,
        position_tolerance=args.tolerance,
        leading_em=args.leading,
        font_extent=not args.cap_height_lines,
        join_same_line=not args.no_join_same_line,
        disable_tqdm=args.no_progress or args.verbose == 0,
    )

    logger.info("glyphmap extraction")
    logger.info("  Input:  %s", input_path)
    if config.page_range:
        s, e = config.page_range
        logger.info("  Pages:  %d–%d", s + 1, e + 1)
    logger.info("  Chunk size: %d", config.chunk_size)

    pipeline = ExtractionPipeline(config)
    result = pipeline.extract(str(input_path))
    resolutions = pipeline.resolve(result, suggestions) if suggestions else []

    for r in resolutions:
        where = ", ".join(f"{s}..{e}" for s, e in r.ranges) or "no source"
        logger.info(
            "  chunk %d [%d, %d) %r → %s %r",
            r.chunk_index,
            r.suggestion.start,
            r.suggestion.end,
            r.excerpt,
            where,
            r.source_text,
        )

    if args.output:
        payload = {
            "source": result.source.file_id,
            "chunks": [
                _chunk_record(i, c, result.first_page) for i, c in enumerate(result.chunks)
            ],
            "suggestions": [
                {
                    "chunk": r.chunk_index,
                    "start": r.suggestion.start,
                    "end": r.suggestion.end,
                    "message": r.suggestion.message,
                    "ranges": [list(rng) for rng in r.ranges],
                    "text": r.source_text,
                }
                for r in resolutions
            ],
        }
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        logger.info("Wrote %d chunks to %s", len(result.chunks), args.output)
    elif not resolutions:
        print(_preview(result))

    if not result.chunks:
        logger.warning("No text was extracted")
        # an empty --output file is still a result
        if not args.output:
            sys.exit(1)


if __name__ == "__main__":
    main()
