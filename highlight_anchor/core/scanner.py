"""Whole-word search over a page's text runs.

Geometry is approximate: every character of a run is given the same advance
(run width / run length), so positions are only as good as the source font is
close to monospaced. No per-glyph width tables are consulted. Lengths and
offsets are counted in UTF-16 code units; a character outside the BMP takes
two advances.
"""

import logging
import re
from typing import List, Optional, Pattern, Sequence

from highlight_anchor.core.bbox import make_rect, pdf_to_page_y
from highlight_anchor.core.errors import ExtractionFailure, InvalidSearchTerm
from highlight_anchor.core.page_range import parse_page_range
from highlight_anchor.core.types import DocumentHandle, PageGeometry, ScaledPosition, TextRun

logger = logging.getLogger(__name__)


def utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def build_word_pattern(word: str) -> Pattern[str]:
    """Case-sensitive whole-word pattern matching `word` literally."""
    if not word:
        raise InvalidSearchTerm("Search word must not be empty")
    return re.compile(rf"\b{re.escape(word)}\b")


def scan_page(
    runs: Sequence[TextRun],
    page_number: int,
    viewport: PageGeometry,
    word: str,
) -> List[ScaledPosition]:
    pattern = build_word_pattern(word)
    page_w = float(viewport["viewport_width"])
    page_h = float(viewport["viewport_height"])

    positions: List[ScaledPosition] = []
    for run in runs:
        text = run["text"]
        if not text:
            continue
        char_width = float(run["width"]) / utf16_len(text)
        height = float(run["height"])
        tx, ty = float(run["transform"][4]), float(run["transform"][5])
        y = pdf_to_page_y(page_h, ty)

        for match in pattern.finditer(text):
            start = utf16_len(text[:match.start()])
            end = start + utf16_len(match.group())
            x = tx + start * char_width
            match_width = (end - start) * char_width
            positions.append({
                "page_number": page_number,
                "bounding_rect": make_rect(x, y - height, x + match_width, y, page_w, page_h),
                "rects": [make_rect(x, y - height, x + match_width, y, match_width, height)],
            })
    return positions


async def scan_document(
    document: DocumentHandle,
    word: str,
    page_range: Optional[str] = None,
) -> List[ScaledPosition]:
    """Scan pages in order and concatenate their matches.

    A page that cannot be extracted aborts the whole scan with
    ExtractionFailure; no partial result is returned.
    """
    build_word_pattern(word)
    page_numbers = parse_page_range(document.num_pages, page_range)

    positions: List[ScaledPosition] = []
    for page_number in page_numbers:
        try:
            page = await document.get_page(page_number)
            runs = await page.get_text_content()
            vp = page.get_viewport(scale=1.0)
        except ExtractionFailure:
            raise
        except Exception as e:
            logger.error(f"Extraction failed on page {page_number} while scanning for '{word}': {e}")
            raise ExtractionFailure(page_number, e) from e

        geometry: PageGeometry = {
            "page_number": page_number,
            "viewport_width": float(vp["width"]),
            "viewport_height": float(vp["height"]),
        }
        positions.extend(scan_page(runs, page_number, geometry, word))

    logger.debug(f"'{word}': {len(positions)} match(es) over {len(page_numbers)} page(s)")
    return positions
