import json
import logging
from typing import Any, List, Optional

from mcp.server.fastmcp import FastMCP

from highlight_anchor.backends.pdfplumber_backend import PdfPlumberLoader
from highlight_anchor.core import paths as _paths
from highlight_anchor.core.bbox import make_rect
from highlight_anchor.core.errors import HighlightError
from highlight_anchor.core.registry import fragment_for
from highlight_anchor.core.session import DocumentSession
from highlight_anchor.core.types import Highlight, Origin

logger = logging.getLogger(__name__)

mcp = FastMCP("PDF Highlight Anchor")

_session: Optional[DocumentSession] = None


def configure_session(session: DocumentSession, continue_on_error: Optional[bool] = None) -> None:
    """Install the session every tool operates on."""
    global _session
    if continue_on_error is not None:
        session.continue_on_error = continue_on_error
    _session = session


def get_session() -> DocumentSession:
    global _session
    if _session is None:
        _session = DocumentSession(PdfPlumberLoader())
    return _session


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def _serialize(highlight: Highlight) -> dict:
    return {**highlight, "origin": Origin(highlight["origin"]).value, "fragment": fragment_for(highlight["id"])}


def _summary(session: DocumentSession, created: List[Highlight]) -> str:
    return _to_json({
        "url": session.url,
        "generation": session.generation,
        "created": len(created),
        "total_highlights": len(session.registry),
        "highlights": [_serialize(h) for h in created],
    })


# ---------- Document tools ----------
@mcp.tool()
async def open_document(url: str, highlight: bool = True) -> str:
    """Open a PDF by URL (http(s), file:// or a path within the allowed directories).

    The highlight list is replaced by the document's fixture set (if any); when
    `highlight` is True the configured words are then highlighted automatically.
    """
    session = get_session()
    await session.open_document(url)
    if not highlight:
        return _summary(session, [])
    try:
        created = await session.highlight_words()
    except (HighlightError, ValueError) as e:
        logger.error(f"Automatic highlighting failed for {url}: {e}")
        return f"Error: {e}"
    return _summary(session, created)


@mcp.tool()
async def highlight_words(
    words: str = "",
    page_range: Optional[str] = None,
    continue_on_error: Optional[bool] = None,
) -> str:
    """Highlight every whole-word, case-sensitive occurrence of each word.

    Parameters
    ----------
    words: str
        Comma-separated words, scanned one after another in the given order.
        Empty means the words configured at startup.
    page_range: Optional[str]
        `first`, `last`, `N`, `S-E`, or None for all pages.
    continue_on_error: Optional[bool]
        If True, a word whose scan fails is skipped instead of stopping the rest.
        None uses the server setting (`--continue-on-error`).
    """
    session = get_session()
    word_list = [w.strip() for w in words.split(",") if w.strip()] or None
    try:
        created = await session.highlight_words(word_list, continue_on_error, page_range)
    except (HighlightError, ValueError) as e:
        logger.error(f"Highlighting {word_list} failed: {e}")
        return f"Error: {e}"
    return _summary(session, created)


@mcp.tool()
async def toggle_document() -> str:
    """Switch between the primary and secondary documents and re-run automatic highlighting."""
    session = get_session()
    try:
        created = await session.toggle_document()
    except (HighlightError, ValueError) as e:
        logger.error(f"Toggling document failed: {e}")
        return f"Error: {e}"
    return _summary(session, created)


# ---------- Highlight tools ----------
@mcp.tool()
async def add_highlight(
    page_number: int,
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    text: str = "",
    comment: str = "",
    emoji: str = "",
    page_width: Optional[float] = None,
    page_height: Optional[float] = None,
) -> str:
    """Add a manual highlight covering one rectangle (page-relative, origin top-left).

    `page_width`/`page_height` give the page frame the rectangle is measured in;
    when omitted they are read from the open document's page at scale 1.
    """
    session = get_session()
    if page_number < 1:
        return f"Error: Invalid page number {page_number}"
    if page_width is None or page_height is None:
        try:
            viewport = await session.page_viewport(page_number)
        except HighlightError as e:
            logger.error(f"Could not read page {page_number} size: {e}")
            return f"Error: {e}"
        page_width = viewport["width"] if page_width is None else page_width
        page_height = viewport["height"] if page_height is None else page_height
    if page_width <= 0 or page_height <= 0:
        return f"Error: Page size must be positive, got {page_width} x {page_height}"
    rect = make_rect(x1, y1, x2, y2, page_width, page_height)
    position = {
        "page_number": page_number,
        "bounding_rect": rect,
        "rects": [make_rect(x1, y1, x2, y2, abs(x2 - x1), abs(y2 - y1))],
    }
    created = session.add_highlight({"text": text}, position, {"text": comment, "emoji": emoji})
    return _to_json(_serialize(created))


@mcp.tool()
async def list_highlights(origin: str = "all") -> str:
    """List highlights of the open document; `origin` is "all", "manual" or "automatic"."""
    session = get_session()
    if origin == "all":
        items = session.registry.highlights
    else:
        try:
            items = session.registry.by_origin(Origin(origin.lower()))
        except ValueError:
            return f"Error: Unknown origin '{origin}'. Use all, manual or automatic."
    return _to_json({
        "url": session.url,
        "total_highlights": len(items),
        "highlights": [_serialize(h) for h in items],
    })


@mcp.tool()
async def find_highlight(fragment: str) -> str:
    """Resolve a `#highlight-<id>` fragment (or a bare id) to its highlight."""
    session = get_session()
    if not fragment.startswith("#"):
        fragment = fragment_for(fragment)
    found = session.on_fragment_change(fragment)
    if found is None:
        return f"No highlight matches '{fragment}'."
    return _to_json(_serialize(found))


@mcp.tool()
async def reset_highlights() -> str:
    """Remove every highlight of the open document."""
    session = get_session()
    session.reset_highlights()
    return _to_json({"url": session.url, "total_highlights": 0})


@mcp.tool()
async def show_configuration() -> str:
    """Return the current session and directory configuration as JSON."""
    session = get_session()
    info = {
        "current_url": session.url,
        "primary_url": session.primary_url,
        "secondary_url": session.secondary_url,
        "words": session.words,
        "fixture_documents": session.fixtures.urls(),
        "accessible_directories": _paths.SEARCH_DIRECTORIES,
        "max_file_size_mb": _paths.MAX_FILE_SIZE // (1024 * 1024),
        "continue_on_error": session.continue_on_error,
    }
    return _to_json(info)
