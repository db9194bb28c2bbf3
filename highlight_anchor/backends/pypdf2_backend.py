from pathlib import Path
from typing import List
import logging

import PyPDF2
import pdfplumber

from highlight_anchor.core import paths as _paths
from highlight_anchor.core.bbox import make_rect, pdf_to_page_y, quad_points_to_boxes, union_rects
from highlight_anchor.core.registry import random_id
from highlight_anchor.core.types import BoundingRect, Highlight, Origin

logger = logging.getLogger(__name__)


def _note_from_obj(obj) -> str:
    note = obj.get("/Contents", "") or ""
    if not note and obj.get("/Popup") is not None:
        try:
            pop = obj.get("/Popup").get_object()
            note = pop.get("/Contents", "") or note
        except (AttributeError, KeyError, TypeError) as e:
            logger.debug(f"Unreadable /Popup on highlight annotation: {e}")
    return str(note)


def _boxes_from_annotation(obj, page_h: float) -> List[List[float]]:
    quads = obj.get("/QuadPoints")
    if quads is not None and len(quads) >= 8:
        return quad_points_to_boxes([float(q) for q in quads], page_h)
    rect = obj.get("/Rect", [])
    if rect and len(rect) >= 4:
        x0, x1 = float(min(rect[0], rect[2])), float(max(rect[0], rect[2]))
        y0, y1 = float(min(rect[1], rect[3])), float(max(rect[1], rect[3]))
        return [[x0, pdf_to_page_y(page_h, y1), x1, pdf_to_page_y(page_h, y0)]]
    return []


def _text_in_box(pl_page, box: List[float]) -> str:
    pad = 1.0
    x0 = max(box[0] - pad, 0.0)
    top = max(box[1] - pad, 0.0)
    x1 = min(box[2] + pad, float(pl_page.width))
    bottom = min(box[3] + pad, float(pl_page.height))
    if x1 <= x0 or bottom <= top:
        return ""
    text = pl_page.within_bbox((x0, top, x1, bottom)).extract_text() or ""
    return " ".join(s.strip() for s in text.splitlines() if s.strip())


def extract_highlight_annotations(pdf_path: Path) -> List[Highlight]:
    """Existing /Highlight annotations of a PDF as registry records.

    Coordinates are page-relative and top-down; the highlighted text is read
    back with pdfplumber from under each quad.
    """
    out: List[Highlight] = []
    try:
        with open(pdf_path, "rb") as f:
            reader = PyPDF2.PdfReader(f)
            with pdfplumber.open(pdf_path) as pdf:
                for page_index, page in enumerate(reader.pages):
                    if "/Annots" not in page:
                        continue
                    pl_page = pdf.pages[page_index]
                    page_w = float(pl_page.width)
                    page_h = float(pl_page.height)

                    for annot in page["/Annots"]:
                        obj = annot.get_object()
                        if str(obj.get("/Subtype", "")).lstrip("/").lower() != "highlight":
                            continue
                        boxes = _boxes_from_annotation(obj, page_h)
                        if not boxes:
                            continue

                        rects: List[BoundingRect] = [
                            make_rect(b[0], b[1], b[2], b[3], b[2] - b[0], b[3] - b[1]) for b in boxes
                        ]
                        spans = [t for t in (_text_in_box(pl_page, b) for b in boxes) if t]
                        out.append({
                            "id": random_id(),
                            "position": {
                                "page_number": page_index + 1,
                                "bounding_rect": union_rects(rects, page_w, page_h),
                                "rects": rects,
                            },
                            "content": {"text": " ".join(spans).strip()},
                            "comment": {"text": _note_from_obj(obj), "emoji": ""},
                            "origin": Origin.MANUAL,
                        })
    except Exception as e:
        logger.error(f"Highlight annotation import failed for {pdf_path}: {e}")
        raise
    return out


def load_annotation_seed(url: str) -> List[Highlight]:
    """Seed loader for DocumentSession; remote documents get no seed."""
    if _paths.is_remote(url):
        return []
    path = _paths.resolve_local_document(url)
    seed = extract_highlight_annotations(path)
    logger.info(f"Seeded {len(seed)} highlight(s) from annotations in {path.name}")
    return seed
