from typing import List, Sequence

from highlight_anchor.core.types import BoundingRect

# --- Coordinate helpers ---

def pdf_to_page_y(page_height: float, y_pdf: float) -> float:
    """Convert PDF user-space Y (origin bottom-left, y up) to
    page-relative Y (origin top-left, y down)."""
    return float(page_height) - float(y_pdf)


def make_rect(x1: float, y1: float, x2: float, y2: float, width: float, height: float) -> BoundingRect:
    """Build a rect with ordered corners."""
    return {
        "x1": float(min(x1, x2)),
        "y1": float(min(y1, y2)),
        "x2": float(max(x1, x2)),
        "y2": float(max(y1, y2)),
        "width": float(width),
        "height": float(height),
    }


def union_rects(rects: Sequence[BoundingRect], width: float, height: float) -> BoundingRect:
    """Envelope of `rects`, expressed in a `width` x `height` reference frame."""
    if not rects:
        raise ValueError("union_rects() needs at least one rect")
    return make_rect(
        min(r["x1"] for r in rects),
        min(r["y1"] for r in rects),
        max(r["x2"] for r in rects),
        max(r["y2"] for r in rects),
        width,
        height,
    )


def quad_points_to_boxes(quads: Sequence[float], page_height: float) -> List[List[float]]:
    """Split a /QuadPoints array into top-down [x0, top, x1, bottom] boxes."""
    boxes: List[List[float]] = []
    for i in range(0, len(quads) - 7, 8):
        xs = [float(quads[i]), float(quads[i + 2]), float(quads[i + 4]), float(quads[i + 6])]
        ys = [pdf_to_page_y(page_height, quads[i + k]) for k in (1, 3, 5, 7)]
        boxes.append([min(xs), min(ys), max(xs), max(ys)])
    return boxes
