from typing import List, Optional


def parse_page_range(num_pages: int, page_range: Optional[str]) -> List[int]:
    """Return the 1-based page numbers selected by `page_range`, in order.

    Accepts None (every page), "first", "last", "N", "S-E", "S-" and "-E".
    An end past the last page is clamped; any other out-of-range value
    raises ValueError.
    """
    if num_pages <= 0:
        return []
    if page_range is None or not str(page_range).strip():
        return list(range(1, num_pages + 1))

    selector = str(page_range).strip().lower()
    if selector == "first":
        return [1]
    if selector == "last":
        return [num_pages]
    try:
        if "-" in selector:
            start_s, end_s = selector.split("-", 1)
            start = int(start_s) if start_s.strip() else 1
            end = int(end_s) if end_s.strip() else num_pages
        else:
            start = end = int(selector)
    except ValueError:
        raise ValueError(f"Invalid page range: {page_range}")

    if start < 1 or end < start or start > num_pages:
        raise ValueError(f"Page range {page_range} out of range (1-{num_pages})")
    return list(range(start, min(end, num_pages) + 1))
