from typing import Optional


class HighlightError(Exception):
    """Base class for highlight engine failures."""


class InvalidSearchTerm(HighlightError, ValueError):
    """Raised for an empty search word, before any page is touched."""


class ExtractionFailure(HighlightError):
    """A page's text runs or viewport could not be obtained."""

    def __init__(self, page_number: Optional[int], cause: BaseException):
        self.page_number = page_number
        self.cause = cause
        where = f"page {page_number}" if page_number is not None else "document"
        super().__init__(f"Text extraction failed for {where}: {cause}")


class StaleScanResult(HighlightError):
    """A scan finished after the document it belongs to was replaced."""

    def __init__(self, scan_generation: int, current_generation: int):
        self.scan_generation = scan_generation
        self.current_generation = current_generation
        super().__init__(
            f"Scan from generation {scan_generation} is stale (current: {current_generation})"
        )


class DocumentNotFound(HighlightError, FileNotFoundError):
    """The document URL could not be resolved to readable PDF bytes."""


# IdentifierCollision: highlight ids are random and never checked for
# uniqueness; a collision makes find_by_id return the first match.
