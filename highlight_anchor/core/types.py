from enum import Enum
from typing import TypedDict, List, Protocol


class Origin(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class TextRun(TypedDict):
    text: str
    transform: List[float]  # [a, b, c, d, tx, ty] glyph space -> page space (PDF, y up)
    width: float
    height: float


class PageGeometry(TypedDict):
    page_number: int         # 1-based
    viewport_width: float
    viewport_height: float


class BoundingRect(TypedDict):
    x1: float
    y1: float
    x2: float
    y2: float
    width: float             # reference frame width (viewport for outer rects)
    height: float


class ScaledPosition(TypedDict):
    page_number: int
    bounding_rect: BoundingRect
    rects: List[BoundingRect]


class Content(TypedDict):
    text: str


class Comment(TypedDict):
    text: str
    emoji: str


class HighlightDraft(TypedDict):
    position: ScaledPosition
    content: Content
    comment: Comment


class Highlight(TypedDict):
    id: str
    position: ScaledPosition
    content: Content
    comment: Comment
    origin: Origin


class Viewport(TypedDict):
    width: float
    height: float


# --- Collaborator interfaces (document loading / text extraction) ---

class PageHandle(Protocol):
    async def get_text_content(self) -> List[TextRun]: ...

    def get_viewport(self, scale: float = 1.0) -> Viewport: ...


class DocumentHandle(Protocol):
    num_pages: int

    async def get_page(self, page_number: int) -> PageHandle: ...


class DocumentLoader(Protocol):
    async def load(self, url: str) -> DocumentHandle: ...
