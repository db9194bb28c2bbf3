import copy
import logging
import random
from typing import Callable, Iterable, Iterator, List, Optional

from highlight_anchor.core.types import Highlight, HighlightDraft, Origin

logger = logging.getLogger(__name__)

HIGHLIGHT_FRAGMENT_PREFIX = "#highlight-"


def random_id() -> str:
    """Opaque id made of random decimal digits. Uniqueness is not checked."""
    return str(random.randrange(10 ** 15, 10 ** 16))


def parse_id_from_fragment(fragment: Optional[str]) -> Optional[str]:
    """'#highlight-<id>' -> '<id>'; anything else -> None."""
    if not fragment or not fragment.startswith(HIGHLIGHT_FRAGMENT_PREFIX):
        return None
    return fragment[len(HIGHLIGHT_FRAGMENT_PREFIX):] or None


def fragment_for(highlight_id: str) -> str:
    return f"{HIGHLIGHT_FRAGMENT_PREFIX}{highlight_id}"


class HighlightRegistry:
    """In-memory highlights of the currently loaded document.

    Manual highlights are kept newest-first at the front, automatic batches
    are appended in the order they are merged. Records are never compared by
    content: merging the same batch twice stores it twice under new ids.
    """

    def __init__(self, id_factory: Callable[[], str] = random_id):
        self._id_factory = id_factory
        self._items: List[Highlight] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Highlight]:
        return iter(list(self._items))

    @property
    def highlights(self) -> List[Highlight]:
        return list(self._items)

    def reset(self, seed: Iterable[Highlight] = ()) -> None:
        self._items = list(seed)
        logger.debug(f"Registry reset with {len(self._items)} seeded highlight(s)")

    def clear(self) -> None:
        self._items = []

    def _create(self, draft: HighlightDraft, origin: Origin) -> Highlight:
        return {
            "id": self._id_factory(),
            "position": copy.deepcopy(draft["position"]),
            "content": dict(draft["content"]),
            "comment": dict(draft["comment"]),
            "origin": origin,
        }

    def add_manual(self, draft: HighlightDraft) -> Highlight:
        highlight = self._create(draft, Origin.MANUAL)
        self._items.insert(0, highlight)
        return highlight

    def merge_automatic(self, batch: Iterable[HighlightDraft]) -> List[Highlight]:
        created = [self._create(draft, Origin.AUTOMATIC) for draft in batch]
        self._items.extend(created)
        return created

    def find_by_id(self, highlight_id: Optional[str]) -> Optional[Highlight]:
        if not highlight_id:
            return None
        for highlight in self._items:
            if highlight["id"] == highlight_id:
                return highlight
        return None

    def by_origin(self, origin: Origin) -> List[Highlight]:
        return [h for h in self._items if h["origin"] == origin]
