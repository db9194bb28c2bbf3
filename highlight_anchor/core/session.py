"""One viewing session: the open document, its highlights and navigation.

Every `open()` starts a new generation. Scans remember the generation they
started in and their results are dropped if another document was opened
while they ran.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from highlight_anchor.core.errors import (
    DocumentNotFound,
    ExtractionFailure,
    StaleScanResult,
)
from highlight_anchor.core.fixtures import FixtureTable
from highlight_anchor.core.registry import HighlightRegistry, parse_id_from_fragment
from highlight_anchor.core.scanner import build_word_pattern, scan_document
from highlight_anchor.core.types import (
    Comment,
    Content,
    DocumentLoader,
    Highlight,
    HighlightDraft,
    ScaledPosition,
    Viewport,
)

logger = logging.getLogger(__name__)

PRIMARY_PDF_URL = "https://arxiv.org/pdf/1708.08021"
SECONDARY_PDF_URL = "https://arxiv.org/pdf/1604.02480"
DEFAULT_WORDS = ["In"]
AUTO_COMMENT_PREFIX = "Automatically highlighted: "
AUTO_COMMENT_EMOJI = "🔍"

Scroller = Callable[[Highlight], None]
SeedLoader = Callable[[str], List[Highlight]]


def automatic_draft(word: str, position: ScaledPosition) -> HighlightDraft:
    return {
        "position": position,
        "content": {"text": word},
        "comment": {"text": f"{AUTO_COMMENT_PREFIX}{word}", "emoji": AUTO_COMMENT_EMOJI},
    }


class DocumentSession:
    def __init__(
        self,
        loader: DocumentLoader,
        fixtures: Optional[FixtureTable] = None,
        words: Sequence[str] = DEFAULT_WORDS,
        primary_url: str = PRIMARY_PDF_URL,
        secondary_url: str = SECONDARY_PDF_URL,
        registry: Optional[HighlightRegistry] = None,
        seed_loader: Optional[SeedLoader] = None,
        continue_on_error: bool = False,
    ):
        self.loader = loader
        self.fixtures = fixtures if fixtures is not None else FixtureTable()
        self.words = list(words)
        self.primary_url = primary_url
        self.secondary_url = secondary_url
        self.registry = registry if registry is not None else HighlightRegistry()
        self.seed_loader = seed_loader
        self.continue_on_error = continue_on_error

        self.url: Optional[str] = None
        self.generation = 0
        self.fragment = ""
        self._scroller: Optional[Scroller] = None
        self._scan_lock = asyncio.Lock()

    # --- document lifecycle ---

    def _seed_for(self, url: str) -> List[Highlight]:
        if url in self.fixtures:
            return self.fixtures.seed_for(url)
        if self.seed_loader is None:
            return []
        try:
            return self.seed_loader(url)
        except Exception as e:
            logger.warning(f"Could not seed highlights for {url}: {e}")
            return []

    def open(self, url: str, seed: Optional[List[Highlight]] = None) -> int:
        """Make `url` the current document and reseed the registry."""
        if seed is None:
            seed = self._seed_for(url)
        self.generation += 1
        self.url = url
        self._scroller = None
        self.registry.reset(seed)
        logger.info(f"Opened {url} (generation {self.generation}, {len(self.registry)} seeded)")
        return self.generation

    async def open_document(self, url: str) -> int:
        """Like open(), with fixture or annotation seeding run off the event loop."""
        seed = await asyncio.to_thread(self._seed_for, url)
        return self.open(url, seed)

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def highlight_words(
        self,
        words: Optional[Sequence[str]] = None,
        continue_on_error: Optional[bool] = None,
        page_range: Optional[str] = None,
    ) -> List[Highlight]:
        """Scan the current document for each word and merge the matches.

        Words are scanned one after another; each word's batch is merged as
        soon as its scan completes. An ExtractionFailure stops the remaining
        words unless `continue_on_error` (default: the session setting) is
        set. Batches finishing after a
        document switch raise StaleScanResult and are not merged.
        """
        words = list(self.words if words is None else words)
        if continue_on_error is None:
            continue_on_error = self.continue_on_error
        for word in words:
            build_word_pattern(word)
        if self.url is None:
            raise DocumentNotFound("No document is open")

        generation, url = self.generation, self.url
        merged: List[Highlight] = []
        async with self._scan_lock:
            self._ensure_current(generation, url)
            try:
                document = await self.loader.load(url)
            except DocumentNotFound:
                raise
            except Exception as e:
                logger.error(f"Failed to load {url}: {e}")
                raise ExtractionFailure(None, e) from e

            try:
                for word in words:
                    try:
                        positions = await scan_document(document, word, page_range)
                    except ExtractionFailure as e:
                        if not continue_on_error:
                            logger.error(f"Stopping word scan of {url} at '{word}': {e}")
                            raise
                        logger.warning(f"Skipping '{word}' for {url}: {e}")
                        continue
                    self._ensure_current(generation, url)
                    merged.extend(
                        self.registry.merge_automatic(automatic_draft(word, p) for p in positions)
                    )
                    logger.info(f"Highlighted {len(positions)} occurrence(s) of '{word}' in {url}")
            finally:
                close = getattr(document, "close", None)
                if callable(close):
                    close()
        return merged

    def _ensure_current(self, generation: int, url: str) -> None:
        if not self.is_current(generation):
            logger.info(f"Discarding scan results for {url}: document switched")
            raise StaleScanResult(generation, self.generation)

    async def switch_document(self, url: str) -> List[Highlight]:
        await self.open_document(url)
        return await self.highlight_words()

    async def toggle_document(self) -> List[Highlight]:
        """Alternate between the primary and secondary documents."""
        url = self.secondary_url if self.url == self.primary_url else self.primary_url
        return await self.switch_document(url)

    # --- user actions ---

    def add_highlight(self, content: Content, position: ScaledPosition, comment: Comment) -> Highlight:
        return self.registry.add_manual({"content": content, "position": position, "comment": comment})

    def reset_highlights(self) -> None:
        self.registry.clear()

    async def page_viewport(self, page_number: int) -> Viewport:
        """Viewport (scale 1) of a page of the current document."""
        if self.url is None:
            raise DocumentNotFound("No document is open")
        try:
            document = await self.loader.load(self.url)
        except DocumentNotFound:
            raise
        except Exception as e:
            raise ExtractionFailure(None, e) from e
        try:
            page = await document.get_page(page_number)
            return page.get_viewport(scale=1.0)
        except Exception as e:
            raise ExtractionFailure(page_number, e) from e
        finally:
            close = getattr(document, "close", None)
            if callable(close):
                close()

    # --- navigation ---

    def register_scroller(self, scroller: Scroller) -> Optional[Highlight]:
        """Called by the renderer once per document load with its scroll handle."""
        self._scroller = scroller
        return self.scroll_to_fragment()

    def on_fragment_change(self, fragment: str) -> Optional[Highlight]:
        self.fragment = fragment or ""
        return self.scroll_to_fragment()

    def on_scroll_change(self) -> None:
        self.fragment = ""

    def scroll_to_fragment(self) -> Optional[Highlight]:
        highlight = self.registry.find_by_id(parse_id_from_fragment(self.fragment))
        if highlight is not None and self._scroller is not None:
            self._scroller(highlight)
        return highlight
