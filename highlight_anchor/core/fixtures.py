import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from highlight_anchor.core.types import Highlight, Origin

logger = logging.getLogger(__name__)


class FixtureTable:
    """Known document URL -> highlights to seed the registry with."""

    def __init__(self, entries: Optional[Mapping[str, Iterable[Highlight]]] = None):
        self._entries: Dict[str, List[Highlight]] = {}
        for url, highlights in (entries or {}).items():
            self.add(url, highlights)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def urls(self) -> List[str]:
        return list(self._entries)

    def add(self, url: str, highlights: Iterable[Highlight]) -> None:
        self._entries.setdefault(url, []).extend(highlights)

    def seed_for(self, url: str) -> List[Highlight]:
        """Copies of the fixture list for `url` (empty when unknown)."""
        return copy.deepcopy(self._entries.get(url, []))


def _highlight_from_json(raw: Dict[str, Any]) -> Highlight:
    try:
        position = raw["position"]
        comment = raw.get("comment") or {}
        return {
            "id": str(raw["id"]),
            "position": {
                "page_number": int(position["page_number"]),
                "bounding_rect": dict(position["bounding_rect"]),
                "rects": [dict(r) for r in position.get("rects", [])],
            },
            "content": {"text": str((raw.get("content") or {}).get("text", ""))},
            "comment": {"text": str(comment.get("text", "")), "emoji": str(comment.get("emoji", ""))},
            "origin": Origin(raw.get("origin", Origin.MANUAL.value)),
        }
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed fixture highlight {raw!r}: {e}")


def load_fixture_file(path: Path) -> FixtureTable:
    """Read a JSON object of the form {url: [highlight, ...]}."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Fixture file {path} is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise ValueError(f"Fixture file {path} must contain a JSON object keyed by document URL")

    table = FixtureTable()
    for url, items in data.items():
        if not isinstance(items, list):
            raise ValueError(f"Fixtures for {url} must be a list")
        table.add(url, [_highlight_from_json(item) for item in items])
    logger.info(f"Loaded fixtures for {len(table)} document(s) from {path}")
    return table
