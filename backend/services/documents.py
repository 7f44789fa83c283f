from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

STORY_CONCEPT = "story_concept"
STORY_BIBLE = "story_bible"
PLOT_STRUCTURE = "plot_structure"
PROJECT_COLUMNS = (STORY_CONCEPT, STORY_BIBLE, PLOT_STRUCTURE)


def empty_story_bible() -> dict[str, Any]:
    return {"characters": [], "world": [], "timeline": []}


@dataclass
class ChapterDocument:
    id: str
    book_id: str
    scene_cards: list[dict[str, Any]] = field(default_factory=list)
    content: str | None = None
    summary: str | None = None
    dirty: bool = False
    # scene_cards column was unreadable; the empty list stands in for it
    scene_cards_fallback: bool = False


@dataclass
class DocumentSet:
    """Everything a rename can touch in one project, loaded into memory.

    Rewriters flip ``ChapterDocument.dirty`` and add column names to
    ``changed_columns``; the store writes back exactly those units.
    """

    project_id: str
    story_concept: dict[str, Any] | None = None
    story_bible: dict[str, Any] = field(default_factory=empty_story_bible)
    plot_structure: Any = None
    chapters: list[ChapterDocument] = field(default_factory=list)
    changed_columns: set[str] = field(default_factory=set)

    def mark_changed(self, column: str) -> None:
        if column not in PROJECT_COLUMNS:
            raise ValueError(f"unknown project column {column}")
        self.changed_columns.add(column)

    def dirty_chapters(self) -> list[ChapterDocument]:
        return [c for c in self.chapters if c.dirty]

    @property
    def has_changes(self) -> bool:
        return bool(self.changed_columns) or any(c.dirty for c in self.chapters)

    def characters(self) -> list[dict[str, Any]]:
        return [c for c in self.story_bible.get("characters") or [] if isinstance(c, dict)]

    def world(self) -> list[dict[str, Any]]:
        return [w for w in self.story_bible.get("world") or [] if isinstance(w, dict)]

    def timeline(self) -> list[dict[str, Any]]:
        return [e for e in self.story_bible.get("timeline") or [] if isinstance(e, dict)]

