from __future__ import annotations

import re

from services.documents import PLOT_STRUCTURE, STORY_CONCEPT, ChapterDocument, DocumentSet
from services.name_patterns import replace_name, rewrite_fields, rewrite_tree

STORY_CONCEPT_FIELDS = ("title", "logline", "synopsis", "hook", "protagonistHint")


def rewrite_chapter_prose(chapter: ChapterDocument, pattern: re.Pattern[str], new_name: str) -> bool:
    changed = False
    for attr in ("content", "summary"):
        text = getattr(chapter, attr)
        if not text:
            continue
        updated = replace_name(text, pattern, new_name)
        if updated != text:
            setattr(chapter, attr, updated)
            changed = True
    if changed:
        chapter.dirty = True
    return changed


def rewrite_story_concept(docs: DocumentSet, pattern: re.Pattern[str], new_name: str) -> bool:
    if not isinstance(docs.story_concept, dict):
        return False
    if rewrite_fields(docs.story_concept, STORY_CONCEPT_FIELDS, pattern, new_name):
        docs.mark_changed(STORY_CONCEPT)
        return True
    return False


def rewrite_plot_structure(docs: DocumentSet, pattern: re.Pattern[str], new_name: str) -> bool:
    plot = docs.plot_structure
    if plot is None:
        return False
    if isinstance(plot, str):
        updated = replace_name(plot, pattern, new_name)
        changed = updated != plot
        docs.plot_structure = updated
    else:
        changed = rewrite_tree(plot, pattern, new_name)
    if changed:
        docs.mark_changed(PLOT_STRUCTURE)
    return changed
