from __future__ import annotations

import copy
import logging

from services.documents import STORY_BIBLE, DocumentSet
from services.name_patterns import name_pattern, rewrite_fields
from services.rename_common import rewrite_chapter_prose, rewrite_plot_structure, rewrite_story_concept
from services.rename_stats import WorldRenameStats

logger = logging.getLogger(__name__)

CHARACTER_TEXT_FIELDS = ("backstory", "physicalDescription", "characterArc")


def propagate_world_rename(
    documents: DocumentSet,
    old_name: str,
    new_name: str,
    *,
    update_chapter_content: bool = False,
) -> tuple[DocumentSet, WorldRenameStats]:
    """Rename a location, faction or other world element.

    Locations show up inside longer phrases ("the docks of Port Vell"), so
    scene locations are rewritten on word boundaries rather than compared
    whole. Only the element's own ``world[].name`` is compared exactly.
    """
    stats = WorldRenameStats()
    if old_name == new_name:
        return documents, stats

    docs = copy.deepcopy(documents)
    pattern = name_pattern(old_name)

    for chapter in docs.chapters:
        for scene in chapter.scene_cards:
            if isinstance(scene, dict) and rewrite_fields(scene, ("location",), pattern, new_name):
                stats.updated_scene_cards += 1
                chapter.dirty = True

        if update_chapter_content and rewrite_chapter_prose(chapter, pattern, new_name):
            stats.updated_chapters += 1

    stats.updated_story_concept = rewrite_story_concept(docs, pattern, new_name)
    stats.updated_plot_structure = rewrite_plot_structure(docs, pattern, new_name)

    for element in docs.world():
        touched = False
        if element.get("name") == old_name:
            element["name"] = new_name
            touched = True
        if rewrite_fields(element, ("description",), pattern, new_name):
            touched = True
        if touched:
            stats.updated_world_elements += 1

    for character in docs.characters():
        stats.updated_character_fields += rewrite_fields(character, CHARACTER_TEXT_FIELDS, pattern, new_name)
        state = character.get("currentState")
        if isinstance(state, dict):
            stats.updated_character_fields += rewrite_fields(state, ("location",), pattern, new_name)

    for event in docs.timeline():
        if rewrite_fields(event, ("description",), pattern, new_name):
            stats.updated_timeline += 1

    if stats.updated_world_elements or stats.updated_character_fields or stats.updated_timeline:
        docs.mark_changed(STORY_BIBLE)
        stats.updated_story_bible = True

    logger.debug("World rename %r -> %r in %s: %s", old_name, new_name, docs.project_id, stats)
    return docs, stats
