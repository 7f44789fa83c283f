from __future__ import annotations

import copy
import logging

from services.documents import STORY_BIBLE, DocumentSet
from services.name_patterns import name_pattern, replace_member, rewrite_fields
from services.rename_common import rewrite_chapter_prose, rewrite_plot_structure, rewrite_story_concept
from services.rename_stats import CharacterRenameStats

logger = logging.getLogger(__name__)

# voiceSample is quoted dialogue and currentState is matched by name elsewhere
CHARACTER_TEXT_FIELDS = ("backstory", "characterArc", "physicalDescription")


def propagate_character_rename(
    documents: DocumentSet,
    old_name: str,
    new_name: str,
    *,
    update_chapter_content: bool = False,
) -> tuple[DocumentSet, CharacterRenameStats]:
    """Rename a character across a project's documents.

    Cast lists, POV fields, bible names, relationship targets and timeline
    participants are matched by exact equality; descriptive text is rewritten
    on word boundaries. Returns a rewritten copy plus the counters; the input
    set is left untouched.
    """
    stats = CharacterRenameStats()
    if old_name == new_name:
        return documents, stats

    docs = copy.deepcopy(documents)
    pattern = name_pattern(old_name)

    for chapter in docs.chapters:
        for scene in chapter.scene_cards:
            if not isinstance(scene, dict):
                continue
            touched = False
            cast = scene.get("characters")
            if isinstance(cast, list) and replace_member(cast, old_name, new_name):
                touched = True
            if scene.get("povCharacter") == old_name:
                scene["povCharacter"] = new_name
                touched = True
            if touched:
                stats.updated_scene_cards += 1
                chapter.dirty = True

        if update_chapter_content and rewrite_chapter_prose(chapter, pattern, new_name):
            stats.updated_chapters += 1

    stats.updated_story_concept = rewrite_story_concept(docs, pattern, new_name)
    stats.updated_plot_structure = rewrite_plot_structure(docs, pattern, new_name)

    bible_changed = False
    for character in docs.characters():
        if character.get("name") == old_name:
            character["name"] = new_name
            bible_changed = True

        fields = rewrite_fields(character, CHARACTER_TEXT_FIELDS, pattern, new_name)
        if fields:
            stats.updated_character_fields += fields
            bible_changed = True

        for rel in character.get("relationships") or []:
            if not isinstance(rel, dict):
                continue
            touched = False
            if rel.get("characterName") == old_name:
                rel["characterName"] = new_name
                touched = True
            if rewrite_fields(rel, ("description",), pattern, new_name):
                touched = True
            if touched:
                stats.updated_relationships += 1
                bible_changed = True

    for event in docs.timeline():
        touched = False
        participants = event.get("participants")
        if isinstance(participants, list) and replace_member(participants, old_name, new_name):
            touched = True
        if rewrite_fields(event, ("description",), pattern, new_name):
            touched = True
        if touched:
            stats.updated_timeline += 1
            bible_changed = True

    if bible_changed:
        docs.mark_changed(STORY_BIBLE)

    logger.debug("Character rename %r -> %r in %s: %s", old_name, new_name, docs.project_id, stats)
    return docs, stats
