from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from services.documents import DocumentSet
from services.name_patterns import name_pattern


@dataclass
class CharacterReferences:
    scene_cards: int = 0
    pov_scenes: int = 0
    relationships: int = 0
    timeline_events: int = 0
    chapters_with_content: int = 0

    @property
    def total(self) -> int:
        return self.scene_cards + self.pov_scenes + self.relationships + self.timeline_events + self.chapters_with_content

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "total": self.total}


@dataclass
class WorldReferences:
    scene_cards: int = 0
    character_locations: int = 0
    timeline_events: int = 0
    chapters_with_content: int = 0

    @property
    def total(self) -> int:
        return self.scene_cards + self.character_locations + self.timeline_events + self.chapters_with_content

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "total": self.total}


def count_character_references(documents: DocumentSet, name: str, character_id: str | None = None) -> CharacterReferences:
    """Preview what a character rename would touch, without changing anything.

    Prose is checked with a plain substring test, so the chapter count is an
    upper bound on what a word-bounded rewrite will change.
    """
    refs = CharacterReferences()
    if not name:
        return refs

    for chapter in documents.chapters:
        for scene in chapter.scene_cards:
            if not isinstance(scene, dict):
                continue
            cast = scene.get("characters")
            if isinstance(cast, list) and name in cast:
                refs.scene_cards += 1
            if scene.get("povCharacter") == name:
                refs.pov_scenes += 1
        if chapter.content and name in chapter.content:
            refs.chapters_with_content += 1

    for character in documents.characters():
        if character_id is not None and character.get("id") == character_id:
            continue
        for rel in character.get("relationships") or []:
            if isinstance(rel, dict) and rel.get("characterName") == name:
                refs.relationships += 1

    for event in documents.timeline():
        participants = event.get("participants")
        if isinstance(participants, list) and name in participants:
            refs.timeline_events += 1

    return refs


def count_world_references(documents: DocumentSet, name: str) -> WorldReferences:
    refs = WorldReferences()
    if not name:
        return refs
    pattern = name_pattern(name)

    def mentions(value: Any) -> bool:
        return isinstance(value, str) and pattern.search(value) is not None

    for chapter in documents.chapters:
        for scene in chapter.scene_cards:
            if isinstance(scene, dict) and mentions(scene.get("location")):
                refs.scene_cards += 1
        if chapter.content and name in chapter.content:
            refs.chapters_with_content += 1

    for character in documents.characters():
        state = character.get("currentState")
        if isinstance(state, dict) and mentions(state.get("location")):
            refs.character_locations += 1

    for event in documents.timeline():
        if mentions(event.get("description")):
            refs.timeline_events += 1

    return refs
