from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from services.documents import ChapterDocument, DocumentSet
from services.reference_counter import count_character_references, count_world_references


def make_docs() -> DocumentSet:
    return DocumentSet(
        project_id="p1",
        story_bible={
            "characters": [
                {"id": "c1", "name": "Ann", "relationships": [{"characterName": "Ann", "description": "self"}], "currentState": {"location": "Port Vell"}},
                {"id": "c2", "name": "Bob", "relationships": [{"characterName": "Ann"}, {"characterName": "Anna"}], "currentState": {"location": "Port Vellmore"}},
            ],
            "timeline": [
                {"participants": ["Ann", "Bob"], "description": "Storm hits Port Vell"},
                {"participants": ["Anna"], "description": "Quiet"},
            ],
        },
        chapters=[
            ChapterDocument(id="ch1", book_id="b", scene_cards=[
                {"characters": ["Ann"], "povCharacter": "Ann", "location": "Port Vell docks"},
                {"characters": ["Bob"], "povCharacter": "Ann"},
            ], content="Annabel laughed at Port Vell."),
            ChapterDocument(id="ch2", book_id="b", scene_cards=[{"characters": ["Anna"], "location": "Hill"}], content=None),
        ],
    )


def test_character_reference_counts():
    refs = count_character_references(make_docs(), "Ann", character_id="c1")
    assert refs.scene_cards == 1
    assert refs.pov_scenes == 2
    assert refs.relationships == 1
    assert refs.timeline_events == 1
    # raw substring test: "Annabel" counts
    assert refs.chapters_with_content == 1
    assert refs.to_dict()["total"] == 6


def test_character_references_without_exclusion():
    refs = count_character_references(make_docs(), "Ann")
    assert refs.relationships == 2


def test_character_references_do_not_mutate():
    docs = make_docs()
    count_character_references(docs, "Ann")
    assert not docs.has_changes
    assert docs.chapters[0].scene_cards[0]["characters"] == ["Ann"]


def test_world_reference_counts():
    refs = count_world_references(make_docs(), "Port Vell")
    assert refs.scene_cards == 1
    assert refs.character_locations == 1
    assert refs.timeline_events == 1
    assert refs.chapters_with_content == 1
    assert refs.total == 4


def test_empty_name_counts_nothing():
    assert count_character_references(make_docs(), "").total == 0
    assert count_world_references(make_docs(), "").total == 0
