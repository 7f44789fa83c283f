from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from services.character_rename import propagate_character_rename
from services.documents import PLOT_STRUCTURE, STORY_BIBLE, STORY_CONCEPT, ChapterDocument, DocumentSet


def make_docs() -> DocumentSet:
    return DocumentSet(
        project_id="p1",
        story_concept={
            "title": "Ann of the Harbour",
            "logline": "Ann must outwit Anna.",
            "synopsis": "A quiet story.",
            "hook": "",
            "protagonistHint": "Ann, a pilot",
            "genre": "Ann-thology",
        },
        story_bible={
            "characters": [
                {
                    "id": "c1",
                    "name": "Ann",
                    "role": "protagonist",
                    "backstory": "Ann grew up by the docks.",
                    "characterArc": "Ann learns to trust.",
                    "physicalDescription": "Tall.",
                    "voiceSample": "I'm Ann, and I don't run.",
                    "relationships": [{"characterId": "c2", "characterName": "Bob", "description": "Bob taught Ann to sail"}],
                    "currentState": {"location": "Ann's boat"},
                },
                {
                    "id": "c2",
                    "name": "Bob",
                    "role": "supporting",
                    "backstory": "Bob met Ann at sea.",
                    "relationships": [{"characterId": "c1", "characterName": "Ann", "description": "Protective of Ann"}],
                },
                {"id": "c3", "name": "Anna", "relationships": [{"characterId": "c1", "characterName": "Anna's rival", "description": "Hates Annabel"}]},
            ],
            "world": [{"id": "w1", "name": "Port Vell", "description": "Ann's home"}],
            "timeline": [
                {"participants": ["Ann", "Bob"], "description": "Ann and Bob set sail"},
                {"participants": ["Anna"], "description": "Anna waits"},
            ],
        },
        plot_structure={"acts": [{"title": "Act I", "beats": [{"summary": "Ann finds the map", "characters": ["Ann"]}]}]},
        chapters=[
            ChapterDocument(
                id="ch1",
                book_id="b1",
                scene_cards=[
                    {"characters": ["Ann", "Bob"], "povCharacter": "Ann", "location": "Docks"},
                    {"characters": ["Anna"], "povCharacter": "Anna", "location": "Hill"},
                ],
                content="Anna went to see Ann.",
                summary="Ann meets Anna.",
            ),
            ChapterDocument(id="ch2", book_id="b1", scene_cards=[{"characters": ["Bob"], "povCharacter": "Bob"}], content="Bob alone.", summary=None),
        ],
    )


def test_identical_names_are_a_noop():
    docs = make_docs()
    out, stats = propagate_character_rename(docs, "Alice", "Alice")
    assert stats.to_dict() == {
        "updated_scene_cards": 0,
        "updated_relationships": 0,
        "updated_timeline": 0,
        "updated_chapters": 0,
        "updated_story_concept": False,
        "updated_plot_structure": False,
        "updated_character_fields": 0,
    }
    assert not out.has_changes


def test_input_documents_are_not_mutated():
    docs = make_docs()
    propagate_character_rename(docs, "Ann", "Anne", update_chapter_content=True)
    assert docs.story_bible["characters"][0]["name"] == "Ann"
    assert docs.chapters[0].scene_cards[0]["characters"] == ["Ann", "Bob"]
    assert docs.chapters[0].content == "Anna went to see Ann."
    assert not docs.has_changes


def test_scene_cards_use_exact_membership():
    out, stats = propagate_character_rename(make_docs(), "Ann", "Anne")
    first, second = out.chapters[0].scene_cards
    assert first["characters"] == ["Anne", "Bob"]
    assert first["povCharacter"] == "Anne"
    assert second == {"characters": ["Anna"], "povCharacter": "Anna", "location": "Hill"}
    assert stats.updated_scene_cards == 1
    assert out.chapters[0].dirty is True
    assert out.chapters[1].dirty is False


def test_cast_collision_keeps_one_entry():
    docs = DocumentSet(project_id="p1", chapters=[ChapterDocument(id="ch", book_id="b", scene_cards=[{"characters": ["Bob", "Robert"]}])])
    out, stats = propagate_character_rename(docs, "Bob", "Robert")
    assert out.chapters[0].scene_cards[0]["characters"] == ["Robert"]
    assert stats.updated_scene_cards == 1


def test_prose_untouched_without_opt_in():
    out, stats = propagate_character_rename(make_docs(), "Ann", "Anne")
    assert out.chapters[0].content == "Anna went to see Ann."
    assert out.chapters[0].summary == "Ann meets Anna."
    assert stats.updated_chapters == 0


def test_prose_rewritten_with_opt_in():
    out, stats = propagate_character_rename(make_docs(), "Ann", "Anne", update_chapter_content=True)
    assert out.chapters[0].content == "Anna went to see Anne."
    assert out.chapters[0].summary == "Anne meets Anna."
    assert out.chapters[1].content == "Bob alone."
    assert stats.updated_chapters == 1


def test_summary_only_chapter_counts():
    docs = DocumentSet(project_id="p1", chapters=[ChapterDocument(id="ch", book_id="b", content=None, summary="Ann sleeps")])
    out, stats = propagate_character_rename(docs, "Ann", "Anne", update_chapter_content=True)
    assert out.chapters[0].summary == "Anne sleeps"
    assert out.chapters[0].content is None
    assert stats.updated_chapters == 1


def test_story_concept_fixed_fields_only():
    out, stats = propagate_character_rename(make_docs(), "Ann", "Anne")
    concept = out.story_concept
    assert concept["title"] == "Anne of the Harbour"
    assert concept["logline"] == "Anne must outwit Anna."
    assert concept["protagonistHint"] == "Anne, a pilot"
    assert concept["genre"] == "Ann-thology"
    assert stats.updated_story_concept is True
    assert STORY_CONCEPT in out.changed_columns


def test_plot_structure_deep_rewrite():
    out, stats = propagate_character_rename(make_docs(), "Ann", "Anne")
    beat = out.plot_structure["acts"][0]["beats"][0]
    assert beat == {"summary": "Anne finds the map", "characters": ["Anne"]}
    assert stats.updated_plot_structure is True
    assert PLOT_STRUCTURE in out.changed_columns


def test_story_bible_names_fields_and_timeline():
    out, stats = propagate_character_rename(make_docs(), "Ann", "Anne")
    ann, bob, anna = out.story_bible["characters"]
    assert ann["name"] == "Anne" and ann["id"] == "c1"
    assert ann["backstory"] == "Anne grew up by the docks."
    assert ann["characterArc"] == "Anne learns to trust."
    assert ann["voiceSample"] == "I'm Ann, and I don't run."
    assert ann["currentState"] == {"location": "Ann's boat"}
    assert bob["backstory"] == "Bob met Anne at sea."
    assert stats.updated_character_fields == 3

    timeline = out.story_bible["timeline"]
    assert timeline[0] == {"participants": ["Anne", "Bob"], "description": "Anne and Bob set sail"}
    assert timeline[1] == {"participants": ["Anna"], "description": "Anna waits"}
    assert stats.updated_timeline == 1
    assert anna["name"] == "Anna"
    assert STORY_BIBLE in out.changed_columns


def test_relationship_symmetry():
    out, stats = propagate_character_rename(make_docs(), "Bob", "Robert")
    ann = out.story_bible["characters"][0]
    assert ann["name"] == "Ann" and ann["id"] == "c1"
    assert ann["relationships"] == [{"characterId": "c2", "characterName": "Robert", "description": "Robert taught Ann to sail"}]
    assert out.story_bible["characters"][1]["name"] == "Robert"
    assert stats.updated_relationships == 1


def test_relationship_description_counts_once_per_entry():
    out, stats = propagate_character_rename(make_docs(), "Ann", "Anne")
    bob, anna = out.story_bible["characters"][1:]
    assert bob["relationships"][0] == {"characterId": "c1", "characterName": "Anne", "description": "Protective of Anne"}
    assert anna["relationships"][0]["characterName"] == "Anna's rival"
    assert ann_rel_desc(out) == "Bob taught Anne to sail"
    assert stats.updated_relationships == 2


def ann_rel_desc(docs: DocumentSet) -> str:
    return docs.story_bible["characters"][0]["relationships"][0]["description"]


def test_world_elements_untouched_by_character_rename():
    out, _ = propagate_character_rename(make_docs(), "Ann", "Anne")
    assert out.story_bible["world"] == [{"id": "w1", "name": "Port Vell", "description": "Ann's home"}]


def test_second_run_is_idempotent():
    first, _ = propagate_character_rename(make_docs(), "Ann", "Anne", update_chapter_content=True)
    for chapter in first.chapters:
        chapter.dirty = False
    first.changed_columns.clear()

    second, stats = propagate_character_rename(first, "Ann", "Anne", update_chapter_content=True)
    assert stats.updated_scene_cards == 0
    assert stats.updated_relationships == 0
    assert stats.updated_timeline == 0
    assert stats.updated_chapters == 0
    assert stats.updated_character_fields == 0
    assert not stats.updated_story_concept and not stats.updated_plot_structure
    assert not second.has_changes


def test_missing_and_odd_shapes_are_tolerated():
    docs = DocumentSet(
        project_id="p1",
        story_concept=None,
        story_bible={"characters": [None, "Ann", {"name": "Ann", "relationships": None}], "timeline": [{"participants": "Ann"}]},
        plot_structure="Ann rises",
        chapters=[ChapterDocument(id="ch", book_id="b", scene_cards=["Ann", {"characters": None, "povCharacter": None}])],
    )
    out, stats = propagate_character_rename(docs, "Ann", "Anne")
    assert out.story_bible["characters"][2]["name"] == "Anne"
    assert out.story_bible["timeline"] == [{"participants": "Ann"}]
    assert out.plot_structure == "Anne rises"
    assert stats.updated_plot_structure is True
    assert stats.updated_scene_cards == 0
