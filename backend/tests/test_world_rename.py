from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from services.documents import STORY_BIBLE, ChapterDocument, DocumentSet
from services.world_rename import propagate_world_rename


def make_docs() -> DocumentSet:
    return DocumentSet(
        project_id="p1",
        story_concept={"title": "Storm", "synopsis": "Trouble comes to Port Vell."},
        story_bible={
            "characters": [
                {
                    "id": "c1",
                    "name": "Vell",
                    "backstory": "Born in Port Vell.",
                    "physicalDescription": "Weathered.",
                    "characterArc": "Leaves Port Vell behind.",
                    "voiceSample": "Port Vell never sleeps.",
                    "currentState": {"location": "Docks of Port Vell", "mood": "tense"},
                    "relationships": [{"characterId": "c2", "characterName": "Port Vell", "description": "Port Vell ally"}],
                },
            ],
            "world": [
                {"id": "w1", "name": "Port Vell", "type": "location", "description": "A harbour town."},
                {"id": "w2", "name": "Vell Guard", "type": "faction", "description": "Keeps order in Port Vell."},
            ],
            "timeline": [{"participants": ["Port Vell"], "description": "Siege of Port Vell"}],
        },
        plot_structure={"layers": [{"name": "main", "points": [{"where": "Port Vell"}]}]},
        chapters=[
            ChapterDocument(
                id="ch1",
                book_id="b1",
                scene_cards=[
                    {"characters": ["Vell"], "povCharacter": "Vell", "location": "The docks of Port Vell"},
                    {"location": "Port Vellmore"},
                ],
                content="The fog rolled over Port Vell.",
                summary="Port Vell wakes.",
            ),
        ],
    )


def test_identical_names_are_a_noop():
    out, stats = propagate_world_rename(make_docs(), "Port Vell", "Port Vell")
    assert stats.to_dict()["updated_scene_cards"] == 0
    assert not any(stats.to_dict().values())
    assert not out.has_changes


def test_scene_locations_substring_rewrite():
    out, stats = propagate_world_rename(make_docs(), "Port Vell", "Kessa Bay")
    first, second = out.chapters[0].scene_cards
    assert first["location"] == "The docks of Kessa Bay"
    assert first["characters"] == ["Vell"]
    assert second["location"] == "Port Vellmore"
    assert stats.updated_scene_cards == 1
    assert out.chapters[0].dirty


def test_prose_opt_in():
    out, stats = propagate_world_rename(make_docs(), "Port Vell", "Kessa Bay")
    assert out.chapters[0].content == "The fog rolled over Port Vell."
    assert stats.updated_chapters == 0

    out, stats = propagate_world_rename(make_docs(), "Port Vell", "Kessa Bay", update_chapter_content=True)
    assert out.chapters[0].content == "The fog rolled over Kessa Bay."
    assert out.chapters[0].summary == "Kessa Bay wakes."
    assert stats.updated_chapters == 1


def test_story_bible_fields():
    out, stats = propagate_world_rename(make_docs(), "Port Vell", "Kessa Bay")
    character = out.story_bible["characters"][0]
    assert character["backstory"] == "Born in Kessa Bay."
    assert character["characterArc"] == "Leaves Kessa Bay behind."
    assert character["currentState"] == {"location": "Docks of Kessa Bay", "mood": "tense"}
    assert character["voiceSample"] == "Port Vell never sleeps."
    assert stats.updated_character_fields == 3

    assert out.story_bible["timeline"] == [{"participants": ["Port Vell"], "description": "Siege of Kessa Bay"}]
    assert stats.updated_timeline == 1
    assert stats.updated_story_bible is True
    assert STORY_BIBLE in out.changed_columns


def test_relationships_are_not_touched():
    out, _ = propagate_world_rename(make_docs(), "Port Vell", "Kessa Bay")
    assert out.story_bible["characters"][0]["relationships"] == [{"characterId": "c2", "characterName": "Port Vell", "description": "Port Vell ally"}]


def test_world_element_renamed_and_descriptions_rewritten():
    out, stats = propagate_world_rename(make_docs(), "Port Vell", "Kessa Bay")
    first, second = out.story_bible["world"]
    assert first["name"] == "Kessa Bay"
    assert second["name"] == "Vell Guard"
    assert second["description"] == "Keeps order in Kessa Bay."
    assert stats.updated_world_elements == 2


def test_concept_and_plot_structure():
    out, stats = propagate_world_rename(make_docs(), "Port Vell", "Kessa Bay")
    assert out.story_concept["synopsis"] == "Trouble comes to Kessa Bay."
    assert out.plot_structure["layers"][0]["points"][0]["where"] == "Kessa Bay"
    assert stats.updated_story_concept and stats.updated_plot_structure


def test_no_matches_leaves_bible_clean():
    out, stats = propagate_world_rename(make_docs(), "Atlantis", "Lemuria", update_chapter_content=True)
    assert stats.updated_story_bible is False
    assert not out.has_changes
