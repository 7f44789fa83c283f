RELATIONSHIP_SCHEMA = {
    "type": "object",
    "properties": {
        "characterId": {"type": "string"},
        "characterName": {"type": "string"},
        "description": {"type": "string"},
    },
}

CHARACTER_SCHEMA = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string", "minLength": 1},
        "role": {"type": "string", "enum": ["protagonist", "antagonist", "supporting", "minor"]},
        "relationships": {"type": "array", "items": RELATIONSHIP_SCHEMA},
        "backstory": {"type": "string"},
        "characterArc": {"type": "string"},
        "physicalDescription": {"type": "string"},
        "voiceSample": {"type": "string"},
        "currentState": {"type": "object", "properties": {"location": {"type": "string"}}},
    },
}

WORLD_ELEMENT_SCHEMA = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string", "minLength": 1},
        "type": {"type": "string", "enum": ["location", "faction", "system", "item", "lore"]},
        "description": {"type": "string"},
    },
}

TIMELINE_EVENT_SCHEMA = {
    "type": "object",
    "properties": {
        "participants": {"type": "array", "items": {"type": "string"}},
        "description": {"type": "string"},
    },
}

DOCUMENT_SCHEMAS = {
    "story_concept": {
        "type": "object",
        "properties": {
            "title": {"type": "string"}, "logline": {"type": "string"}, "synopsis": {"type": "string"},
            "hook": {"type": "string"}, "protagonistHint": {"type": "string"},
        },
    },
    "story_bible": {
        "type": "object",
        "properties": {
            "characters": {"type": "array", "items": CHARACTER_SCHEMA},
            "world": {"type": "array", "items": WORLD_ELEMENT_SCHEMA},
            "timeline": {"type": "array", "items": TIMELINE_EVENT_SCHEMA},
        },
    },
    "plot_structure": {"type": ["object", "array", "null"]},
    "scene_card": {
        "type": "object",
        "properties": {
            "characters": {"type": "array", "items": {"type": "string"}},
            "povCharacter": {"type": "string"},
            "location": {"type": "string"},
        },
    },
    "character": CHARACTER_SCHEMA,
    "world_element": WORLD_ELEMENT_SCHEMA,
    "timeline_event": TIMELINE_EVENT_SCHEMA,
}
