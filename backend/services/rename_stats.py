from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class CharacterRenameStats:
    updated_scene_cards: int = 0
    updated_relationships: int = 0
    updated_timeline: int = 0
    updated_chapters: int = 0
    updated_story_concept: bool = False
    updated_plot_structure: bool = False
    updated_character_fields: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class WorldRenameStats:
    updated_scene_cards: int = 0
    updated_chapters: int = 0
    updated_story_concept: bool = False
    updated_plot_structure: bool = False
    updated_story_bible: bool = False
    updated_character_fields: int = 0
    updated_timeline: int = 0
    updated_world_elements: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SnapshotSyncResult:
    """Outcome of copying the plot structure into active book versions."""

    ok: bool = True
    attempted: bool = False
    synced_versions: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PropagationResult:
    old_name: str
    new_name: str
    stats: CharacterRenameStats | WorldRenameStats
    snapshot_sync: SnapshotSyncResult = field(default_factory=SnapshotSyncResult)
    wrote: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "old_name": self.old_name,
            "new_name": self.new_name,
            "stats": self.stats.to_dict(),
            "snapshot_sync": self.snapshot_sync.to_dict(),
        }
