from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable

from filelock import FileLock, Timeout

from errors import InvalidRequestError, NotFoundError, ProjectBusyError
from services.character_rename import propagate_character_rename
from services.documents import PLOT_STRUCTURE, STORY_BIBLE, DocumentSet
from services.reference_counter import count_character_references, count_world_references
from services.rename_stats import PropagationResult, SnapshotSyncResult
from services.world_rename import propagate_world_rename
from storage.sql_store import SQLStore

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")

Rewriter = Callable[..., tuple[DocumentSet, Any]]


def _check_project_id(project_id: str) -> None:
    if not _SAFE_ID.match(project_id) or project_id in {".", ".."}:
        raise InvalidRequestError("Invalid project id")


class PropagationService:
    """Runs renames against the store: lock, load, rewrite, save, sync, signal."""

    def __init__(
        self,
        store: SQLStore,
        lock_dir: Path,
        lock_timeout_s: float = 30.0,
        on_change: Callable[[str], None] | None = None,
    ) -> None:
        self.store = store
        self.lock_dir = lock_dir
        self.lock_timeout_s = lock_timeout_s
        self.on_change = on_change
        self._locks: dict[str, FileLock] = {}
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def project_lock(self, project_id: str) -> FileLock:
        _check_project_id(project_id)
        lock = self._locks.get(project_id)
        if lock is None:
            lock = FileLock(str(self.lock_dir / f"{project_id}.lock"), timeout=self.lock_timeout_s)
            self._locks[project_id] = lock
        return lock

    def _locked(self, project_id: str, fn: Callable[[], Any]) -> Any:
        _check_project_id(project_id)
        if not self.store.project_exists(project_id):
            raise NotFoundError(f"Project {project_id} not found")
        try:
            with self.project_lock(project_id):
                return fn()
        except Timeout as e:
            raise ProjectBusyError(f"Project {project_id} is busy with another rename, try again") from e

    # --- propagation ---

    def propagate_character_name_change(self, project_id: str, old_name: str, new_name: str, update_chapter_content: bool = False) -> PropagationResult:
        return self._propagate(propagate_character_rename, project_id, old_name, new_name, update_chapter_content)

    def propagate_world_name_change(self, project_id: str, old_name: str, new_name: str, update_chapter_content: bool = False) -> PropagationResult:
        return self._propagate(propagate_world_rename, project_id, old_name, new_name, update_chapter_content)

    def _propagate(self, rewriter: Rewriter, project_id: str, old_name: str, new_name: str, update_chapter_content: bool) -> PropagationResult:
        if not old_name or not new_name:
            raise InvalidRequestError("old_name and new_name are required")
        if old_name == new_name:
            _, stats = rewriter(DocumentSet(project_id=project_id), old_name, new_name)
            return PropagationResult(old_name, new_name, stats)
        return self._locked(project_id, lambda: self._propagate_unlocked(rewriter, project_id, old_name, new_name, update_chapter_content))

    def _propagate_unlocked(self, rewriter: Rewriter, project_id: str, old_name: str, new_name: str, update_chapter_content: bool) -> PropagationResult:
        docs = self.store.load_document_set(project_id)
        return self._rewrite_and_save(rewriter, docs, old_name, new_name, update_chapter_content)

    def _rewrite_and_save(self, rewriter: Rewriter, docs: DocumentSet, old_name: str, new_name: str, update_chapter_content: bool) -> PropagationResult:
        project_id = docs.project_id
        renamed, stats = rewriter(docs, old_name, new_name, update_chapter_content=update_chapter_content)
        result = PropagationResult(old_name, new_name, stats)

        written = self.store.save_document_set(renamed)
        result.wrote = written > 0
        if PLOT_STRUCTURE in renamed.changed_columns:
            result.snapshot_sync = self.store.sync_plot_snapshots(project_id, renamed.plot_structure)

        logger.info("Propagated %r -> %r in %s (%d rows): %s", old_name, new_name, project_id, written, stats.to_dict())
        if result.wrote and self.on_change is not None:
            self.on_change(project_id)
        return result

    # --- entity updates that may trigger a rename ---

    def update_character(self, project_id: str, character_id: str, changes: dict[str, Any], update_chapter_content: bool = False) -> tuple[dict[str, Any], PropagationResult | None]:
        return self._locked(project_id, lambda: self._update_entity(
            "characters", propagate_character_rename, project_id, character_id, changes, update_chapter_content))

    def update_world_element(self, project_id: str, element_id: str, changes: dict[str, Any], update_chapter_content: bool = False) -> tuple[dict[str, Any], PropagationResult | None]:
        return self._locked(project_id, lambda: self._update_entity(
            "world", propagate_world_rename, project_id, element_id, changes, update_chapter_content))

    def _update_entity(self, section: str, rewriter: Rewriter, project_id: str, entity_id: str, changes: dict[str, Any], update_chapter_content: bool):
        docs = self.store.load_document_set(project_id)
        entities = docs.story_bible.setdefault(section, [])
        idx = next((i for i, e in enumerate(entities) if isinstance(e, dict) and e.get("id") == entity_id), None)
        if idx is None:
            raise NotFoundError(f"{'Character' if section == 'characters' else 'World element'} {entity_id} not found")

        old_name = entities[idx].get("name")
        updated = {**entities[idx], **changes, "id": entity_id}
        entities[idx] = updated
        docs.mark_changed(STORY_BIBLE)

        new_name = updated.get("name")
        if not old_name or not new_name or old_name == new_name:
            self.store.save_document_set(docs)
            return updated, None
        # the edit and the rename land in the same transaction
        result = self._rewrite_and_save(rewriter, docs, old_name, new_name, update_chapter_content)
        return updated, result

    def update_plot_structure(self, project_id: str, plot_structure: Any) -> SnapshotSyncResult:
        """Replace the plot structure and copy it into every active version."""
        def write() -> SnapshotSyncResult:
            self.store.update_project_documents(project_id, plot_structure=plot_structure)
            sync = self.store.sync_plot_snapshots(project_id, plot_structure)
            if self.on_change is not None:
                self.on_change(project_id)
            return sync

        return self._locked(project_id, write)

    def propagate_entity_name(self, section: str, project_id: str, entity_id: str, old_name: str, update_chapter_content: bool = False) -> PropagationResult:
        """Push an entity's current name over an explicitly supplied old name."""
        if not old_name:
            raise InvalidRequestError("old_name is required")
        entity = self.find_entity(section, project_id, entity_id)
        rewriter = propagate_character_rename if section == "characters" else propagate_world_rename
        return self._propagate(rewriter, project_id, old_name, entity.get("name") or "", update_chapter_content)

    # --- read-only previews ---

    def find_entity(self, section: str, project_id: str, entity_id: str) -> dict[str, Any]:
        project = self.store.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        for entity in (project["story_bible"] or {}).get(section) or []:
            if isinstance(entity, dict) and entity.get("id") == entity_id:
                return entity
        raise NotFoundError(f"{'Character' if section == 'characters' else 'World element'} {entity_id} not found")

    def character_references(self, project_id: str, character_id: str) -> dict[str, Any]:
        character = self.find_entity("characters", project_id, character_id)
        name = character.get("name") or ""
        refs = count_character_references(self.store.load_document_set(project_id), name, character_id)
        out = refs.to_dict()
        return {"character_name": name, "references": {k: v for k, v in out.items() if k != "total"}, "total_references": out["total"]}

    def world_references(self, project_id: str, element_id: str) -> dict[str, Any]:
        element = self.find_entity("world", project_id, element_id)
        name = element.get("name") or ""
        refs = count_world_references(self.store.load_document_set(project_id), name)
        out = refs.to_dict()
        return {"element_name": name, "references": {k: v for k, v in out.items() if k != "total"}, "total_references": out["total"]}
