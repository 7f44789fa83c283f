from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from errors import NotFoundError, PersistenceError
from services.documents import PLOT_STRUCTURE, STORY_BIBLE, STORY_CONCEPT, ChapterDocument, DocumentSet, empty_story_bible
from services.rename_stats import SnapshotSyncResult
from storage.models import Base, Book, BookVersion, Chapter, Project

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def safe_json_loads(text: str | None, fallback: Any = None, label: str = "json") -> Any:
    """Parse a JSON column, falling back on empty or corrupt values.

    A corrupt story bible therefore looks empty to the rename engine; it is
    only logged here, never rewritten, because an unchanged fallback is never
    written back.
    """
    if not text:
        return fallback
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        logger.error("JSON parse error in %s: %s", label, e)
        return fallback


def _dumps(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _project_dict(p: Project) -> dict[str, Any]:
    return {
        "id": p.id,
        "title": p.title,
        "story_concept": safe_json_loads(p.story_concept, None, f"{p.id}.story_concept"),
        "story_bible": safe_json_loads(p.story_bible, empty_story_bible(), f"{p.id}.story_bible"),
        "plot_structure": safe_json_loads(p.plot_structure, None, f"{p.id}.plot_structure"),
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


def _book_dict(b: Book) -> dict[str, Any]:
    return {"id": b.id, "project_id": b.project_id, "book_number": b.book_number, "title": b.title, "created_at": b.created_at, "updated_at": b.updated_at}


def _chapter_dict(c: Chapter) -> dict[str, Any]:
    return {
        "id": c.id,
        "book_id": c.book_id,
        "chapter_number": c.chapter_number,
        "title": c.title,
        "scene_cards": safe_json_loads(c.scene_cards, [], f"{c.id}.scene_cards"),
        "content": c.content,
        "summary": c.summary,
        "updated_at": c.updated_at,
    }


def _version_dict(v: BookVersion) -> dict[str, Any]:
    return {
        "id": v.id,
        "book_id": v.book_id,
        "version_number": v.version_number,
        "version_name": v.version_name,
        "plot_snapshot": safe_json_loads(v.plot_snapshot, None, f"{v.id}.plot_snapshot"),
        "is_active": bool(v.is_active),
        "created_at": v.created_at,
    }


@dataclass
class SQLStore:
    database_url: str
    echo: bool = False
    engine: Engine = field(init=False, repr=False)
    _session_factory: sessionmaker = field(init=False, repr=False)

    def __post_init__(self) -> None:
        url = make_url(self.database_url)
        connect_args = {}
        if url.get_backend_name() == "sqlite":
            connect_args["check_same_thread"] = False
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(self.database_url, echo=self.echo, connect_args=connect_args)
        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        s = self._session_factory()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # --- projects / books / chapters ---

    def create_project(
        self,
        title: str,
        story_concept: dict[str, Any] | None = None,
        story_bible: dict[str, Any] | None = None,
        plot_structure: Any = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        ts = now_iso()
        project = Project(
            id=project_id or f"project_{uuid.uuid4().hex[:8]}",
            title=title,
            story_concept=_dumps(story_concept),
            story_bible=_dumps(story_bible if story_bible is not None else empty_story_bible()),
            plot_structure=_dumps(plot_structure),
            created_at=ts,
            updated_at=ts,
        )
        with self.session() as s:
            s.add(project)
        return _project_dict(project)

    def list_projects(self) -> list[dict[str, Any]]:
        with self.session() as s:
            return [{"id": p.id, "title": p.title, "updated_at": p.updated_at} for p in s.query(Project).order_by(Project.id).all()]

    def get_project(self, project_id: str) -> dict[str, Any] | None:
        with self.session() as s:
            p = s.get(Project, project_id)
            return _project_dict(p) if p else None

    def project_exists(self, project_id: str) -> bool:
        with self.session() as s:
            return s.get(Project, project_id) is not None

    def update_project_documents(self, project_id: str, **columns: Any) -> None:
        """Overwrite one or more of story_concept / story_bible / plot_structure."""
        unknown = set(columns) - {STORY_CONCEPT, STORY_BIBLE, PLOT_STRUCTURE}
        if unknown:
            raise ValueError(f"unknown project columns: {sorted(unknown)}")
        with self.session() as s:
            p = s.get(Project, project_id)
            if p is None:
                raise NotFoundError(f"Project {project_id} not found")
            for col, value in columns.items():
                setattr(p, col, _dumps(value))
            p.updated_at = now_iso()

    def create_book(self, project_id: str, title: str, book_number: int | None = None) -> dict[str, Any]:
        ts = now_iso()
        with self.session() as s:
            if s.get(Project, project_id) is None:
                raise NotFoundError(f"Project {project_id} not found")
            if book_number is None:
                book_number = s.query(Book).filter_by(project_id=project_id).count() + 1
            book = Book(id=f"book_{uuid.uuid4().hex[:8]}", project_id=project_id, book_number=book_number, title=title, created_at=ts, updated_at=ts)
            s.add(book)
        return _book_dict(book)

    def list_books(self, project_id: str) -> list[dict[str, Any]]:
        with self.session() as s:
            return [_book_dict(b) for b in self._books(s, project_id)]

    def create_chapter(
        self,
        book_id: str,
        chapter_number: int,
        title: str | None = None,
        scene_cards: list[dict[str, Any]] | None = None,
        content: str | None = None,
        summary: str | None = None,
    ) -> dict[str, Any]:
        ts = now_iso()
        with self.session() as s:
            if s.get(Book, book_id) is None:
                raise NotFoundError(f"Book {book_id} not found")
            chapter = Chapter(
                id=f"chapter_{uuid.uuid4().hex[:8]}",
                book_id=book_id,
                chapter_number=chapter_number,
                title=title,
                scene_cards=_dumps(scene_cards or []),
                content=content,
                summary=summary,
                created_at=ts,
                updated_at=ts,
            )
            s.add(chapter)
        return _chapter_dict(chapter)

    def list_chapters(self, book_id: str) -> list[dict[str, Any]]:
        with self.session() as s:
            rows = s.query(Chapter).filter_by(book_id=book_id).order_by(Chapter.chapter_number).all()
            return [_chapter_dict(c) for c in rows]

    def get_chapter(self, chapter_id: str) -> dict[str, Any] | None:
        with self.session() as s:
            c = s.get(Chapter, chapter_id)
            return _chapter_dict(c) if c else None

    def create_book_version(self, book_id: str, plot_snapshot: Any = None, version_name: str | None = None, activate: bool = True) -> dict[str, Any]:
        with self.session() as s:
            if s.get(Book, book_id) is None:
                raise NotFoundError(f"Book {book_id} not found")
            last = s.query(BookVersion).filter_by(book_id=book_id).order_by(BookVersion.version_number.desc()).first()
            if activate:
                s.query(BookVersion).filter_by(book_id=book_id).update({"is_active": False})
            version = BookVersion(
                id=f"version_{uuid.uuid4().hex[:8]}",
                book_id=book_id,
                version_number=(last.version_number + 1) if last else 1,
                version_name=version_name,
                plot_snapshot=_dumps(plot_snapshot),
                is_active=activate,
                created_at=now_iso(),
            )
            s.add(version)
        return _version_dict(version)

    def get_active_version(self, book_id: str) -> dict[str, Any] | None:
        with self.session() as s:
            v = s.query(BookVersion).filter_by(book_id=book_id, is_active=True).first()
            return _version_dict(v) if v else None

    # --- rename unit of work ---

    def load_document_set(self, project_id: str) -> DocumentSet:
        with self.session() as s:
            p = s.get(Project, project_id)
            if p is None:
                raise NotFoundError(f"Project {project_id} not found")
            bible = safe_json_loads(p.story_bible, None, f"{project_id}.story_bible")
            if not isinstance(bible, dict):
                if p.story_bible:
                    logger.warning("Story bible of %s is unreadable; renaming against an empty bible", project_id)
                bible = empty_story_bible()
            concept = safe_json_loads(p.story_concept, None, f"{project_id}.story_concept")
            docs = DocumentSet(
                project_id=project_id,
                story_concept=concept if isinstance(concept, dict) else None,
                story_bible=bible,
                plot_structure=safe_json_loads(p.plot_structure, None, f"{project_id}.plot_structure"),
            )
            for book in self._books(s, project_id):
                for c in s.query(Chapter).filter_by(book_id=book.id).order_by(Chapter.chapter_number).all():
                    cards = safe_json_loads(c.scene_cards, None, f"{c.id}.scene_cards")
                    readable = isinstance(cards, list)
                    docs.chapters.append(ChapterDocument(
                        id=c.id,
                        book_id=c.book_id,
                        scene_cards=cards if readable else [],
                        scene_cards_fallback=not readable and bool(c.scene_cards),
                        content=c.content,
                        summary=c.summary,
                    ))
            return docs

    def save_document_set(self, docs: DocumentSet) -> int:
        """Write back every changed chapter and project column in one transaction.

        Returns the number of rows written. On failure nothing is kept and
        ``PersistenceError`` is raised.
        """
        if not docs.has_changes:
            return 0
        ts = now_iso()
        written = 0
        try:
            with self.session() as s:
                for chapter in docs.dirty_chapters():
                    written += self._write_chapter(s, chapter, ts)
                if docs.changed_columns:
                    written += self._write_project(s, docs, ts)
        except SQLAlchemyError as e:
            logger.error("Rename write-back failed for %s: %s", docs.project_id, e)
            raise PersistenceError(f"Failed to save renamed documents: {e}") from e
        return written

    def _write_chapter(self, s: Session, chapter: ChapterDocument, ts: str) -> int:
        row = s.get(Chapter, chapter.id)
        if row is None:
            logger.warning("Chapter %s disappeared before rename write-back", chapter.id)
            return 0
        if chapter.scene_cards or not chapter.scene_cards_fallback:
            row.scene_cards = _dumps(chapter.scene_cards)
        else:
            logger.warning("Keeping unreadable scene_cards of chapter %s", chapter.id)
        row.content = chapter.content
        row.summary = chapter.summary
        row.updated_at = ts
        s.flush()
        return 1

    def _write_project(self, s: Session, docs: DocumentSet, ts: str) -> int:
        row = s.get(Project, docs.project_id)
        if row is None:
            raise NotFoundError(f"Project {docs.project_id} not found")
        for col in docs.changed_columns:
            setattr(row, col, _dumps(getattr(docs, col)))
        row.updated_at = ts
        s.flush()
        return 1

    def sync_plot_snapshots(self, project_id: str, plot_structure: Any) -> SnapshotSyncResult:
        """Copy the plot structure into the active version of every book.

        Failures are logged and reported in the result, never raised.
        """
        result = SnapshotSyncResult(attempted=True)
        try:
            with self.session() as s:
                snapshot = _dumps(plot_structure)
                for version in self._active_versions(s, project_id):
                    version.plot_snapshot = snapshot
                    result.synced_versions += 1
                    logger.debug("Synced plot_snapshot to active version %s of book %s", version.id, version.book_id)
        except SQLAlchemyError as e:
            logger.warning("Failed to sync plot_snapshot to active versions of %s: %s", project_id, e)
            result.ok = False
            result.synced_versions = 0
            result.error = str(e)
        return result

    def _books(self, s: Session, project_id: str) -> list[Book]:
        return s.query(Book).filter_by(project_id=project_id).order_by(Book.book_number).all()

    def _active_versions(self, s: Session, project_id: str) -> list[BookVersion]:
        book_ids = [b.id for b in self._books(s, project_id)]
        if not book_ids:
            return []
        return s.query(BookVersion).filter(BookVersion.book_id.in_(book_ids), BookVersion.is_active.is_(True)).all()
