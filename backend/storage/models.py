"""
Relational tables behind the rename engine.

JSON documents (story concept, story bible, plot structure, scene cards,
plot snapshots) are stored as serialized text columns.
"""
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Project(Base):
    __tablename__ = 'projects'

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    story_concept = Column(Text, nullable=True)
    story_bible = Column(Text, nullable=True)
    plot_structure = Column(Text, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class Book(Base):
    __tablename__ = 'books'

    id = Column(String, primary_key=True)
    project_id = Column(String, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    book_number = Column(Integer, nullable=False, default=1)
    title = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class Chapter(Base):
    __tablename__ = 'chapters'

    id = Column(String, primary_key=True)
    book_id = Column(String, ForeignKey('books.id', ondelete='CASCADE'), nullable=False, index=True)
    chapter_number = Column(Integer, nullable=False)
    title = Column(String, nullable=True)
    scene_cards = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class BookVersion(Base):
    """A stored draft of a book; exactly one per book is active."""
    __tablename__ = 'book_versions'

    id = Column(String, primary_key=True)
    book_id = Column(String, ForeignKey('books.id', ondelete='CASCADE'), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    version_name = Column(String, nullable=True)
    plot_snapshot = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False)
