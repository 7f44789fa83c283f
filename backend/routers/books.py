from fastapi import APIRouter, Depends, HTTPException

from storage.sql_store import SQLStore


def get_store() -> SQLStore:
    from main import store

    return store


router = APIRouter(prefix="/api")


@router.post('/projects/{project_id}/books')
def create_book(project_id: str, body: dict, s: SQLStore = Depends(get_store)):
    title = str(body.get("title", "")).strip()
    if not title:
        raise HTTPException(status_code=400, detail="title is required")
    return s.create_book(project_id, title, body.get("book_number"))


@router.get('/projects/{project_id}/books')
def list_books(project_id: str, s: SQLStore = Depends(get_store)):
    return s.list_books(project_id)


@router.post('/books/{book_id}/chapters')
def create_chapter(book_id: str, body: dict, s: SQLStore = Depends(get_store)):
    cards = body.get("scene_cards", [])
    if not isinstance(cards, list):
        raise HTTPException(status_code=400, detail="scene_cards must be an array")
    try:
        number = int(body.get("chapter_number", 1))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="chapter_number must be an integer")
    return s.create_chapter(book_id, number, body.get("title"), cards, body.get("content"), body.get("summary"))


@router.get('/books/{book_id}/chapters')
def list_chapters(book_id: str, s: SQLStore = Depends(get_store)):
    return s.list_chapters(book_id)


@router.post('/books/{book_id}/versions')
def create_version(book_id: str, body: dict, s: SQLStore = Depends(get_store)):
    return s.create_book_version(book_id, body.get("plot_snapshot"), body.get("version_name"), bool(body.get("activate", True)))


@router.get('/books/{book_id}/versions/active')
def active_version(book_id: str, s: SQLStore = Depends(get_store)):
    v = s.get_active_version(book_id)
    if not v:
        raise HTTPException(status_code=404, detail='No active version')
    return v
