"""Book library, editing, duplication, showcase and export endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Response

from api.dependencies import get_actor, get_book_service, get_db, get_optional_actor, require_actor
from api.serializers import book_detail_to_dict, book_to_dict
from models.database import Database
from services.book_service import BookService, parse_book_id
from services.user_service import get_user_tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/books", tags=["books"])


@router.get("")
async def list_books(actor: Optional[str] = Depends(get_optional_actor), db: Database = Depends(get_db)):
    actor = require_actor(actor)
    books = db.list_user_books(actor)
    return {
        "success": True,
        "tier": get_user_tier(db, actor).value,
        "books": [book_to_dict(book) for book in books],
    }


@router.get("/showcase")
async def list_showcase(db: Database = Depends(get_db)):
    return {"success": True, "books": [book_to_dict(book) for book in db.list_public_books()]}


@router.post("/export")
async def export_book(
    body: dict = Body(default={}),
    actor: str = Depends(get_actor),
    books: BookService = Depends(get_book_service),
):
    result = books.export(actor, body.get("bookId"), body.get("format"))
    return Response(
        content=result.content,
        media_type=result.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.get("/{book_id}")
async def get_book(book_id: str, books: BookService = Depends(get_book_service)):
    book, chapters = books.get_book_with_chapters(parse_book_id(book_id))
    return {"success": True, "book": book_detail_to_dict(book, chapters)}


@router.patch("/{book_id}")
async def update_book(
    book_id: str,
    body: dict = Body(default={}),
    books: BookService = Depends(get_book_service),
):
    book = books.update_book(parse_book_id(book_id), body)
    return {"success": True, "book": book_to_dict(book)}


@router.delete("/{book_id}")
async def delete_book(book_id: str, books: BookService = Depends(get_book_service)):
    books.delete_book(parse_book_id(book_id))
    return {"success": True, "message": "Book deleted successfully"}


@router.put("/{book_id}/chapters")
async def save_chapters(
    book_id: str,
    body: dict = Body(default={}),
    books: BookService = Depends(get_book_service),
):
    saved = books.save_chapters(parse_book_id(book_id), body.get("chapters"))
    return {
        "success": True,
        "message": "Chapters updated successfully",
        "chapters": [
            {"id": ch.id, "number": ch.number, "title": ch.title, "wordCount": ch.word_count}
            for ch in saved
        ],
    }


@router.post("/{book_id}/duplicate")
async def duplicate_book(
    book_id: str,
    body: dict = Body(default={}),
    books: BookService = Depends(get_book_service),
):
    copy = books.duplicate_book(parse_book_id(book_id), body.get("userId"))
    return {"success": True, "book": book_to_dict(copy), "message": "Book duplicated successfully"}


@router.post("/{book_id}/showcase")
async def add_to_showcase(
    book_id: str,
    actor: Optional[str] = Depends(get_optional_actor),
    books: BookService = Depends(get_book_service),
):
    require_actor(actor)
    book = books.set_showcase(parse_book_id(book_id), True)
    return {
        "success": True,
        "message": "Book added to showcase",
        "book": {"id": book.id, "isPublic": book.is_public},
    }


@router.delete("/{book_id}/showcase")
async def remove_from_showcase(
    book_id: str,
    actor: Optional[str] = Depends(get_optional_actor),
    books: BookService = Depends(get_book_service),
):
    require_actor(actor)
    book = books.set_showcase(parse_book_id(book_id), False)
    return {
        "success": True,
        "message": "Book removed from showcase",
        "book": {"id": book.id, "isPublic": book.is_public},
    }
