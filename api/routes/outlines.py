"""Saved outline history for the acting user."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from api.dependencies import get_db, get_optional_actor, require_actor
from api.serializers import saved_outline_to_dict
from config.exceptions import ValidationError
from models.database import Database
from models.outline import BookOutline
from services.outline_editor import OutlineHistory

router = APIRouter(prefix="/api/outlines", tags=["outlines"])


def _parse_outline_id(raw) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid outline id") from e


@router.get("")
async def list_outlines(actor: Optional[str] = Depends(get_optional_actor), db: Database = Depends(get_db)):
    history = OutlineHistory(db, require_actor(actor))
    return {"success": True, "outlines": [saved_outline_to_dict(s) for s in history.list_saved()]}


@router.post("")
async def save_outline(
    body: dict = Body(default={}),
    actor: Optional[str] = Depends(get_optional_actor),
    db: Database = Depends(get_db),
):
    history = OutlineHistory(db, require_actor(actor))
    title = body.get("title")
    outline = body.get("outline")
    if not title or not isinstance(outline, dict) or not outline:
        raise ValidationError("Missing required fields: title, outline")
    saved = history.save(BookOutline.from_dict(outline), str(title), body.get("config") or None)
    return {"success": True, "outline": saved_outline_to_dict(saved)}


@router.delete("")
async def delete_outline(
    outline_id: Optional[str] = Query(default=None, alias="id"),
    actor: Optional[str] = Depends(get_optional_actor),
    db: Database = Depends(get_db),
):
    history = OutlineHistory(db, require_actor(actor))
    if not outline_id:
        raise ValidationError("Missing outline id")
    history.delete(_parse_outline_id(outline_id))
    return {"success": True}


@router.get("/{outline_id}")
async def get_outline(
    outline_id: str,
    actor: Optional[str] = Depends(get_optional_actor),
    db: Database = Depends(get_db),
):
    history = OutlineHistory(db, require_actor(actor))
    return {"success": True, "outline": saved_outline_to_dict(history.load(_parse_outline_id(outline_id)))}
