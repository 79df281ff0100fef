"""Account tier endpoints."""

from typing import Optional

from fastapi import APIRouter, Body, Depends

from api.dependencies import get_db, get_optional_actor, require_actor
from models.database import Database
from services.user_service import apply_promo_code, get_user_info

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("")
async def current_user(actor: Optional[str] = Depends(get_optional_actor), db: Database = Depends(get_db)):
    return {"success": True, "user": get_user_info(db, require_actor(actor))}


@router.post("/promo")
async def redeem_promo_code(
    body: dict = Body(default={}),
    actor: Optional[str] = Depends(get_optional_actor),
    db: Database = Depends(get_db),
):
    user = apply_promo_code(db, require_actor(actor), body.get("code"))
    return {"success": True, "message": "Successfully upgraded to Pro tier!", "user": user}
