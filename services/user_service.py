"""User tier lookups, book quota and promo codes."""

import logging
from dataclasses import dataclass
from typing import Optional

from config.exceptions import NotFoundError, ValidationError
from models.database import Database
from models.enums import UserTier

logger = logging.getLogger(__name__)

# None means unlimited
TIER_MAX_BOOKS: dict[UserTier, Optional[int]] = {
    UserTier.FREE: 1,
    UserTier.PRO: None,
}

PROMO_CODES: dict[str, UserTier] = {
    "powerwrite100": UserTier.PRO,
}


@dataclass
class BookQuota:
    allowed: bool
    tier: UserTier
    books_generated: int
    max_books: Optional[int]
    reason: str = ""


def get_user_tier(db: Database, user_id: Optional[str]) -> UserTier:
    """Unknown users are free tier."""
    if not user_id:
        return UserTier.FREE
    user = db.get_user(user_id)
    return user.tier if user else UserTier.FREE


def can_generate_book(db: Database, user_id: str) -> BookQuota:
    tier = get_user_tier(db, user_id)
    books = db.count_user_books(user_id)
    max_books = TIER_MAX_BOOKS[tier]

    if max_books is not None and books >= max_books:
        return BookQuota(
            allowed=False, tier=tier, books_generated=books, max_books=max_books,
            reason=(
                f"You've reached the free tier limit of {max_books} book. "
                "Upgrade to Pro for unlimited book generation."
            ),
        )
    return BookQuota(allowed=True, tier=tier, books_generated=books, max_books=max_books)


def validate_promo_code(code: str) -> UserTier:
    tier = PROMO_CODES.get((code or "").strip().lower())
    if tier is None:
        raise ValidationError("Invalid promo code")
    return tier


def apply_promo_code(db: Database, user_id: str, code: str) -> dict:
    """Upgrade a user with a promo code and return their refreshed info."""
    if not code or not isinstance(code, str):
        raise ValidationError("Promo code is required")
    tier = validate_promo_code(code)
    if not db.set_user_plan(user_id, tier.value):
        raise NotFoundError("User", user_id)
    logger.info("User %s upgraded to %s with promo code", user_id, tier.value)
    return get_user_info(db, user_id)


def get_user_info(db: Database, user_id: str) -> dict:
    user = db.get_user(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return {
        "id": user.id,
        "email": user.email,
        "tier": user.tier.value,
        "booksGenerated": db.count_user_books(user_id),
        "maxBooks": TIER_MAX_BOOKS[user.tier],
    }
