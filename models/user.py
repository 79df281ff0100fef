"""User data model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.enums import UserTier

PRO_PLANS = frozenset({"pro", "professional", "enterprise"})


@dataclass
class User:
    """Represents an account; `plan` is the stored billing plan."""
    id: str = ""
    email: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    plan: str = "starter"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def tier(self) -> UserTier:
        return UserTier.PRO if self.plan in PRO_PLANS else UserTier.FREE
