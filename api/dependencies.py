"""Request-scoped dependencies: collaborators from app.state and the acting user."""

from typing import Optional

from fastapi import Header, Request

from config.exceptions import AuthenticationError
from models.database import Database
from services.ai_service import AIService
from services.book_service import BookService
from services.job_service import JobService


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_job_service(request: Request) -> JobService:
    return JobService(request.app.state.db, request.app.state.event_bus, request.app.state.settings)


def get_book_service(request: Request) -> BookService:
    return BookService(request.app.state.db, request.app.state.settings)


def get_optional_actor(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """The acting user id from the X-User-Id header, if any."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None


def get_actor(x_user_id: Optional[str] = Header(default=None)) -> str:
    actor = get_optional_actor(x_user_id)
    if actor is None:
        raise AuthenticationError()
    return actor


def require_actor(actor: Optional[str], message: str = "Unauthorized") -> str:
    if actor is None:
        raise AuthenticationError(message)
    return actor
