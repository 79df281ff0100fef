"""Video export jobs: create, list per book, poll, cancel or delete."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from api.dependencies import get_actor, get_job_service
from api.errors import error_response
from api.serializers import job_to_dict
from config.exceptions import EventBusError, ValidationError
from services.book_service import parse_book_id
from services.job_service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/generate/video", tags=["video"])


def _optional_int(value, field: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be a number") from e


@router.post("")
async def create_video_export(
    body: dict = Body(default={}),
    actor: str = Depends(get_actor),
    jobs: JobService = Depends(get_job_service),
):
    book_id = _optional_int(body.get("bookId"), "bookId")
    try:
        job, summary = await jobs.create_export_job(
            actor,
            book_id,
            scope=body.get("scope") or "full",
            chapter_number=_optional_int(body.get("chapterNumber"), "chapterNumber"),
            theme=body.get("theme") or "day",
        )
    except EventBusError:
        return error_response(503, "Failed to start video export. Please try again in a moment.")

    return {"success": True, "jobId": job.id, **summary}


@router.get("")
async def list_video_exports(
    book_id: Optional[str] = Query(default=None, alias="bookId"),
    actor: str = Depends(get_actor),
    jobs: JobService = Depends(get_job_service),
):
    if not book_id:
        raise ValidationError("Missing required parameter: bookId")
    book_jobs = jobs.list_book_jobs(parse_book_id(book_id), actor)
    return {"jobs": [job_to_dict(job) for job in book_jobs]}


@router.get("/{job_id}")
async def get_video_export(
    job_id: int,
    actor: str = Depends(get_actor),
    jobs: JobService = Depends(get_job_service),
):
    return job_to_dict(jobs.get_job_for_user(job_id, actor))


@router.delete("/{job_id}")
async def cancel_or_delete_video_export(
    job_id: int,
    actor: str = Depends(get_actor),
    jobs: JobService = Depends(get_job_service),
):
    message = await jobs.cancel_or_delete(job_id, actor)
    return {"success": True, "message": message}
