"""Video export job lifecycle: creation, polling access, cancel/delete and worker updates."""

import logging
from datetime import datetime, timezone
from typing import Optional

from config.exceptions import (
    AuthorizationError, EventBusError, JobStateError, NotFoundError, ValidationError,
)
from config.settings import Settings, get_settings
from models.book import Book
from models.database import Database
from models.enums import JobScope, JobStatus, UserTier
from models.job import GenerationJob
from services.event_bus import VIDEO_EXPORT_CANCELLED, VIDEO_EXPORT_STARTED, EventBus
from services.user_service import get_user_tier

logger = logging.getLogger(__name__)

NO_AUDIO_ERROR = (
    "No audio found. Please generate audio for at least one chapter before exporting video."
)


def _now() -> str:
    # Same text format as SQLite CURRENT_TIMESTAMP
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class JobService:
    """All job reads and writes go through here.

    Access rule for books and jobs: the owner, any pro-tier user, or anyone
    when the record belongs to the shared demo account.
    """

    def __init__(
        self,
        db: Database,
        event_bus: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.db = db
        self.event_bus = event_bus or EventBus(self.settings)

    def _has_access(self, owner_id: str, actor_id: str) -> bool:
        if owner_id == actor_id:
            return True
        if owner_id == self.settings.demo_user_id:
            return True
        if get_user_tier(self.db, actor_id) == UserTier.PRO:
            logger.info("Pro user %s accessing record owned by %s", actor_id, owner_id)
            return True
        return False

    def get_book_for_user(self, book_id: int, actor_id: str) -> Book:
        book = self.db.get_book(book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        if not self._has_access(book.user_id, actor_id):
            raise AuthorizationError("Unauthorized - You do not own this book")
        return book

    def get_job_for_user(self, job_id: int, actor_id: str) -> GenerationJob:
        job = self.db.get_job(job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        if not self._has_access(job.user_id, actor_id):
            logger.warning("User %s denied access to job %d owned by %s", actor_id, job_id, job.user_id)
            raise AuthorizationError("Unauthorized - You do not own this job")
        return job

    def list_book_jobs(self, book_id: int, actor_id: str) -> list[GenerationJob]:
        self.get_book_for_user(book_id, actor_id)
        return self.db.list_book_jobs(book_id)

    async def cancel_or_delete(self, job_id: int, actor_id: str) -> str:
        """Cancel an active job or delete a finished one.

        Returns:
            "Job cancelled" or "Job deleted".

        Raises:
            JobStateError: The job finished between the read and the cancel.
        """
        job = self.get_job_for_user(job_id, actor_id)

        if job.is_active:
            await self.event_bus.publish_best_effort(VIDEO_EXPORT_CANCELLED, {"jobId": job_id})
            if not self.db.cancel_job(job_id):
                current = self.db.get_job(job_id)
                status = current.status.value if current else "deleted"
                raise JobStateError(job_id, status)
            logger.info("Job %d cancelled by %s", job_id, actor_id)
            return "Job cancelled"

        self.db.delete_job(job_id)
        logger.info("Job %d (%s) deleted by %s", job_id, job.status.value, actor_id)
        return "Job deleted"

    async def create_export_job(
        self,
        actor_id: str,
        book_id: Optional[int],
        scope: str = "full",
        chapter_number: Optional[int] = None,
        theme: str = "day",
    ) -> tuple[GenerationJob, dict]:
        """Validate, persist a pending job and hand it to the background worker.

        Returns:
            (job, summary) where summary holds client-facing estimates.

        Raises:
            EventBusError: Queueing failed; the job has been marked failed.
        """
        if not book_id:
            raise ValidationError("Missing required field: bookId")
        try:
            job_scope = JobScope(scope or "full")
        except ValueError as e:
            raise ValidationError(f"Invalid scope: {scope}") from e
        if job_scope == JobScope.CHAPTER and not chapter_number:
            raise ValidationError('chapterNumber is required when scope is "chapter"')

        self.get_book_for_user(book_id, actor_id)

        chapters = self.db.get_chapters(book_id)
        with_audio = [ch for ch in chapters if ch.audio_url]
        if not with_audio:
            raise ValidationError(NO_AUDIO_ERROR)

        if job_scope == JobScope.CHAPTER:
            chapter = self.db.get_chapter(book_id, chapter_number)
            if chapter is None or not chapter.audio_url:
                raise ValidationError(
                    f"Chapter {chapter_number} does not have audio. Please generate audio first."
                )
            selected = [chapter]
        else:
            selected = with_audio
            chapter_number = None

        job = GenerationJob(
            book_id=book_id,
            user_id=actor_id,
            status=JobStatus.PENDING,
            scope=job_scope,
            chapter_number=chapter_number,
            theme=theme or "day",
            current_phase="initializing",
            total_chapters=len(selected),
        )
        job.id = self.db.create_job(job)

        try:
            await self.event_bus.publish(VIDEO_EXPORT_STARTED, {
                "jobId": job.id,
                "bookId": book_id,
                "userId": actor_id,
                "scope": job_scope.value,
                "chapterNumber": chapter_number,
                "theme": job.theme,
            })
        except EventBusError as e:
            logger.error("Failed to queue video export job %d: %s", job.id, e)
            self.db.update_job(
                job.id,
                status=JobStatus.FAILED,
                error=f"Failed to queue video export background job. {e.message}",
                completed_at=_now(),
            )
            raise

        logger.info("Started video export job %d for book %d", job.id, book_id)
        total_seconds = sum(ch.audio_duration or 0 for ch in selected)
        summary = {
            "totalChapters": len(selected),
            "estimatedDurationMinutes": round(total_seconds / 60, 1),
        }
        return self.db.get_job(job.id), summary

    # ---- Worker-side transitions ----
    # Each returns False when the job is already terminal (e.g. cancelled),
    # which tells the worker to stop.

    def _require_job(self, job_id: int) -> GenerationJob:
        job = self.db.get_job(job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        return job

    def _update(self, job_id: int, **fields) -> bool:
        self._require_job(job_id)
        updated = self.db.update_job(job_id, **fields)
        if not updated:
            logger.warning("Ignoring update to finished job %d: %s", job_id, sorted(fields))
        return updated

    def start(self, job_id: int, total_frames: Optional[int] = None) -> bool:
        """Move a job to rendering. A job that already started counts as a retry."""
        job = self._require_job(job_id)
        fields = {"status": JobStatus.RENDERING, "current_phase": "rendering", "started_at": _now()}
        if total_frames is not None:
            fields["total_frames"] = total_frames
        if job.started_at is not None:
            fields["retry_count"] = job.retry_count + 1
            logger.info("Restarting job %d (attempt %d)", job_id, fields["retry_count"] + 1)
        return self._update(job_id, **fields)

    def report_progress(
        self,
        job_id: int,
        progress: int,
        current_chapter: Optional[int] = None,
        current_frame: Optional[int] = None,
    ) -> bool:
        fields = {"progress": max(0, min(100, int(progress)))}
        if current_chapter is not None:
            fields["current_chapter"] = current_chapter
        if current_frame is not None:
            fields["current_frame"] = current_frame
        return self._update(job_id, **fields)

    def begin_stitching(self, job_id: int) -> bool:
        return self._update(job_id, status=JobStatus.STITCHING, current_phase="stitching")

    def complete(
        self,
        job_id: int,
        output_url: str,
        output_size: Optional[int] = None,
        output_duration: Optional[int] = None,
    ) -> bool:
        return self._update(
            job_id,
            status=JobStatus.COMPLETED,
            current_phase="complete",
            progress=100,
            output_url=output_url,
            output_size=output_size,
            output_duration=output_duration,
            completed_at=_now(),
        )

    def fail(self, job_id: int, error: str) -> bool:
        return self._update(
            job_id, status=JobStatus.FAILED, error=error, completed_at=_now(),
        )
