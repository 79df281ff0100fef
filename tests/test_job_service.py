"""Tests for the video export job lifecycle."""

import pytest

from config.exceptions import (
    AuthorizationError, EventBusError, JobStateError, NotFoundError, ValidationError,
)
from models.book import Book, Chapter
from models.enums import JobScope, JobStatus
from services.event_bus import VIDEO_EXPORT_CANCELLED, VIDEO_EXPORT_STARTED
from services.job_service import NO_AUDIO_ERROR, JobService


@pytest.fixture
def service(db, event_bus, settings):
    return JobService(db, event_bus, settings)


@pytest.fixture
def failing_service(db, failing_event_bus, settings):
    return JobService(db, failing_event_bus, settings)


class TestAccess:
    def test_owner_reads_job(self, service, make_job, owner_id):
        job = make_job()
        assert service.get_job_for_user(job.id, owner_id).id == job.id

    def test_stranger_denied(self, service, make_job):
        job = make_job()
        with pytest.raises(AuthorizationError, match="You do not own this job"):
            service.get_job_for_user(job.id, "stranger")

    def test_pro_user_reads_any_job(self, service, make_job, pro_user):
        job = make_job()
        assert service.get_job_for_user(job.id, pro_user).id == job.id

    def test_demo_owned_records_are_shared(self, service, db, settings):
        book = Book(user_id=settings.demo_user_id, title="Demo Book")
        book.id = db.create_book(book)
        assert service.get_book_for_user(book.id, "anyone").title == "Demo Book"

    def test_missing_job(self, service):
        with pytest.raises(NotFoundError, match="Job not found"):
            service.get_job_for_user(404, "u")

    def test_missing_book(self, service):
        with pytest.raises(NotFoundError, match="Book not found"):
            service.get_book_for_user(404, "u")

    def test_list_book_jobs_checks_book_access(self, service, make_job, sample_book):
        make_job()
        with pytest.raises(AuthorizationError, match="You do not own this book"):
            service.list_book_jobs(sample_book.id, "stranger")

    def test_list_book_jobs(self, service, make_job, sample_book, owner_id):
        first = make_job()
        second = make_job(JobStatus.COMPLETED)
        jobs = service.list_book_jobs(sample_book.id, owner_id)
        assert [j.id for j in jobs] == [second.id, first.id]


class TestCancelOrDelete:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [JobStatus.PENDING, JobStatus.RENDERING, JobStatus.STITCHING])
    async def test_active_job_cancelled(self, service, db, make_job, owner_id, published_events, status):
        job = make_job(status)
        message = await service.cancel_or_delete(job.id, owner_id)

        assert message == "Job cancelled"
        job = db.get_job(job.id)
        assert job.status == JobStatus.CANCELLED
        assert job.completed_at is not None
        assert published_events == [{"name": VIDEO_EXPORT_CANCELLED, "data": {"jobId": job.id}}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED])
    async def test_finished_job_deleted(self, service, db, make_job, owner_id, published_events, status):
        job = make_job(status)
        assert await service.cancel_or_delete(job.id, owner_id) == "Job deleted"
        assert db.get_job(job.id) is None
        assert published_events == []

    @pytest.mark.asyncio
    async def test_cancel_survives_bus_outage(self, failing_service, db, make_job, owner_id):
        job = make_job(JobStatus.RENDERING)
        assert await failing_service.cancel_or_delete(job.id, owner_id) == "Job cancelled"
        assert db.get_job(job.id).status == JobStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_job_finishing_mid_cancel_is_conflict(self, service, db, make_job, owner_id, monkeypatch):
        job = make_job(JobStatus.STITCHING)

        async def finish_then_publish(name, data):
            db.update_job(job.id, status=JobStatus.COMPLETED)
            return True

        monkeypatch.setattr(service.event_bus, "publish_best_effort", finish_then_publish)
        with pytest.raises(JobStateError, match="already completed"):
            await service.cancel_or_delete(job.id, owner_id)
        assert db.get_job(job.id).status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(self, service, db, make_job):
        job = make_job()
        with pytest.raises(AuthorizationError):
            await service.cancel_or_delete(job.id, "stranger")
        assert db.get_job(job.id).status == JobStatus.PENDING


class TestCreateExportJob:
    @pytest.mark.asyncio
    async def test_full_book(self, service, sample_book, owner_id, published_events):
        job, summary = await service.create_export_job(owner_id, sample_book.id)

        assert job.status == JobStatus.PENDING
        assert job.scope == JobScope.FULL
        assert job.total_chapters == 2
        assert job.chapter_number is None
        assert summary == {"totalChapters": 2, "estimatedDurationMinutes": 15.0}

        assert len(published_events) == 1
        event = published_events[0]
        assert event["name"] == VIDEO_EXPORT_STARTED
        assert event["data"]["jobId"] == job.id
        assert event["data"]["scope"] == "full"
        assert event["data"]["theme"] == "day"

    @pytest.mark.asyncio
    async def test_single_chapter(self, service, sample_book, owner_id):
        job, summary = await service.create_export_job(
            owner_id, sample_book.id, scope="chapter", chapter_number=2, theme="night",
        )
        assert job.scope == JobScope.CHAPTER
        assert job.chapter_number == 2
        assert job.theme == "night"
        assert summary == {"totalChapters": 1, "estimatedDurationMinutes": 5.0}

    @pytest.mark.asyncio
    async def test_missing_chapter_number_in_book(self, service, sample_book, owner_id):
        with pytest.raises(ValidationError, match="Chapter 9 does not have audio"):
            await service.create_export_job(owner_id, sample_book.id, scope="chapter", chapter_number=9)

    @pytest.mark.asyncio
    async def test_missing_book_id(self, service, owner_id):
        with pytest.raises(ValidationError, match="bookId"):
            await service.create_export_job(owner_id, None)

    @pytest.mark.asyncio
    async def test_bad_scope(self, service, sample_book, owner_id):
        with pytest.raises(ValidationError, match="Invalid scope"):
            await service.create_export_job(owner_id, sample_book.id, scope="trailer")

    @pytest.mark.asyncio
    async def test_chapter_scope_needs_number(self, service, sample_book, owner_id):
        with pytest.raises(ValidationError, match="chapterNumber is required"):
            await service.create_export_job(owner_id, sample_book.id, scope="chapter")

    @pytest.mark.asyncio
    async def test_chapter_without_audio(self, service, sample_book, owner_id):
        with pytest.raises(ValidationError, match="Chapter 3 does not have audio"):
            await service.create_export_job(owner_id, sample_book.id, scope="chapter", chapter_number=3)

    @pytest.mark.asyncio
    async def test_book_without_audio(self, service, db, owner_id):
        book = Book(user_id=owner_id, title="Silent")
        book.id = db.create_book(book)
        db.create_chapter(Chapter(book_id=book.id, number=1, title="One"))
        with pytest.raises(ValidationError) as exc_info:
            await service.create_export_job(owner_id, book.id)
        assert exc_info.value.message == NO_AUDIO_ERROR

    @pytest.mark.asyncio
    async def test_stranger_cannot_export(self, service, db, sample_book):
        with pytest.raises(AuthorizationError):
            await service.create_export_job("stranger", sample_book.id)
        assert db.list_book_jobs(sample_book.id) == []

    @pytest.mark.asyncio
    async def test_queue_failure_marks_job_failed(self, failing_service, db, sample_book, owner_id):
        with pytest.raises(EventBusError):
            await failing_service.create_export_job(owner_id, sample_book.id)

        jobs = db.list_book_jobs(sample_book.id)
        assert len(jobs) == 1
        assert jobs[0].status == JobStatus.FAILED
        assert jobs[0].error.startswith("Failed to queue video export background job.")
        assert jobs[0].completed_at is not None


class TestWorkerTransitions:
    def test_happy_path(self, service, db, make_job):
        job = make_job()
        assert service.start(job.id, total_frames=900) is True
        assert service.report_progress(job.id, 140, current_chapter=1, current_frame=300) is True

        job = db.get_job(job.id)
        assert job.status == JobStatus.RENDERING
        assert job.progress == 100
        assert job.started_at is not None
        assert job.current_frame == 300

        assert service.begin_stitching(job.id) is True
        assert service.complete(job.id, "https://cdn.test/out.mp4", output_size=1024, output_duration=900)

        job = db.get_job(job.id)
        assert job.status == JobStatus.COMPLETED
        assert job.current_phase == "complete"
        assert job.output_url == "https://cdn.test/out.mp4"

    def test_cancelled_job_refuses_updates(self, service, db, make_job):
        job = make_job(JobStatus.CANCELLED)
        assert service.report_progress(job.id, 50) is False
        assert service.complete(job.id, "https://cdn.test/out.mp4") is False
        assert db.get_job(job.id).status == JobStatus.CANCELLED

    def test_fail(self, service, db, make_job):
        job = make_job(JobStatus.RENDERING)
        assert service.fail(job.id, "ffmpeg exited with 1") is True
        job = db.get_job(job.id)
        assert job.status == JobStatus.FAILED
        assert job.error == "ffmpeg exited with 1"

    def test_unknown_job(self, service):
        with pytest.raises(NotFoundError):
            service.start(999)

    def test_first_start_is_not_a_retry(self, service, db, make_job):
        job = make_job()
        service.start(job.id)
        assert db.get_job(job.id).retry_count == 0

    def test_restart_counts_retry(self, service, db, make_job):
        job = make_job()
        service.start(job.id, total_frames=900)
        service.start(job.id, total_frames=900)
        service.start(job.id)

        job = db.get_job(job.id)
        assert job.retry_count == 2
        assert job.status == JobStatus.RENDERING
        assert job.total_frames == 900
