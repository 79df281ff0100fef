"""Generation job data model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.enums import JobScope, JobStatus


@dataclass
class GenerationJob:
    """A tracked video/audio export job with a polled status record."""
    id: Optional[int] = None
    book_id: int = 0
    user_id: str = ""
    status: JobStatus = JobStatus.PENDING
    scope: JobScope = JobScope.FULL
    chapter_number: Optional[int] = None
    theme: str = "day"
    current_phase: str = "initializing"
    progress: int = 0  # 0-100
    current_chapter: int = 0
    total_chapters: int = 0
    current_frame: int = 0
    total_frames: int = 0
    output_url: Optional[str] = None
    output_size: Optional[int] = None
    output_duration: Optional[int] = None
    error: Optional[str] = None
    retry_count: int = 0
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active
