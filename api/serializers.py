"""camelCase JSON views of the data models."""

from models.book import Book, Chapter
from models.job import GenerationJob
from models.outline import SavedOutline


def job_to_dict(job: GenerationJob) -> dict:
    return {
        "id": job.id,
        "bookId": job.book_id,
        "status": job.status.value,
        "scope": job.scope.value,
        "chapterNumber": job.chapter_number,
        "theme": job.theme,
        "currentPhase": job.current_phase,
        "progress": job.progress,
        "currentChapter": job.current_chapter,
        "totalChapters": job.total_chapters,
        "currentFrame": job.current_frame,
        "totalFrames": job.total_frames,
        "outputUrl": job.output_url,
        "outputSize": job.output_size,
        "outputDuration": job.output_duration,
        "error": job.error,
        "retryCount": job.retry_count,
        "createdAt": job.created_at,
        "startedAt": job.started_at,
        "completedAt": job.completed_at,
    }


def chapter_to_dict(chapter: Chapter) -> dict:
    return {
        "id": chapter.id,
        "number": chapter.number,
        "title": chapter.title,
        "wordCount": chapter.word_count,
        "status": chapter.status.value,
        "audioUrl": chapter.audio_url,
        "audioDuration": chapter.audio_duration,
        "audioMetadata": chapter.audio_metadata,
        "content": chapter.content,
    }


def book_to_dict(book: Book) -> dict:
    metadata = book.metadata or {}
    return {
        "id": book.id,
        "userId": book.user_id,
        "title": book.title,
        "author": book.author,
        "genre": book.genre,
        "summary": book.summary,
        "status": book.status.value,
        "productionStatus": book.production_status,
        "coverUrl": book.cover_url,
        "backCoverUrl": metadata.get("backCoverUrl"),
        "isPublic": book.is_public,
        "metadata": metadata,
        "createdAt": book.created_at,
        "updatedAt": book.updated_at,
    }


def book_detail_to_dict(book: Book, chapters: list[Chapter]) -> dict:
    data = book_to_dict(book)
    metadata = book.metadata or {}
    data["metadata"] = {
        **metadata,
        "wordCount": metadata.get("wordCount", 0),
        "chapters": len(chapters),
        "description": book.summary or "",
    }
    data["chapters"] = [chapter_to_dict(ch) for ch in chapters]
    return data


def saved_outline_to_dict(saved: SavedOutline) -> dict:
    return {
        "id": saved.id,
        "userId": saved.user_id,
        "title": saved.title,
        "outline": saved.outline.to_dict(),
        "config": saved.config,
        "createdAt": saved.created_at,
    }
