from datetime import datetime
from typing import Callable

import structlog

from ...domain.errors import NotFound, ensure_owner
from ...domain.rules import utcnow
from ...infrastructure.metrics import lesson_completions_total
from ..dto import CompletionResult
from ..ports import ICatalogRepository, IProgressRepository
from .course_progress import RecomputeCourseProgress

logger = structlog.get_logger()


class SetLessonCompletion:
    """Mark or unmark a lesson, then refresh the course progress cache.

    Unmarking deletes the row: only completed lessons are stored, so marking
    again always starts with a fresh ``completed_at``.
    """

    def __init__(self, catalog: ICatalogRepository, progress: IProgressRepository,
                 recompute: RecomputeCourseProgress,
                 clock: Callable[[], datetime] = utcnow):
        self.catalog = catalog
        self.progress = progress
        self.recompute = recompute
        self.clock = clock

    def execute(self, actor_id: str | None, user_id: str, lesson_id: int, completed: bool,
                email: str | None = None) -> CompletionResult:
        ensure_owner(actor_id, user_id)
        course_id = self.catalog.course_id_for_lesson(lesson_id)
        if course_id is None:
            raise NotFound("Lesson not found")

        completed_at = None
        if completed:
            row = self.progress.upsert_completion(user_id, lesson_id, self.clock())
            completed_at = row.completed_at if row else None
        else:
            self.progress.delete_completion(user_id, lesson_id)
        lesson_completions_total.labels(completed=str(completed).lower()).inc()
        logger.info("lesson_completion_set", user_id=user_id, lesson_id=lesson_id,
                    course_id=course_id, completed=completed)

        stats, certificate = self.recompute.execute(user_id, course_id, email=email)
        return CompletionResult(lesson_id=lesson_id, completed=completed,
                                completed_at=completed_at, progress=stats,
                                certificate=certificate)


class IsLessonCompleted:
    def __init__(self, catalog: ICatalogRepository, progress: IProgressRepository):
        self.catalog = catalog
        self.progress = progress

    def execute(self, actor_id: str | None, user_id: str, lesson_id: int) -> bool:
        ensure_owner(actor_id, user_id)
        if self.catalog.course_id_for_lesson(lesson_id) is None:
            raise NotFound("Lesson not found")
        row = self.progress.get_completion(user_id, lesson_id)
        return bool(row and row.completed)
