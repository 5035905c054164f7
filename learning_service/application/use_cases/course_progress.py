from datetime import datetime
from typing import Callable

import structlog

from ...domain.entities import Certificate, Course
from ...domain.errors import NotFound, StoreFailure, ensure_owner
from ...domain.rules import percentage, utcnow
from ..dto import LessonProgress, NextLesson, ProgressStats, SectionProgress
from ..ports import ICatalogRepository, ICourseAccessRepository, IProgressRepository
from .certificates import GenerateCertificate
from .notifications import NotificationTrigger

logger = structlog.get_logger()


def summarize(course: Course, completed_ids: set[int]) -> ProgressStats:
    """Aggregate lesson completions into course-level numbers.

    A section only counts as completed when it has lessons and all of them
    are in ``completed_ids``; an empty section never does.
    """
    lesson_ids = [lesson.id for lesson in course.lessons]
    total = len(lesson_ids)
    done = sum(1 for lesson_id in lesson_ids if lesson_id in completed_ids)
    completed_sections = sum(
        1 for section in course.sections
        if section.lessons and all(l.id in completed_ids for l in section.lessons)
    )
    return ProgressStats(
        total_lessons=total,
        completed_lessons=done,
        progress_percentage=percentage(done, total),
        completed_sections=completed_sections,
        total_sections=len(course.sections),
    )


class _CourseReader:
    def __init__(self, catalog: ICatalogRepository, progress: IProgressRepository):
        self.catalog = catalog
        self.progress = progress

    def _course(self, course_id: int) -> Course:
        course = self.catalog.get_course(course_id)
        if course is None:
            raise NotFound("Course not found")
        return course

    def _completed_ids(self, course: Course, user_id: str) -> set[int]:
        rows = self.progress.completions_for_lessons(user_id, [l.id for l in course.lessons])
        return {r.lesson_id for r in rows if r.completed}


class CalculateCourseProgress(_CourseReader):
    def execute(self, course_id: int, user_id: str | None = None) -> ProgressStats:
        course = self._course(course_id)
        if not user_id:
            # anonymous preview: structure only
            return summarize(course, set())
        return summarize(course, self._completed_ids(course, user_id))


class GetSectionProgress(_CourseReader):
    def execute(self, actor_id: str | None, user_id: str, course_id: int) -> list[SectionProgress]:
        ensure_owner(actor_id, user_id)
        course = self._course(course_id)
        rows = self.progress.completions_for_lessons(user_id, [l.id for l in course.lessons])
        by_lesson = {r.lesson_id: r for r in rows}

        result = []
        for section in course.sections:
            lessons = []
            for lesson in section.lessons:
                row = by_lesson.get(lesson.id)
                lessons.append(LessonProgress(
                    lesson_id=lesson.id,
                    completed=bool(row and row.completed),
                    completed_at=row.completed_at if row else None,
                ))
            done = sum(1 for l in lessons if l.completed)
            result.append(SectionProgress(
                section_id=section.id,
                section_title=section.title,
                lessons=lessons,
                completed_count=done,
                total_count=len(lessons),
                progress_percentage=percentage(done, len(lessons)),
            ))
        return result


class GetNextLesson(_CourseReader):
    def execute(self, actor_id: str | None, user_id: str, course_id: int,
                current_lesson_id: int | None = None) -> NextLesson | None:
        ensure_owner(actor_id, user_id)
        course = self._course(course_id)
        completed = self._completed_ids(course, user_id)
        for section in course.sections:
            for lesson in section.lessons:
                if lesson.id in completed or lesson.id == current_lesson_id:
                    continue
                return NextLesson(section_id=section.id, lesson_id=lesson.id,
                                  lesson_title=lesson.title)
        return None


class RecomputeCourseProgress(_CourseReader):
    """Refresh the cached completion percentage after a completion toggle.

    Reaching 100% from below sends ``course_completion``; at 100% the
    certificate issuer runs too (it returns the existing certificate when
    there already is one).
    """

    def __init__(self, catalog: ICatalogRepository, progress: IProgressRepository,
                 access: ICourseAccessRepository, notifier: NotificationTrigger,
                 issuer: GenerateCertificate | None = None,
                 clock: Callable[[], datetime] = utcnow):
        super().__init__(catalog, progress)
        self.access = access
        self.notifier = notifier
        self.issuer = issuer
        self.clock = clock

    def execute(self, user_id: str, course_id: int,
                email: str | None = None) -> tuple[ProgressStats, Certificate | None]:
        course = self._course(course_id)
        stats = summarize(course, self._completed_ids(course, user_id))

        previous = self.access.get(user_id, course_id)
        self.access.set_completion(user_id, course_id, stats.progress_percentage, self.clock())
        logger.info("course_progress_recomputed", user_id=user_id, course_id=course_id,
                    completed=stats.completed_lessons, total=stats.total_lessons,
                    percentage=stats.progress_percentage)

        certificate = None
        if stats.progress_percentage == 100:
            if previous is None or previous.completion_percentage < 100:
                self.notifier.course_completion(user_id, course.title, course_id)
            if self.issuer is not None:
                try:
                    certificate = self.issuer.execute(user_id, user_id, course_id, email=email)
                except StoreFailure as e:
                    # the toggle is committed; the certificate can be requested later
                    logger.error("certificate_auto_issue_failed", user_id=user_id,
                                 course_id=course_id, error=str(e))
        return stats, certificate
