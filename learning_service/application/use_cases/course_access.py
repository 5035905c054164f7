from datetime import datetime
from typing import Callable

import structlog

from ...domain.entities import CourseAccess
from ...domain.errors import NotFound, ensure_owner
from ...domain.rules import utcnow
from ..ports import ICatalogRepository, ICourseAccessRepository

logger = structlog.get_logger()


class UpdateCourseAccess:
    def __init__(self, catalog: ICatalogRepository, access: ICourseAccessRepository,
                 clock: Callable[[], datetime] = utcnow):
        self.catalog = catalog
        self.access = access
        self.clock = clock

    def execute(self, actor_id: str | None, user_id: str, course_id: int,
                lesson_id: int | None = None) -> CourseAccess:
        ensure_owner(actor_id, user_id)
        if self.catalog.get_course(course_id) is None:
            raise NotFound("Course not found")
        if lesson_id is not None and self.catalog.course_id_for_lesson(lesson_id) != course_id:
            raise NotFound("Lesson not found in this course")
        record = self.access.touch(user_id, course_id, lesson_id, self.clock())
        logger.debug("course_access_updated", user_id=user_id, course_id=course_id,
                     lesson_id=lesson_id)
        return record


class ListRecentCourses:
    def __init__(self, access: ICourseAccessRepository):
        self.access = access

    def execute(self, actor_id: str | None, user_id: str, limit: int = 10) -> list[CourseAccess]:
        ensure_owner(actor_id, user_id)
        return self.access.list_recent(user_id, limit)
