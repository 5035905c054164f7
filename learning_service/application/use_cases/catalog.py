from ...domain.entities import Course, Lesson
from ...domain.errors import NotFound, Unauthorized
from ..ports import ICatalogRepository


class ListCourses:
    def __init__(self, catalog: ICatalogRepository):
        self.catalog = catalog

    def execute(self, limit: int = 10, offset: int = 0) -> list[Course]:
        return self.catalog.list_courses(limit, offset)


class GetCourse:
    def __init__(self, catalog: ICatalogRepository):
        self.catalog = catalog

    def execute(self, course_id: int) -> Course:
        course = self.catalog.get_course(course_id)
        if course is None:
            raise NotFound("Course not found")
        return course


class GetLesson:
    """Preview lessons are public; everything else needs a signed-in user."""

    def __init__(self, catalog: ICatalogRepository):
        self.catalog = catalog

    def execute(self, actor_id: str | None, course_id: int, lesson_id: int) -> Lesson:
        lesson = self.catalog.get_lesson(lesson_id)
        if lesson is None or self.catalog.course_id_for_lesson(lesson_id) != course_id:
            raise NotFound("Lesson not found")
        if not lesson.is_preview and not actor_id:
            raise Unauthorized("Sign in to watch this lesson")
        return lesson
