from datetime import datetime

from ..domain.entities import (
    Bookmark,
    Certificate,
    Course,
    CourseAccess,
    Lesson,
    LessonCompletion,
    Notification,
)
from .dto import HistoryEntry


class ICatalogRepository:
    def get_course(self, course_id: int) -> Course | None: ...
    def list_courses(self, limit: int, offset: int) -> list[Course]: ...
    def get_lesson(self, lesson_id: int) -> Lesson | None: ...
    def course_id_for_lesson(self, lesson_id: int) -> int | None: ...


class IProgressRepository:
    def upsert_completion(self, user_id: str, lesson_id: int, completed_at: datetime) -> LessonCompletion: ...
    def delete_completion(self, user_id: str, lesson_id: int) -> bool: ...
    def get_completion(self, user_id: str, lesson_id: int) -> LessonCompletion | None: ...
    def completions_for_lessons(self, user_id: str, lesson_ids: list[int]) -> list[LessonCompletion]: ...
    def completions_between(
        self, user_id: str, since: datetime, until: datetime | None = None,
        course_id: int | None = None,
    ) -> list[LessonCompletion]: ...
    def history(
        self, user_id: str, since: datetime, until: datetime | None = None,
        newest_first: bool = True,
    ) -> list[HistoryEntry]: ...


class ICourseAccessRepository:
    def get(self, user_id: str, course_id: int) -> CourseAccess | None: ...
    def touch(self, user_id: str, course_id: int, lesson_id: int | None, at: datetime) -> CourseAccess: ...
    def set_completion(self, user_id: str, course_id: int, percentage: int, at: datetime) -> CourseAccess: ...
    def list_recent(self, user_id: str, limit: int) -> list[CourseAccess]: ...


class ICertificateRepository:
    def get_for(self, user_id: str, course_id: int) -> Certificate | None: ...
    def get(self, certificate_id: int) -> Certificate | None: ...
    def get_by_verification_code(self, code: str) -> Certificate | None: ...
    def list_for_user(self, user_id: str) -> list[Certificate]: ...
    def insert(
        self, user_id: str, course_id: int, certificate_number: str,
        verification_code: str, holder_label: str, issued_at: datetime,
    ) -> Certificate: ...


class INotificationRepository:
    def create(
        self, user_id: str, type: str, title: str, message: str,
        data: dict, action_url: str | None,
    ) -> Notification: ...
    def get(self, notification_id: int) -> Notification | None: ...
    def list_for_user(self, user_id: str, limit: int) -> list[Notification]: ...
    def unread_count(self, user_id: str) -> int: ...
    def mark_read(self, notification_id: int) -> None: ...
    def mark_all_read(self, user_id: str) -> int: ...
    def delete(self, notification_id: int) -> None: ...


class IBookmarkRepository:
    def add(self, user_id: str, course_id: int, at: datetime) -> Bookmark: ...
    def remove(self, user_id: str, course_id: int) -> bool: ...
    def get(self, user_id: str, course_id: int) -> Bookmark | None: ...
    def list_for_user(self, user_id: str, limit: int) -> list[Bookmark]: ...
    def count(self, user_id: str) -> int: ...
