from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Lesson:
    id: int
    section_id: int
    title: str
    youtube_video_id: str
    order: int = 0
    is_preview: bool = False


@dataclass(frozen=True)
class Section:
    id: int
    course_id: int
    title: str
    order: int = 0
    lessons: tuple[Lesson, ...] = ()


@dataclass(frozen=True)
class Course:
    id: int
    title: str
    description: str | None = None
    thumbnail_url: str | None = None
    sections: tuple[Section, ...] = ()

    @property
    def lessons(self) -> list[Lesson]:
        return [lesson for section in self.sections for lesson in section.lessons]


@dataclass(frozen=True)
class LessonCompletion:
    user_id: str
    lesson_id: int
    completed: bool
    completed_at: datetime | None


@dataclass(frozen=True)
class CourseAccess:
    user_id: str
    course_id: int
    last_accessed_at: datetime
    last_lesson_id: int | None
    completion_percentage: int
    updated_at: datetime | None = None
    course_title: str | None = None


@dataclass(frozen=True)
class Certificate:
    id: int
    user_id: str
    course_id: int
    certificate_number: str
    verification_code: str
    holder_label: str
    issued_at: datetime
    template_design: dict = field(default_factory=dict)
    course_title: str | None = None
    course_description: str | None = None


@dataclass(frozen=True)
class Notification:
    id: int
    user_id: str
    type: str
    title: str
    message: str
    data: dict
    read: bool
    action_url: str | None
    created_at: datetime


@dataclass(frozen=True)
class Bookmark:
    user_id: str
    course_id: int
    created_at: datetime
    course_title: str | None = None
    course_description: str | None = None
