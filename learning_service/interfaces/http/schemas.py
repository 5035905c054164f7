from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from ...domain.rules import YOUTUBE_ID_RE, extract_youtube_video_id


def _video_id(value: str) -> str:
    video_id = extract_youtube_video_id(value)
    if not YOUTUBE_ID_RE.match(video_id):
        raise ValueError("youtube_video_id must be 11 characters of [A-Za-z0-9_-]")
    return video_id

VideoId = Annotated[str, AfterValidator(_video_id)]

# --- Catalog

class CourseCreate(BaseModel):
    title: str = Field(min_length=3, max_length=100)
    description: str | None = None
    thumbnail_url: str | None = None
    # users to tell about the new course
    notify_user_ids: list[str] = []
    class Config: str_strip_whitespace = True

class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = None
    thumbnail_url: str | None = None
    class Config: str_strip_whitespace = True

class CourseOut(BaseModel):
    id: int
    title: str
    description: str | None = None
    thumbnail_url: str | None = None
    class Config: from_attributes = True

class SectionCreate(BaseModel):
    title: str = Field(min_length=2, max_length=80)
    order: int = 0
    class Config: str_strip_whitespace = True

class SectionUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=2, max_length=80)
    order: int | None = None
    class Config: str_strip_whitespace = True

class LessonCreate(BaseModel):
    title: str = Field(min_length=2, max_length=80)
    youtube_video_id: VideoId
    order: int = 0
    is_preview: bool = False
    class Config: str_strip_whitespace = True

class LessonUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=2, max_length=80)
    youtube_video_id: VideoId | None = None
    order: int | None = None
    is_preview: bool | None = None
    class Config: str_strip_whitespace = True

class LessonOut(BaseModel):
    id: int
    section_id: int
    title: str
    youtube_video_id: str
    order: int
    is_preview: bool
    class Config: from_attributes = True

class SectionOut(BaseModel):
    id: int
    course_id: int
    title: str
    order: int
    lessons: list[LessonOut] = []
    class Config: from_attributes = True

class CourseDetailOut(CourseOut):
    sections: list[SectionOut] = []

# --- Progress

class CompletionReq(BaseModel):
    completed: bool = True

class ProgressStatsOut(BaseModel):
    total_lessons: int
    completed_lessons: int
    progress_percentage: int
    completed_sections: int
    total_sections: int
    class Config: from_attributes = True

class LessonProgressOut(BaseModel):
    lesson_id: int
    completed: bool
    completed_at: datetime | None = None
    class Config: from_attributes = True

class SectionProgressOut(BaseModel):
    section_id: int
    section_title: str
    lessons: list[LessonProgressOut]
    completed_count: int
    total_count: int
    progress_percentage: int
    class Config: from_attributes = True

class NextLessonOut(BaseModel):
    section_id: int
    lesson_id: int
    lesson_title: str
    class Config: from_attributes = True

class LessonStatusOut(BaseModel):
    lesson_id: int
    completed: bool

class StudyMetricsOut(BaseModel):
    total_study_days: int
    average_lessons_per_day: float
    current_streak: int
    longest_streak: int
    class Config: from_attributes = True

class CourseAccessReq(BaseModel):
    lesson_id: int | None = None

class CourseAccessOut(BaseModel):
    course_id: int
    course_title: str | None = None
    last_accessed_at: datetime
    last_lesson_id: int | None = None
    completion_percentage: int
    class Config: from_attributes = True

class HistoryEntryOut(BaseModel):
    completed_at: datetime
    lesson_id: int
    lesson_title: str
    section_id: int
    section_title: str
    course_id: int
    course_title: str
    class Config: from_attributes = True

class DailyStatsOut(BaseModel):
    total_study_days: int
    total_lessons: int
    current_streak: int
    daily_lesson_counts: dict[str, int]
    class Config: from_attributes = True

# --- Certificates

class CertificateOut(BaseModel):
    id: int
    course_id: int
    certificate_number: str
    verification_code: str
    holder_label: str
    issued_at: datetime
    template_design: dict
    course_title: str | None = None
    course_description: str | None = None
    class Config: from_attributes = True

class CertificateVerifyOut(BaseModel):
    valid: bool = True
    certificate_number: str
    verification_code: str
    issued_at: datetime
    holder_label: str
    course_id: int
    course_title: str
    course_description: str | None = None
    class Config: from_attributes = True

class CompletionResp(BaseModel):
    lesson_id: int
    completed: bool
    completed_at: datetime | None = None
    progress: ProgressStatsOut
    certificate: CertificateOut | None = None
    class Config: from_attributes = True

# --- Notifications

class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: str
    data: dict
    read: bool
    action_url: str | None = None
    created_at: datetime
    class Config: from_attributes = True

class UnreadCountOut(BaseModel):
    count: int

class MarkAllReadOut(BaseModel):
    updated: int

# --- Bookmarks

class BookmarkOut(BaseModel):
    course_id: int
    course_title: str | None = None
    course_description: str | None = None
    created_at: datetime
    class Config: from_attributes = True

class BookmarkCountOut(BaseModel):
    count: int
