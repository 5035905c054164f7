from dataclasses import dataclass, field
from datetime import datetime

from ..domain.entities import Certificate


@dataclass
class ProgressStats:
    total_lessons: int
    completed_lessons: int
    progress_percentage: int
    completed_sections: int
    total_sections: int


@dataclass
class LessonProgress:
    lesson_id: int
    completed: bool
    completed_at: datetime | None


@dataclass
class SectionProgress:
    section_id: int
    section_title: str
    lessons: list[LessonProgress]
    completed_count: int
    total_count: int
    progress_percentage: int


@dataclass
class NextLesson:
    section_id: int
    lesson_id: int
    lesson_title: str


@dataclass
class StudyMetrics:
    total_study_days: int
    average_lessons_per_day: float
    current_streak: int
    longest_streak: int


@dataclass
class CompletionResult:
    lesson_id: int
    completed: bool
    completed_at: datetime | None
    progress: ProgressStats
    certificate: Certificate | None = None


@dataclass
class CertificateView:
    """Public verification payload; carries no owner identifier."""
    certificate_number: str
    verification_code: str
    issued_at: datetime
    holder_label: str
    course_id: int
    course_title: str
    course_description: str | None = None


@dataclass
class HistoryEntry:
    completed_at: datetime
    lesson_id: int
    lesson_title: str
    section_id: int
    section_title: str
    course_id: int
    course_title: str


@dataclass
class DailyStats:
    total_study_days: int
    total_lessons: int
    current_streak: int
    daily_lesson_counts: dict[str, int] = field(default_factory=dict)
