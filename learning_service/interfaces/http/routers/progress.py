from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ....application.use_cases.certificates import GenerateCertificate
from ....application.use_cases.course_access import ListRecentCourses, UpdateCourseAccess
from ....application.use_cases.course_progress import (
    CalculateCourseProgress, GetNextLesson, GetSectionProgress, RecomputeCourseProgress,
)
from ....application.use_cases.learning_history import (
    GetDailyHistory, GetDailyStats, GetLearningHistory,
)
from ....application.use_cases.lesson_completion import IsLessonCompleted, SetLessonCompletion
from ....application.use_cases.notifications import NotificationTrigger
from ....application.use_cases.study_metrics import GetStudyMetrics
from ....config import settings
from ....infrastructure.db import get_db
from ....infrastructure.repositories import (
    CatalogRepository, CertificateRepository, CourseAccessRepository,
    NotificationRepository, ProgressRepository,
)
from ..authz import get_optional_user_id, get_user_email, get_user_id
from ..schemas import (
    CompletionReq, CompletionResp, CourseAccessOut, CourseAccessReq, DailyStatsOut,
    HistoryEntryOut, LessonStatusOut, NextLessonOut, ProgressStatsOut,
    SectionProgressOut, StudyMetricsOut,
)

router = APIRouter(prefix="/api/progress", tags=["progress"])

def _set_completion(db: Session) -> SetLessonCompletion:
    catalog = CatalogRepository(db)
    progress = ProgressRepository(db)
    access = CourseAccessRepository(db)
    notifier = NotificationTrigger(NotificationRepository(db))
    issuer = None
    if settings.AUTO_ISSUE_CERTIFICATES:
        issuer = GenerateCertificate(catalog, access, CertificateRepository(db), notifier,
                                     max_attempts=settings.CERTIFICATE_CODE_MAX_ATTEMPTS)
    recompute = RecomputeCourseProgress(catalog, progress, access, notifier, issuer=issuer)
    return SetLessonCompletion(catalog, progress, recompute)

@router.put("/lessons/{lesson_id}", response_model=CompletionResp)
def set_lesson_completion(
    lesson_id: int,
    payload: CompletionReq,
    user_id: str = Depends(get_user_id),
    email: str | None = Depends(get_user_email),
    db: Session = Depends(get_db),
):
    # idempotent: the same state twice leaves the same single row
    return _set_completion(db).execute(user_id, user_id, lesson_id, payload.completed, email=email)

@router.get("/lessons/{lesson_id}", response_model=LessonStatusOut)
def lesson_status(
    lesson_id: int,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = IsLessonCompleted(CatalogRepository(db), ProgressRepository(db))
    completed = uc.execute(user_id, user_id, lesson_id)
    return LessonStatusOut(lesson_id=lesson_id, completed=completed)

@router.get("/courses/{course_id}", response_model=ProgressStatsOut)
def course_progress(
    course_id: int,
    user_id: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    uc = CalculateCourseProgress(CatalogRepository(db), ProgressRepository(db))
    return uc.execute(course_id, user_id)

@router.get("/courses/{course_id}/sections", response_model=list[SectionProgressOut])
def section_progress(
    course_id: int,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = GetSectionProgress(CatalogRepository(db), ProgressRepository(db))
    return uc.execute(user_id, user_id, course_id)

@router.get("/courses/{course_id}/next", response_model=NextLessonOut | None)
def next_lesson(
    course_id: int,
    current_lesson_id: int | None = Query(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = GetNextLesson(CatalogRepository(db), ProgressRepository(db))
    return uc.execute(user_id, user_id, course_id, current_lesson_id)

@router.post("/courses/{course_id}/access", response_model=CourseAccessOut)
def course_access(
    course_id: int,
    payload: CourseAccessReq,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = UpdateCourseAccess(CatalogRepository(db), CourseAccessRepository(db))
    return uc.execute(user_id, user_id, course_id, payload.lesson_id)

@router.get("/recent", response_model=list[CourseAccessOut])
def recent_courses(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    limit: int = Query(10, ge=1, le=50),
):
    return ListRecentCourses(CourseAccessRepository(db)).execute(user_id, user_id, limit)

# --- per-user dashboards; the path user must be the caller

@router.get("/users/{user_id}/metrics", response_model=StudyMetricsOut)
def study_metrics(
    user_id: str,
    course_id: int | None = Query(None),
    timeframe_in_days: int = Query(settings.STUDY_METRICS_DEFAULT_DAYS, ge=1, le=3650),
    actor_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = GetStudyMetrics(ProgressRepository(db), tz=settings.STUDY_DAY_TIMEZONE)
    return uc.execute(actor_id, user_id, course_id, timeframe_in_days)

@router.get("/users/{user_id}/history", response_model=list[HistoryEntryOut])
def learning_history(
    user_id: str,
    actor_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = GetLearningHistory(ProgressRepository(db), days=settings.LEARNING_HISTORY_DAYS)
    return uc.execute(actor_id, user_id)

@router.get("/users/{user_id}/history/daily", response_model=list[HistoryEntryOut])
def daily_history(
    user_id: str,
    day: date = Query(..., alias="date"),
    actor_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = GetDailyHistory(ProgressRepository(db), tz=settings.STUDY_DAY_TIMEZONE)
    return uc.execute(actor_id, user_id, day)

@router.get("/users/{user_id}/history/stats", response_model=DailyStatsOut)
def daily_stats(
    user_id: str,
    actor_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    uc = GetDailyStats(ProgressRepository(db), tz=settings.STUDY_DAY_TIMEZONE)
    return uc.execute(actor_id, user_id)
