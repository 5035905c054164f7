from fastapi import APIRouter, Depends, Query, HTTPException, status
from sqlalchemy.orm import Session
from ....application.use_cases.catalog import GetCourse, GetLesson, ListCourses
from ....application.use_cases.notifications import NotificationTrigger
from ....infrastructure.db import get_db
from ....infrastructure.models import Course, Section, Lesson
from ....infrastructure.repositories import CatalogRepository, NotificationRepository, committing
from ..schemas import (
    CourseCreate, CourseDetailOut, CourseOut, CourseUpdate,
    LessonCreate, LessonOut, LessonUpdate,
    SectionCreate, SectionOut, SectionUpdate,
)
from ..authz import require_admin, get_optional_user_id

router = APIRouter(prefix="/api", tags=["courses"])

def _save(db: Session, row):
    with committing(db):
        db.add(row)
    db.refresh(row)
    return row

@router.get("/courses", response_model=list[CourseOut])
def list_courses(db: Session = Depends(get_db),
                 limit: int = Query(10, ge=1, le=100),
                 offset: int = Query(0, ge=0)):
    return ListCourses(CatalogRepository(db)).execute(limit, offset)

@router.get("/courses/{course_id}", response_model=CourseDetailOut)
def get_course(course_id: int, db: Session = Depends(get_db)):
    return GetCourse(CatalogRepository(db)).execute(course_id)

@router.get("/courses/{course_id}/lessons/{lesson_id}", response_model=LessonOut)
def get_lesson(course_id: int, lesson_id: int,
               user_id: str | None = Depends(get_optional_user_id),
               db: Session = Depends(get_db)):
    return GetLesson(CatalogRepository(db)).execute(user_id, course_id, lesson_id)

# --- Admin-only CRUD:

@router.post("/courses", response_model=CourseOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_course(payload: CourseCreate, db: Session = Depends(get_db)):
    row = Course(title=payload.title, description=payload.description,
                 thumbnail_url=payload.thumbnail_url)
    _save(db, row)
    notifier = NotificationTrigger(NotificationRepository(db))
    for user_id in payload.notify_user_ids:
        notifier.new_course(user_id, row.title, row.id)
    return row

@router.put("/courses/{course_id}", response_model=CourseOut, dependencies=[Depends(require_admin)])
def update_course(course_id: int, payload: CourseUpdate, db: Session = Depends(get_db)):
    row = db.get(Course, course_id)
    if not row: raise HTTPException(404, "course not found")
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, field, value)
    return _save(db, row)

@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
def delete_course(course_id: int, db: Session = Depends(get_db)):
    row = db.get(Course, course_id)
    if not row: raise HTTPException(404, "course not found")
    with committing(db):
        db.delete(row)

# --- Section CRUD:

@router.post("/courses/{course_id}/sections", response_model=SectionOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_section(course_id: int, payload: SectionCreate, db: Session = Depends(get_db)):
    if not db.get(Course, course_id): raise HTTPException(404, "course not found")
    row = Section(course_id=course_id, title=payload.title, order=payload.order)
    return _save(db, row)

@router.put("/sections/{section_id}", response_model=SectionOut, dependencies=[Depends(require_admin)])
def update_section(section_id: int, payload: SectionUpdate, db: Session = Depends(get_db)):
    row = db.get(Section, section_id)
    if not row: raise HTTPException(404, "section not found")
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, field, value)
    return _save(db, row)

@router.delete("/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
def delete_section(section_id: int, db: Session = Depends(get_db)):
    row = db.get(Section, section_id)
    if not row: raise HTTPException(404, "section not found")
    with committing(db):
        db.delete(row)

# --- Lesson CRUD:

@router.post("/sections/{section_id}/lessons", response_model=LessonOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_lesson(section_id: int, payload: LessonCreate, db: Session = Depends(get_db)):
    if not db.get(Section, section_id): raise HTTPException(404, "section not found")
    row = Lesson(section_id=section_id, title=payload.title,
                 youtube_video_id=payload.youtube_video_id,
                 order=payload.order, is_preview=payload.is_preview)
    return _save(db, row)

@router.put("/lessons/{lesson_id}", response_model=LessonOut, dependencies=[Depends(require_admin)])
def update_lesson(lesson_id: int, payload: LessonUpdate, db: Session = Depends(get_db)):
    row = db.get(Lesson, lesson_id)
    if not row: raise HTTPException(404, "lesson not found")
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, field, value)
    return _save(db, row)

@router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
def delete_lesson(lesson_id: int, db: Session = Depends(get_db)):
    row = db.get(Lesson, lesson_id)
    if not row: raise HTTPException(404, "lesson not found")
    with committing(db):
        db.delete(row)
