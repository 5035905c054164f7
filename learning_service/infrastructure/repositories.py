from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..application.dto import HistoryEntry
from ..application.ports import (
    IBookmarkRepository,
    ICatalogRepository,
    ICertificateRepository,
    ICourseAccessRepository,
    INotificationRepository,
    IProgressRepository,
)
from ..domain.entities import (
    Bookmark,
    Certificate,
    Course,
    CourseAccess,
    Lesson,
    LessonCompletion,
    Notification,
    Section,
)
from ..domain.errors import Conflict, StoreFailure
from ..domain.rules import as_utc
from .models import (
    BookmarkORM,
    CertificateORM,
    CourseAccessORM,
    CourseORM,
    LessonCompletionORM,
    LessonORM,
    NotificationORM,
    SectionORM,
)


@contextmanager
def committing(db: Session):
    """Commit on success; roll back and raise a domain error on failure."""
    try:
        yield
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict(str(e.orig)) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreFailure("Storage write failed") from e


def upsert_insert(db: Session, model):
    """Dialect INSERT that supports ON CONFLICT clauses."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


def _opt_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def lesson_to_domain(row: LessonORM) -> Lesson:
    return Lesson(id=row.id, section_id=row.section_id, title=row.title,
                  youtube_video_id=row.youtube_video_id, order=row.order,
                  is_preview=row.is_preview)


def section_to_domain(row: SectionORM, with_lessons: bool = True) -> Section:
    lessons = ()
    if with_lessons:
        ordered = sorted(row.lessons, key=lambda l: (l.order, l.id))
        lessons = tuple(lesson_to_domain(l) for l in ordered)
    return Section(id=row.id, course_id=row.course_id, title=row.title,
                   order=row.order, lessons=lessons)


def course_to_domain(row: CourseORM, with_sections: bool = True) -> Course:
    sections = ()
    if with_sections:
        ordered = sorted(row.sections, key=lambda s: (s.order, s.id))
        sections = tuple(section_to_domain(s) for s in ordered)
    return Course(id=row.id, title=row.title, description=row.description,
                  thumbnail_url=row.thumbnail_url, sections=sections)


def completion_to_domain(row: LessonCompletionORM) -> LessonCompletion:
    return LessonCompletion(user_id=row.user_id, lesson_id=row.lesson_id,
                            completed=row.completed,
                            completed_at=_opt_utc(row.completed_at))


def access_to_domain(row: CourseAccessORM, course_title: str | None = None) -> CourseAccess:
    return CourseAccess(user_id=row.user_id, course_id=row.course_id,
                        last_accessed_at=as_utc(row.last_accessed_at),
                        last_lesson_id=row.last_lesson_id,
                        completion_percentage=row.completion_percentage,
                        updated_at=_opt_utc(row.updated_at),
                        course_title=course_title)


def certificate_to_domain(row: CertificateORM) -> Certificate:
    course = row.course
    return Certificate(id=row.id, user_id=row.user_id, course_id=row.course_id,
                       certificate_number=row.certificate_number,
                       verification_code=row.verification_code,
                       holder_label=row.holder_label,
                       issued_at=as_utc(row.issued_at),
                       template_design=dict(row.template_design or {}),
                       course_title=course.title if course else None,
                       course_description=course.description if course else None)


def bookmark_to_domain(row: BookmarkORM, course: CourseORM | None = None) -> Bookmark:
    return Bookmark(user_id=row.user_id, course_id=row.course_id,
                    created_at=as_utc(row.created_at),
                    course_title=course.title if course else None,
                    course_description=course.description if course else None)


def notification_to_domain(row: NotificationORM) -> Notification:
    return Notification(id=row.id, user_id=row.user_id, type=row.type,
                        title=row.title, message=row.message,
                        data=dict(row.data or {}), read=row.read,
                        action_url=row.action_url,
                        created_at=as_utc(row.created_at))


class CatalogRepository(ICatalogRepository):
    def __init__(self, db: Session): self.db = db

    def get_course(self, course_id: int) -> Course | None:
        q = (select(CourseORM)
             .where(CourseORM.id == course_id)
             .options(selectinload(CourseORM.sections).selectinload(SectionORM.lessons)))
        row = self.db.execute(q).scalar_one_or_none()
        return course_to_domain(row) if row else None

    def list_courses(self, limit: int, offset: int) -> list[Course]:
        q = select(CourseORM).order_by(CourseORM.id).limit(limit).offset(offset)
        return [course_to_domain(r, with_sections=False) for r in self.db.execute(q).scalars()]

    def get_lesson(self, lesson_id: int) -> Lesson | None:
        row = self.db.get(LessonORM, lesson_id)
        return lesson_to_domain(row) if row else None

    def course_id_for_lesson(self, lesson_id: int) -> int | None:
        q = (select(SectionORM.course_id)
             .join(LessonORM, LessonORM.section_id == SectionORM.id)
             .where(LessonORM.id == lesson_id))
        return self.db.execute(q).scalar_one_or_none()


class ProgressRepository(IProgressRepository):
    def __init__(self, db: Session): self.db = db

    def upsert_completion(self, user_id: str, lesson_id: int, completed_at: datetime) -> LessonCompletion:
        # one row per (user, lesson); re-marking refreshes completed_at
        stmt = upsert_insert(self.db, LessonCompletionORM).values(
            user_id=user_id, lesson_id=lesson_id, completed=True, completed_at=completed_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "lesson_id"],
            set_={"completed": True, "completed_at": completed_at},
        )
        with committing(self.db):
            self.db.execute(stmt)
        return self.get_completion(user_id, lesson_id)

    def delete_completion(self, user_id: str, lesson_id: int) -> bool:
        row = self.db.execute(
            select(LessonCompletionORM).where(LessonCompletionORM.user_id == user_id,
                                              LessonCompletionORM.lesson_id == lesson_id)
        ).scalar_one_or_none()
        if row is None:
            return False
        with committing(self.db):
            self.db.delete(row)
        return True

    def get_completion(self, user_id: str, lesson_id: int) -> LessonCompletion | None:
        row = self.db.execute(
            select(LessonCompletionORM).where(LessonCompletionORM.user_id == user_id,
                                              LessonCompletionORM.lesson_id == lesson_id)
        ).scalar_one_or_none()
        return completion_to_domain(row) if row else None

    def completions_for_lessons(self, user_id: str, lesson_ids: list[int]) -> list[LessonCompletion]:
        if not lesson_ids:
            return []
        q = select(LessonCompletionORM).where(
            LessonCompletionORM.user_id == user_id,
            LessonCompletionORM.completed.is_(True),
            LessonCompletionORM.lesson_id.in_(lesson_ids),
        )
        return [completion_to_domain(r) for r in self.db.execute(q).scalars()]

    def completions_between(self, user_id: str, since: datetime, until: datetime | None = None,
                            course_id: int | None = None) -> list[LessonCompletion]:
        q = select(LessonCompletionORM).where(
            LessonCompletionORM.user_id == user_id,
            LessonCompletionORM.completed.is_(True),
            LessonCompletionORM.completed_at.is_not(None),
            LessonCompletionORM.completed_at >= since,
        )
        if until is not None:
            q = q.where(LessonCompletionORM.completed_at < until)
        if course_id is not None:
            q = (q.join(LessonORM, LessonORM.id == LessonCompletionORM.lesson_id)
                  .join(SectionORM, SectionORM.id == LessonORM.section_id)
                  .where(SectionORM.course_id == course_id))
        q = q.order_by(LessonCompletionORM.completed_at.asc())
        return [completion_to_domain(r) for r in self.db.execute(q).scalars()]

    def history(self, user_id: str, since: datetime, until: datetime | None = None,
                newest_first: bool = True) -> list[HistoryEntry]:
        q = (select(LessonCompletionORM.completed_at,
                    LessonORM.id, LessonORM.title,
                    SectionORM.id, SectionORM.title,
                    CourseORM.id, CourseORM.title)
             .join(LessonORM, LessonORM.id == LessonCompletionORM.lesson_id)
             .join(SectionORM, SectionORM.id == LessonORM.section_id)
             .join(CourseORM, CourseORM.id == SectionORM.course_id)
             .where(LessonCompletionORM.user_id == user_id,
                    LessonCompletionORM.completed.is_(True),
                    LessonCompletionORM.completed_at.is_not(None),
                    LessonCompletionORM.completed_at >= since))
        if until is not None:
            q = q.where(LessonCompletionORM.completed_at < until)
        order = LessonCompletionORM.completed_at
        q = q.order_by(order.desc() if newest_first else order.asc())
        return [
            HistoryEntry(completed_at=as_utc(r[0]), lesson_id=r[1], lesson_title=r[2],
                         section_id=r[3], section_title=r[4],
                         course_id=r[5], course_title=r[6])
            for r in self.db.execute(q).all()
        ]


class CourseAccessRepository(ICourseAccessRepository):
    def __init__(self, db: Session): self.db = db

    def _row(self, user_id: str, course_id: int) -> CourseAccessORM | None:
        return self.db.execute(
            select(CourseAccessORM).where(CourseAccessORM.user_id == user_id,
                                          CourseAccessORM.course_id == course_id)
        ).scalar_one_or_none()

    def _apply(self, user_id: str, course_id: int, apply) -> CourseAccess:
        with committing(self.db):
            row = self._row(user_id, course_id)
            if row is None:
                row = CourseAccessORM(user_id=user_id, course_id=course_id, completion_percentage=0)
                self.db.add(row)
            apply(row)
            self.db.flush()
            access = access_to_domain(row)
        return access

    def _save(self, user_id: str, course_id: int, apply) -> CourseAccess:
        try:
            return self._apply(user_id, course_id, apply)
        except Conflict:
            # a concurrent request created the row first
            return self._apply(user_id, course_id, apply)

    def get(self, user_id: str, course_id: int) -> CourseAccess | None:
        row = self._row(user_id, course_id)
        return access_to_domain(row) if row else None

    def touch(self, user_id: str, course_id: int, lesson_id: int | None, at: datetime) -> CourseAccess:
        def apply(row: CourseAccessORM):
            row.last_accessed_at = at
            if lesson_id is not None:
                row.last_lesson_id = lesson_id
        return self._save(user_id, course_id, apply)

    def set_completion(self, user_id: str, course_id: int, percentage: int, at: datetime) -> CourseAccess:
        def apply(row: CourseAccessORM):
            if row.last_accessed_at is None:
                row.last_accessed_at = at
            row.completion_percentage = percentage
            row.updated_at = at
        return self._save(user_id, course_id, apply)

    def list_recent(self, user_id: str, limit: int) -> list[CourseAccess]:
        q = (select(CourseAccessORM, CourseORM.title)
             .join(CourseORM, CourseORM.id == CourseAccessORM.course_id)
             .where(CourseAccessORM.user_id == user_id)
             .order_by(CourseAccessORM.last_accessed_at.desc())
             .limit(limit))
        return [access_to_domain(row, title) for row, title in self.db.execute(q).all()]


class CertificateRepository(ICertificateRepository):
    def __init__(self, db: Session): self.db = db

    def get_for(self, user_id: str, course_id: int) -> Certificate | None:
        row = self.db.execute(
            select(CertificateORM).where(CertificateORM.user_id == user_id,
                                         CertificateORM.course_id == course_id)
        ).scalar_one_or_none()
        return certificate_to_domain(row) if row else None

    def get(self, certificate_id: int) -> Certificate | None:
        row = self.db.get(CertificateORM, certificate_id)
        return certificate_to_domain(row) if row else None

    def get_by_verification_code(self, code: str) -> Certificate | None:
        row = self.db.execute(
            select(CertificateORM).where(CertificateORM.verification_code == code)
        ).scalar_one_or_none()
        return certificate_to_domain(row) if row else None

    def list_for_user(self, user_id: str) -> list[Certificate]:
        q = (select(CertificateORM)
             .where(CertificateORM.user_id == user_id)
             .order_by(CertificateORM.issued_at.desc(), CertificateORM.id.desc()))
        return [certificate_to_domain(r) for r in self.db.execute(q).scalars()]

    def insert(self, user_id: str, course_id: int, certificate_number: str,
               verification_code: str, holder_label: str, issued_at: datetime) -> Certificate:
        row = CertificateORM(user_id=user_id, course_id=course_id,
                             certificate_number=certificate_number,
                             verification_code=verification_code,
                             holder_label=holder_label, issued_at=issued_at)
        with committing(self.db):
            self.db.add(row)
            self.db.flush()
            cert = certificate_to_domain(row)
        return cert


class NotificationRepository(INotificationRepository):
    def __init__(self, db: Session): self.db = db

    def create(self, user_id: str, type: str, title: str, message: str,
               data: dict, action_url: str | None) -> Notification:
        row = NotificationORM(user_id=user_id, type=type, title=title, message=message,
                              data=data, action_url=action_url)
        with committing(self.db):
            self.db.add(row)
            self.db.flush()
            notification = notification_to_domain(row)
        return notification

    def get(self, notification_id: int) -> Notification | None:
        row = self.db.get(NotificationORM, notification_id)
        return notification_to_domain(row) if row else None

    def list_for_user(self, user_id: str, limit: int) -> list[Notification]:
        q = (select(NotificationORM)
             .where(NotificationORM.user_id == user_id)
             .order_by(NotificationORM.created_at.desc(), NotificationORM.id.desc())
             .limit(limit))
        return [notification_to_domain(r) for r in self.db.execute(q).scalars()]

    def unread_count(self, user_id: str) -> int:
        q = (select(func.count(NotificationORM.id))
             .where(NotificationORM.user_id == user_id, NotificationORM.read.is_(False)))
        return self.db.execute(q).scalar_one()

    def mark_read(self, notification_id: int) -> None:
        with committing(self.db):
            self.db.execute(update(NotificationORM)
                            .where(NotificationORM.id == notification_id)
                            .values(read=True)
                            .execution_options(synchronize_session=False))

    def mark_all_read(self, user_id: str) -> int:
        with committing(self.db):
            result = self.db.execute(update(NotificationORM)
                                     .where(NotificationORM.user_id == user_id,
                                            NotificationORM.read.is_(False))
                                     .values(read=True)
                                     .execution_options(synchronize_session=False))
        return result.rowcount or 0

    def delete(self, notification_id: int) -> None:
        row = self.db.get(NotificationORM, notification_id)
        if row is None:
            return
        with committing(self.db):
            self.db.delete(row)


class BookmarkRepository(IBookmarkRepository):
    def __init__(self, db: Session): self.db = db

    def add(self, user_id: str, course_id: int, at: datetime) -> Bookmark:
        # bookmarking twice keeps the first row and its created_at
        stmt = (upsert_insert(self.db, BookmarkORM)
                .values(user_id=user_id, course_id=course_id, created_at=at)
                .on_conflict_do_nothing(index_elements=["user_id", "course_id"]))
        with committing(self.db):
            self.db.execute(stmt)
        return self.get(user_id, course_id)

    def remove(self, user_id: str, course_id: int) -> bool:
        row = self.db.execute(
            select(BookmarkORM).where(BookmarkORM.user_id == user_id,
                                      BookmarkORM.course_id == course_id)
        ).scalar_one_or_none()
        if row is None:
            return False
        with committing(self.db):
            self.db.delete(row)
        return True

    def get(self, user_id: str, course_id: int) -> Bookmark | None:
        q = (select(BookmarkORM, CourseORM)
             .join(CourseORM, CourseORM.id == BookmarkORM.course_id)
             .where(BookmarkORM.user_id == user_id, BookmarkORM.course_id == course_id))
        found = self.db.execute(q).first()
        return bookmark_to_domain(*found) if found else None

    def list_for_user(self, user_id: str, limit: int) -> list[Bookmark]:
        q = (select(BookmarkORM, CourseORM)
             .join(CourseORM, CourseORM.id == BookmarkORM.course_id)
             .where(BookmarkORM.user_id == user_id)
             .order_by(BookmarkORM.created_at.desc(), BookmarkORM.id.desc())
             .limit(limit))
        return [bookmark_to_domain(row, course) for row, course in self.db.execute(q).all()]

    def count(self, user_id: str) -> int:
        q = select(func.count(BookmarkORM.id)).where(BookmarkORM.user_id == user_id)
        return self.db.execute(q).scalar_one()
