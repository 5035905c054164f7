# learning_service/infrastructure/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Boolean,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..domain.rules import utcnow
from .db import Base


DEFAULT_TEMPLATE_DESIGN = {
    "theme": "modern",
    "colors": {"primary": "#2563eb", "secondary": "#64748b", "accent": "#f59e0b"},
}


class CourseORM(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

    sections: Mapped[list["SectionORM"]] = relationship(
        "SectionORM",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[SectionORM.order, SectionORM.id]",
    )

    def __repr__(self) -> str:
        return f"CourseORM(id={self.id!r}, title={self.title!r})"


class SectionORM(Base):
    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(80), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

    course: Mapped["CourseORM"] = relationship("CourseORM", back_populates="sections")
    lessons: Mapped[list["LessonORM"]] = relationship(
        "LessonORM",
        back_populates="section",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[LessonORM.order, LessonORM.id]",
    )

    def __repr__(self) -> str:
        return f"SectionORM(id={self.id!r}, course_id={self.course_id!r}, title={self.title!r})"


class LessonORM(Base):
    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(80), nullable=False)
    youtube_video_id: Mapped[str] = mapped_column(String(11), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_preview: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

    section: Mapped["SectionORM"] = relationship("SectionORM", back_populates="lessons")

    def __repr__(self) -> str:
        return f"LessonORM(id={self.id!r}, section_id={self.section_id!r}, title={self.title!r})"


class LessonCompletionORM(Base):
    __tablename__ = "lesson_completions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)  # JWT sub
    lesson_id: Mapped[int] = mapped_column(
        ForeignKey("lessons.id", ondelete="CASCADE"),
        index=True,
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
    )
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson"),)


class CourseAccessORM(Base):
    __tablename__ = "course_access"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        index=True,
    )
    last_accessed_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)
    last_lesson_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow
    )

    course: Mapped["CourseORM"] = relationship("CourseORM")

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_course_access"),)


class CertificateORM(Base):
    __tablename__ = "certificates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        index=True,
    )
    certificate_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    verification_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    holder_label: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)
    template_design: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=lambda: dict(DEFAULT_TEMPLATE_DESIGN)
    )

    course: Mapped["CourseORM"] = relationship("CourseORM")

    # at most one certificate per (user, course); inserts rely on this
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_course_certificate"),)


class NotificationORM(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    action_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow
    )


class BookmarkORM(Base):
    __tablename__ = "user_bookmarks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

    course: Mapped["CourseORM"] = relationship("CourseORM")

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_course_bookmark"),)


Course = CourseORM
Section = SectionORM
Lesson = LessonORM

__all__ = [
    "Base",
    "CourseORM",
    "SectionORM",
    "LessonORM",
    "LessonCompletionORM",
    "CourseAccessORM",
    "CertificateORM",
    "NotificationORM",
    "BookmarkORM",
    "Course",
    "Section",
    "Lesson",
]
