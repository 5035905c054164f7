from datetime import datetime
from typing import Callable

import structlog

from ...domain.entities import Bookmark
from ...domain.errors import NotFound, ensure_owner
from ...domain.rules import utcnow
from ..ports import IBookmarkRepository, ICatalogRepository

logger = structlog.get_logger()


class AddBookmark:
    """Bookmark a course; bookmarking it again is a no-op."""

    def __init__(self, catalog: ICatalogRepository, bookmarks: IBookmarkRepository,
                 clock: Callable[[], datetime] = utcnow):
        self.catalog = catalog
        self.bookmarks = bookmarks
        self.clock = clock

    def execute(self, actor_id: str | None, user_id: str, course_id: int) -> Bookmark:
        ensure_owner(actor_id, user_id)
        if self.catalog.get_course(course_id) is None:
            raise NotFound("Course not found")
        bookmark = self.bookmarks.add(user_id, course_id, self.clock())
        logger.info("bookmark_added", user_id=user_id, course_id=course_id)
        return bookmark


class RemoveBookmark:
    def __init__(self, bookmarks: IBookmarkRepository):
        self.bookmarks = bookmarks

    def execute(self, actor_id: str | None, user_id: str, course_id: int) -> None:
        ensure_owner(actor_id, user_id)
        if not self.bookmarks.remove(user_id, course_id):
            raise NotFound("Bookmark not found")
        logger.info("bookmark_removed", user_id=user_id, course_id=course_id)


class ListBookmarks:
    def __init__(self, bookmarks: IBookmarkRepository):
        self.bookmarks = bookmarks

    def execute(self, actor_id: str | None, user_id: str, limit: int = 10) -> list[Bookmark]:
        ensure_owner(actor_id, user_id)
        return self.bookmarks.list_for_user(user_id, limit)


class CountBookmarks:
    def __init__(self, bookmarks: IBookmarkRepository):
        self.bookmarks = bookmarks

    def execute(self, actor_id: str | None, user_id: str) -> int:
        ensure_owner(actor_id, user_id)
        return self.bookmarks.count(user_id)
