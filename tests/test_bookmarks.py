import pytest
from sqlalchemy import select

from learning_service.application.use_cases.bookmarks import (
    AddBookmark,
    CountBookmarks,
    ListBookmarks,
    RemoveBookmark,
)
from learning_service.domain.errors import NotFound, Unauthorized
from learning_service.infrastructure.models import BookmarkORM, Course
from learning_service.infrastructure.repositories import BookmarkRepository, CatalogRepository

USER = "user-1"


@pytest.fixture
def repo(db):
    return BookmarkRepository(db)


@pytest.fixture
def add(db, repo, clock):
    return AddBookmark(CatalogRepository(db), repo, clock=clock)


def test_add_bookmark_is_idempotent(db, add, clock, course_factory):
    course = course_factory([["L1"]])
    bookmarked_at = clock()
    first = add.execute(USER, USER, course.id)
    clock.advance(hours=1)
    again = add.execute(USER, USER, course.id)

    assert again == first
    assert first.created_at == bookmarked_at
    assert first.course_title == "Python Basics"
    assert len(db.execute(select(BookmarkORM)).scalars().all()) == 1


def test_add_bookmark_for_unknown_course_is_not_found(add):
    with pytest.raises(NotFound):
        add.execute(USER, USER, 404)


def test_bookmarks_are_owner_checked(repo, add, course_factory):
    course = course_factory([["L1"]])
    with pytest.raises(Unauthorized):
        add.execute("user-2", USER, course.id)
    with pytest.raises(Unauthorized):
        add.execute(None, USER, course.id)
    with pytest.raises(Unauthorized):
        ListBookmarks(repo).execute("user-2", USER)
    with pytest.raises(Unauthorized):
        RemoveBookmark(repo).execute("user-2", USER, course.id)


def test_list_newest_first_with_count(repo, add, clock, course_factory):
    first = course_factory([["A"]], title="First")
    second = course_factory([["B"]], title="Second")
    add.execute(USER, USER, first.id)
    clock.advance(minutes=5)
    add.execute(USER, USER, second.id)
    add.execute("user-2", "user-2", first.id)

    listed = ListBookmarks(repo).execute(USER, USER)
    assert [b.course_title for b in listed] == ["Second", "First"]
    assert [b.course_title for b in ListBookmarks(repo).execute(USER, USER, limit=1)] == ["Second"]
    assert CountBookmarks(repo).execute(USER, USER) == 2
    assert CountBookmarks(repo).execute("user-2", "user-2") == 1


def test_remove_bookmark(repo, add, course_factory):
    course = course_factory([["L1"]])
    add.execute(USER, USER, course.id)
    RemoveBookmark(repo).execute(USER, USER, course.id)
    assert CountBookmarks(repo).execute(USER, USER) == 0
    with pytest.raises(NotFound):
        RemoveBookmark(repo).execute(USER, USER, course.id)


def test_deleting_course_drops_bookmarks(db, repo, add, course_factory):
    course = course_factory([["L1"]])
    add.execute(USER, USER, course.id)
    db.delete(db.get(Course, course.id))
    db.commit()
    assert CountBookmarks(repo).execute(USER, USER) == 0


def test_bookmark_endpoints(client, auth_headers, course_factory):
    course = course_factory([["L1"]])
    headers = auth_headers()

    r = client.put(f"/api/bookmarks/courses/{course.id}", headers=headers)
    assert r.status_code == 200
    assert r.json()["course_title"] == "Python Basics"
    assert client.put(f"/api/bookmarks/courses/{course.id}", headers=headers).status_code == 200

    assert client.get("/api/bookmarks/count", headers=headers).json() == {"count": 1}
    listed = client.get("/api/bookmarks", headers=headers).json()
    assert [b["course_id"] for b in listed] == [course.id]
    assert client.get("/api/bookmarks?limit=0", headers=headers).status_code == 422

    assert client.put("/api/bookmarks/courses/999", headers=headers).status_code == 404
    assert client.delete(f"/api/bookmarks/courses/{course.id}", headers=headers).status_code == 204
    assert client.delete(f"/api/bookmarks/courses/{course.id}", headers=headers).status_code == 404
    assert client.get("/api/bookmarks", headers=headers).json() == []
