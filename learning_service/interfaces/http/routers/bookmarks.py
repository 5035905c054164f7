from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ....application.use_cases.bookmarks import (
    AddBookmark, CountBookmarks, ListBookmarks, RemoveBookmark,
)
from ....config import settings
from ....infrastructure.db import get_db
from ....infrastructure.repositories import BookmarkRepository, CatalogRepository
from ..authz import get_user_id
from ..schemas import BookmarkCountOut, BookmarkOut

router = APIRouter(prefix="/api/bookmarks", tags=["bookmarks"])

@router.get("", response_model=list[BookmarkOut])
def list_bookmarks(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    limit: int = Query(settings.BOOKMARKS_PAGE_SIZE, ge=1, le=100),
):
    return ListBookmarks(BookmarkRepository(db)).execute(user_id, user_id, limit)

@router.get("/count", response_model=BookmarkCountOut)
def count_bookmarks(user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    return BookmarkCountOut(count=CountBookmarks(BookmarkRepository(db)).execute(user_id, user_id))

@router.put("/courses/{course_id}", response_model=BookmarkOut)
def add_bookmark(course_id: int, user_id: str = Depends(get_user_id),
                 db: Session = Depends(get_db)):
    # idempotent: a second PUT returns the original bookmark
    uc = AddBookmark(CatalogRepository(db), BookmarkRepository(db))
    return uc.execute(user_id, user_id, course_id)

@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_bookmark(course_id: int, user_id: str = Depends(get_user_id),
                    db: Session = Depends(get_db)):
    RemoveBookmark(BookmarkRepository(db)).execute(user_id, user_id, course_id)
