from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ....application.use_cases.notifications import NotificationInbox
from ....config import settings
from ....infrastructure.db import get_db
from ....infrastructure.repositories import NotificationRepository
from ..authz import get_user_id
from ..schemas import MarkAllReadOut, NotificationOut, UnreadCountOut

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

def _inbox(db: Session) -> NotificationInbox:
    return NotificationInbox(NotificationRepository(db))

@router.get("", response_model=list[NotificationOut])
def list_notifications(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    limit: int = Query(settings.NOTIFICATIONS_PAGE_SIZE, ge=1, le=100),
):
    return _inbox(db).list(user_id, user_id, limit)

@router.get("/unread-count", response_model=UnreadCountOut)
def unread_count(user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    return UnreadCountOut(count=_inbox(db).unread_count(user_id, user_id))

@router.post("/read-all", response_model=MarkAllReadOut)
def mark_all_read(user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    return MarkAllReadOut(updated=_inbox(db).mark_all_read(user_id, user_id))

@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_read(notification_id: int, user_id: str = Depends(get_user_id),
              db: Session = Depends(get_db)):
    _inbox(db).mark_read(user_id, notification_id)

@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(notification_id: int, user_id: str = Depends(get_user_id),
                        db: Session = Depends(get_db)):
    _inbox(db).delete(user_id, notification_id)
