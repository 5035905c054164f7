import structlog

from ...domain.entities import Notification
from ...domain.errors import NotFound, StoreFailure, ensure_owner
from ...infrastructure.metrics import notification_failures_total, notifications_created_total
from ..ports import INotificationRepository

logger = structlog.get_logger()

COURSE_COMPLETION = "course_completion"
CERTIFICATE_GENERATED = "certificate_generated"
LEARNING_REMINDER = "learning_reminder"
NEW_COURSE = "new_course"
COURSE_RECOMMENDATION = "course_recommendation"

NOTIFICATION_TYPES = (
    COURSE_COMPLETION,
    CERTIFICATE_GENERATED,
    LEARNING_REMINDER,
    NEW_COURSE,
    COURSE_RECOMMENDATION,
)


class NotificationTrigger:
    """Fire-and-forget notification writers.

    A failed write is logged and counted, never raised: the operation that
    triggered it has already been committed and must still succeed.
    """

    def __init__(self, repo: INotificationRepository):
        self.repo = repo

    def create(self, user_id: str, type: str, title: str, message: str,
               data: dict | None = None, action_url: str | None = None) -> Notification | None:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")
        try:
            notification = self.repo.create(user_id, type, title, message, data or {}, action_url)
        except StoreFailure as e:
            notification_failures_total.inc()
            logger.warning("notification_write_failed", user_id=user_id, type=type, error=str(e))
            return None
        notifications_created_total.labels(type=type).inc()
        logger.info("notification_created", user_id=user_id, type=type,
                    notification_id=notification.id)
        return notification

    def course_completion(self, user_id: str, course_name: str, course_id: int):
        return self.create(
            user_id, COURSE_COMPLETION,
            "Course completed!",
            f'You have completed "{course_name}". Congratulations!',
            {"course_id": course_id, "course_name": course_name},
            f"/courses/{course_id}",
        )

    def certificate_generated(self, user_id: str, course_name: str, certificate_id: int):
        return self.create(
            user_id, CERTIFICATE_GENERATED,
            "Your certificate is ready",
            f'A certificate of completion for "{course_name}" has been issued.',
            {"course_name": course_name, "certificate_id": certificate_id},
            f"/certificates/{certificate_id}",
        )

    def learning_reminder(self, user_id: str, course_name: str, course_id: int):
        return self.create(
            user_id, LEARNING_REMINDER,
            "Keep learning",
            f'How about continuing "{course_name}"?',
            {"course_id": course_id, "course_name": course_name},
            f"/courses/{course_id}",
        )

    def new_course(self, user_id: str, course_name: str, course_id: int):
        return self.create(
            user_id, NEW_COURSE,
            "New course available",
            f'"{course_name}" has just been added. Take a look!',
            {"course_id": course_id, "course_name": course_name},
            f"/courses/{course_id}",
        )

    def course_recommendation(self, user_id: str, course_name: str, course_id: int, reason: str):
        return self.create(
            user_id, COURSE_RECOMMENDATION,
            "A course for you",
            f'Based on {reason}, we recommend "{course_name}".',
            {"course_id": course_id, "course_name": course_name, "reason": reason},
            f"/courses/{course_id}",
        )


class NotificationInbox:
    def __init__(self, repo: INotificationRepository):
        self.repo = repo

    def _owned(self, actor_id: str | None, notification_id: int) -> Notification:
        notification = self.repo.get(notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        ensure_owner(actor_id, notification.user_id)
        return notification

    def list(self, actor_id: str | None, user_id: str, limit: int = 20) -> list[Notification]:
        ensure_owner(actor_id, user_id)
        return self.repo.list_for_user(user_id, limit)

    def unread_count(self, actor_id: str | None, user_id: str) -> int:
        ensure_owner(actor_id, user_id)
        return self.repo.unread_count(user_id)

    def mark_read(self, actor_id: str | None, notification_id: int) -> None:
        self._owned(actor_id, notification_id)
        self.repo.mark_read(notification_id)

    def mark_all_read(self, actor_id: str | None, user_id: str) -> int:
        ensure_owner(actor_id, user_id)
        return self.repo.mark_all_read(user_id)

    def delete(self, actor_id: str | None, notification_id: int) -> None:
        self._owned(actor_id, notification_id)
        self.repo.delete(notification_id)
