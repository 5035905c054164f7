from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from ...domain.errors import ensure_owner
from ...domain.rules import current_streak_from, day_bounds, study_day, utcnow
from ..dto import DailyStats, HistoryEntry
from ..ports import IProgressRepository

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class GetLearningHistory:
    def __init__(self, progress: IProgressRepository, days: int = 365,
                 clock: Callable[[], datetime] = utcnow):
        self.progress = progress
        self.days = days
        self.clock = clock

    def execute(self, actor_id: str | None, user_id: str) -> list[HistoryEntry]:
        ensure_owner(actor_id, user_id)
        since = self.clock() - timedelta(days=self.days)
        return self.progress.history(user_id, since, newest_first=True)


class GetDailyHistory:
    def __init__(self, progress: IProgressRepository, tz: str = "UTC"):
        self.progress = progress
        self.tz = tz

    def execute(self, actor_id: str | None, user_id: str, day: date) -> list[HistoryEntry]:
        ensure_owner(actor_id, user_id)
        start, end = day_bounds(day, self.tz)
        return self.progress.history(user_id, start, until=end, newest_first=False)


class GetDailyStats:
    """Lesson counts per calendar day over the user's whole history."""

    def __init__(self, progress: IProgressRepository, tz: str = "UTC",
                 clock: Callable[[], datetime] = utcnow):
        self.progress = progress
        self.tz = tz
        self.clock = clock

    def execute(self, actor_id: str | None, user_id: str) -> DailyStats:
        ensure_owner(actor_id, user_id)
        rows = self.progress.completions_between(user_id, EPOCH)
        per_day = Counter(study_day(r.completed_at, self.tz) for r in rows if r.completed_at)
        today = study_day(self.clock(), self.tz)
        return DailyStats(
            total_study_days=len(per_day),
            total_lessons=sum(per_day.values()),
            current_streak=current_streak_from(per_day.keys(), today),
            daily_lesson_counts={d.isoformat(): n for d, n in sorted(per_day.items())},
        )
