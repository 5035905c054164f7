from collections import Counter
from datetime import datetime, timedelta
from typing import Callable

from ...domain.errors import ensure_owner
from ...domain.rules import compute_streaks, round_half_up, study_day, utcnow
from ..dto import StudyMetrics
from ..ports import IProgressRepository


class GetStudyMetrics:
    """Study days, lessons per day and streaks over a trailing window.

    Days are calendar days in ``tz`` (an IANA zone name), not in whatever
    timezone the process happens to run in.
    """

    def __init__(self, progress: IProgressRepository, tz: str = "UTC",
                 clock: Callable[[], datetime] = utcnow):
        self.progress = progress
        self.tz = tz
        self.clock = clock

    def execute(self, actor_id: str | None, user_id: str, course_id: int | None = None,
                timeframe_in_days: int = 30) -> StudyMetrics:
        ensure_owner(actor_id, user_id)
        now = self.clock()
        since = now - timedelta(days=timeframe_in_days)
        rows = self.progress.completions_between(user_id, since, course_id=course_id)

        per_day = Counter(study_day(r.completed_at, self.tz) for r in rows if r.completed_at)
        if not per_day:
            return StudyMetrics(total_study_days=0, average_lessons_per_day=0,
                                current_streak=0, longest_streak=0)

        total_days = len(per_day)
        current, longest = compute_streaks(per_day.keys(), study_day(now, self.tz))
        return StudyMetrics(
            total_study_days=total_days,
            average_lessons_per_day=round_half_up(sum(per_day.values()) / total_days, 1),
            current_streak=current,
            longest_streak=longest,
        )
