from datetime import date, datetime, timezone

import pytest

from learning_service.application.use_cases.learning_history import (
    GetDailyHistory,
    GetDailyStats,
    GetLearningHistory,
)
from learning_service.application.use_cases.study_metrics import GetStudyMetrics
from learning_service.domain.errors import Unauthorized
from learning_service.infrastructure.repositories import ProgressRepository

USER = "user-1"


def at(day, hour=10, minute=0):
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def progress(db):
    return ProgressRepository(db)


@pytest.fixture
def gap_course(progress, course_factory):
    """Completions on 01-01 (x2), 01-02 and 01-04."""
    course = course_factory([["L1", "L2", "L3"], ["L4", "L5"]])
    l1, l2, l3, l4, _ = course.lesson_ids
    progress.upsert_completion(USER, l1, at(1, 10))
    progress.upsert_completion(USER, l2, at(1, 15))
    progress.upsert_completion(USER, l3, at(2, 9))
    progress.upsert_completion(USER, l4, at(4, 8))
    return course


def test_zero_completions_returns_zeros(progress, clock):
    metrics = GetStudyMetrics(progress, clock=clock).execute(USER, USER)
    assert metrics.total_study_days == 0
    assert metrics.average_lessons_per_day == 0
    assert metrics.current_streak == 0
    assert metrics.longest_streak == 0


def test_gap_scenario_today_is_last_study_day(progress, clock, gap_course):
    metrics = GetStudyMetrics(progress, clock=clock).execute(USER, USER)
    assert metrics.total_study_days == 3
    # 4 lessons over 3 days
    assert metrics.average_lessons_per_day == 1.3
    assert metrics.longest_streak == 2
    assert metrics.current_streak == 1


def test_gap_scenario_last_study_day_was_yesterday(progress, clock, gap_course):
    clock.advance(days=1)
    metrics = GetStudyMetrics(progress, clock=clock).execute(USER, USER)
    assert metrics.current_streak == 1
    assert metrics.longest_streak == 2


def test_gap_scenario_streak_broken(progress, clock, gap_course):
    clock.advance(days=2)
    metrics = GetStudyMetrics(progress, clock=clock).execute(USER, USER)
    assert metrics.current_streak == 0
    assert metrics.longest_streak == 2


def test_timeframe_limits_window(progress, clock, gap_course):
    # window starts 2024-01-02 12:00, so only the 01-04 completion remains
    metrics = GetStudyMetrics(progress, clock=clock).execute(USER, USER, timeframe_in_days=2)
    assert metrics.total_study_days == 1
    assert metrics.average_lessons_per_day == 1.0


def test_course_filter(progress, clock, gap_course, course_factory):
    other = course_factory([["Other"]], title="Other course")
    progress.upsert_completion(USER, other.lesson_ids[0], at(3))
    use_case = GetStudyMetrics(progress, clock=clock)

    everything = use_case.execute(USER, USER)
    assert everything.total_study_days == 4
    assert everything.longest_streak == 4
    assert everything.current_streak == 4

    scoped = use_case.execute(USER, USER, course_id=gap_course.id)
    assert scoped.total_study_days == 3
    assert scoped.longest_streak == 2


def test_days_follow_configured_timezone(progress, clock, course_factory):
    course = course_factory([["A", "B"]])
    a, b = course.lesson_ids
    progress.upsert_completion(USER, a, at(1, 23, 30))
    progress.upsert_completion(USER, b, at(2, 0, 30))

    in_utc = GetStudyMetrics(progress, tz="UTC", clock=clock).execute(USER, USER)
    assert in_utc.total_study_days == 2
    assert in_utc.average_lessons_per_day == 1.0

    in_new_york = GetStudyMetrics(progress, tz="America/New_York", clock=clock).execute(USER, USER)
    assert in_new_york.total_study_days == 1
    assert in_new_york.average_lessons_per_day == 2.0


def test_metrics_for_another_user_are_unauthorized(progress, clock):
    with pytest.raises(Unauthorized):
        GetStudyMetrics(progress, clock=clock).execute("user-2", USER)


def test_other_users_completions_do_not_count(progress, clock, gap_course):
    metrics = GetStudyMetrics(progress, clock=clock).execute("user-2", "user-2")
    assert metrics.total_study_days == 0


def test_learning_history_newest_first(progress, clock, gap_course):
    entries = GetLearningHistory(progress, clock=clock).execute(USER, USER)
    assert [e.completed_at for e in entries] == [at(4, 8), at(2, 9), at(1, 15), at(1, 10)]
    assert entries[0].course_title == "Python Basics"
    assert entries[0].section_title == "Section 2"
    assert entries[0].lesson_title == "L4"


def test_learning_history_window(progress, clock, gap_course):
    entries = GetLearningHistory(progress, days=2, clock=clock).execute(USER, USER)
    assert [e.lesson_title for e in entries] == ["L4"]


def test_daily_history_oldest_first(progress, gap_course):
    entries = GetDailyHistory(progress).execute(USER, USER, date(2024, 1, 1))
    assert [e.lesson_title for e in entries] == ["L1", "L2"]
    assert GetDailyHistory(progress).execute(USER, USER, date(2024, 1, 3)) == []


def test_daily_stats(progress, clock, gap_course):
    stats = GetDailyStats(progress, clock=clock).execute(USER, USER)
    assert stats.total_study_days == 3
    assert stats.total_lessons == 4
    assert stats.current_streak == 1
    assert stats.daily_lesson_counts == {"2024-01-01": 2, "2024-01-02": 1, "2024-01-04": 1}
