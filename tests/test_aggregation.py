"""Tests for record aggregation: completion, focus totals, streaks, mood, weekly curve."""

from datetime import datetime, timedelta, timezone

import pytest

from mindflow.engine.aggregation import (
    activity_dates,
    aggregate,
    clamp,
    compute_streaks,
    day_key,
    focus_totals,
    local_day,
    mood_summary,
    planner_load,
    round_half_up,
    task_stats,
    weekly_focus,
)
from mindflow.models.profiles import NEUTRAL_PROFILE, PROFILES
from mindflow.models.records import FocusSession, MoodEntry, Snapshot, Task


def _days(now, *offsets):
    return {day_key((now - timedelta(days=o)).date()) for o in offsets}


class TestHelpers:
    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(0.49) == 0
        assert round_half_up(-0.5) == 0

    def test_clamp(self):
        assert clamp(120, 0, 100) == 100
        assert clamp(-3, 0, 100) == 0

    def test_local_day_converts_to_now_zone(self):
        tz = timezone(timedelta(hours=-5))
        now = datetime(2026, 2, 15, 12, 0, tzinfo=tz)
        ts = datetime(2026, 2, 15, 3, 0, tzinfo=timezone.utc)     # 22:00 on the 14th locally
        assert local_day(ts, now).isoformat() == "2026-02-14"

    def test_missing_timestamp_counts_as_today(self, frozen_now):
        assert local_day(None, frozen_now) == frozen_now.date()


class TestTaskStats:
    def test_empty(self, frozen_now):
        stats = task_stats([], frozen_now)
        assert stats.total == 0
        assert stats.completion_rate == 0

    def test_single_completed_is_100(self, make_task, frozen_now):
        assert task_stats([make_task(completed=True)], frozen_now).completion_rate == 100

    def test_single_open_is_0(self, make_task, frozen_now):
        assert task_stats([make_task()], frozen_now).completion_rate == 0

    def test_rate_rounds_half_up(self, make_task, frozen_now):
        tasks = [make_task(completed=True), make_task(), make_task(), make_task(),
                 make_task(), make_task(), make_task(), make_task()]
        # 1/8 = 12.5% → 13
        assert task_stats(tasks, frozen_now).completion_rate == 13

    def test_completed_today(self, make_task, frozen_now):
        tasks = [make_task(completed=True), make_task(completed=True, days_ago=1), make_task()]
        assert task_stats(tasks, frozen_now).completed_today == 1


class TestFocusTotals:
    def test_scaled_by_focus_multiplier(self, make_session, frozen_now):
        sessions = [make_session(25), make_session(25, days_ago=1)]
        totals = focus_totals(sessions, PROFILES["Shadows"], frozen_now)
        assert totals.raw_seconds == 3000
        assert totals.seconds == pytest.approx(3360)
        assert totals.minutes == 56
        assert totals.avg_daily_minutes == 8
        assert totals.today_minutes == 25

    def test_empty(self, frozen_now):
        totals = focus_totals([], NEUTRAL_PROFILE, frozen_now)
        assert (totals.minutes, totals.avg_daily_minutes, totals.session_count) == (0, 0, 0)


class TestStreaks:
    def test_three_day_run_ending_today(self, frozen_now):
        streaks = compute_streaks(_days(frozen_now, 0, 1, 2), frozen_now, NEUTRAL_PROFILE)
        assert streaks.current == 3
        assert streaks.longest == 3

    def test_today_missing_breaks_current(self, frozen_now):
        streaks = compute_streaks(_days(frozen_now, 1, 2), frozen_now, NEUTRAL_PROFILE)
        assert streaks.current == 0
        assert streaks.longest == 2

    def test_gap_stops_current_streak(self, frozen_now):
        """A run behind a gap never counts toward the current streak."""
        days = _days(frozen_now, 0, 1, 3, 4, 5, 6)
        streaks = compute_streaks(days, frozen_now, NEUTRAL_PROFILE)
        assert streaks.current == 2
        assert streaks.longest == 4

    def test_window_caps_streak(self, frozen_now):
        days = _days(frozen_now, *range(45))
        streaks = compute_streaks(days, frozen_now, NEUTRAL_PROFILE, lookback_days=30)
        assert streaks.current == 30
        assert streaks.longest == 30

    def test_display_streak_scaled(self, frozen_now):
        days = _days(frozen_now, *range(4))
        streaks = compute_streaks(days, frozen_now, PROFILES["Engineers"])
        assert streaks.current == 4
        assert streaks.display == 5          # 4 × 1.25

    def test_activity_dates_from_all_sources(self, make_task, make_session, make_mood, frozen_now):
        days = activity_dates(
            [make_task(days_ago=2)],
            [make_session(days_ago=1)],
            [make_mood("good")],
            frozen_now,
        )
        assert days == _days(frozen_now, 0, 1, 2)

    def test_completed_task_counts_on_completion_day(self, frozen_now):
        task = Task(id="t", title="x", created_at=frozen_now - timedelta(days=5))
        task = task.mark_completed(frozen_now)
        assert activity_dates([task], [], [], frozen_now) == _days(frozen_now, 0)

    def test_undated_records_count_as_today(self, frozen_now):
        days = activity_dates([], [FocusSession(duration_seconds=60)], [], frozen_now)
        assert days == _days(frozen_now, 0)


class TestMood:
    def test_no_entries_is_no_signal(self, frozen_now):
        summary = mood_summary([], NEUTRAL_PROFILE, frozen_now)
        assert summary.score == 0
        assert summary.current_label is None

    def test_average_of_explicit_scores(self, make_mood, frozen_now):
        moods = [make_mood(score=80), make_mood(score=60, days_ago=1)]
        assert mood_summary(moods, NEUTRAL_PROFILE, frozen_now).score == 70

    def test_label_table_and_default(self, make_mood, frozen_now):
        moods = [make_mood("Great"), make_mood("stressed", days_ago=1), make_mood("meh", days_ago=2)]
        # (90 + 35 + 60) / 3 = 61.67 → 62
        assert mood_summary(moods, NEUTRAL_PROFILE, frozen_now).score == 62

    def test_weighted_and_clamped(self, make_mood, frozen_now):
        moods = [make_mood("great")]
        # 90 × 1.4 = 126 → 100
        assert mood_summary(moods, PROFILES["Hipsters"], frozen_now).score == 100

    def test_current_is_most_recent(self, make_mood, frozen_now):
        moods = [make_mood("calm", hours_ago=1), make_mood("tired", days_ago=1), make_mood("great", hours_ago=5)]
        assert mood_summary(moods, NEUTRAL_PROFILE, frozen_now).current_label == "calm"

    def test_lowest_mood(self, make_mood, frozen_now):
        moods = [make_mood("good"), make_mood("anxious", days_ago=3)]
        summary = mood_summary(moods, NEUTRAL_PROFILE, frozen_now)
        assert summary.lowest_score == 35
        assert summary.lowest_date == (frozen_now - timedelta(days=3)).date()


class TestWeeklyFocus:
    def test_seven_days_oldest_first(self, frozen_now):
        week = weekly_focus([], frozen_now)
        assert len(week.days) == 7
        assert week.days[-1].key == "2026-02-15"
        assert week.days[0].key == "2026-02-09"
        assert week.days[-1].label == "Sun"
        assert week.best_day_label is None
        assert week.max_focus == 30

    def test_best_day_first_strict_max(self, make_session, frozen_now):
        sessions = [make_session(50, days_ago=3), make_session(50, days_ago=1), make_session(10)]
        week = weekly_focus(sessions, frozen_now)
        assert week.best_minutes == 50
        assert week.best_day_label == "Thu"
        assert week.max_focus == 50

    def test_sessions_outside_window_ignored(self, make_session, frozen_now):
        week = weekly_focus([make_session(90, days_ago=8)], frozen_now)
        assert all(d.focus_minutes == 0 for d in week.days)

    def test_curve_is_unscaled(self, make_session, frozen_now):
        snap = Snapshot(focus_sessions=(make_session(100),))
        agg = aggregate(snap, PROFILES["Shadows"], frozen_now)
        assert agg.weekly.days[-1].focus_minutes == 100
        assert agg.focus.minutes == 112


class TestPlannerLoad:
    def test_scaled_by_planning_sensitivity(self, make_blocks):
        load = planner_load(make_blocks(5), PROFILES["Hipsters"])
        assert load.raw == 5
        assert load.scaled == 6


class TestAggregate:
    def test_empty_snapshot(self, frozen_now):
        agg = aggregate(Snapshot(), NEUTRAL_PROFILE, frozen_now)
        assert agg.tasks.completion_rate == 0
        assert agg.focus.minutes == 0
        assert agg.mood.score == 0
        assert agg.streaks.current == 0
        assert agg.active_days == frozenset()
