"""Record aggregation and streak computation.

Turns raw task / focus / mood / planner collections into the base figures
every other engine stage reads: completion rate, focus totals, activity
dates, streaks, mood index, weekly focus curve and planner load.

All functions are pure. Empty collections produce zero / neutral defaults,
never a division error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from mindflow.models.profiles import BehavioralProfile
from mindflow.models.records import FocusSession, MoodEntry, PlannerBlock, Snapshot, Task

STREAK_LOOKBACK_DAYS = 30
WEEKLY_WINDOW_DAYS = 7

# Label → base score; anything unrecognized is treated as neutral
MOOD_LABEL_SCORES: dict[str, int] = {
    "great": 90,
    "energized": 90,
    "motivated": 90,
    "good": 75,
    "calm": 75,
    "ok": 60,
    "neutral": 60,
    "tired": 45,
    "low": 45,
    "stressed": 35,
    "anxious": 35,
}
NEUTRAL_MOOD_SCORE = 60


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round .5 toward +inf, matching how the mobile client rounds."""
    return int(math.floor(value + 0.5))


# ── Dates ────────────────────────────────────────────────────────────────

def local_day(ts: Optional[datetime], now: datetime) -> date:
    """Calendar day of `ts` in the device's zone (the zone of `now`).

    Records without a parseable timestamp count as today.
    """
    if ts is None:
        return now.date()
    if ts.tzinfo is not None:
        if now.tzinfo is not None:
            ts = ts.astimezone(now.tzinfo)
        else:
            ts = ts.astimezone().replace(tzinfo=None)
    return ts.date()


def day_key(d: date) -> str:
    return d.isoformat()


# ── Tasks ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    completion_rate: int     # 0-100
    completed_today: int


def task_stats(tasks: Iterable[Task], now: datetime) -> TaskStats:
    tasks = list(tasks)
    completed = [t for t in tasks if t.completed]
    total = len(tasks)
    rate = 0 if total == 0 else round_half_up(len(completed) / total * 100)
    today = now.date()
    completed_today = sum(
        1 for t in completed
        if t.completed_at is not None and local_day(t.completed_at, now) == today
    )
    return TaskStats(
        total=total,
        completed=len(completed),
        completion_rate=rate,
        completed_today=completed_today,
    )


# ── Focus ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FocusTotals:
    raw_seconds: float
    seconds: float
    minutes: int
    avg_daily_minutes: int
    session_count: int
    today_minutes: int       # unscaled, today only


def focus_totals(
    sessions: Iterable[FocusSession],
    profile: BehavioralProfile,
    now: datetime,
) -> FocusTotals:
    sessions = list(sessions)
    raw = sum(s.duration_seconds for s in sessions)
    scaled = raw * profile.focus_multiplier
    minutes = round_half_up(scaled / 60)
    today = now.date()
    today_seconds = sum(
        s.duration_seconds for s in sessions
        if s.date is not None and local_day(s.date, now) == today
    )
    return FocusTotals(
        raw_seconds=raw,
        seconds=scaled,
        minutes=minutes,
        avg_daily_minutes=round_half_up(minutes / 7),
        session_count=len(sessions),
        today_minutes=round_half_up(today_seconds / 60),
    )


# ── Activity dates & streaks ─────────────────────────────────────────────

def activity_dates(
    tasks: Iterable[Task],
    sessions: Iterable[FocusSession],
    moods: Iterable[MoodEntry],
    now: datetime,
) -> set[str]:
    """Days (YYYY-MM-DD) on which any task, focus session or mood was recorded."""
    days: set[str] = set()
    for t in tasks:
        days.add(day_key(local_day(t.activity_at, now)))
    for s in sessions:
        days.add(day_key(local_day(s.date, now)))
    for m in moods:
        days.add(day_key(local_day(m.date, now)))
    return days


@dataclass(frozen=True)
class StreakStats:
    current: int             # canonical, unscaled
    longest: int             # longest run inside the lookback window
    display: int             # current scaled by the profile's streak bias


def compute_streaks(
    active_days: set[str],
    now: datetime,
    profile: BehavioralProfile,
    lookback_days: int = STREAK_LOOKBACK_DAYS,
) -> StreakStats:
    """Walk back from today over the lookback window.

    The current streak is an unbroken run anchored at today: if today has no
    activity it is 0 even when yesterday was active. The longest streak is
    any run of consecutive active days inside the window.
    """
    today = now.date()
    current = 0
    anchored = True
    longest = 0
    run = 0

    for i in range(max(lookback_days, 0)):
        active = day_key(today - timedelta(days=i)) in active_days

        if anchored and active:
            current += 1
        else:
            anchored = False

        if active:
            run += 1
            longest = max(longest, run)
        else:
            run = 0

    return StreakStats(
        current=current,
        longest=longest,
        display=round_half_up(current * profile.streak_focus_bias),
    )


# ── Mood ─────────────────────────────────────────────────────────────────

def mood_base_score(entry: MoodEntry) -> float:
    if entry.score is not None:
        return entry.score
    return MOOD_LABEL_SCORES.get(entry.label.strip().lower(), NEUTRAL_MOOD_SCORE)


@dataclass(frozen=True)
class MoodSummary:
    score: int                             # 0 means "no signal"
    entry_count: int
    lowest_score: Optional[float] = None
    lowest_date: Optional[date] = None
    current_label: Optional[str] = None    # most recent entry
    current_score: Optional[float] = None


def mood_summary(
    moods: Iterable[MoodEntry],
    profile: BehavioralProfile,
    now: datetime,
) -> MoodSummary:
    moods = list(moods)
    if not moods:
        return MoodSummary(score=0, entry_count=0)

    scores = [mood_base_score(m) for m in moods]
    avg = sum(scores) / len(scores)
    score = int(clamp(round_half_up(avg * profile.mood_weight), 0, 100))

    # First occurrence wins on ties, like the timeline in the mobile client
    lowest_idx = min(range(len(scores)), key=lambda i: scores[i])

    # Most recent by timestamp; undated entries count as "now", later list position breaks ties
    def _recency(i: int) -> tuple:
        return (local_day(moods[i].date, now), _sort_ts(moods[i].date, now), i)

    current_idx = max(range(len(moods)), key=_recency)

    return MoodSummary(
        score=score,
        entry_count=len(moods),
        lowest_score=scores[lowest_idx],
        lowest_date=local_day(moods[lowest_idx].date, now),
        current_label=moods[current_idx].label or None,
        current_score=scores[current_idx],
    )


def _sort_ts(ts: Optional[datetime], now: datetime) -> float:
    if ts is None:
        ts = now
    if ts.tzinfo is None and now.tzinfo is not None:
        ts = ts.replace(tzinfo=now.tzinfo)
    elif ts.tzinfo is not None and now.tzinfo is None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts.timestamp()


# ── Weekly focus curve ───────────────────────────────────────────────────

@dataclass(frozen=True)
class DayFocus:
    key: str                 # YYYY-MM-DD
    label: str               # short weekday, e.g. "Mon"
    focus_minutes: int


@dataclass(frozen=True)
class WeeklyFocus:
    days: tuple[DayFocus, ...]
    best_day_label: Optional[str]
    best_minutes: int
    max_focus: int           # chart ceiling, never below 30


def weekly_focus(
    sessions: Iterable[FocusSession],
    now: datetime,
    window_days: int = WEEKLY_WINDOW_DAYS,
) -> WeeklyFocus:
    """Focus minutes per day for the last `window_days` days, oldest first."""
    per_day: dict[date, float] = {}
    for s in sessions:
        # Undated sessions cannot be placed on the curve
        if s.date is None:
            continue
        d = local_day(s.date, now)
        per_day[d] = per_day.get(d, 0.0) + s.duration_seconds

    today = now.date()
    days: list[DayFocus] = []
    best_label: Optional[str] = None
    best_minutes = 0
    for i in range(window_days - 1, -1, -1):
        d = today - timedelta(days=i)
        minutes = round_half_up(per_day.get(d, 0.0) / 60)
        label = d.strftime("%a")
        if minutes > best_minutes:
            best_minutes = minutes
            best_label = label
        days.append(DayFocus(key=day_key(d), label=label, focus_minutes=minutes))

    return WeeklyFocus(
        days=tuple(days),
        best_day_label=best_label,
        best_minutes=best_minutes,
        max_focus=max([30] + [d.focus_minutes for d in days]),
    )


# ── Planner ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PlannerLoad:
    raw: int
    scaled: int


def planner_load(blocks: Iterable[PlannerBlock], profile: BehavioralProfile) -> PlannerLoad:
    raw = len(list(blocks))
    return PlannerLoad(raw=raw, scaled=round_half_up(raw * profile.planning_sensitivity))


# ── Aggregate ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Aggregates:
    tasks: TaskStats
    focus: FocusTotals
    streaks: StreakStats
    mood: MoodSummary
    weekly: WeeklyFocus
    planner: PlannerLoad
    active_days: frozenset[str]


def aggregate(
    snapshot: Snapshot,
    profile: BehavioralProfile,
    now: datetime,
    lookback_days: int = STREAK_LOOKBACK_DAYS,
    window_days: int = WEEKLY_WINDOW_DAYS,
) -> Aggregates:
    days = activity_dates(snapshot.tasks, snapshot.focus_sessions, snapshot.moods, now)
    return Aggregates(
        tasks=task_stats(snapshot.tasks, now),
        focus=focus_totals(snapshot.focus_sessions, profile, now),
        streaks=compute_streaks(days, now, profile, lookback_days),
        mood=mood_summary(snapshot.moods, profile, now),
        weekly=weekly_focus(snapshot.focus_sessions, now, window_days),
        planner=planner_load(snapshot.planner, profile),
        active_days=frozenset(days),
    )
