"""Metrics orchestrator: one snapshot + profile + now → one flat report.

Runs the aggregation, scoring, classification and narrative stages in
order. The profile is always an explicit argument; nothing here reads
configuration or storage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from mindflow.engine import classification, narrative, scoring
from mindflow.engine.aggregation import (
    STREAK_LOOKBACK_DAYS,
    WEEKLY_WINDOW_DAYS,
    DayFocus,
    aggregate,
)
from mindflow.models.profiles import BehavioralProfile, get_profile
from mindflow.models.records import Snapshot

logger = logging.getLogger(__name__)


@dataclass
class MetricsReport:
    profile: BehavioralProfile
    generated_at: datetime

    # Tasks
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: int = 0
    completed_today: int = 0

    # Focus
    total_focus_seconds_raw: float = 0.0
    total_focus_seconds: float = 0.0
    total_focus_minutes: int = 0
    avg_daily_focus: int = 0
    focus_today_minutes: int = 0
    focus_session_count: int = 0

    # Streaks
    current_streak: int = 0
    display_streak: int = 0
    longest_streak: int = 0

    # Mood
    mood_score: int = 0
    mood_entry_count: int = 0
    current_mood: Optional[str] = None
    lowest_mood_score: Optional[float] = None
    lowest_mood_date: Optional[date] = None

    # Weekly curve
    weekly: list[DayFocus] = field(default_factory=list)
    best_focus_day: Optional[str] = None
    best_focus_minutes: int = 0
    max_focus: int = 30

    # Planner
    raw_planner_load: int = 0
    planner_load: int = 0

    # Scores
    productivity_score: int = 0
    xp_total: int = 0
    level: int = 1
    level_label: str = ""
    level_progress: float = 0.0
    champion_score: int = 0

    # Classification
    habit_signature: str = ""
    habit_descriptor: str = ""
    recovery_score: int = 0
    recovery_label: str = ""
    recovery_suggestion: str = ""
    burnout_risk: str = "low"
    future_window: Optional[classification.FutureWindow] = None
    identity_rank: str = ""

    # Narrative
    narrative: str = ""
    forecast: str = ""
    alerts: list[narrative.SystemAlert] = field(default_factory=list)
    timeline: Optional[narrative.Timeline] = None

    def signals(self) -> classification.Signals:
        return classification.Signals(
            focus_minutes=self.total_focus_minutes,
            completion_rate=self.completion_rate,
            mood_score=self.mood_score,
            current_streak=self.current_streak,
            raw_planner_load=self.raw_planner_load,
            total_tasks=self.total_tasks,
            champion_score=self.champion_score,
            productivity_score=self.productivity_score,
            recovery_score=self.recovery_score,
            best_focus_day_label=self.best_focus_day,
        )

    def to_dict(self) -> dict:
        """Flat JSON-safe view using the mobile client's field names."""
        return {
            "profile": self.profile.key,
            "generatedAt": self.generated_at.isoformat(),
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "completionRate": self.completion_rate,
            "completedToday": self.completed_today,
            "totalFocusSecondsRaw": self.total_focus_seconds_raw,
            "totalFocusSeconds": self.total_focus_seconds,
            "totalFocusMinutes": self.total_focus_minutes,
            "avgDailyFocus": self.avg_daily_focus,
            "focusTodayMinutes": self.focus_today_minutes,
            "focusSessionCount": self.focus_session_count,
            "currentStreak": self.current_streak,
            "displayStreak": self.display_streak,
            "longestStreak": self.longest_streak,
            "moodScore": self.mood_score,
            "moodEntryCount": self.mood_entry_count,
            "currentMood": self.current_mood,
            "lowestMood": (
                None if self.lowest_mood_score is None else {
                    "score": self.lowest_mood_score,
                    "date": self.lowest_mood_date.isoformat() if self.lowest_mood_date else None,
                }
            ),
            "weekly": [
                {"key": d.key, "label": d.label, "focusMinutes": d.focus_minutes}
                for d in self.weekly
            ],
            "bestFocusDay": self.best_focus_day,
            "bestFocusMinutes": self.best_focus_minutes,
            "maxFocus": self.max_focus,
            "rawPlannerLoad": self.raw_planner_load,
            "plannerLoad": self.planner_load,
            "productivityScore": self.productivity_score,
            "xpTotal": self.xp_total,
            "level": self.level,
            "levelLabel": self.level_label,
            "levelProgress": self.level_progress,
            "championScore": self.champion_score,
            "habitSignature": self.habit_signature,
            "habitDescriptor": self.habit_descriptor,
            "recoveryScore": self.recovery_score,
            "recoveryLabel": self.recovery_label,
            "recoverySuggestion": self.recovery_suggestion,
            "burnoutRisk": self.burnout_risk,
            "futureWindow": self.future_window.to_dict() if self.future_window else None,
            "identityRank": self.identity_rank,
            "narrative": self.narrative,
            "forecast": self.forecast,
            "alerts": [a.to_dict() for a in self.alerts],
            "timeline": self.timeline.to_dict() if self.timeline else None,
        }


def resolve_profile(profile: Union[BehavioralProfile, str, None]) -> BehavioralProfile:
    if isinstance(profile, BehavioralProfile):
        return profile
    return get_profile(profile)


def compute_metrics(
    snapshot: Snapshot,
    profile: Union[BehavioralProfile, str, None] = None,
    now: Optional[datetime] = None,
    lookback_days: int = STREAK_LOOKBACK_DAYS,
    window_days: int = WEEKLY_WINDOW_DAYS,
) -> MetricsReport:
    """Derive every metric for `snapshot` as seen at `now`.

    Args:
        snapshot: Read-only record collections. Never mutated.
        profile: A BehavioralProfile, a profile key, or None for the default.
        now: Evaluation instant; defaults to the local wall clock.
        lookback_days: Streak walk-back window.
        window_days: Width of the weekly focus curve.
    """
    prof = resolve_profile(profile)
    if now is None:
        now = datetime.now().astimezone()

    agg = aggregate(snapshot, prof, now, lookback_days, window_days)

    report = MetricsReport(
        profile=prof,
        generated_at=now,
        total_tasks=agg.tasks.total,
        completed_tasks=agg.tasks.completed,
        completion_rate=agg.tasks.completion_rate,
        completed_today=agg.tasks.completed_today,
        total_focus_seconds_raw=agg.focus.raw_seconds,
        total_focus_seconds=agg.focus.seconds,
        total_focus_minutes=agg.focus.minutes,
        avg_daily_focus=agg.focus.avg_daily_minutes,
        focus_today_minutes=agg.focus.today_minutes,
        focus_session_count=agg.focus.session_count,
        current_streak=agg.streaks.current,
        display_streak=agg.streaks.display,
        longest_streak=agg.streaks.longest,
        mood_score=agg.mood.score,
        mood_entry_count=agg.mood.entry_count,
        current_mood=agg.mood.current_label,
        lowest_mood_score=agg.mood.lowest_score,
        lowest_mood_date=agg.mood.lowest_date,
        weekly=list(agg.weekly.days),
        best_focus_day=agg.weekly.best_day_label,
        best_focus_minutes=agg.weekly.best_minutes,
        max_focus=agg.weekly.max_focus,
        raw_planner_load=agg.planner.raw,
        planner_load=agg.planner.scaled,
    )

    # ── Scores ──
    report.productivity_score = scoring.productivity_score(
        report.total_focus_minutes, report.completion_rate, report.mood_score, prof
    )
    level = scoring.level_for(scoring.experience_points(
        completed_tasks=report.completed_tasks,
        focus_sessions=len(snapshot.focus_sessions),
        mood_entries=len(snapshot.moods),
        current_streak=report.current_streak,
        planner_blocks=len(snapshot.planner),
    ))
    report.xp_total = level.xp
    report.level = level.level
    report.level_label = level.label
    report.level_progress = level.progress
    report.champion_score = scoring.champion_score(
        report.total_focus_minutes,
        report.current_streak,
        report.raw_planner_load,
        report.mood_score,
    )

    # ── Classification (recovery feeds identity rank) ──
    rec = classification.recovery(report.signals())
    report.recovery_score = rec.score
    report.recovery_label = rec.label
    report.recovery_suggestion = rec.suggestion

    signals = report.signals()
    sig = classification.habit_signature(signals)
    report.habit_signature = sig.code
    report.habit_descriptor = sig.descriptor
    report.future_window = classification.future_window(signals)
    report.burnout_risk = report.future_window.burnout_risk
    report.identity_rank = classification.identity_rank(signals)

    # ── Narrative ──
    report.narrative = narrative.brain_text(prof, signals)
    report.forecast = narrative.forecast_text(prof, signals)
    report.alerts = narrative.system_alerts(prof, signals)
    report.timeline = narrative.timeline(
        signals,
        longest_streak=report.longest_streak,
        best_minutes=report.best_focus_minutes,
        lowest_mood_score=report.lowest_mood_score,
        lowest_mood_date=report.lowest_mood_date,
    )

    logger.debug(
        f"Metrics for {prof.key}: productivity={report.productivity_score} "
        f"xp={report.xp_total} identity={report.identity_rank}"
    )
    return report
