"""Narrative generator: fixed template clauses picked by metric thresholds.

Each builder walks its clauses in a fixed order, picks at most one template
per clause and joins the picks with spaces. Nothing here is random.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from mindflow.engine.aggregation import clamp, round_half_up
from mindflow.engine.classification import Signals
from mindflow.models.profiles import BehavioralProfile
from mindflow.models.records import Priority, Snapshot


# ── Brain text ───────────────────────────────────────────────────────────

def brain_text(profile: BehavioralProfile, s: Signals) -> str:
    if s.total_tasks == 0 and s.focus_minutes == 0 and s.mood_score == 0:
        return (
            "MindFlow Neural Core is online. Once you start logging tasks, focus "
            "sessions, and moods, it will build a behavioral model tuned to the "
            f"{profile.label} profile."
        )

    parts: list[str] = []

    if profile.flavor:
        parts.append(profile.flavor)

    if s.focus_minutes > 150:
        parts.append(
            "Your deep-focus volume is in a high-performance bracket. Protect this "
            "capacity by aggressively limiting context switches during peak windows."
        )
    elif s.focus_minutes > 60:
        parts.append(
            "You are building a consistent focus habit. Two well-protected blocks "
            "per day will compound this quickly."
        )
    else:
        parts.append(
            "Focus volume is still light. A single non-negotiable 25-minute block "
            "daily is enough to shift the trajectory."
        )

    if s.total_tasks > 0:
        if s.completion_rate >= 80:
            parts.append(
                "Your task conversion rate is strong — you reliably finish what you "
                "load into the system."
            )
        elif s.completion_rate >= 50:
            parts.append(
                "You convert around half your tasks. Tightening your daily scope will "
                "increase completion without increasing hours."
            )
        else:
            parts.append(
                "Your backlog is dense compared to what you actually finish. A quick "
                "archive pass will reduce cognitive drag."
            )

    if s.has_mood:
        if s.mood_score >= 80:
            parts.append(
                "Mood regulation is strongly supportive of high performance — you have "
                "psychological room to increase challenge if desired."
            )
        elif s.mood_score >= 60:
            parts.append(
                "Mood is broadly stable with normal fluctuations. Intentional "
                "micro-breaks will keep it inside a healthy band."
            )
        else:
            parts.append(
                "Mood signals indicate cognitive load or fatigue. Intentionally placing "
                "recovery blocks is now performance-critical, not optional."
            )

    if s.current_streak >= 3:
        parts.append(
            f"Underlying streak stability is visible: {s.current_streak} days of "
            "consistent engagement. This is how identity-level change actually forms."
        )

    return " ".join(parts)


# ── Forecast ─────────────────────────────────────────────────────────────

def projected_score(productivity: int) -> int:
    return int(clamp(productivity + 5, 40, 98))


def mood_trend(mood_score: int) -> str:
    if mood_score >= 80:
        return "elevated"
    if 0 < mood_score < 60:
        return "under pressure"
    return "stable"


def forecast_text(profile: BehavioralProfile, s: Signals) -> str:
    if s.total_tasks == 0 and s.focus_minutes == 0:
        return (
            "After two or three active days, the Neural Core will start forecasting "
            "your best focus windows and where to place recovery blocks, tuned to "
            "your behavioral profile."
        )

    parts = [
        f"Tomorrow's projected performance score is trending around "
        f"{projected_score(s.productivity_score)} / 100 for a {profile.label} profile.",
        f"The highest-yield focus window for you is likely around "
        f"{profile.suggested_focus_block}. Treat this as a protected deep-work slot.",
    ]

    if s.has_mood:
        parts.append(
            f"Mood trend is currently {mood_trend(s.mood_score)}. One planned "
            "micro-break in the late afternoon will stabilize the curve."
        )

    if s.raw_planner_load > 6:
        parts.append(
            "Your planner density is high — consider moving non-essential items into "
            "a separate backlog so today's lane stays clean."
        )

    return " ".join(parts)


# ── System alerts ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SystemAlert:
    severity: str            # critical | high | positive | normal
    title: str
    body: str

    def to_dict(self) -> dict:
        return {"severity": self.severity, "title": self.title, "body": self.body}


# Profile key → (predicate, alert); at most one per profile
PROFILE_ALERTS = {
    "Shadows": (
        lambda s: s.focus_minutes > 160 and 0 < s.mood_score < 60,
        SystemAlert(
            "critical",
            "Shadow deep-focus overload",
            "You're running heavy deep-work hours with a low mood index. This "
            "combination is powerful short term but unsustainable without real recovery.",
        ),
    ),
    "Speedsters": (
        lambda s: s.total_tasks > 10 and s.completion_rate < 50,
        SystemAlert(
            "high",
            "Speedster task-switch spike",
            "Your task volume is high and completion rate is lagging. Consolidate "
            "tasks into fewer, bigger moves to avoid fragmentation.",
        ),
    ),
    "Engineers": (
        lambda s: s.raw_planner_load > 10,
        SystemAlert(
            "high",
            "Engineer over-planning loop",
            "Planner density suggests you might be over-structuring. Ship a few "
            "imperfect tasks to restore momentum.",
        ),
    ),
    "Hipsters": (
        lambda s: 0 < s.mood_score < 55,
        SystemAlert(
            "high",
            "Hipster creative fatigue pattern",
            "Mood signals show creative fatigue. Inject one genuinely enjoyable, "
            "low-pressure block into your day.",
        ),
    ),
}

STABLE_ALERT = SystemAlert(
    "normal",
    "System stable",
    "Your current patterns are balanced. Use this stability to experiment with "
    "slightly more ambitious deep-work blocks.",
)


def system_alerts(profile: BehavioralProfile, s: Signals) -> list[SystemAlert]:
    alerts: list[SystemAlert] = []

    rule = PROFILE_ALERTS.get(profile.key)
    if rule is not None and rule[0](s):
        alerts.append(rule[1])

    if s.completion_rate < 50 and s.total_tasks > 6:
        alerts.append(SystemAlert(
            "high",
            "Backlog overload",
            "Your completion rate is not keeping up with what you add. Reduce the "
            "visible list to a maximum of 5 live tasks.",
        ))

    # One critical alert is enough
    if (
        s.focus_minutes > 150
        and 0 < s.mood_score < 60
        and not any(a.severity == "critical" for a in alerts)
    ):
        alerts.append(SystemAlert(
            "critical",
            "Performance–mood mismatch",
            "You are pushing significant focus hours with a strained mood index. "
            "This is a classical pre-burnout signature — recovery time is strategic, "
            "not optional.",
        ))

    if s.current_streak >= 5:
        alerts.append(SystemAlert(
            "positive",
            "Streak momentum online",
            f"You've maintained activity for {s.current_streak} days. On low-energy "
            "days, even a tiny action keeps this loop intact.",
        ))

    return alerts or [STABLE_ALERT]


# ── Timeline ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Timeline:
    title: str
    body: str

    def to_dict(self) -> dict:
        return {"title": self.title, "body": self.body}


def timeline(
    s: Signals,
    longest_streak: int,
    best_minutes: int,
    lowest_mood_score: Optional[float] = None,
    lowest_mood_date: Optional[date] = None,
) -> Timeline:
    if s.total_tasks == 0 and s.focus_minutes == 0 and s.current_streak == 0:
        return Timeline(
            "Behavior snapshot initializing…",
            "As you log more focus, mood, and planner data, MindFlow will build a "
            "monthly identity snapshot.",
        )

    if best_minutes > 0:
        best = (
            f"Best focus pulse this week: {best_minutes} min on "
            f"{s.best_focus_day_label}."
        )
    else:
        best = "No clear best focus day yet — your curve is still forming."

    if s.current_streak > 0:
        streak = (
            f"Active streak: {s.current_streak} days · All-time longest: "
            f"{longest_streak} days."
        )
    else:
        streak = f"All-time longest streak so far: {longest_streak} days."

    if lowest_mood_score is not None and lowest_mood_date is not None:
        lowest = (
            f"Lowest mood signal: {round_half_up(lowest_mood_score)} on "
            f"{lowest_mood_date.strftime('%d %b')}."
        )
    else:
        lowest = "Mood curve is still being mapped."

    return Timeline(
        "Month DNA Snapshot: Who were you this week?",
        f"{best} {streak} {lowest} Your system is rendering a personal timeline of "
        "peaks, dips, and recovery loops.",
    )


# ── Workspace home ───────────────────────────────────────────────────────

def quick_insights(snapshot: Snapshot) -> list[str]:
    """Short action lines for the workspace home screen."""
    insights: list[str] = []

    high = [t for t in snapshot.tasks if t.priority == Priority.HIGH and not t.completed]
    if high:
        plural = "s" if len(high) > 1 else ""
        insights.append(f"Start with {len(high)} high-priority task{plural} to unlock momentum.")

    if any(g.progress < 40 for g in snapshot.goals):
        insights.append("Pick one goal under 40% and attach a Planner block for it today.")

    if snapshot.planner and snapshot.tasks:
        insights.append("Assign at least one important task to each morning block.")

    if not insights:
        insights.append(
            "Your system looks stable. Use Goals and Planner to stretch just a little more."
        )
    return insights


def suggestion_line(snapshot: Snapshot, focus_today_minutes: int) -> str:
    unfinished = sum(1 for t in snapshot.tasks if not t.completed)
    if unfinished > 5:
        return "Try reducing clutter by finishing 1–2 small tasks to build momentum."
    if focus_today_minutes < 40:
        return (
            "Your focus is still warming up today. A single 25-minute session can "
            "unlock flow."
        )
    if not snapshot.notes:
        return "Capture one thought or idea in your notes to clear your mind."
    return (
        "You're balanced today. Stay in flow, prioritize your key task, and keep "
        "the streak going."
    )
