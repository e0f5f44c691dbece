"""Qualitative classification: habit signature, recovery, burnout risk, identity rank.

Every ladder here is an ordered tuple of ``(predicate, result)`` pairs and the
first matching predicate wins. Conditions overlap, so the order of each
tuple is part of its meaning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, TypeVar

from mindflow.engine.aggregation import clamp

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Signals:
    """The already-computed figures every classifier reads."""

    focus_minutes: int = 0
    completion_rate: int = 0
    mood_score: int = 0          # 0 = no mood signal
    current_streak: int = 0
    raw_planner_load: int = 0
    total_tasks: int = 0
    champion_score: int = 0
    productivity_score: int = 0
    recovery_score: int = 0
    best_focus_day_label: Optional[str] = None

    @property
    def has_mood(self) -> bool:
        return self.mood_score > 0


Rule = tuple[Callable[[Signals], bool], T]


def first_match(rules: Sequence[Rule], signals: Signals, default: T) -> T:
    for predicate, result in rules:
        if predicate(signals):
            return result
    return default


# ═══════════════════════════════════════════════════════════════════════════
# Habit signature
# ═══════════════════════════════════════════════════════════════════════════

FOCUS_BANDS: tuple[Rule, ...] = (
    (lambda s: s.focus_minutes >= 160, 3),
    (lambda s: s.focus_minutes >= 70, 2),
)

MOOD_BANDS: tuple[Rule, ...] = (
    (lambda s: s.has_mood and s.mood_score >= 80, 3),
    (lambda s: s.has_mood and s.mood_score < 55, 1),
)

STREAK_BANDS: tuple[Rule, ...] = (
    (lambda s: s.current_streak >= 7, 3),
    (lambda s: s.current_streak >= 3, 2),
)

PLANNER_BANDS: tuple[Rule, ...] = (
    (lambda s: s.raw_planner_load <= 3 and s.completion_rate >= 75, 3),
    (lambda s: s.raw_planner_load > 8 and s.completion_rate < 55, 1),
)

FOCUS_PHRASES = {3: "high-focus operator", 2: "steady-focus builder", 1: "emerging focus profile"}
MOOD_PHRASES = {3: "elevated mood baseline", 2: "stable mood band", 1: "mood under strain"}
STREAK_PHRASES = {3: "identity-level streaks", 2: "growing streak discipline", 1: "streaks still forming"}
PLANNER_PHRASES = {3: "elite planning discipline", 2: "balanced planning", 1: "planner overload risk"}

CALIBRATING_DESCRIPTOR = "Calibrating habit signature…"


@dataclass(frozen=True)
class HabitSignature:
    focus_band: int
    mood_band: int
    streak_band: int
    planner_band: int
    descriptor: str

    @property
    def code(self) -> str:
        return (
            f"F{self.focus_band} – M{self.mood_band} – "
            f"S{self.streak_band} – P{self.planner_band}"
        )


def habit_signature(s: Signals) -> HabitSignature:
    f = first_match(FOCUS_BANDS, s, 1)
    m = first_match(MOOD_BANDS, s, 2)
    st = first_match(STREAK_BANDS, s, 1)
    p = first_match(PLANNER_BANDS, s, 2)

    if s.total_tasks == 0 and s.focus_minutes == 0:
        descriptor = CALIBRATING_DESCRIPTOR
    else:
        parts = [FOCUS_PHRASES[f]]
        # Without a mood signal the band is a placeholder, so it gets no phrase
        if s.has_mood:
            parts.append(MOOD_PHRASES[m])
        parts.append(STREAK_PHRASES[st])
        parts.append(PLANNER_PHRASES[p])
        descriptor = " · ".join(parts)

    return HabitSignature(f, m, st, p, descriptor)


# ═══════════════════════════════════════════════════════════════════════════
# Recovery
# ═══════════════════════════════════════════════════════════════════════════

RECOVERY_BASE = 70

# Every matching adjustment applies; they stack
RECOVERY_ADJUSTMENTS: tuple[Rule, ...] = (
    (lambda s: s.focus_minutes > 180, -15),
    (lambda s: s.focus_minutes > 240, -10),
    (lambda s: 0 < s.mood_score < 55, -20),
    (lambda s: s.mood_score >= 80, +10),
    (lambda s: s.raw_planner_load > 8, -10),
    (lambda s: s.raw_planner_load <= 4, +5),
)

RECOVERY_LABELS: tuple[tuple[Callable[[int], bool], str], ...] = (
    (lambda score: score >= 80, "Recharged"),
    (lambda score: score < 55, "Under-recovered"),
)
DEFAULT_RECOVERY_LABEL = "Balanced"

RECOVERY_SUGGESTIONS = {
    "Recharged": (
        "You have enough recovery capital. You can safely schedule one ambitious "
        "deep-work block tomorrow."
    ),
    "Under-recovered": (
        "Inject a 10–15 minute active reset (walk, stretch, light breathing) "
        "before loading more tasks."
    ),
    "Balanced": "Protect one short reset block before the next big focus window.",
}


@dataclass(frozen=True)
class Recovery:
    score: int
    label: str
    suggestion: str


def recovery_score(s: Signals) -> int:
    score = RECOVERY_BASE + sum(delta for predicate, delta in RECOVERY_ADJUSTMENTS if predicate(s))
    return int(clamp(score, 0, 100))


def recovery_label(score: int) -> str:
    for predicate, label in RECOVERY_LABELS:
        if predicate(score):
            return label
    return DEFAULT_RECOVERY_LABEL


def recovery(s: Signals) -> Recovery:
    score = recovery_score(s)
    label = recovery_label(score)
    return Recovery(score=score, label=label, suggestion=RECOVERY_SUGGESTIONS[label])


# ═══════════════════════════════════════════════════════════════════════════
# Burnout risk
# ═══════════════════════════════════════════════════════════════════════════

BURNOUT_LADDER: tuple[Rule, ...] = (
    (lambda s: s.focus_minutes > 260 and 0 < s.mood_score < 55, "high"),
    (lambda s: s.focus_minutes > 200 and 0 < s.mood_score < 60, "medium"),
)


def burnout_risk(s: Signals) -> str:
    return first_match(BURNOUT_LADDER, s, "low")


# ═══════════════════════════════════════════════════════════════════════════
# Identity rank
# ═══════════════════════════════════════════════════════════════════════════

IDENTITY_RULES: tuple[Rule, ...] = (
    (lambda s: s.champion_score >= 80 and s.current_streak >= 7, "Executor"),
    (lambda s: s.raw_planner_load >= 6 and s.completion_rate >= 70, "Builder"),
    (lambda s: s.current_streak >= 5 and (s.mood_score == 0 or s.mood_score >= 60), "Stabilizer"),
    (lambda s: s.mood_score >= 80, "Creative"),
    (lambda s: s.raw_planner_load >= 4 and s.completion_rate >= 65, "Strategist"),
    (lambda s: s.focus_minutes >= 200 and 0 < s.mood_score < 60, "Pusher"),
    (lambda s: s.recovery_score >= 70 and s.productivity_score < 60, "Recoverer"),
)
DEFAULT_IDENTITY = "Stabilizer"


def identity_rank(s: Signals) -> str:
    """Needs `champion_score`, `productivity_score` and `recovery_score` populated."""
    return first_match(IDENTITY_RULES, s, DEFAULT_IDENTITY)


# ═══════════════════════════════════════════════════════════════════════════
# Future window
# ═══════════════════════════════════════════════════════════════════════════

MOOD_PREDICTIONS: tuple[Rule, ...] = (
    (
        lambda s: s.mood_score >= 80,
        "Mood curve is elevated — ideal moment to push one ambitious block.",
    ),
    (
        lambda s: 0 < s.mood_score < 60,
        "Mood curve shows pressure — one micro-reset per block will prevent a dip.",
    ),
)
DEFAULT_MOOD_PREDICTION = "Mood will likely stay stable with light oscillations."

CONSISTENCY_PREDICTIONS: tuple[Rule, ...] = (
    (
        lambda s: s.current_streak >= 7,
        "Your streak engine is strong. Even a 5-minute action on hard days "
        "preserves identity-level consistency.",
    ),
    (
        lambda s: s.current_streak == 0,
        "No active streak yet. One action per day this week is enough to boot the system.",
    ),
)
DEFAULT_CONSISTENCY_PREDICTION = "Your consistency is forming — tiny daily actions will lock it in."

OVERLOAD_THRESHOLD = 10


@dataclass(frozen=True)
class FutureWindow:
    burnout_risk: str
    best_deep_work_hint: str
    mood_prediction: str
    consistency_prediction: str
    overload_hint: str

    def to_dict(self) -> dict:
        return {
            "burnoutRisk": self.burnout_risk,
            "bestDeepWorkHint": self.best_deep_work_hint,
            "moodPrediction": self.mood_prediction,
            "consistencyPrediction": self.consistency_prediction,
            "overloadHint": self.overload_hint,
        }


def future_window(s: Signals) -> FutureWindow:
    if s.best_focus_day_label:
        hint = (
            "Next 3 deep-work windows should mirror your strongest pattern: "
            f"{s.best_focus_day_label} focus style."
        )
    else:
        hint = "Align deep work with your best focus day."

    if s.raw_planner_load > OVERLOAD_THRESHOLD:
        overload = "Planner overload detected. Cap visible tasks at 5–7 to avoid cognitive drag."
    else:
        overload = (
            "Planner load is within a healthy band. Keep capture simple and "
            "visible list short."
        )

    risk = burnout_risk(s)
    if risk != "low":
        logger.debug(f"Burnout risk {risk}: focus={s.focus_minutes}min mood={s.mood_score}")

    return FutureWindow(
        burnout_risk=risk,
        best_deep_work_hint=hint,
        mood_prediction=first_match(MOOD_PREDICTIONS, s, DEFAULT_MOOD_PREDICTION),
        consistency_prediction=first_match(
            CONSISTENCY_PREDICTIONS, s, DEFAULT_CONSISTENCY_PREDICTION
        ),
        overload_hint=overload,
    )
