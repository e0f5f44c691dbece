"""Composite scoring, XP and leveling — pure functions over aggregated figures."""

from __future__ import annotations

from dataclasses import dataclass

from mindflow.engine.aggregation import clamp, round_half_up
from mindflow.models.profiles import BehavioralProfile

# Absent mood counts as neutral, not zero
NEUTRAL_MOOD = 60

# Productivity: focus volume capped at 40 points, completion and mood ~30 each
FOCUS_POINTS_CAP = 40
COMPLETION_WEIGHT = 0.3
MOOD_WEIGHT = 0.3

# XP per unit of activity
XP_PER_COMPLETED_TASK = 2
XP_PER_FOCUS_SESSION = 5
XP_PER_MOOD_ENTRY = 1
XP_PER_STREAK_DAY = 3
XP_PER_PLANNER_BLOCK = 1


@dataclass(frozen=True)
class LevelBand:
    level: int
    label: str
    min_xp: int
    max_xp: int


# Closed-open bands, lowest first. The top band's max only bounds the progress bar.
LEVEL_BANDS: tuple[LevelBand, ...] = (
    LevelBand(1, "Apprentice", 0, 60),
    LevelBand(2, "Stable Loop", 60, 150),
    LevelBand(3, "Flow Architect", 150, 260),
    LevelBand(4, "Neural Operator", 260, 400),
    LevelBand(5, "Plasma Master", 400, 600),
)


@dataclass(frozen=True)
class LevelInfo:
    xp: int
    level: int
    label: str
    band_min: int
    band_max: int
    progress: float          # 0.0 – 1.0 within the band


def productivity_score(
    focus_minutes: float,
    completion_rate: float,
    mood_score: float,
    profile: BehavioralProfile,
) -> int:
    focus_points = min(focus_minutes / 2, FOCUS_POINTS_CAP)
    completion_points = completion_rate * COMPLETION_WEIGHT
    mood_points = (mood_score or NEUTRAL_MOOD) * MOOD_WEIGHT * profile.mood_weight
    score = round_half_up(min(focus_points + completion_points + mood_points, 100))
    return int(clamp(score, 0, 100))


def experience_points(
    completed_tasks: int,
    focus_sessions: int,
    mood_entries: int,
    current_streak: int,
    planner_blocks: int,
) -> int:
    return (
        XP_PER_COMPLETED_TASK * completed_tasks
        + XP_PER_FOCUS_SESSION * focus_sessions
        + XP_PER_MOOD_ENTRY * mood_entries
        + XP_PER_STREAK_DAY * current_streak
        + XP_PER_PLANNER_BLOCK * planner_blocks
    )


def level_for(xp: int) -> LevelInfo:
    """Resolve the highest band whose minimum `xp` reaches."""
    band = LEVEL_BANDS[0]
    for candidate in LEVEL_BANDS:
        if xp >= candidate.min_xp:
            band = candidate
    span = (band.max_xp - band.min_xp) or 1
    return LevelInfo(
        xp=xp,
        level=band.level,
        label=band.label,
        band_min=band.min_xp,
        band_max=band.max_xp,
        progress=clamp((xp - band.min_xp) / span, 0.0, 1.0),
    )


@dataclass(frozen=True)
class ChampionFactors:
    focus: float
    consistency: float
    balance: float
    flow: float

    @property
    def score(self) -> int:
        return round_half_up(self.focus * self.consistency * self.balance * self.flow * 100)


def champion_factors(
    focus_minutes: float,
    current_streak: int,
    raw_planner_load: int,
    mood_score: float,
) -> ChampionFactors:
    """Focus × consistency × balance × flow, each normalized to [0, 1].

    Balance peaks at six planner blocks and falls off symmetrically.
    """
    return ChampionFactors(
        focus=clamp(focus_minutes / 200, 0.0, 1.0),
        consistency=clamp(current_streak / 10, 0.0, 1.0),
        balance=clamp(1 - abs(raw_planner_load - 6) / 10, 0.0, 1.0),
        flow=clamp((mood_score or NEUTRAL_MOOD) / 100, 0.0, 1.0),
    )


def champion_score(
    focus_minutes: float,
    current_streak: int,
    raw_planner_load: int,
    mood_score: float,
) -> int:
    return champion_factors(focus_minutes, current_streak, raw_planner_load, mood_score).score
