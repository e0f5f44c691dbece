"""Behavioral profiles: fixed multiplier sets that bias the metrics engine.

Reference lookup (one profile per behavioral archetype):

Profile     | Focus | Mood | Streak | Planning | Archetype
Shadows     | 1.12  | 0.90 | 1.10   | 0.80     | Deep-focus specialists
Speedsters  | 1.08  | 0.85 | 0.95   | 1.10     | Fast execution bursts
Engineers   | 1.06  | 1.00 | 1.25   | 0.70     | Logical task precision
Hipsters    | 1.04  | 1.40 | 0.90   | 1.20     | Creative flow cycles

Selecting a profile only changes which multipliers the engine reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BehavioralProfile:
    key: str
    label: str
    tagline: str
    focus_multiplier: float = 1.0
    mood_weight: float = 1.0
    streak_focus_bias: float = 1.0
    planning_sensitivity: float = 1.0
    flavor: str = ""                  # opening clause of the narrative
    suggested_focus_block: str = "10:00–12:00"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "tagline": self.tagline,
            "focus_multiplier": self.focus_multiplier,
            "mood_weight": self.mood_weight,
            "streak_focus_bias": self.streak_focus_bias,
            "planning_sensitivity": self.planning_sensitivity,
            "suggested_focus_block": self.suggested_focus_block,
        }


PROFILES: dict[str, BehavioralProfile] = {
    "Shadows": BehavioralProfile(
        key="Shadows",
        label="Shadows",
        tagline="Deep-focus specialists.",
        focus_multiplier=1.12,
        mood_weight=0.9,
        streak_focus_bias=1.1,
        planning_sensitivity=0.8,
        flavor=(
            "As a Shadows profile, your system is biased toward deep-focus "
            "intervals and quieter environments."
        ),
        suggested_focus_block="20:00–22:00",
    ),
    "Speedsters": BehavioralProfile(
        key="Speedsters",
        label="Speedsters",
        tagline="Fast execution bursts.",
        focus_multiplier=1.08,
        mood_weight=0.85,
        streak_focus_bias=0.95,
        planning_sensitivity=1.1,
        flavor=(
            "As a Speedsters profile, your system thrives on quick bursts and "
            "high-momentum task switching."
        ),
        suggested_focus_block="09:35–11:10",
    ),
    "Engineers": BehavioralProfile(
        key="Engineers",
        label="Engineers",
        tagline="Logical task precision.",
        focus_multiplier=1.06,
        mood_weight=1.0,
        streak_focus_bias=1.25,
        planning_sensitivity=0.7,
        flavor=(
            "As an Engineers profile, your system leans toward structured plans "
            "and consistent execution."
        ),
        suggested_focus_block="09:00–11:00",
    ),
    "Hipsters": BehavioralProfile(
        key="Hipsters",
        label="Hipsters",
        tagline="Creative flow cycles.",
        focus_multiplier=1.04,
        mood_weight=1.4,
        streak_focus_bias=0.9,
        planning_sensitivity=1.2,
        flavor=(
            "As a Hipsters profile, your system operates in creative waves — mood "
            "and environment shape output."
        ),
        suggested_focus_block="13:00–15:00",
    ),
}

DEFAULT_PROFILE_KEY = "Speedsters"

# Unscaled arithmetic: every multiplier is 1.0
NEUTRAL_PROFILE = BehavioralProfile(key="Neutral", label="Neutral", tagline="Unweighted metrics.")


def get_profile(key: Optional[str] = None) -> BehavioralProfile:
    """Look up a profile by key; unknown or missing keys fall back to the default."""
    if key and key in PROFILES:
        return PROFILES[key]
    return PROFILES[DEFAULT_PROFILE_KEY]
