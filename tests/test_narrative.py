"""Tests for the narrative generator: clause order, thresholds, alerts and insights."""

from datetime import date

from mindflow.engine.classification import Signals
from mindflow.engine.narrative import (
    STABLE_ALERT,
    brain_text,
    forecast_text,
    projected_score,
    quick_insights,
    suggestion_line,
    system_alerts,
    timeline,
)
from mindflow.models.profiles import NEUTRAL_PROFILE, PROFILES
from mindflow.models.records import Goal, Note, PlannerBlock, Priority, Snapshot, Task


class TestBrainText:
    def test_onboarding_when_empty(self):
        text = brain_text(PROFILES["Engineers"], Signals())
        assert text.startswith("MindFlow Neural Core is online.")
        assert "Engineers profile" in text

    def test_clause_order(self):
        s = Signals(focus_minutes=200, total_tasks=5, completion_rate=90,
                    mood_score=85, current_streak=4)
        text = brain_text(PROFILES["Shadows"], s)
        flavor = text.index("As a Shadows profile")
        focus = text.index("high-performance bracket")
        completion = text.index("task conversion rate is strong")
        mood = text.index("Mood regulation is strongly supportive")
        streak = text.index("4 days of consistent engagement")
        assert flavor < focus < completion < mood < streak

    def test_focus_thresholds(self):
        p = NEUTRAL_PROFILE
        assert "high-performance bracket" in brain_text(p, Signals(focus_minutes=151))
        assert "consistent focus habit" in brain_text(p, Signals(focus_minutes=150))
        assert "consistent focus habit" in brain_text(p, Signals(focus_minutes=61))
        assert "still light" in brain_text(p, Signals(focus_minutes=60))

    def test_completion_clause_needs_tasks(self):
        text = brain_text(NEUTRAL_PROFILE, Signals(focus_minutes=30))
        assert "convert" not in text and "backlog" not in text

    def test_completion_thresholds(self):
        p = NEUTRAL_PROFILE
        assert "strong" in brain_text(p, Signals(total_tasks=5, completion_rate=80))
        assert "around half" in brain_text(p, Signals(total_tasks=5, completion_rate=50))
        assert "backlog is dense" in brain_text(p, Signals(total_tasks=5, completion_rate=49))

    def test_mood_clause_only_with_mood(self):
        p = NEUTRAL_PROFILE
        assert "Mood" not in brain_text(p, Signals(total_tasks=1))
        assert "broadly stable" in brain_text(p, Signals(total_tasks=1, mood_score=60))
        assert "fatigue" in brain_text(p, Signals(total_tasks=1, mood_score=59))

    def test_streak_clause_threshold(self):
        p = NEUTRAL_PROFILE
        assert "streak stability" not in brain_text(p, Signals(total_tasks=1, current_streak=2))
        assert "3 days" in brain_text(p, Signals(total_tasks=1, current_streak=3))

    def test_neutral_profile_has_no_flavor(self):
        text = brain_text(NEUTRAL_PROFILE, Signals(focus_minutes=10))
        assert text.startswith("Focus volume is still light.")

    def test_deterministic(self):
        s = Signals(focus_minutes=90, total_tasks=3, completion_rate=66, mood_score=70)
        assert brain_text(PROFILES["Hipsters"], s) == brain_text(PROFILES["Hipsters"], s)


class TestForecast:
    def test_empty_message(self):
        assert forecast_text(PROFILES["Speedsters"], Signals(mood_score=70)).startswith(
            "After two or three active days"
        )

    def test_projected_score_clamped(self):
        assert projected_score(10) == 40
        assert projected_score(60) == 65
        assert projected_score(97) == 98

    def test_includes_suggested_block_and_clauses(self):
        s = Signals(total_tasks=2, productivity_score=70, mood_score=50, raw_planner_load=7)
        text = forecast_text(PROFILES["Hipsters"], s)
        assert "around 75 / 100 for a Hipsters profile" in text
        assert "13:00–15:00" in text
        assert "under pressure" in text
        assert "planner density is high" in text

    def test_planner_clause_threshold(self):
        s = Signals(total_tasks=2, raw_planner_load=6)
        assert "planner density" not in forecast_text(PROFILES["Engineers"], s)


class TestSystemAlerts:
    def test_stable_when_nothing_fires(self):
        assert system_alerts(NEUTRAL_PROFILE, Signals()) == [STABLE_ALERT]

    def test_profile_specific_alert(self):
        alerts = system_alerts(PROFILES["Engineers"], Signals(raw_planner_load=11))
        assert alerts[0].title == "Engineer over-planning loop"
        # Other profiles ignore it
        assert system_alerts(PROFILES["Hipsters"], Signals(raw_planner_load=11)) == [STABLE_ALERT]

    def test_mismatch_suppressed_by_existing_critical(self):
        s = Signals(focus_minutes=170, mood_score=50)
        shadows = [a.title for a in system_alerts(PROFILES["Shadows"], s)]
        assert shadows == ["Shadow deep-focus overload"]

        speed = [a.title for a in system_alerts(PROFILES["Speedsters"], s)]
        assert speed == ["Performance–mood mismatch"]

    def test_backlog_and_streak(self):
        s = Signals(total_tasks=7, completion_rate=40, current_streak=5)
        alerts = system_alerts(NEUTRAL_PROFILE, s)
        assert [a.severity for a in alerts] == ["high", "positive"]
        assert "5 days" in alerts[1].body


class TestTimeline:
    def test_initializing(self):
        t = timeline(Signals(), longest_streak=0, best_minutes=0)
        assert t.title == "Behavior snapshot initializing…"

    def test_full_snapshot(self):
        s = Signals(total_tasks=3, focus_minutes=80, current_streak=2, best_focus_day_label="Mon")
        t = timeline(s, longest_streak=4, best_minutes=50,
                     lowest_mood_score=44.6, lowest_mood_date=date(2026, 2, 3))
        assert "Best focus pulse this week: 50 min on Mon." in t.body
        assert "Active streak: 2 days · All-time longest: 4 days." in t.body
        assert "Lowest mood signal: 45 on 03 Feb." in t.body

    def test_without_streak_or_mood(self):
        t = timeline(Signals(total_tasks=1), longest_streak=2, best_minutes=0)
        assert "All-time longest streak so far: 2 days." in t.body
        assert "Mood curve is still being mapped." in t.body
        assert "No clear best focus day yet" in t.body


class TestWorkspaceInsights:
    def test_fallback_line(self):
        assert quick_insights(Snapshot()) == [
            "Your system looks stable. Use Goals and Planner to stretch just a little more."
        ]

    def test_high_priority_low_goal_and_planner(self):
        snap = Snapshot(
            tasks=(
                Task(id="a", title="A", priority=Priority.HIGH),
                Task(id="b", title="B", priority=Priority.HIGH),
                Task(id="c", title="C", priority=Priority.HIGH, completed=True),
            ),
            goals=(Goal(id="g", title="G", progress=20),),
            planner=(PlannerBlock(id="p", time="09:00", title="Deep work"),),
        )
        lines = quick_insights(snap)
        assert lines[0] == "Start with 2 high-priority tasks to unlock momentum."
        assert lines[1].startswith("Pick one goal under 40%")
        assert lines[2].startswith("Assign at least one important task")

    def test_suggestion_line_ladder(self):
        many_open = Snapshot(tasks=tuple(Task(id=str(i), title="t") for i in range(6)))
        assert suggestion_line(many_open, 90).startswith("Try reducing clutter")
        assert suggestion_line(Snapshot(), 39).startswith("Your focus is still warming up")
        assert suggestion_line(Snapshot(), 40).startswith("Capture one thought")
        with_note = Snapshot(notes=(Note(id="n", title="n"),))
        assert suggestion_line(with_note, 40).startswith("You're balanced today")
