"""Tests for record parsing, task invariants and the Snapshot container."""

from datetime import datetime, timedelta, timezone

from mindflow.models.profiles import DEFAULT_PROFILE_KEY, NEUTRAL_PROFILE, PROFILES, get_profile
from mindflow.models.records import (
    FocusSession,
    Goal,
    MoodEntry,
    Priority,
    Snapshot,
    Task,
    parse_records,
    parse_timestamp,
)


class TestParseTimestamp:
    def test_iso_with_z_suffix(self):
        ts = parse_timestamp("2026-02-15T09:30:00.000Z")
        assert ts == datetime(2026, 2, 15, 9, 30, tzinfo=timezone.utc)

    def test_date_to_string_format(self):
        """The mobile client stores mood dates via Date.toDateString()."""
        assert parse_timestamp("Sun Feb 15 2026") == datetime(2026, 2, 15)

    def test_epoch_milliseconds(self):
        ts = parse_timestamp(1771149600000)
        assert ts == datetime(2026, 2, 15, 10, 0, tzinfo=timezone.utc)

    def test_garbage_is_none(self):
        assert parse_timestamp("yesterday-ish") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(True) is None
        assert parse_timestamp({"d": 1}) is None


class TestTask:
    def test_from_dict_accepts_done_alias(self):
        task = Task.from_dict({"id": "t1", "title": "Read", "done": True,
                               "createdAt": "2026-02-15T08:00:00Z"})
        assert task.completed is True

    def test_completed_at_dropped_when_not_completed(self):
        task = Task.from_dict({"id": "t1", "title": "Read", "completed": False,
                               "completedAt": "2026-02-15T08:00:00Z"})
        assert task.completed_at is None

    def test_completed_at_never_before_created_at(self):
        task = Task.from_dict({
            "id": "t1",
            "title": "Read",
            "completed": True,
            "createdAt": "2026-02-15T08:00:00Z",
            "completedAt": "2026-02-14T08:00:00Z",
        })
        assert task.completed_at == task.created_at

    def test_mark_completed_and_reopen(self, frozen_now):
        task = Task(id="t1", title="Read", created_at=frozen_now - timedelta(hours=2))
        done = task.mark_completed(frozen_now)
        assert done.completed and done.completed_at == frozen_now
        assert task.completed is False          # input untouched

        reopened = done.reopen()
        assert reopened.completed is False
        assert reopened.completed_at is None

    def test_unknown_priority_becomes_medium(self):
        assert Task.from_dict({"title": "x", "priority": "urgent"}).priority == Priority.MEDIUM
        assert Task.from_dict({"title": "x", "priority": "high"}).priority == Priority.HIGH

    def test_missing_id_generates_one(self):
        assert Task.from_dict({"title": "x"}).id

    def test_to_dict_uses_client_field_names(self, frozen_now):
        d = Task(id="t1", title="Read", created_at=frozen_now).to_dict()
        assert d["createdAt"] == frozen_now.isoformat()
        assert d["completedAt"] is None


class TestFocusAndMood:
    def test_session_duration_aliases(self):
        assert FocusSession.from_dict({"duration": 1500}).duration_seconds == 1500
        assert FocusSession.from_dict({"seconds": 60}).duration_seconds == 60

    def test_negative_or_non_numeric_duration_is_zero(self):
        assert FocusSession.from_dict({"duration": -30}).duration_seconds == 0
        assert FocusSession.from_dict({"duration": "long"}).duration_seconds == 0

    def test_mood_accepts_mood_key(self):
        assert MoodEntry.from_dict({"mood": "Great"}).label == "Great"

    def test_goal_progress_clamped(self):
        assert Goal.from_dict({"title": "g", "progress": 140}).progress == 100
        assert Goal.from_dict({"title": "g", "progress": -5}).progress == 0


class TestSnapshot:
    def test_non_list_collections_read_as_empty(self):
        snap = Snapshot.from_raw(tasks={"not": "a list"}, focus_sessions="oops", moods=None)
        assert snap.tasks == ()
        assert snap.focus_sessions == ()
        assert snap.moods == ()

    def test_non_mapping_entries_dropped(self):
        snap = Snapshot.from_raw(tasks=[{"title": "ok"}, None, 42, "x"])
        assert len(snap.tasks) == 1

    def test_parse_records_keeps_instances(self):
        s = FocusSession(duration_seconds=60)
        assert parse_records([s, {"duration": 30}], FocusSession)[0] is s

    def test_with_session_is_copy_on_write(self):
        snap = Snapshot()
        grown = snap.with_session(FocusSession(duration_seconds=60))
        assert snap.focus_sessions == ()
        assert len(grown.focus_sessions) == 1

    def test_planner_sorted_by_time(self):
        snap = Snapshot.from_raw(planner=[
            {"id": "b", "time": "13:00", "title": "Lunch walk"},
            {"id": "a", "time": "08:30", "title": "Plan"},
        ])
        assert [b.id for b in snap.sorted_planner()] == ["a", "b"]


class TestProfiles:
    def test_unknown_key_falls_back_to_default(self):
        assert get_profile("Wizards").key == DEFAULT_PROFILE_KEY
        assert get_profile(None).key == "Speedsters"

    def test_four_profiles(self):
        assert set(PROFILES) == {"Shadows", "Speedsters", "Engineers", "Hipsters"}
        assert PROFILES["Hipsters"].mood_weight == 1.4

    def test_neutral_profile_is_unscaled(self):
        p = NEUTRAL_PROFILE
        assert (p.focus_multiplier, p.mood_weight, p.streak_focus_bias,
                p.planning_sensitivity) == (1.0, 1.0, 1.0, 1.0)
