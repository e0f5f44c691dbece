"""Workspace service: record CRUD over the local store plus metrics recompute.

The workspace keeps the current Snapshot in memory. Every mutation replaces
the in-memory snapshot first, notifies listeners, then writes the affected
collection to the store. A failed write is logged by the store and does not
stop the in-memory state from advancing.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from mindflow.config.settings import (
    DEFAULT_PROFILE,
    MANUAL_FOCUS_MINUTES,
    STREAK_LOOKBACK_DAYS,
    WEEKLY_WINDOW_DAYS,
)
from mindflow.engine.aggregation import day_key, local_day, round_half_up
from mindflow.engine.metrics import MetricsReport, compute_metrics
from mindflow.engine.narrative import quick_insights, suggestion_line
from mindflow.models.profiles import PROFILES, BehavioralProfile, get_profile
from mindflow.models.records import (
    FocusSession,
    Goal,
    MoodEntry,
    Note,
    PlannerBlock,
    Priority,
    Snapshot,
    Task,
    new_id,
)
from mindflow.services import store as store_keys
from mindflow.services.focus_timer import AsyncioClock, Clock, FocusStats, manual_session, timer_suggestion
from mindflow.services.store import LocalStore

logger = logging.getLogger(__name__)

Listener = Callable[["Workspace"], Any]


class RecordNotFound(KeyError):
    """No record with the requested id in the collection."""


def _require_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValueError("Title must not be empty")
    return title.strip()


def _find(records: tuple, record_id: str, kind: str):
    for idx, rec in enumerate(records):
        if rec.id == record_id:
            return idx, rec
    raise RecordNotFound(f"{kind} {record_id} not found")


def _without(records: tuple, idx: int) -> tuple:
    return records[:idx] + records[idx + 1:]


def _replaced(records: tuple, idx: int, rec) -> tuple:
    return records[:idx] + (rec,) + records[idx + 1:]


class Workspace:
    def __init__(
        self,
        store: LocalStore,
        clock: Optional[Clock] = None,
        default_profile: str = DEFAULT_PROFILE,
        lookback_days: int = STREAK_LOOKBACK_DAYS,
        window_days: int = WEEKLY_WINDOW_DAYS,
    ):
        self.store = store
        self.clock = clock or AsyncioClock()
        self.default_profile = default_profile
        self.lookback_days = lookback_days
        self.window_days = window_days
        self.snapshot = Snapshot()
        self.profile_key = get_profile(default_profile).key
        self.focus_stats = FocusStats()
        self._listeners: list[Listener] = []

    # ── Loading ──────────────────────────────────────────────────────────

    def load(self) -> Snapshot:
        """Read every collection from the store into memory."""
        self.snapshot = Snapshot.from_raw(
            tasks=self.store.get(store_keys.TASKS_KEY),
            focus_sessions=self.store.get(store_keys.FOCUS_KEY),
            moods=self.store.get(store_keys.MOODS_KEY),
            planner=self.store.get(store_keys.PLANNER_KEY),
            goals=self.store.get(store_keys.GOALS_KEY),
            notes=self.store.get(store_keys.NOTES_KEY),
        )
        stored_profile = self.store.get(store_keys.ACTIVE_PROFILE_KEY)
        self.profile_key = get_profile(
            stored_profile if isinstance(stored_profile, str) and stored_profile in PROFILES
            else self.default_profile
        ).key
        self.focus_stats = FocusStats.from_dict(self.store.get(store_keys.FOCUS_STATS_KEY))
        logger.info(
            f"Workspace loaded: {len(self.snapshot.tasks)} tasks, "
            f"{len(self.snapshot.focus_sessions)} sessions, profile={self.profile_key}"
        )
        return self.snapshot

    @property
    def profile(self) -> BehavioralProfile:
        return get_profile(self.profile_key)

    # ── Change propagation ───────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Workspace listener failed: {e}")

    def _commit(self, snapshot: Snapshot, key: str, records: tuple) -> None:
        self.snapshot = snapshot
        self._notify()
        self.store.set(key, [r.to_dict() for r in records])

    # ── Tasks ────────────────────────────────────────────────────────────

    def list_tasks(self) -> list[Task]:
        return list(self.snapshot.tasks)

    def add_task(self, title: str, priority: str = Priority.MEDIUM, category: str = "") -> Task:
        task = Task(
            id=new_id(),
            title=_require_title(title),
            priority=Priority.normalize(priority),
            category=category or "",
            created_at=self.clock.now(),
        )
        tasks = self.snapshot.tasks + (task,)
        self._commit(replace(self.snapshot, tasks=tasks), store_keys.TASKS_KEY, tasks)
        return task

    def update_task(
        self,
        task_id: str,
        title: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Task:
        idx, task = _find(self.snapshot.tasks, task_id, "Task")
        if title is not None:
            task = replace(task, title=_require_title(title))
        if priority is not None:
            task = replace(task, priority=Priority.normalize(priority))
        if category is not None:
            task = replace(task, category=category)
        if completed is not None and completed != task.completed:
            task = task.mark_completed(self.clock.now()) if completed else task.reopen()
        tasks = _replaced(self.snapshot.tasks, idx, task)
        self._commit(replace(self.snapshot, tasks=tasks), store_keys.TASKS_KEY, tasks)
        return task

    def toggle_task(self, task_id: str) -> Task:
        _, task = _find(self.snapshot.tasks, task_id, "Task")
        return self.update_task(task_id, completed=not task.completed)

    def delete_task(self, task_id: str) -> None:
        idx, _ = _find(self.snapshot.tasks, task_id, "Task")
        tasks = _without(self.snapshot.tasks, idx)
        self._commit(replace(self.snapshot, tasks=tasks), store_keys.TASKS_KEY, tasks)

    # ── Notes ────────────────────────────────────────────────────────────

    def list_notes(self) -> list[Note]:
        return list(self.snapshot.notes)

    def add_note(self, title: str, content: str = "") -> Note:
        note = Note(
            id=new_id(),
            title=_require_title(title),
            content=content or "",
            created_at=self.clock.now(),
        )
        notes = (note,) + self.snapshot.notes     # newest first
        self._commit(replace(self.snapshot, notes=notes), store_keys.NOTES_KEY, notes)
        return note

    def update_note(
        self, note_id: str, title: Optional[str] = None, content: Optional[str] = None
    ) -> Note:
        idx, note = _find(self.snapshot.notes, note_id, "Note")
        if title is not None:
            note = replace(note, title=_require_title(title))
        if content is not None:
            note = replace(note, content=content)
        notes = _replaced(self.snapshot.notes, idx, note)
        self._commit(replace(self.snapshot, notes=notes), store_keys.NOTES_KEY, notes)
        return note

    def delete_note(self, note_id: str) -> None:
        idx, _ = _find(self.snapshot.notes, note_id, "Note")
        notes = _without(self.snapshot.notes, idx)
        self._commit(replace(self.snapshot, notes=notes), store_keys.NOTES_KEY, notes)

    # ── Planner ──────────────────────────────────────────────────────────

    def list_planner(self) -> list[PlannerBlock]:
        return self.snapshot.sorted_planner()

    def add_planner_block(self, time: str, title: str) -> PlannerBlock:
        if not isinstance(time, str) or not time.strip():
            raise ValueError("Time must not be empty")
        block = PlannerBlock(id=new_id(), time=time.strip(), title=_require_title(title))
        planner = self.snapshot.planner + (block,)
        self._commit(replace(self.snapshot, planner=planner), store_keys.PLANNER_KEY, planner)
        return block

    def delete_planner_block(self, block_id: str) -> None:
        idx, _ = _find(self.snapshot.planner, block_id, "Planner block")
        planner = _without(self.snapshot.planner, idx)
        self._commit(replace(self.snapshot, planner=planner), store_keys.PLANNER_KEY, planner)

    # ── Goals ────────────────────────────────────────────────────────────

    def list_goals(self) -> list[Goal]:
        return list(self.snapshot.goals)

    def add_goal(self, title: str, description: str = "", progress: float = 0) -> Goal:
        goal = Goal(
            id=new_id(),
            title=_require_title(title),
            description=description or "",
            progress=max(0.0, min(100.0, float(progress))),
        )
        goals = self.snapshot.goals + (goal,)
        self._commit(replace(self.snapshot, goals=goals), store_keys.GOALS_KEY, goals)
        return goal

    def update_goal(
        self,
        goal_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        progress: Optional[float] = None,
    ) -> Goal:
        idx, goal = _find(self.snapshot.goals, goal_id, "Goal")
        if title is not None:
            goal = replace(goal, title=_require_title(title))
        if description is not None:
            goal = replace(goal, description=description)
        if progress is not None:
            goal = replace(goal, progress=max(0.0, min(100.0, float(progress))))
        goals = _replaced(self.snapshot.goals, idx, goal)
        self._commit(replace(self.snapshot, goals=goals), store_keys.GOALS_KEY, goals)
        return goal

    def delete_goal(self, goal_id: str) -> None:
        idx, _ = _find(self.snapshot.goals, goal_id, "Goal")
        goals = _without(self.snapshot.goals, idx)
        self._commit(replace(self.snapshot, goals=goals), store_keys.GOALS_KEY, goals)

    # ── Moods ────────────────────────────────────────────────────────────

    def log_mood(self, label: str = "", score: Optional[float] = None) -> MoodEntry:
        """Log today's mood, replacing any entry already logged today."""
        if not (label and label.strip()) and score is None:
            raise ValueError("A mood needs a label or a score")
        now = self.clock.now()
        if score is not None:
            score = max(0.0, min(100.0, float(score)))
        entry = MoodEntry(label=(label or "").strip(), score=score, date=now)
        today = local_day(now, now)
        moods = tuple(m for m in self.snapshot.moods if local_day(m.date, now) != today)
        moods = moods + (entry,)
        self._commit(replace(self.snapshot, moods=moods), store_keys.MOODS_KEY, moods)
        return entry

    # ── Focus ────────────────────────────────────────────────────────────

    def add_focus_session(self, session: FocusSession) -> FocusSession:
        snapshot = self.snapshot.with_session(session)
        now = self.clock.now()
        self.focus_stats.record(
            round_half_up(session.duration_seconds / 60),
            day_key(local_day(session.date, now)),
        )
        self._commit(snapshot, store_keys.FOCUS_KEY, snapshot.focus_sessions)
        self.store.set(store_keys.FOCUS_STATS_KEY, self.focus_stats.to_dict())
        return session

    def add_manual_focus(self, minutes: int = MANUAL_FOCUS_MINUTES) -> FocusSession:
        return self.add_focus_session(manual_session(minutes, self.clock.now()))

    def focus_today(self) -> dict[str, int]:
        now = self.clock.now()
        return self.focus_stats.for_day(day_key(now.date()))

    # ── Profile ──────────────────────────────────────────────────────────

    def select_profile(self, key: str) -> BehavioralProfile:
        if key not in PROFILES:
            raise KeyError(f"Unknown profile: {key}")
        self.profile_key = key
        self._notify()
        self.store.set(store_keys.ACTIVE_PROFILE_KEY, key)
        logger.info(f"Behavioral profile set to {key}")
        return PROFILES[key]

    # ── Local user (no real authentication) ──────────────────────────────

    def save_user(self, user: dict) -> dict:
        self.store.set(store_keys.USER_KEY, user)
        return user

    def get_user(self) -> Optional[dict]:
        user = self.store.get(store_keys.USER_KEY)
        return user if isinstance(user, dict) else None

    def clear_user(self) -> None:
        self.store.remove(store_keys.USER_KEY)

    # ── Derived views ────────────────────────────────────────────────────

    def metrics(self, now: Optional[datetime] = None) -> MetricsReport:
        return compute_metrics(
            self.snapshot,
            self.profile,
            now or self.clock.now(),
            lookback_days=self.lookback_days,
            window_days=self.window_days,
        )

    def insights(self, now: Optional[datetime] = None, timer_running: bool = False,
                 zen_lock: bool = False) -> dict:
        report = self.metrics(now)
        today = self.focus_stats.for_day(day_key(report.generated_at.date()))
        return {
            "quickInsights": quick_insights(self.snapshot),
            "suggestion": suggestion_line(self.snapshot, report.focus_today_minutes),
            "focusCoach": timer_suggestion(
                timer_running, today["minutes"], today["sessions"], zen_lock
            ),
            "completedToday": report.completed_today,
            "focusToday": today,
        }

    def export_payload(self) -> dict:
        payload: dict[str, Any] = self.snapshot.to_dict()
        payload.update({
            "profile": self.profile_key,
            "user": self.get_user(),
            "focusStats": self.focus_stats.to_dict(),
            "exportedAt": self.clock.now().isoformat(),
        })
        return payload

    def reset(self) -> None:
        """Wipe every local collection (the user stays signed in).

        The stored profile is removed too, so the active profile returns to
        the default just as it would on the next load.
        """
        self.snapshot = Snapshot()
        self.focus_stats = FocusStats()
        self.profile_key = get_profile(self.default_profile).key
        for key in store_keys.STORAGE_KEYS:
            if key != store_keys.USER_KEY:
                self.store.remove(key)
        self._notify()
