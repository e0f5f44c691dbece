#!/usr/bin/env python3
"""Seed Redis with a week of demo workspace data.

Run: python scripts/seed_demo.py [--profile Engineers]
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

import redis

_root_dir = Path(__file__).resolve().parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

from mindflow.config.settings import DEFAULT_PROFILE, REDIS_URL  # noqa: E402
from mindflow.engine.metrics import compute_metrics  # noqa: E402
from mindflow.models.profiles import PROFILES  # noqa: E402
from mindflow.models.records import (  # noqa: E402
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
from mindflow.services import store as store_keys  # noqa: E402
from mindflow.services.store import LocalStore  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger("seed_demo")

# (days ago, title, priority, completed)
DEMO_TASKS = [
    (6, "Outline thesis chapter 2", Priority.HIGH, True),
    (5, "Review lecture notes", Priority.MEDIUM, True),
    (4, "Email project supervisor", Priority.LOW, True),
    (3, "Refactor analytics module", Priority.HIGH, True),
    (2, "Prepare lab report", Priority.HIGH, False),
    (1, "Plan next sprint", Priority.MEDIUM, True),
    (0, "Read two papers on spaced repetition", Priority.MEDIUM, False),
]

# (days ago, focus minutes)
DEMO_FOCUS = [(6, 25), (5, 50), (4, 25), (3, 90), (2, 50), (1, 25), (1, 25), (0, 50)]

# (days ago, mood label)
DEMO_MOODS = [(6, "good"), (4, "tired"), (3, "energized"), (1, "calm"), (0, "motivated")]

DEMO_PLANNER = [
    ("08:30", "Morning planning"),
    ("10:00", "Deep work (no notifications)"),
    ("13:00", "Movement break"),
    ("21:30", "Reflection & planning tomorrow"),
]

DEMO_GOALS = [
    ("Finish thesis draft", "Chapters 1–3 ready for review", 35),
    ("Run 5k", "Three runs a week", 60),
]


def build_snapshot(now: datetime) -> Snapshot:
    tasks = []
    for days_ago, title, priority, completed in DEMO_TASKS:
        created = now - timedelta(days=days_ago, hours=2)
        task = Task(id=new_id(), title=title, priority=priority, created_at=created)
        if completed:
            task = task.mark_completed(created + timedelta(hours=1))
        tasks.append(task)

    return Snapshot(
        tasks=tuple(tasks),
        focus_sessions=tuple(
            FocusSession(duration_seconds=minutes * 60.0, date=now - timedelta(days=d, hours=1))
            for d, minutes in DEMO_FOCUS
        ),
        moods=tuple(
            MoodEntry(label=label, date=now - timedelta(days=d)) for d, label in DEMO_MOODS
        ),
        planner=tuple(PlannerBlock(id=new_id(), time=t, title=title) for t, title in DEMO_PLANNER),
        goals=tuple(
            Goal(id=new_id(), title=title, description=desc, progress=progress)
            for title, desc, progress in DEMO_GOALS
        ),
        notes=(
            Note(
                id=new_id(),
                title="Focus ideas",
                content="Batch email twice a day. Keep the phone in another room.",
                created_at=now,
            ),
        ),
    )


def seed(r: redis.Redis | None = None, profile: str = DEFAULT_PROFILE,
         now: datetime | None = None) -> Snapshot:
    store = LocalStore(r or redis.Redis.from_url(REDIS_URL, decode_responses=True))
    store.clear()
    now = now or datetime.now().astimezone()
    snapshot = build_snapshot(now)

    data = snapshot.to_dict()
    store.set(store_keys.TASKS_KEY, data["tasks"])
    store.set(store_keys.FOCUS_KEY, data["focus_sessions"])
    store.set(store_keys.MOODS_KEY, data["moods"])
    store.set(store_keys.PLANNER_KEY, data["planner"])
    store.set(store_keys.GOALS_KEY, data["goals"])
    store.set(store_keys.NOTES_KEY, data["notes"])
    store.set(store_keys.ACTIVE_PROFILE_KEY, profile)

    log.info(
        f"Seeded {len(snapshot.tasks)} tasks, {len(snapshot.focus_sessions)} focus sessions, "
        f"{len(snapshot.moods)} moods, {len(snapshot.planner)} planner blocks"
    )
    return snapshot


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--profile", default=DEFAULT_PROFILE, choices=sorted(PROFILES))
    args = parser.parse_args()

    snapshot = seed(profile=args.profile)
    report = compute_metrics(snapshot, args.profile)
    log.info(
        f"Productivity {report.productivity_score}/100 · L{report.level} {report.level_label} · "
        f"streak {report.current_streak}d · identity {report.identity_rank}"
    )


if __name__ == "__main__":
    main()
