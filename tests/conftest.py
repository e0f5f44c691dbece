"""Shared test fixtures for the MindFlow test suite."""

import pytest
import fakeredis
from datetime import datetime, timedelta, timezone

from mindflow.models.records import FocusSession, MoodEntry, PlannerBlock, Priority, Task
from mindflow.services.store import LocalStore
from mindflow.services.workspace import Workspace


# ── Redis ────────────────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(r):
    return LocalStore(r, prefix="")


# ── Time Freezing ───────────────────────────────────────────────────────

@pytest.fixture
def frozen_now():
    """Return a fixed 'now' for deterministic metrics tests.

    Default: 2026-02-15T12:00:00Z (noon UTC on a Sunday).
    """
    return datetime(2026, 2, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeTickHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Clock whose time and ticks are driven by the test."""

    def __init__(self, now):
        self.current = now
        self.callback = None
        self.interval = None
        self.handles = []

    def now(self):
        return self.current

    def advance(self, **delta):
        self.current = self.current + timedelta(**delta)

    def on_tick(self, interval_seconds, callback):
        self.interval = interval_seconds
        self.callback = callback
        handle = FakeTickHandle()
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return bool(self.handles) and not self.handles[-1].cancelled

    def fire(self, times=1):
        """Deliver `times` ticks to the live subscription; returns the last result."""
        result = None
        for _ in range(times):
            if not self.active:
                break
            result = self.callback()
        return result


@pytest.fixture
def clock(frozen_now):
    return FakeClock(frozen_now)


@pytest.fixture
def workspace(store, clock):
    ws = Workspace(store, clock=clock)
    ws.load()
    return ws


# ── Record Factories ────────────────────────────────────────────────────

@pytest.fixture
def make_task(frozen_now):
    """Factory fixture that creates Task instances with sensible defaults.

    Usage:
        task = make_task(completed=True, days_ago=2)
    """
    _counter = 0

    def _factory(completed=False, days_ago=0, priority=Priority.MEDIUM, **overrides):
        nonlocal _counter
        _counter += 1
        created = frozen_now - timedelta(days=days_ago, hours=1)
        defaults = {
            "id": f"test-task-{_counter}",
            "title": f"Test Task {_counter}",
            "priority": priority,
            "created_at": created,
        }
        defaults.update(overrides)
        task = Task(**defaults)
        if completed:
            task = task.mark_completed(created + timedelta(minutes=30))
        return task

    return _factory


@pytest.fixture
def make_session(frozen_now):
    def _factory(minutes=25, days_ago=0):
        return FocusSession(
            duration_seconds=minutes * 60.0,
            date=frozen_now - timedelta(days=days_ago, hours=1),
        )

    return _factory


@pytest.fixture
def make_mood(frozen_now):
    def _factory(label="", score=None, days_ago=0, hours_ago=1):
        return MoodEntry(
            label=label,
            score=score,
            date=frozen_now - timedelta(days=days_ago, hours=hours_ago),
        )

    return _factory


@pytest.fixture
def make_blocks():
    def _factory(n):
        return tuple(
            PlannerBlock(id=f"block-{i}", time=f"{8 + i:02d}:00", title=f"Block {i}")
            for i in range(n)
        )

    return _factory
