"""Workspace records and the read-only snapshot handed to the metrics engine.

Records are persisted as JSON lists in the local store. Parsing is
deliberately forgiving: a malformed entry is dropped or filled with a
neutral default, and a collection that is not a list reads as empty.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from uuid import uuid4


class Priority:
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    ALL = (HIGH, MEDIUM, LOW)

    @classmethod
    def normalize(cls, value: Any) -> str:
        if isinstance(value, str):
            for p in cls.ALL:
                if value.strip().lower() == p.lower():
                    return p
        return cls.MEDIUM


def new_id() -> str:
    return uuid4().hex


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO string, a `Date.toDateString()` string or epoch number."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Millisecond epochs (Date.now()) are far above any plausible seconds value
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%a %b %d %Y")
    except ValueError:
        return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _record_id(data: Mapping) -> str:
    rid = data.get("id")
    if isinstance(rid, (str, int)) and not isinstance(rid, bool) and str(rid):
        return str(rid)
    return new_id()


# ═══════════════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Task:
    id: str
    title: str
    priority: str = Priority.MEDIUM
    completed: bool = False
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    category: str = ""

    @property
    def activity_at(self) -> Optional[datetime]:
        """Timestamp that marks the day this task counts as activity."""
        return self.completed_at or self.created_at

    def mark_completed(self, now: datetime) -> Task:
        completed_at = now
        if self.created_at and _comparable(self.created_at, now) and now < self.created_at:
            completed_at = self.created_at
        return replace(self, completed=True, completed_at=completed_at)

    def reopen(self) -> Task:
        return replace(self, completed=False, completed_at=None)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "priority": self.priority,
            "completed": self.completed,
            "createdAt": _iso(self.created_at),
            "completedAt": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> Task:
        completed = bool(data.get("completed") or data.get("done"))
        created_at = parse_timestamp(data.get("createdAt") or data.get("created_at"))
        completed_at = None
        if completed:
            completed_at = parse_timestamp(data.get("completedAt") or data.get("completed_at"))
            if (
                completed_at and created_at
                and _comparable(created_at, completed_at)
                and completed_at < created_at
            ):
                completed_at = created_at
        return cls(
            id=_record_id(data),
            title=_text(data.get("title")),
            priority=Priority.normalize(data.get("priority")),
            completed=completed,
            created_at=created_at,
            completed_at=completed_at,
            category=_text(data.get("category")),
        )


@dataclass(frozen=True)
class FocusSession:
    duration_seconds: float
    date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {"duration": self.duration_seconds, "date": _iso(self.date)}

    @classmethod
    def from_dict(cls, data: Mapping) -> FocusSession:
        duration = None
        for key in ("duration_seconds", "duration", "seconds"):
            duration = _number(data.get(key))
            if duration is not None:
                break
        return cls(
            duration_seconds=max(0.0, duration or 0.0),
            date=parse_timestamp(data.get("date") or data.get("timestamp")),
        )


@dataclass(frozen=True)
class MoodEntry:
    label: str = ""
    score: Optional[float] = None
    date: Optional[datetime] = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"label": self.label, "date": _iso(self.date)}
        if self.score is not None:
            d["score"] = self.score
        return d

    @classmethod
    def from_dict(cls, data: Mapping) -> MoodEntry:
        return cls(
            label=_text(data.get("label") or data.get("mood")),
            score=_number(data.get("score")),
            date=parse_timestamp(data.get("date") or data.get("timestamp")),
        )


@dataclass(frozen=True)
class PlannerBlock:
    id: str
    time: str
    title: str

    def to_dict(self) -> dict:
        return {"id": self.id, "time": self.time, "title": self.title}

    @classmethod
    def from_dict(cls, data: Mapping) -> PlannerBlock:
        return cls(
            id=_record_id(data),
            time=_text(data.get("time")),
            title=_text(data.get("title")),
        )


@dataclass(frozen=True)
class Goal:
    id: str
    title: str
    description: str = ""
    progress: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> Goal:
        progress = _number(data.get("progress")) or 0.0
        return cls(
            id=_record_id(data),
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            progress=max(0.0, min(100.0, progress)),
        )


@dataclass(frozen=True)
class Note:
    id: str
    title: str
    content: str = ""
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> Note:
        return cls(
            id=_record_id(data),
            title=_text(data.get("title")),
            content=_text(data.get("content")),
            created_at=parse_timestamp(data.get("createdAt") or data.get("created_at")),
        )


def _comparable(a: datetime, b: datetime) -> bool:
    return (a.tzinfo is None) == (b.tzinfo is None)


def parse_records(raw: Any, cls: type) -> tuple:
    """Parse a raw JSON collection into a tuple of `cls` records.

    Non-list collections read as empty; non-mapping entries are dropped.
    """
    if not isinstance(raw, (list, tuple)):
        return ()
    out = []
    for entry in raw:
        if isinstance(entry, cls):
            out.append(entry)
        elif isinstance(entry, Mapping):
            out.append(cls.from_dict(entry))
    return tuple(out)


# ═══════════════════════════════════════════════════════════════════════════
# Snapshot
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Snapshot:
    """Read-only tuple of every collection passed into one engine evaluation."""

    tasks: tuple[Task, ...] = ()
    focus_sessions: tuple[FocusSession, ...] = ()
    moods: tuple[MoodEntry, ...] = ()
    planner: tuple[PlannerBlock, ...] = ()
    goals: tuple[Goal, ...] = ()
    notes: tuple[Note, ...] = ()

    @classmethod
    def from_raw(
        cls,
        tasks: Any = None,
        focus_sessions: Any = None,
        moods: Any = None,
        planner: Any = None,
        goals: Any = None,
        notes: Any = None,
    ) -> Snapshot:
        return cls(
            tasks=parse_records(tasks, Task),
            focus_sessions=parse_records(focus_sessions, FocusSession),
            moods=parse_records(moods, MoodEntry),
            planner=parse_records(planner, PlannerBlock),
            goals=parse_records(goals, Goal),
            notes=parse_records(notes, Note),
        )

    def with_session(self, session: FocusSession) -> Snapshot:
        return replace(self, focus_sessions=self.focus_sessions + (session,))

    def sorted_planner(self) -> list[PlannerBlock]:
        return sorted(self.planner, key=lambda b: b.time)

    def to_dict(self) -> dict[str, list[dict]]:
        return {
            "tasks": _dicts(self.tasks),
            "focus_sessions": _dicts(self.focus_sessions),
            "moods": _dicts(self.moods),
            "planner": _dicts(self.planner),
            "goals": _dicts(self.goals),
            "notes": _dicts(self.notes),
        }


def _dicts(records: Iterable) -> list[dict]:
    return [r.to_dict() for r in records]
