"""Focus countdown timer driven by a one-second clock tick.

The countdown's own state (mode, remaining seconds, running flag) is never
persisted as history. When a running countdown reaches zero the timer stops,
resets to the full block and synthesizes exactly one FocusSession, which is
handed to `on_complete` for the workspace to append to the snapshot.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from mindflow.models.records import FocusSession

logger = logging.getLogger(__name__)

FOCUS_MODES: dict[str, dict[str, Any]] = {
    "pomodoro": {"label": "Pomodoro", "minutes": 25, "description": "Classic 25 minute sprint"},
    "deep": {"label": "Deep Focus", "minutes": 50, "description": "Longer deep work block"},
    "sprint": {"label": "Lightning", "minutes": 10, "description": "Quick momentum boost"},
    "study": {"label": "Study Session", "minutes": 90, "description": "Extended reading & study"},
    "custom": {"label": "Custom", "minutes": 45, "description": "Design your own flow"},
}

CUSTOM_MIN_MINUTES = 5
CUSTOM_MAX_MINUTES = 180

TickCallback = Callable[[], Union[None, Awaitable[None]]]


class TimerStateError(Exception):
    """A timer command that is not valid in the timer's current state."""


# ═══════════════════════════════════════════════════════════════════════════
# Clock
# ═══════════════════════════════════════════════════════════════════════════

class TickHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def now(self) -> datetime: ...

    def on_tick(self, interval_seconds: float, callback: TickCallback) -> TickHandle: ...


class _TaskHandle:
    def __init__(self, task: asyncio.Task):
        self._task = task

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()


class AsyncioClock:
    """Wall clock in the device's local zone, ticks from an asyncio task."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def on_tick(self, interval_seconds: float, callback: TickCallback) -> TickHandle:
        async def _loop():
            try:
                while True:
                    await asyncio.sleep(interval_seconds)
                    result = callback()
                    if inspect.isawaitable(result):
                        await result
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Tick callback failed, stopping ticks: {e}")

        return _TaskHandle(asyncio.get_running_loop().create_task(_loop()))


# ═══════════════════════════════════════════════════════════════════════════
# Completed-session stats
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class FocusStats:
    """Per-day minutes/sessions plus all-time totals for completed sessions."""

    days: dict[str, dict[str, int]] = field(default_factory=dict)
    total_minutes: int = 0
    total_sessions: int = 0
    longest_session: int = 0     # minutes

    def record(self, minutes: int, day: str) -> None:
        entry = self.days.setdefault(day, {"minutes": 0, "sessions": 0})
        entry["minutes"] += minutes
        entry["sessions"] += 1
        self.total_minutes += minutes
        self.total_sessions += 1
        self.longest_session = max(self.longest_session, minutes)

    def for_day(self, day: str) -> dict[str, int]:
        return dict(self.days.get(day, {"minutes": 0, "sessions": 0}))

    def to_dict(self) -> dict:
        return {
            "days": {k: dict(v) for k, v in self.days.items()},
            "totalMinutes": self.total_minutes,
            "totalSessions": self.total_sessions,
            "longestSession": self.longest_session,
        }

    @classmethod
    def from_dict(cls, data: Any) -> FocusStats:
        if not isinstance(data, dict):
            return cls()
        days: dict[str, dict[str, int]] = {}
        raw_days = data.get("days")
        if isinstance(raw_days, dict):
            for key, entry in raw_days.items():
                if isinstance(entry, dict):
                    days[str(key)] = {
                        "minutes": int(entry.get("minutes") or 0),
                        "sessions": int(entry.get("sessions") or 0),
                    }
        return cls(
            days=days,
            total_minutes=int(data.get("totalMinutes") or 0),
            total_sessions=int(data.get("totalSessions") or 0),
            longest_session=int(data.get("longestSession") or 0),
        )


def manual_session(minutes: int, now: datetime) -> FocusSession:
    """A focus session logged by hand instead of through the countdown."""
    if minutes <= 0:
        raise ValueError("Manual focus minutes must be positive")
    return FocusSession(duration_seconds=float(minutes * 60), date=now)


# ═══════════════════════════════════════════════════════════════════════════
# Timer
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TimerState:
    mode: str
    running: bool
    remaining_seconds: int
    initial_seconds: int
    custom_minutes: int
    zen_lock: bool

    @property
    def display(self) -> str:
        return f"{self.remaining_seconds // 60:02d}:{self.remaining_seconds % 60:02d}"

    @property
    def progress(self) -> float:
        if not self.initial_seconds or self.remaining_seconds >= self.initial_seconds:
            return 0.0
        return 1 - self.remaining_seconds / self.initial_seconds

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "label": FOCUS_MODES[self.mode]["label"],
            "running": self.running,
            "remainingSeconds": self.remaining_seconds,
            "initialSeconds": self.initial_seconds,
            "customMinutes": self.custom_minutes,
            "zenLock": self.zen_lock,
            "display": self.display,
            "progress": self.progress,
        }


class FocusTimer:
    """Single countdown; at most one tick subscription is live at a time."""

    def __init__(
        self,
        clock: Clock,
        on_complete: Optional[Callable[[FocusSession], Any]] = None,
        on_tick: Optional[Callable[[TimerState], Any]] = None,
        mode: str = "pomodoro",
        tick_seconds: float = 1.0,
    ):
        if mode not in FOCUS_MODES:
            raise ValueError(f"Unknown focus mode: {mode}")
        self.clock = clock
        self.on_complete = on_complete
        self.on_tick = on_tick
        self.tick_seconds = tick_seconds
        self.mode = mode
        self.custom_minutes = FOCUS_MODES["custom"]["minutes"]
        self.zen_lock = False
        self.running = False
        self.remaining_seconds = self.initial_seconds
        self._handle: Optional[TickHandle] = None

    @property
    def initial_seconds(self) -> int:
        if self.mode == "custom":
            return self.custom_minutes * 60
        return FOCUS_MODES[self.mode]["minutes"] * 60

    # ── Configuration ──

    def set_mode(self, mode: str) -> TimerState:
        if mode not in FOCUS_MODES:
            raise ValueError(f"Unknown focus mode: {mode}")
        if self.running:
            raise TimerStateError("Pause or finish the session before changing modes.")
        self.mode = mode
        self.remaining_seconds = self.initial_seconds
        return self.state()

    def set_custom_minutes(self, minutes: Any) -> TimerState:
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
            raise ValueError("Choose a duration between 5 and 180.")
        if not CUSTOM_MIN_MINUTES <= minutes <= CUSTOM_MAX_MINUTES:
            raise ValueError("Choose a duration between 5 and 180.")
        if self.running:
            raise TimerStateError("Pause or finish the session before changing modes.")
        self.custom_minutes = int(minutes)
        self.mode = "custom"
        self.remaining_seconds = self.initial_seconds
        return self.state()

    def set_zen_lock(self, enabled: bool) -> TimerState:
        self.zen_lock = bool(enabled)
        return self.state()

    # ── Commands ──

    def start(self) -> TimerState:
        if self.running:
            raise TimerStateError("Focus session already running")
        self.running = True
        self._handle = self.clock.on_tick(self.tick_seconds, self.tick)
        logger.info(f"Focus timer started: {self.mode} ({self.remaining_seconds}s left)")
        return self.state()

    def pause(self) -> TimerState:
        if not self.running:
            raise TimerStateError("Focus session is not running")
        self._stop()
        logger.info(f"Focus timer paused at {self.remaining_seconds}s")
        return self.state()

    def toggle(self) -> TimerState:
        return self.pause() if self.running else self.start()

    def reset(self) -> TimerState:
        if self.running and self.zen_lock:
            raise TimerStateError("Turn off Zen Lock to reset this block early.")
        self._stop()
        self.remaining_seconds = self.initial_seconds
        return self.state()

    def stop(self) -> None:
        """Cancel ticking without touching the countdown (shutdown path)."""
        self._stop()

    def _stop(self) -> None:
        self.running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    # ── Tick ──

    def tick(self) -> Optional[FocusSession]:
        """Advance one second; returns the synthesized session on completion."""
        if not self.running:
            return None

        try:
            if self.remaining_seconds <= 1:
                return self._complete()

            self.remaining_seconds -= 1
            if self.on_tick:
                self.on_tick(self.state())
        except Exception:
            # A failed callback ends the tick subscription; stay restartable
            self._stop()
            raise
        return None

    def _complete(self) -> FocusSession:
        initial = self.initial_seconds
        self._stop()
        self.remaining_seconds = initial
        session = FocusSession(duration_seconds=float(initial), date=self.clock.now())
        logger.info(f"Focus session complete: {initial // 60} min ({self.mode})")
        if self.on_complete:
            self.on_complete(session)
        if self.on_tick:
            self.on_tick(self.state())
        return session

    def state(self) -> TimerState:
        return TimerState(
            mode=self.mode,
            running=self.running,
            remaining_seconds=self.remaining_seconds,
            initial_seconds=self.initial_seconds,
            custom_minutes=self.custom_minutes,
            zen_lock=self.zen_lock,
        )


def timer_suggestion(running: bool, today_minutes: int, today_sessions: int, zen_lock: bool) -> str:
    """Coaching line shown beside the timer."""
    if running:
        return "Stay inside the block. Treat the timer as a non-negotiable boundary."
    if today_minutes == 0:
        return "Start with a 10–25 minute sprint to break inertia."
    if today_minutes >= 120:
        return (
            "You've built strong momentum today. One more focused block will lock "
            "in your gains."
        )
    if today_sessions >= 4:
        return (
            "Your consistency is strong. Use the next block for the single "
            "highest-leverage task."
        )
    if zen_lock:
        return "Zen Lock is on. Protect this upcoming block like an important meeting."
    return "Choose a mode that matches your energy, then commit fully until the block ends."
