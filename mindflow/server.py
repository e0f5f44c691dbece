"""FastAPI server exposing the MindFlow workspace to the mobile client.

REST endpoints for record CRUD, metrics, insights and the focus timer, plus
a WebSocket that pushes `metrics_update` after every change and
`timer_tick` while a focus countdown runs.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import redis
from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from mindflow.config.settings import (
    DEFAULT_FOCUS_MODE,
    FOCUS_TICK_SECONDS,
    MANUAL_FOCUS_MINUTES,
    REDIS_URL,
)
from mindflow.engine.metrics import compute_metrics
from mindflow.models.profiles import PROFILES
from mindflow.models.records import FocusSession
from mindflow.services.focus_timer import FOCUS_MODES, FocusTimer, TimerState, TimerStateError
from mindflow.services.store import LocalStore
from mindflow.services.workspace import RecordNotFound, Workspace

logger = logging.getLogger(__name__)

app = FastAPI(title="MindFlow", description="Local productivity workspace and metrics engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Shared State ─────────────────────────────────────────────────────────

_workspace: Optional[Workspace] = None
_timer: Optional[FocusTimer] = None

# Strong references to in-flight broadcasts scheduled from timer callbacks
_background_tasks: set[asyncio.Task] = set()


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def _get_workspace() -> Workspace:
    global _workspace
    if _workspace is None:
        _workspace = Workspace(LocalStore(_get_redis()))
        _workspace.load()
    return _workspace


def _get_timer() -> FocusTimer:
    global _timer
    if _timer is None:
        ws = _get_workspace()
        _timer = FocusTimer(
            clock=ws.clock,
            on_complete=_on_session_complete,
            on_tick=_on_timer_tick,
            mode=DEFAULT_FOCUS_MODE if DEFAULT_FOCUS_MODE in FOCUS_MODES else "pomodoro",
            tick_seconds=FOCUS_TICK_SECONDS,
        )
    return _timer


def reset_state() -> None:
    """Drop the cached workspace and timer (next request reloads from Redis)."""
    global _workspace, _timer
    if _timer is not None:
        _timer.stop()
    _workspace = None
    _timer = None


@contextmanager
def _http_errors():
    """Map workspace/timer exceptions onto HTTP status codes."""
    try:
        yield
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    except TimerStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _build_ws_message(msg_type: str, payload: dict) -> str:
    """Build a JSON WebSocket message: {type, payload, timestamp}."""
    return json.dumps({
        "type": msg_type,
        "payload": payload,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


# ── WebSocket Manager ────────────────────────────────────────────────────

class ConnectionManager:
    def __init__(self):
        self._connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self._connections.append(ws)
        logger.info(f"WebSocket connected. Total: {len(self._connections)}")

    def disconnect(self, ws: WebSocket):
        if ws in self._connections:
            self._connections.remove(ws)
        logger.info(f"WebSocket disconnected. Total: {len(self._connections)}")

    async def broadcast(self, message: str):
        disconnected = []
        for ws in self._connections:
            try:
                await ws.send_text(message)
            except Exception:
                disconnected.append(ws)
        for ws in disconnected:
            if ws in self._connections:
                self._connections.remove(ws)

    @property
    def count(self) -> int:
        return len(self._connections)


manager = ConnectionManager()


def _metrics_message() -> str:
    return _build_ws_message("metrics_update", _get_workspace().metrics().to_dict())


async def _broadcast_metrics():
    if manager.count:
        await manager.broadcast(_metrics_message())


def _schedule(coro) -> None:
    """Fire a broadcast from synchronous timer callbacks."""
    try:
        task = asyncio.get_running_loop().create_task(coro)
    except RuntimeError:
        coro.close()
        return
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


def _on_timer_tick(state: TimerState) -> None:
    if manager.count:
        _schedule(manager.broadcast(_build_ws_message("timer_tick", state.to_dict())))


def _on_session_complete(session: FocusSession) -> None:
    _get_workspace().add_focus_session(session)
    _schedule(_broadcast_metrics())


# ── WebSocket Endpoint ───────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await manager.connect(ws)
    try:
        await ws.send_text(_metrics_message())
        await ws.send_text(_build_ws_message("timer_tick", _get_timer().state().to_dict()))

        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            msg_type = msg.get("type", "") if isinstance(msg, dict) else ""

            if msg_type == "ping":
                await ws.send_json({"type": "pong"})
            elif msg_type == "refresh":
                await ws.send_text(_metrics_message())
            else:
                logger.info(f"Client message: {msg}")

    except WebSocketDisconnect:
        manager.disconnect(ws)


# ── Health / Metrics ─────────────────────────────────────────────────────

@app.get("/api/health")
async def health():
    r = _get_redis()
    try:
        r.ping()
        redis_ok = True
    except redis.RedisError:
        redis_ok = False

    return {
        "status": "ok",
        "redis": redis_ok,
        "ws_connections": manager.count,
        "profile": _get_workspace().profile_key,
    }


@app.get("/api/metrics")
async def get_metrics(profile: Optional[str] = Query(None)):
    """Full metrics report; `profile` previews another profile without saving it."""
    ws = _get_workspace()
    if profile is None:
        return ws.metrics().to_dict()
    return compute_metrics(
        ws.snapshot, profile, ws.clock.now(),
        lookback_days=ws.lookback_days, window_days=ws.window_days,
    ).to_dict()


@app.get("/api/insights")
async def get_insights():
    ws = _get_workspace()
    timer = _get_timer()
    return ws.insights(timer_running=timer.running, zen_lock=timer.zen_lock)


# ── Tasks ────────────────────────────────────────────────────────────────

class CreateTaskRequest(BaseModel):
    title: str
    priority: str = "Medium"
    category: str = ""


class UpdateTaskRequest(BaseModel):
    title: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    completed: Optional[bool] = None


@app.get("/api/tasks")
async def list_tasks():
    return {"tasks": [t.to_dict() for t in _get_workspace().list_tasks()]}


@app.post("/api/tasks")
async def create_task(req: CreateTaskRequest):
    with _http_errors():
        task = _get_workspace().add_task(req.title, req.priority, req.category)
    await _broadcast_metrics()
    return {"successful": True, "task": task.to_dict()}


@app.patch("/api/tasks/{task_id}")
async def update_task(task_id: str, req: UpdateTaskRequest):
    with _http_errors():
        task = _get_workspace().update_task(
            task_id,
            title=req.title,
            priority=req.priority,
            category=req.category,
            completed=req.completed,
        )
    await _broadcast_metrics()
    return {"successful": True, "task": task.to_dict()}


@app.post("/api/tasks/{task_id}/toggle")
async def toggle_task(task_id: str):
    with _http_errors():
        task = _get_workspace().toggle_task(task_id)
    await _broadcast_metrics()
    return {"successful": True, "task": task.to_dict()}


@app.delete("/api/tasks/{task_id}")
async def delete_task(task_id: str):
    with _http_errors():
        _get_workspace().delete_task(task_id)
    await _broadcast_metrics()
    return {"successful": True, "task_id": task_id}


# ── Notes ────────────────────────────────────────────────────────────────

class NoteRequest(BaseModel):
    title: str
    content: str = ""


class UpdateNoteRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


@app.get("/api/notes")
async def list_notes():
    return {"notes": [n.to_dict() for n in _get_workspace().list_notes()]}


@app.post("/api/notes")
async def create_note(req: NoteRequest):
    with _http_errors():
        note = _get_workspace().add_note(req.title, req.content)
    return {"successful": True, "note": note.to_dict()}


@app.patch("/api/notes/{note_id}")
async def update_note(note_id: str, req: UpdateNoteRequest):
    with _http_errors():
        note = _get_workspace().update_note(note_id, title=req.title, content=req.content)
    return {"successful": True, "note": note.to_dict()}


@app.delete("/api/notes/{note_id}")
async def delete_note(note_id: str):
    with _http_errors():
        _get_workspace().delete_note(note_id)
    return {"successful": True, "note_id": note_id}


# ── Planner ──────────────────────────────────────────────────────────────

class PlannerRequest(BaseModel):
    time: str
    title: str


@app.get("/api/planner")
async def list_planner():
    return {"planner": [b.to_dict() for b in _get_workspace().list_planner()]}


@app.post("/api/planner")
async def create_planner_block(req: PlannerRequest):
    with _http_errors():
        block = _get_workspace().add_planner_block(req.time, req.title)
    await _broadcast_metrics()
    return {"successful": True, "block": block.to_dict()}


@app.delete("/api/planner/{block_id}")
async def delete_planner_block(block_id: str):
    with _http_errors():
        _get_workspace().delete_planner_block(block_id)
    await _broadcast_metrics()
    return {"successful": True, "block_id": block_id}


# ── Goals ────────────────────────────────────────────────────────────────

class GoalRequest(BaseModel):
    title: str
    description: str = ""
    progress: float = 0


class UpdateGoalRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    progress: Optional[float] = None


@app.get("/api/goals")
async def list_goals():
    return {"goals": [g.to_dict() for g in _get_workspace().list_goals()]}


@app.post("/api/goals")
async def create_goal(req: GoalRequest):
    with _http_errors():
        goal = _get_workspace().add_goal(req.title, req.description, req.progress)
    return {"successful": True, "goal": goal.to_dict()}


@app.patch("/api/goals/{goal_id}")
async def update_goal(goal_id: str, req: UpdateGoalRequest):
    with _http_errors():
        goal = _get_workspace().update_goal(
            goal_id, title=req.title, description=req.description, progress=req.progress
        )
    return {"successful": True, "goal": goal.to_dict()}


@app.delete("/api/goals/{goal_id}")
async def delete_goal(goal_id: str):
    with _http_errors():
        _get_workspace().delete_goal(goal_id)
    return {"successful": True, "goal_id": goal_id}


# ── Moods ────────────────────────────────────────────────────────────────

class MoodRequest(BaseModel):
    label: str = ""
    score: Optional[float] = None


@app.get("/api/moods")
async def list_moods():
    return {"moods": [m.to_dict() for m in _get_workspace().snapshot.moods]}


@app.post("/api/moods")
async def log_mood(req: MoodRequest):
    with _http_errors():
        entry = _get_workspace().log_mood(req.label, req.score)
    await _broadcast_metrics()
    return {"successful": True, "mood": entry.to_dict()}


# ── Focus ────────────────────────────────────────────────────────────────

class ManualFocusRequest(BaseModel):
    minutes: int = MANUAL_FOCUS_MINUTES


class TimerModeRequest(BaseModel):
    mode: str
    custom_minutes: Optional[int] = None


class ZenLockRequest(BaseModel):
    enabled: bool


def _timer_payload() -> dict:
    payload = _get_timer().state().to_dict()
    payload["today"] = _get_workspace().focus_today()
    return payload


@app.get("/api/focus/sessions")
async def list_focus_sessions():
    ws = _get_workspace()
    return {
        "sessions": [s.to_dict() for s in ws.snapshot.focus_sessions],
        "stats": ws.focus_stats.to_dict(),
    }


@app.post("/api/focus/manual")
async def add_manual_focus(req: ManualFocusRequest):
    with _http_errors():
        session = _get_workspace().add_manual_focus(req.minutes)
    await _broadcast_metrics()
    return {"successful": True, "session": session.to_dict()}


@app.get("/api/focus/timer")
async def timer_status():
    return _timer_payload()


@app.post("/api/focus/timer/start")
async def timer_start():
    with _http_errors():
        _get_timer().start()
    return _timer_payload()


@app.post("/api/focus/timer/pause")
async def timer_pause():
    with _http_errors():
        _get_timer().pause()
    return _timer_payload()


@app.post("/api/focus/timer/reset")
async def timer_reset():
    with _http_errors():
        _get_timer().reset()
    return _timer_payload()


@app.post("/api/focus/timer/mode")
async def timer_mode(req: TimerModeRequest):
    timer = _get_timer()
    with _http_errors():
        if req.mode == "custom" and req.custom_minutes is not None:
            timer.set_custom_minutes(req.custom_minutes)
        else:
            timer.set_mode(req.mode)
    return _timer_payload()


@app.post("/api/focus/timer/zen")
async def timer_zen(req: ZenLockRequest):
    _get_timer().set_zen_lock(req.enabled)
    return _timer_payload()


# ── Profile / User / Export ──────────────────────────────────────────────

class ProfileRequest(BaseModel):
    key: str


class UserRequest(BaseModel):
    name: str = ""
    email: str = ""


@app.get("/api/profile")
async def get_profile():
    ws = _get_workspace()
    return {
        "active": ws.profile.to_dict(),
        "profiles": [p.to_dict() for p in PROFILES.values()],
    }


@app.put("/api/profile")
async def select_profile(req: ProfileRequest):
    with _http_errors():
        profile = _get_workspace().select_profile(req.key)
    await _broadcast_metrics()
    return {"successful": True, "active": profile.to_dict()}


@app.get("/api/user")
async def get_user():
    return {"user": _get_workspace().get_user()}


@app.post("/api/user")
async def save_user(req: UserRequest):
    """Local sign-in: stores whatever the client sends, no credentials checked."""
    user: dict[str, Any] = {"name": req.name.strip(), "email": req.email.strip()}
    if not user["name"] and not user["email"]:
        raise HTTPException(status_code=422, detail="Name or email required")
    return {"user": _get_workspace().save_user(user)}


@app.delete("/api/user")
async def clear_user():
    _get_workspace().clear_user()
    return {"successful": True}


@app.get("/api/export")
async def export_data():
    return _get_workspace().export_payload()


@app.delete("/api/data")
async def reset_data():
    timer = _get_timer()
    timer.stop()
    timer.reset()
    _get_workspace().reset()
    await _broadcast_metrics()
    return {"successful": True}


@app.on_event("shutdown")
async def stop_timer():
    if _timer is not None:
        _timer.stop()
