"""Redis-backed local key → JSON store.

Every workspace collection lives under one string key holding a JSON blob.
Failures are logged and swallowed: callers keep working from their
in-memory state and a failed write never blocks recomputation.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis

from mindflow.config.settings import REDIS_URL, STORE_KEY_PREFIX

logger = logging.getLogger(__name__)

TASKS_KEY = "@mindflow_tasks"
FOCUS_KEY = "@mindflow_focus"
MOODS_KEY = "@mindflow_moods"
PLANNER_KEY = "@mindflow_planner"
GOALS_KEY = "@mindflow_goals"
NOTES_KEY = "@mindflow_notes"
ACTIVE_PROFILE_KEY = "@mindflow_active_house"
USER_KEY = "@mindflow_user"
FOCUS_STATS_KEY = "@mindflow_focus_stats"

STORAGE_KEYS = (
    TASKS_KEY,
    FOCUS_KEY,
    MOODS_KEY,
    PLANNER_KEY,
    GOALS_KEY,
    NOTES_KEY,
    ACTIVE_PROFILE_KEY,
    USER_KEY,
    FOCUS_STATS_KEY,
)


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


class LocalStore:
    """get / set / remove of JSON values by key."""

    def __init__(self, r: redis.Redis | None = None, prefix: str = STORE_KEY_PREFIX):
        self._r = r or _get_redis()
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None when absent or unreadable."""
        try:
            raw = self._r.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Store read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding malformed JSON under {key}")
            return None

    def set(self, key: str, value: Any) -> bool:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Cannot serialize value for {key}: {e}")
            return False
        try:
            self._r.set(self._key(key), payload)
        except redis.RedisError as e:
            logger.warning(f"Store write failed for {key}: {e}")
            return False
        return True

    def remove(self, key: str) -> bool:
        try:
            self._r.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Store delete failed for {key}: {e}")
            return False
        return True

    def clear(self) -> None:
        """Remove every MindFlow collection (local data reset)."""
        for key in STORAGE_KEYS:
            self.remove(key)
