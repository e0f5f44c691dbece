"""Tests for the Redis-backed LocalStore."""

from unittest.mock import MagicMock

import redis

from mindflow.services.store import STORAGE_KEYS, TASKS_KEY, USER_KEY, LocalStore


class TestLocalStore:
    def test_round_trip(self, store):
        assert store.set(TASKS_KEY, [{"id": "t1", "title": "Read"}]) is True
        assert store.get(TASKS_KEY) == [{"id": "t1", "title": "Read"}]

    def test_missing_key_is_none(self, store):
        assert store.get(USER_KEY) is None

    def test_malformed_json_reads_as_absent(self, r, store):
        r.set(TASKS_KEY, "{not json")
        assert store.get(TASKS_KEY) is None

    def test_prefix_applied(self, r):
        s = LocalStore(r, prefix="test:")
        s.set(USER_KEY, {"name": "Ada"})
        assert r.get(f"test:{USER_KEY}") is not None
        assert r.get(USER_KEY) is None

    def test_remove(self, store):
        store.set(USER_KEY, {"name": "Ada"})
        assert store.remove(USER_KEY) is True
        assert store.get(USER_KEY) is None

    def test_clear_removes_every_collection(self, r, store):
        for key in STORAGE_KEYS:
            store.set(key, [])
        store.clear()
        assert all(r.get(key) is None for key in STORAGE_KEYS)

    def test_unserializable_value_not_written(self, store):
        assert store.set(TASKS_KEY, {"bad": object()}) is False
        assert store.get(TASKS_KEY) is None


class TestStoreFailures:
    """Redis errors are logged and swallowed."""

    def _broken(self):
        r = MagicMock()
        r.get.side_effect = redis.ConnectionError("down")
        r.set.side_effect = redis.ConnectionError("down")
        r.delete.side_effect = redis.ConnectionError("down")
        return LocalStore(r)

    def test_get_failure_returns_none(self):
        assert self._broken().get(TASKS_KEY) is None

    def test_set_failure_returns_false(self):
        assert self._broken().set(TASKS_KEY, []) is False

    def test_remove_failure_returns_false(self):
        assert self._broken().remove(TASKS_KEY) is False
