"""Tests for storage backends and the write-behind writer."""

import logging

import pytest

from puzzlecoach.state.storage import MemoryKeyValueStore, SqliteKeyValueStore
from puzzlecoach.state.writer import WriteBehind

from conftest import FailingBackend


class RecordingBackend(MemoryKeyValueStore):
    def __init__(self):
        super().__init__()
        self.writes: list[tuple] = []

    def set(self, key, value):
        self.writes.append((key, value))
        super().set(key, value)

    def remove(self, key):
        self.writes.append((key, None))
        super().remove(key)


class TestSqliteKeyValueStore:
    @pytest.fixture
    def kv(self, tmp_path):
        return SqliteKeyValueStore(db_path=tmp_path / "nested" / "kv.db")

    def test_missing_key_returns_none(self, kv):
        assert kv.get("absent") is None

    def test_set_get_overwrite(self, kv):
        kv.set("k", "one")
        kv.set("k", "two")
        assert kv.get("k") == "two"
        assert kv.keys() == ["k"]

    def test_remove(self, kv):
        kv.set("k", "v")
        kv.remove("k")
        kv.remove("never-there")
        assert kv.get("k") is None

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "kv.db"
        SqliteKeyValueStore(db_path=path).set("adaptive_user_profile", '{"a": 1}')
        assert SqliteKeyValueStore(db_path=path).get("adaptive_user_profile") == '{"a": 1}'


class TestWriteBehind:
    @pytest.mark.asyncio
    async def test_only_latest_value_is_written(self):
        backend = RecordingBackend()
        writer = WriteBehind(backend)
        writer.submit("k", "1")
        writer.submit("k", "2")
        writer.submit("k", "3")
        await writer.flush()
        assert backend.writes == [("k", "3")]
        assert writer.pending == 0

    @pytest.mark.asyncio
    async def test_none_removes_key(self):
        backend = RecordingBackend()
        backend.data["k"] = "old"
        writer = WriteBehind(backend)
        writer.submit("k", None)
        await writer.flush()
        assert "k" not in backend.data

    @pytest.mark.asyncio
    async def test_submit_after_drain_schedules_again(self):
        backend = RecordingBackend()
        writer = WriteBehind(backend)
        writer.submit("a", "1")
        await writer.flush()
        writer.submit("b", "2")
        await writer.flush()
        assert backend.data == {"a": "1", "b": "2"}

    @pytest.mark.asyncio
    async def test_backend_failure_is_logged_not_raised(self, caplog):
        writer = WriteBehind(FailingBackend())
        with caplog.at_level(logging.WARNING, logger="puzzlecoach.state.writer"):
            writer.submit("k", "v")
            await writer.flush()
        assert "Failed to persist" in caplog.text
        assert writer.pending == 0

    def test_without_running_loop_writes_inline(self):
        backend = RecordingBackend()
        writer = WriteBehind(backend)
        writer.submit("k", "v")
        assert backend.data == {"k": "v"}
        assert writer.pending == 0
