"""Unit tests for the cursor stores."""

import json

import pytest

from feedwatch.src.PollState import (
    JsonFileStateStore,
    MemoryStateStore,
    subscription_key,
)


class TestMemoryStateStore:
    """Test the in-process store."""

    def test_missing_key_is_empty(self) -> None:
        """An unwritten key should read as an empty dict."""
        assert MemoryStateStore().get("eth:priceUpdate") == {}

    def test_get_returns_copy(self) -> None:
        """Mutating the returned dict should not change the stored cursor."""
        store = MemoryStateStore()
        store.set("k", {"last_round_id": "1"})
        bag = store.get("k")
        bag["last_round_id"] = "2"
        assert store.get("k") == {"last_round_id": "1"}

    def test_set_replaces(self) -> None:
        """set should replace the whole bag."""
        store = MemoryStateStore()
        store.set("k", {"a": 1, "b": 2})
        store.set("k", {"a": 3})
        assert store.get("k") == {"a": 3}

    def test_rejects_non_primitive(self) -> None:
        """Lists and nested dicts should be rejected."""
        store = MemoryStateStore()
        with pytest.raises(TypeError):
            store.set("k", {"values": [1, 2]})
        with pytest.raises(TypeError):
            store.set("k", {"nested": {"a": 1}})

    def test_subscription_key(self) -> None:
        """Keys should be name and event joined by a colon."""
        assert subscription_key("eth-usd", "priceUpdate") == "eth-usd:priceUpdate"


class TestJsonFileStateStore:
    """Test the JSON file store."""

    def test_persists_across_instances(self, tmp_path) -> None:
        """Cursors should survive reopening the file."""
        path = tmp_path / "state.json"
        store = JsonFileStateStore(path)
        store.set("eth:newRound", {"last_round_id": str(2**70), "was_triggered": False})

        reopened = JsonFileStateStore(path)
        assert reopened.get("eth:newRound") == {
            "last_round_id": str(2**70),
            "was_triggered": False,
        }

    def test_file_is_json_object(self, tmp_path) -> None:
        """The file should hold one object keyed by subscription key."""
        path = tmp_path / "state.json"
        store = JsonFileStateStore(path)
        store.set("a:x", {"last_block": 10})
        store.set("b:y", {"last_block": 20})
        assert json.loads(path.read_text()) == {
            "a:x": {"last_block": 10},
            "b:y": {"last_block": 20},
        }

    def test_creates_parent_directories(self, tmp_path) -> None:
        """Missing parent directories should be created on write."""
        path = tmp_path / "nested" / "dir" / "state.json"
        JsonFileStateStore(path).set("k", {"a": 1})
        assert path.exists()

    def test_no_temp_files_left(self, tmp_path) -> None:
        """Writes should not leave temp files behind."""
        path = tmp_path / "state.json"
        store = JsonFileStateStore(path)
        store.set("k", {"a": 1})
        store.set("k", {"a": 2})
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_rejected_write_leaves_file(self, tmp_path) -> None:
        """A rejected set should not touch the file."""
        path = tmp_path / "state.json"
        store = JsonFileStateStore(path)
        store.set("k", {"a": 1})
        before = path.read_bytes()

        with pytest.raises(TypeError):
            store.set("k", {"a": object()})
        assert path.read_bytes() == before
        assert store.get("k") == {"a": 1}

    def test_non_object_file(self, tmp_path) -> None:
        """A file holding a JSON list should be rejected."""
        path = tmp_path / "state.json"
        path.write_text("[]")
        with pytest.raises(ValueError):
            JsonFileStateStore(path)
