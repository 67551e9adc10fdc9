"""Tests for storage backends and staged writes."""

import json
import tempfile
from pathlib import Path

import pytest

from registrar.registry.core import Registry
from registrar.registry.models import AppInfo
from registrar.storage import JsonFileStorage, MemoryStorage, StagedWrites, copy_storage

MODERATOR = "0xmoderator"


# --- Memory storage ---


def test_memory_get_missing_is_none():
    assert MemoryStorage().get("0xabc") is None


def test_memory_set_none_clears():
    storage = MemoryStorage()
    storage.set("k", "v")
    storage.set("k", None)
    assert storage.get("k") is None
    assert len(storage) == 0


def test_memory_values_are_copies():
    storage = MemoryStorage()
    record = {"count": 1}
    storage.set("k", record)
    record["count"] = 2
    storage.get("k")["count"] = 3
    assert storage.get("k") == {"count": 1}


# --- JSON file storage ---


def test_json_storage_persists_across_instances():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "store" / "registry.json"
        JsonFileStorage(path).set_many({"a": 1, "b": {"x": [1, 2]}})

        reopened = JsonFileStorage(path)
        assert reopened.get("a") == 1
        assert reopened.get("b") == {"x": [1, 2]}
        assert dict(reopened.items()) == {"a": 1, "b": {"x": [1, 2]}}


def test_json_storage_leaves_no_temp_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "registry.json"
        JsonFileStorage(path).set("a", "b")
        assert [p.name for p in Path(tmpdir).iterdir()] == ["registry.json"]
        assert json.loads(path.read_text()) == {"a": "b"}


def test_json_storage_ignores_corrupt_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "registry.json"
        path.write_text("{not json")
        storage = JsonFileStorage(path)
        assert list(storage.items()) == []


def test_registry_over_json_storage_survives_reopen():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "registry.json"
        reg = Registry(JsonFileStorage(path), MODERATOR)
        reg.register_app("prvd", "...", caller=MODERATOR)
        reg.register_version("prvd", "0.0.1", "Pre-alpha", caller=MODERATOR)

        reopened = Registry(JsonFileStorage(path), MODERATOR)
        info = reopened.get_ver_info("prvd", "0.0.1")
        assert info.description == "Pre-alpha"
        assert info.description_length == 9
        assert reopened.get_app_info("prvd").version_count == 1


# --- Staged writes ---


def test_staged_reads_see_pending_writes():
    storage = MemoryStorage({"a": 1})
    staged = StagedWrites(storage)
    staged.set("a", 2)
    staged.set("b", 3)
    assert staged.get("a") == 2
    assert staged.get("b") == 3
    assert storage.get("a") == 1
    assert storage.get("b") is None


def test_staged_commit_and_discard():
    storage = MemoryStorage()
    staged = StagedWrites(storage)
    staged.set("a", 1)
    staged.discard()
    assert staged.commit() == 0
    assert len(storage) == 0

    staged.set("a", 1)
    staged.set("b", 2)
    assert staged.pending == 2
    assert staged.commit() == 2
    assert dict(storage.items()) == {"a": 1, "b": 2}


def test_staged_none_clears_on_commit():
    storage = MemoryStorage({"a": 1})
    staged = StagedWrites(storage)
    staged.set("a", None)
    assert staged.get("a") is None
    staged.commit()
    assert storage.get("a") is None


# --- Seeding a new backend ---


def test_copy_storage_keeps_keys_resolving():
    old = MemoryStorage()
    reg = Registry(old, MODERATOR)
    app_keys = reg.register_app("prvd", "...", caller=MODERATOR)
    before = reg.get_app_info("prvd")

    with tempfile.TemporaryDirectory() as tmpdir:
        new = JsonFileStorage(Path(tmpdir) / "registry.json")
        assert copy_storage(old, new) == len(old)
        reg.change_storage_backend(new, caller=MODERATOR)

        assert reg.get_app_info("prvd") == before
        assert reg.get_app_info("prvd") != AppInfo()
        # Registration keys issued before the swap still address the data
        assert new.get(app_keys.description_key) == "..."


def test_json_storage_values_are_copies():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(Path(tmpdir) / "registry.json")
        record = {"count": 1}
        storage.set("k", record)
        record["count"] = 2
        storage.get("k")["count"] = 3
        for _, value in storage.items():
            value["count"] = 4
        assert storage.get("k") == {"count": 1}


def test_json_storage_failed_batch_leaves_no_trace():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "registry.json"
        storage = JsonFileStorage(path)
        storage.set("a", 1)

        with pytest.raises(TypeError):
            storage.set_many({"b": object()})
        assert [p.name for p in Path(tmpdir).iterdir()] == ["registry.json"]
        assert storage.get("b") is None
        assert json.loads(path.read_text()) == {"a": 1}
