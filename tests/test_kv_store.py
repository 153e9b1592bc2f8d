import json

import pytest

from coachpilot.core.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, StorageError


def test_in_memory_round_trip():
    kv = InMemoryKeyValueStore()

    assert kv.get("missing") is None
    kv.set("a", "1")
    assert kv.get("a") == "1"
    assert kv.keys() == ["a"]
    kv.delete("a")
    kv.delete("a")
    assert kv.get("a") is None


def test_in_memory_rejects_non_string_values():
    with pytest.raises(StorageError):
        InMemoryKeyValueStore().set("a", {"not": "a string"})


def test_json_file_survives_reopen(tmp_path):
    path = tmp_path / "store.json"
    JsonFileKeyValueStore(path).set("coachpilot_ai_insights", "[]")

    reopened = JsonFileKeyValueStore(path)

    assert reopened.get("coachpilot_ai_insights") == "[]"
    assert json.loads(path.read_text(encoding="utf-8")) == {"coachpilot_ai_insights": "[]"}


def test_json_file_missing_or_corrupt_reads_empty(tmp_path):
    path = tmp_path / "store.json"
    kv = JsonFileKeyValueStore(path)
    assert kv.get("a") is None

    path.write_text("{not json", encoding="utf-8")
    assert kv.get("a") is None
    assert kv.keys() == []


def test_json_file_write_leaves_no_temp_files(tmp_path):
    kv = JsonFileKeyValueStore(tmp_path / "nested" / "store.json")

    kv.set("a", "1")
    kv.set("b", "2")
    kv.delete("a")

    assert [p.name for p in (tmp_path / "nested").iterdir()] == ["store.json"]
    assert kv.keys() == ["b"]


def test_json_file_write_error_is_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    kv = JsonFileKeyValueStore(blocker / "store.json")

    with pytest.raises(StorageError):
        kv.set("a", "1")


def test_json_file_with_invalid_utf8_reads_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_bytes(b'{"coachpilot_ai_insights": "\xff\xfe"}')
    kv = JsonFileKeyValueStore(path)

    assert kv.get("coachpilot_ai_insights") is None
    assert kv.keys() == []
