from datetime import datetime, timedelta, timezone

from coachpilot.core.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, StorageError
from coachpilot.core.models import Insight, InsightCategory, InsightPriority
from coachpilot.core.storage import InsightStore

KEY = "coachpilot_ai_insights"
NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


class FailingKeyValueStore(InMemoryKeyValueStore):
    """Reads work, writes fail."""

    def set(self, key, value):
        raise StorageError("disk full")


def _insight(item_id, generated_at=NOW, expires_at=None):
    return Insight(
        id=item_id,
        category=InsightCategory.RECOVERY,
        priority=InsightPriority.HIGH,
        title="Sleep",
        message="Sleep more",
        confidence=92,
        generated_at=generated_at,
        expires_at=expires_at,
    )


def test_save_then_load_returns_same_batch(kv):
    store = InsightStore(kv, KEY)
    batch = [_insight("a"), _insight("b")]

    assert store.save(batch) is True
    assert store.load_all() == batch


def test_save_empty_batch(kv):
    store = InsightStore(kv, KEY)
    store.save([_insight("a")])

    assert store.save([]) is True
    assert store.load_all() == []
    assert kv.get(KEY) == "[]"


def test_missing_key_loads_empty(kv):
    assert InsightStore(kv, KEY).load_all() == []


def test_corrupt_payload_loads_empty(kv):
    kv.set(KEY, "{broken")
    assert InsightStore(kv, KEY).load_all() == []

    kv.set(KEY, '[{"id": "x"}]')
    assert InsightStore(kv, KEY).load_all() == []


def test_failed_save_keeps_previous_batch():
    seeded = InMemoryKeyValueStore()
    InsightStore(seeded, KEY).save([_insight("previous")])
    kv = FailingKeyValueStore({KEY: seeded.get(KEY)})
    store = InsightStore(kv, KEY)

    assert store.save([_insight("a"), _insight("b")]) is False
    assert [i.id for i in store.load_all()] == ["previous"]


def test_expire_after_24_hours(kv):
    store = InsightStore(kv, KEY)
    store.save([
        _insight("old", generated_at=NOW - timedelta(hours=25)),
        _insight("fresh", generated_at=NOW - timedelta(hours=23)),
    ])

    removed = store.expire_insights(NOW)

    assert removed == 1
    assert [i.id for i in store.load_all()] == ["fresh"]


def test_expire_at_exact_window_boundary(kv):
    store = InsightStore(kv, KEY)
    store.save([_insight("edge", generated_at=NOW - timedelta(hours=24))])

    assert store.expire_insights(NOW) == 1


def test_explicit_expires_at_wins(kv):
    store = InsightStore(kv, KEY)
    store.save([
        _insight("short", generated_at=NOW, expires_at=NOW - timedelta(minutes=1)),
        _insight("long", generated_at=NOW - timedelta(hours=30), expires_at=NOW + timedelta(hours=1)),
    ])

    assert store.expire_insights(NOW) == 1
    assert [i.id for i in store.load_all()] == ["long"]


def test_expire_nothing_does_not_write(kv):
    store = InsightStore(kv, KEY)
    store.save([_insight("fresh")])
    before = kv.get(KEY)

    assert store.expire_insights(NOW) == 0
    assert kv.get(KEY) is before


def test_naive_now_compares_as_utc(kv):
    store = InsightStore(kv, KEY)
    store.save([_insight("old", generated_at=NOW - timedelta(hours=25))])

    assert store.expire_insights(NOW.replace(tzinfo=None)) == 1


def test_custom_expiry_window(kv):
    store = InsightStore(kv, KEY, expiry_window=timedelta(hours=1))
    store.save([_insight("a", generated_at=NOW - timedelta(hours=2))])

    assert store.expire_insights(NOW) == 1


def test_remove_existing_item(kv):
    store = InsightStore(kv, KEY)
    store.save([_insight("a"), _insight("b")])

    removed = store.remove("a")

    assert removed.id == "a"
    assert [i.id for i in store.load_all()] == ["b"]


def test_remove_unknown_item_leaves_payload_untouched(kv):
    store = InsightStore(kv, KEY)
    store.save([_insight("a")])
    before = kv.get(KEY)

    assert store.remove("missing") is None
    assert kv.get(KEY) is before


def test_undecodable_file_loads_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_bytes(b'{"coachpilot_ai_insights": "\xff\xfe"}')

    assert InsightStore(JsonFileKeyValueStore(path), KEY).load_all() == []


def test_remove_with_failed_write_keeps_item():
    seeded = InMemoryKeyValueStore()
    InsightStore(seeded, KEY).save([_insight("a"), _insight("b")])
    store = InsightStore(FailingKeyValueStore({KEY: seeded.get(KEY)}), KEY)

    assert store.remove("a") is None
    assert [i.id for i in store.load_all()] == ["a", "b"]


def test_expire_with_failed_write_reports_nothing_removed():
    seeded = InMemoryKeyValueStore()
    InsightStore(seeded, KEY).save([_insight("old", generated_at=NOW - timedelta(hours=25))])
    store = InsightStore(FailingKeyValueStore({KEY: seeded.get(KEY)}), KEY)

    assert store.expire_insights(NOW) == 0
    assert [i.id for i in store.load_all()] == ["old"]
