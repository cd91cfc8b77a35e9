import pytest

from franchisehub.application import tables
from franchisehub.core.errors import UniqueViolationError
from franchisehub.infrastructure.stores.memory_record_store import InMemoryRecordStore


def test_insert_assigns_id_and_returns_copy():
    store = InMemoryRecordStore()
    row = store.insert("things", {"name": "a"})
    assert row["id"]
    row["name"] = "mutated"
    assert store.get("things", row["id"])["name"] == "a"


def test_select_filters_and_in_clause_keep_insertion_order():
    store = InMemoryRecordStore()
    for i, status in enumerate(["submitted", "approved", "submitted", "rejected"]):
        store.insert("apps", {"id": f"a{i}", "status": status})
    assert [r["id"] for r in store.select("apps", filters={"status": "submitted"})] == ["a0", "a2"]
    assert [r["id"] for r in store.select("apps", filters={"status": ["approved", "rejected"]})] == ["a1", "a3"]
    assert [r["id"] for r in store.select("apps", limit=2)] == ["a0", "a1"]


def test_order_by_is_stable_in_both_directions():
    store = InMemoryRecordStore()
    store.insert("t", {"id": "x", "created_at": "2026-01-01T00:00:00+00:00"})
    store.insert("t", {"id": "y", "created_at": "2026-02-01T00:00:00+00:00"})
    store.insert("t", {"id": "z", "created_at": "2026-02-01T00:00:00+00:00"})
    assert [r["id"] for r in store.select("t", order_by="created_at")] == ["x", "y", "z"]
    assert [r["id"] for r in store.select("t", order_by="created_at", descending=True)] == ["y", "z", "x"]


def test_timestamps_sort_chronologically_not_lexically():
    store = InMemoryRecordStore()
    store.insert("t", {"id": "late", "ts": "2026-01-01T08:00:00+08:00"})  # 00:00 UTC
    store.insert("t", {"id": "early", "ts": "2025-12-31T23:00:00+00:00"})
    assert [r["id"] for r in store.select("t", order_by="ts")] == ["early", "late"]


def test_conditional_update_matches_or_returns_none():
    store = InMemoryRecordStore()
    store.insert("apps", {"id": "a", "status": "submitted"})
    assert store.update("apps", "a", {"status": "approved"}, where={"status": "under_review"}) is None
    assert store.get("apps", "a")["status"] == "submitted"
    assert store.update("apps", "a", {"status": "approved"}, where={"status": "submitted"})["status"] == "approved"
    assert store.update("apps", "missing", {"status": "x"}) is None


def test_unique_constraints():
    store = InMemoryRecordStore()
    store.insert(tables.SIGNED_CONTRACTS, {"id": "c1", "application_id": "app-1"})
    with pytest.raises(UniqueViolationError):
        store.insert(tables.SIGNED_CONTRACTS, {"id": "c2", "application_id": "app-1"})
    with pytest.raises(UniqueViolationError):
        store.insert(tables.SIGNED_CONTRACTS, {"id": "c1", "application_id": "app-2"})
    assert store.count(tables.SIGNED_CONTRACTS) == 1


def test_delete():
    store = InMemoryRecordStore()
    store.insert("t", {"id": "a"})
    assert store.delete("t", "a") is True
    assert store.delete("t", "a") is False
