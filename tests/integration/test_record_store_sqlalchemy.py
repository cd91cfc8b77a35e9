from __future__ import annotations

import pytest

from franchisehub.application import tables
from franchisehub.core.errors import UniqueViolationError, ValidationError
from franchisehub.domain.timeutil import parse_ts
from franchisehub.infrastructure.stores.sqlalchemy_record_store import SqlAlchemyRecordStore


@pytest.fixture
def store(tmp_path):
    s = SqlAlchemyRecordStore(f"sqlite:///{tmp_path / 'records.db'}")
    yield s
    s.close()


def _app(app_id, status="submitted", submitted_at="2026-03-01T10:00:00+00:00", **extra):
    row = {
        "id": app_id,
        "user_id": "u1",
        "contact_name": "李华",
        "contact_phone": "13800000000",
        "contact_email": "lihua@example.com",
        "intended_city": "Shanghai",
        "status": status,
        "documents": [],
        "submitted_at": submitted_at,
    }
    row.update(extra)
    return row


def test_insert_get_round_trip_keeps_json_and_timestamps(store):
    docs = [{"name": "license.pdf", "url": "/files/documents/u1/license.pdf", "content_type": "application/pdf"}]
    row = store.insert(tables.APPLICATIONS, _app("a1", documents=docs, submitted_at="2026-03-01T18:00:00+08:00"))
    assert "seq" not in row
    got = store.get(tables.APPLICATIONS, "a1")
    assert got["documents"] == docs
    assert parse_ts(got["submitted_at"]) == parse_ts("2026-03-01T10:00:00+00:00")
    assert store.get(tables.APPLICATIONS, "missing") is None


def test_select_filters_and_orders_with_insertion_tiebreak(store):
    store.insert(tables.APPLICATIONS, _app("a1", submitted_at="2026-03-02T00:00:00+00:00"))
    store.insert(tables.APPLICATIONS, _app("a2", status="approved"))
    store.insert(tables.APPLICATIONS, _app("a3", submitted_at="2026-03-02T00:00:00+00:00"))
    store.insert(tables.APPLICATIONS, _app("a4", status="rejected"))

    ordered = store.select(tables.APPLICATIONS, order_by="submitted_at", descending=True)
    assert [r["id"] for r in ordered] == ["a1", "a3", "a2", "a4"]
    subset = store.select(tables.APPLICATIONS, filters={"status": ["approved", "rejected"]})
    assert [r["id"] for r in subset] == ["a2", "a4"]
    assert [r["id"] for r in store.select(tables.APPLICATIONS, filters={"reviewed_by_user_id": None}, limit=1)] == ["a1"]


def test_conditional_update(store):
    store.insert(tables.APPLICATIONS, _app("a1"))
    assert store.update(tables.APPLICATIONS, "a1", {"status": "approved"}, where={"status": "under_review"}) is None
    assert store.get(tables.APPLICATIONS, "a1")["status"] == "submitted"
    updated = store.update(
        tables.APPLICATIONS,
        "a1",
        {"status": "under_review", "reviewed_at": "2026-03-03T00:00:00+00:00"},
        where={"status": "submitted"},
    )
    assert updated["status"] == "under_review"
    assert parse_ts(updated["reviewed_at"]).year == 2026
    assert store.update(tables.APPLICATIONS, "nope", {"status": "approved"}) is None


def test_unique_application_id_on_signed_contracts(store):
    base = {"user_id": "u1", "signature_url": "/files/s.png", "contract_number": "FC-1", "signed_at": "2026-03-04T00:00:00+00:00"}
    store.insert(tables.SIGNED_CONTRACTS, dict(base, id="c1", application_id="a1"))
    with pytest.raises(UniqueViolationError):
        store.insert(tables.SIGNED_CONTRACTS, dict(base, id="c2", application_id="a1"))
    assert len(store.select(tables.SIGNED_CONTRACTS)) == 1


def test_unknown_table_or_field_is_validation_error(store):
    with pytest.raises(ValidationError):
        store.select("payments")
    with pytest.raises(ValidationError):
        store.select(tables.APPLICATIONS, filters={"seq": 1})
    assert store.delete(tables.APPLICATIONS, "missing") is False


def test_unique_contract_number_on_signed_contracts(store):
    base = {"user_id": "u1", "signature_url": "/files/s.png", "contract_number": "FC-20261019-AB", "signed_at": "2026-03-04T00:00:00+00:00"}
    store.insert(tables.SIGNED_CONTRACTS, dict(base, id="c1", application_id="a1"))
    with pytest.raises(UniqueViolationError):
        store.insert(tables.SIGNED_CONTRACTS, dict(base, id="c2", application_id="a2"))
