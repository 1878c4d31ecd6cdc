"""
Tests for the in-memory record store (`repositories/record_store.py`).
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain.errors import StorageError
from repositories.record_store import InMemoryRecordStore, Op, any_of, where


@pytest.fixture
def store() -> InMemoryRecordStore:
    store = InMemoryRecordStore("payments", "payment_id")
    store.save({
        "payment_id": "p1",
        "invoice_code": "INV-2024-0001",
        "status": "paid",
        "amount": "1130.00",
        "customer": {"name": "Asha Rao", "phone": "9876543210"},
        "created_at_utc": "2024-06-01T10:00:00+00:00",
    })
    store.save({
        "payment_id": "p2",
        "invoice_code": "INV-2024-0002",
        "status": "pending",
        "amount": "500",
        "customer": {"name": "Walk-in Customer", "phone": ""},
        "created_at_utc": "2024-06-10T10:00:00+00:00",
    })
    store.save({
        "payment_id": "p3",
        "invoice_code": "INV-2023-0107",
        "status": "partial",
        "amount": "70.50",
        "customer": {"name": "Ravi", "phone": "9123400000"},
        "created_at_utc": "2023-12-31T23:59:59+00:00",
    })
    return store


def test_rows_are_copied_in_and_out(store: InMemoryRecordStore) -> None:
    row = store.find_by_id("p1")
    row["status"] = "tampered"
    row["customer"]["name"] = "tampered"

    fresh = store.find_by_id("p1")
    assert fresh["status"] == "paid"
    assert fresh["customer"]["name"] == "Asha Rao"


def test_save_requires_id() -> None:
    with pytest.raises(StorageError):
        InMemoryRecordStore("sales", "sale_id").save({"invoice_code": "INV-2024-0001"})


def test_find_by_id_missing_returns_none(store: InMemoryRecordStore) -> None:
    assert store.find_by_id("nope") is None


def test_filters_and_ordering(store: InMemoryRecordStore) -> None:
    newest_first = store.find_many(order_by="created_at_utc", descending=True)
    assert [r["payment_id"] for r in newest_first] == ["p2", "p1", "p3"]

    this_year = store.find_many([where("invoice_code", Op.PREFIX, "INV-2024-")], order_by="invoice_code")
    assert [r["payment_id"] for r in this_year] == ["p1", "p2"]

    unpaid = store.find_many([where("status", Op.NEQ, "paid")], order_by="payment_id")
    assert [r["payment_id"] for r in unpaid] == ["p2", "p3"]

    open_items = store.find_many([where("status", Op.IN, ("pending", "partial"))], order_by="payment_id", limit=1)
    assert [r["payment_id"] for r in open_items] == ["p2"]


def test_half_open_time_window(store: InMemoryRecordStore) -> None:
    june = store.find_many(
        [
            where("created_at_utc", Op.GTE, "2024-06-01T10:00:00+00:00"),
            where("created_at_utc", Op.LT, "2024-06-10T10:00:00+00:00"),
        ]
    )
    assert [r["payment_id"] for r in june] == ["p1"]


def test_dotted_fields_and_any_of(store: InMemoryRecordStore) -> None:
    by_name = store.find_many([where("customer.name", Op.ICONTAINS, "asha")])
    assert [r["payment_id"] for r in by_name] == ["p1"]

    by_name_or_phone = store.find_many(
        [any_of(where("customer.name", Op.ICONTAINS, "91234"), where("customer.phone", Op.ICONTAINS, "91234"))]
    )
    assert [r["payment_id"] for r in by_name_or_phone] == ["p3"]


def test_count_and_sum(store: InMemoryRecordStore) -> None:
    assert store.count_where() == 3
    assert store.count_where([where("invoice_code", Op.PREFIX, "INV-2024-")]) == 2
    assert store.aggregate_sum([], "amount") == Decimal("1700.50")
    assert store.aggregate_sum([where("status", Op.EQ, "paid")], "amount") == Decimal("1130.00")


def test_compare_and_set() -> None:
    store = InMemoryRecordStore("products", "product_id")
    store.save({"product_id": "rice", "stock": 5})

    assert store.compare_and_set("rice", "stock", 5, 3) is True
    assert store.find_by_id("rice")["stock"] == 3

    # Stale expectation loses.
    assert store.compare_and_set("rice", "stock", 5, 1) is False
    assert store.find_by_id("rice")["stock"] == 3

    assert store.compare_and_set("missing", "stock", 0, 1) is False
