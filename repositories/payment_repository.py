"""
Payment repository (persistence).

Row <-> PaymentRecord mapping only. The settlement state machine lives in
`domain.payment` and is driven by `services.payment_service`.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Optional

from domain.money import to_decimal
from domain.payment import PaymentRecord, PaymentStatus
from domain.sale import CustomerSnapshot, PaymentMethod
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from repositories.record_store import Filter, RecordStore


def _row_to_payment(row: Mapping[str, Any]) -> PaymentRecord:
    customer = row.get("customer") or {}
    return PaymentRecord(
        payment_id=str(row["payment_id"]),
        invoice_code=str(row["invoice_code"]),
        customer=CustomerSnapshot(
            name=str(customer.get("name") or CustomerSnapshot().name),
            phone=str(customer.get("phone") or ""),
            email=str(customer.get("email") or ""),
        ),
        amount=to_decimal(row["amount"], name="amount"),
        paid_amount=to_decimal(row.get("paid_amount"), name="paid_amount"),
        method=PaymentMethod(str(row["method"])),
        status=PaymentStatus(str(row["status"])),
        due_date=parse_optional_utc_datetime(row.get("due_date_utc")),
        paid_date=parse_optional_utc_datetime(row.get("paid_date_utc")),
        transaction_ref=str(row.get("transaction_ref") or ""),
        notes=str(row.get("notes") or ""),
        created_at=parse_utc_datetime(row["created_at_utc"]),
    )


def _payment_to_row(payment: PaymentRecord) -> dict[str, Any]:
    return {
        "payment_id": payment.payment_id,
        "invoice_code": payment.invoice_code,
        "customer": payment.customer.to_dict(),
        "amount": str(payment.amount),
        "paid_amount": str(payment.paid_amount),
        "method": payment.method.value,
        "status": payment.status.value,
        "due_date_utc": to_iso_utc(payment.due_date, name="due_date") if payment.due_date else None,
        "paid_date_utc": to_iso_utc(payment.paid_date, name="paid_date") if payment.paid_date else None,
        "transaction_ref": payment.transaction_ref,
        "notes": payment.notes,
        "created_at_utc": to_iso_utc(payment.created_at, name="created_at"),
    }


class PaymentRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def save_payment(self, payment: PaymentRecord) -> PaymentRecord:
        self._store.save(_payment_to_row(payment))
        return payment

    def get_payment_by_id(self, payment_id: str) -> Optional[PaymentRecord]:
        row = self._store.find_by_id(str(payment_id))
        return _row_to_payment(row) if row is not None else None

    def list_payments(self, filters: Filter = (), limit: Optional[int] = None) -> List[PaymentRecord]:
        """Payments matching `filters`, newest first."""

        rows = self._store.find_many(filters, order_by="created_at_utc", descending=True, limit=limit)
        return [_row_to_payment(row) for row in rows]

    def count_payments(self, filters: Filter = ()) -> int:
        return self._store.count_where(filters)

    def sum_field(self, filters: Filter, field: str) -> Decimal:
        return self._store.aggregate_sum(filters, field)


__all__ = ["PaymentRepository"]
