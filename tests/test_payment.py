"""
Tests for `domain/payment.py`.

The settlement state machine: pending -> partial -> paid, paid amount only
grows, and the overdue override applies from any state.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.errors import InvalidAmount
from domain.payment import PaymentRecord, PaymentStatus, append_note, status_for
from domain.sale import PaymentMethod

OPENED_AT = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _pending(amount: str = "1130") -> PaymentRecord:
    return PaymentRecord(
        payment_id="p-1",
        invoice_code="INV-2024-0001",
        amount=Decimal(amount),
        paid_amount=Decimal("0"),
        method=PaymentMethod.CREDIT,
        status=PaymentStatus.PENDING,
        created_at=OPENED_AT,
        due_date=OPENED_AT + timedelta(days=30),
        notes="Auto-created from INV-2024-0001",
    )


def test_status_for_thresholds() -> None:
    assert status_for(Decimal("0"), Decimal("1130")) is PaymentStatus.PENDING
    assert status_for(Decimal("0.01"), Decimal("1130")) is PaymentStatus.PARTIAL
    assert status_for(Decimal("1130"), Decimal("1130")) is PaymentStatus.PAID
    assert status_for(Decimal("1200"), Decimal("1130")) is PaymentStatus.PAID


def test_partial_then_full_payment() -> None:
    payment = _pending()
    first_at = OPENED_AT + timedelta(days=1)
    second_at = OPENED_AT + timedelta(days=2)

    partial = payment.apply_payment(Decimal("500"), at=first_at)
    assert partial.status is PaymentStatus.PARTIAL
    assert partial.paid_amount == Decimal("500")
    assert partial.balance == Decimal("630")
    assert partial.paid_date is None

    paid = partial.apply_payment(Decimal("630"), at=second_at)
    assert paid.status is PaymentStatus.PAID
    assert paid.balance == Decimal("0")
    assert paid.paid_date == second_at

    # Each step returns a new record.
    assert payment.paid_amount == Decimal("0")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
def test_non_positive_amounts_are_rejected(amount: Decimal) -> None:
    with pytest.raises(InvalidAmount):
        _pending().apply_payment(amount, at=OPENED_AT)


def test_overpayment_never_shows_negative_balance() -> None:
    paid = _pending().apply_payment(Decimal("1200"), at=OPENED_AT)

    assert paid.status is PaymentStatus.PAID
    assert paid.paid_amount == Decimal("1200")
    assert paid.balance == Decimal("0")


def test_progress_is_rounded_percentage() -> None:
    partial = _pending().apply_payment(Decimal("500"), at=OPENED_AT)

    assert partial.progress == 44
    assert _pending(amount="0").progress == 0


def test_notes_are_appended_and_method_switched() -> None:
    updated = _pending().apply_payment(
        Decimal("100"),
        at=OPENED_AT,
        method=PaymentMethod.UPI,
        transaction_ref="UPI-42",
        note="First instalment",
    )

    assert updated.notes == "Auto-created from INV-2024-0001\nFirst instalment"
    assert updated.method is PaymentMethod.UPI
    assert updated.transaction_ref == "UPI-42"


def test_append_note_handles_empty_sides() -> None:
    assert append_note("", "first") == "first"
    assert append_note("first", None) == "first"
    assert append_note("first", "second") == "first\nsecond"


def test_overdue_override_applies_even_when_paid() -> None:
    paid = _pending().apply_payment(Decimal("1130"), at=OPENED_AT)

    assert paid.marked_overdue().status is PaymentStatus.OVERDUE


def test_is_overdue_at_ignores_stored_status() -> None:
    payment = _pending()

    assert not payment.is_overdue_at(OPENED_AT + timedelta(days=29))
    assert payment.is_overdue_at(OPENED_AT + timedelta(days=31))

    settled = payment.apply_payment(Decimal("1130"), at=OPENED_AT)
    assert not settled.is_overdue_at(OPENED_AT + timedelta(days=31))


def test_payment_timestamps_must_be_utc() -> None:
    with pytest.raises(ValueError):
        PaymentRecord(
            payment_id="p-2",
            invoice_code="INV-2024-0002",
            amount=Decimal("10"),
            paid_amount=Decimal("0"),
            method=PaymentMethod.CASH,
            status=PaymentStatus.PENDING,
            created_at=datetime(2024, 6, 15, 12, 0, 0),
        )
