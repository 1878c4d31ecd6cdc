"""
Tests for `services/payment_service.py`.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal

import pytest

from domain.errors import InvalidAmount, PaymentNotFound, ValidationError
from domain.payment import PaymentStatus
from domain.sale import PaymentMethod
from services.payment_service import transaction_ref_for


@pytest.fixture
def credit_payment(engine):
    """Credit sale of 2 x rice: 1000 + 18% tax - 50 discount = 1130 owed."""

    engine.sales.create_sale(
        [{"productId": "rice", "quantity": 2}],
        payment_method="credit",
        customer={"name": "Asha Rao", "phone": "9876543210"},
        discount=50,
    )
    [payment] = engine.payments.list_payments()
    return payment


def test_credit_payment_settles_in_two_steps(engine, clock, credit_payment) -> None:
    assert credit_payment.amount == Decimal("1130")
    assert credit_payment.status is PaymentStatus.PENDING

    clock.advance(days=3)
    partial = engine.payments.record_payment(credit_payment.payment_id, 500)
    assert partial.status is PaymentStatus.PARTIAL
    assert partial.paid_amount == Decimal("500")
    assert partial.balance == Decimal("630")
    assert partial.paid_date is None

    clock.advance(days=4)
    paid = engine.payments.record_payment(credit_payment.payment_id, "630")
    assert paid.status is PaymentStatus.PAID
    assert paid.balance == Decimal("0")
    assert paid.paid_date == clock.now

    assert engine.payments.get_payment(credit_payment.payment_id) == paid


@pytest.mark.parametrize("amount", [0, -5, None, "abc"])
def test_invalid_amounts_leave_payment_unchanged(engine, credit_payment, amount) -> None:
    with pytest.raises(InvalidAmount):
        engine.payments.record_payment(credit_payment.payment_id, amount)

    assert engine.payments.get_payment(credit_payment.payment_id) == credit_payment


def test_unknown_payment(engine) -> None:
    with pytest.raises(PaymentNotFound):
        engine.payments.record_payment("missing", 10)

    with pytest.raises(PaymentNotFound):
        engine.payments.mark_overdue("missing")


def test_unknown_method_is_rejected(engine, credit_payment) -> None:
    with pytest.raises(ValidationError):
        engine.payments.record_payment(credit_payment.payment_id, 10, method="barter")


def test_notes_method_and_reference_are_recorded(engine, credit_payment) -> None:
    updated = engine.payments.record_payment(
        credit_payment.payment_id,
        100,
        method="UPI",
        transaction_ref="UPI-20240615-0042",
        note="First instalment",
    )

    assert updated.method is PaymentMethod.UPI
    assert updated.transaction_ref == "UPI-20240615-0042"
    assert updated.notes == "Auto-created from INV-2024-0001\nFirst instalment"


def test_paid_amount_never_decreases(engine, credit_payment) -> None:
    seen = [credit_payment.paid_amount]
    for amount in (100, 200, 2000):
        seen.append(engine.payments.record_payment(credit_payment.payment_id, amount).paid_amount)

    assert seen == sorted(seen)
    assert engine.payments.get_payment(credit_payment.payment_id).status is PaymentStatus.PAID


def test_concurrent_payments_are_all_counted(engine, credit_payment) -> None:
    def pay(_: int) -> None:
        engine.payments.record_payment(credit_payment.payment_id, 10)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(pay, range(30)))

    assert engine.payments.get_payment(credit_payment.payment_id).paid_amount == Decimal("300")


def test_mark_overdue_is_a_blind_override(engine, credit_payment) -> None:
    overdue = engine.payments.mark_overdue(credit_payment.payment_id)
    assert overdue.status is PaymentStatus.OVERDUE

    # Paying an overdue invoice in full still settles it.
    paid = engine.payments.record_payment(credit_payment.payment_id, 1130)
    assert paid.status is PaymentStatus.PAID

    # And the override applies to settled payments too.
    assert engine.payments.mark_overdue(credit_payment.payment_id).status is PaymentStatus.OVERDUE


def test_list_payments_filters(engine, clock, credit_payment) -> None:
    clock.advance(days=1)
    engine.sales.create_sale([{"productId": "dal", "quantity": 1}], payment_method="card")

    pending = engine.payments.list_payments(status=PaymentStatus.PENDING)
    card = engine.payments.list_payments(method=PaymentMethod.CARD)
    since_yesterday = engine.payments.list_payments(start=clock.now - timedelta(hours=1))

    assert [p.payment_id for p in pending] == [credit_payment.payment_id]
    assert [p.invoice_code for p in card] == ["INV-2024-0002"]
    assert [p.invoice_code for p in since_yesterday] == ["INV-2024-0002"]
    assert [p.invoice_code for p in engine.payments.list_payments()] == ["INV-2024-0002", "INV-2024-0001"]


def test_payment_stats(engine, credit_payment) -> None:
    # dal 100 + 18% tax, paid in cash
    engine.sales.create_sale([{"productId": "dal", "quantity": 1}])

    stats = engine.payments.payment_stats()

    assert stats.total_payments == 2
    assert stats.counts == {"pending": 1, "partial": 0, "paid": 1, "overdue": 0}
    assert stats.total_amount == Decimal("1248")
    assert stats.paid_amount == Decimal("118")
    assert stats.outstanding == Decimal("1130")


def test_transaction_ref_uses_epoch_millis(clock) -> None:
    assert transaction_ref_for(clock.now) == f"TXN-{int(clock.now.timestamp() * 1000)}"
