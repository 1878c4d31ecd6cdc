"""
Payment ledger: creates payment records for sales and settles them.

Handles:
- Opening one payment per sale, with the initial state derived from the
  amount already collected at the counter
- Recording further (partial or full) payments
- The blind administrative overdue override
- Read-side listing and statistics for the payments endpoints

Each payment is mutated under its lock stripe (read -> apply -> save), which is
all the atomicity settlement needs: no operation touches two payments.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from domain.errors import PaymentNotFound
from domain.money import ZERO
from domain.payment import PaymentRecord, PaymentStatus, status_for
from domain.sale import PaymentMethod, Sale
from domain.time import require_utc_timestamp, to_iso_utc, utc_now
from repositories.payment_repository import PaymentRepository
from repositories.record_store import Op, where
from services.locks import LockStripes
from services.validation import (
    validate_optional_non_negative,
    validate_payment_method,
    validate_positive_amount,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def transaction_ref_for(now: datetime) -> str:
    return f"TXN-{int(now.timestamp() * 1000)}"


@dataclass(frozen=True, slots=True)
class PaymentStats:
    total_payments: int
    counts: Dict[str, int]
    total_amount: Decimal
    paid_amount: Decimal

    @property
    def outstanding(self) -> Decimal:
        return self.total_amount - self.paid_amount


class PaymentService:
    def __init__(
        self,
        payments: PaymentRepository,
        *,
        credit_days: int = 30,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._payments = payments
        self._credit_days = credit_days
        self._clock = clock
        self._new_id = id_factory
        self._locks = LockStripes()

    def _lock_for(self, payment_id: str) -> threading.Lock:
        return self._locks.for_key(payment_id)

    def open_payment(
        self,
        sale: Sale,
        paid_amount: Any = None,
        *,
        due_date: Optional[datetime] = None,
    ) -> PaymentRecord:
        """
        Create the payment record for a freshly persisted sale.

        paid_amount defaults to the full total for cash, card and UPI, and to
        zero for credit. Unsettled payments get a due date `credit_days` out
        unless one is given.
        """

        now = self._clock()
        paid = validate_optional_non_negative(paid_amount, field="paid_amount")
        if paid is None:
            paid = sale.total if sale.payment_method.settles_immediately else ZERO

        status = status_for(paid, sale.total)
        if due_date is not None:
            require_utc_timestamp("due_date", due_date)
        elif status is not PaymentStatus.PAID:
            due_date = now + timedelta(days=self._credit_days)
        else:
            due_date = None

        payment = PaymentRecord(
            payment_id=self._new_id(),
            invoice_code=sale.invoice_code,
            customer=sale.customer,
            amount=sale.total,
            paid_amount=paid,
            method=sale.payment_method,
            status=status,
            due_date=due_date,
            paid_date=now if status is PaymentStatus.PAID else None,
            transaction_ref=transaction_ref_for(now),
            notes=f"Auto-created from {sale.invoice_code}",
            created_at=now,
        )
        self._payments.save_payment(payment)
        logger.info("Payment created: %s, status %s", payment.invoice_code, payment.status.value)
        return payment

    def get_payment(self, payment_id: str) -> PaymentRecord:
        payment = self._payments.get_payment_by_id(payment_id)
        if payment is None:
            raise PaymentNotFound(str(payment_id))
        return payment

    def record_payment(
        self,
        payment_id: str,
        amount: Any,
        method: Any = None,
        transaction_ref: Optional[str] = None,
        note: Optional[str] = None,
    ) -> PaymentRecord:
        """
        Add `amount` to the payment's paid amount and recompute its status.

        Raises:
            InvalidAmount: amount missing or <= 0
            PaymentNotFound: no such payment
            ValidationError: unknown method
        """

        value = validate_positive_amount(amount)
        new_method: Optional[PaymentMethod] = validate_payment_method(method) if method else None

        with self._lock_for(str(payment_id)):
            current = self.get_payment(payment_id)
            updated = current.apply_payment(
                value,
                at=self._clock(),
                method=new_method,
                transaction_ref=transaction_ref,
                note=note,
            )
            self._payments.save_payment(updated)

        logger.info(
            "Payment recorded: %s for %s (%s -> %s)",
            value,
            updated.invoice_code,
            current.status.value,
            updated.status.value,
        )
        return updated

    def mark_overdue(self, payment_id: str) -> PaymentRecord:
        """Administrative override: no due-date check is made."""

        with self._lock_for(str(payment_id)):
            updated = self.get_payment(payment_id).marked_overdue()
            self._payments.save_payment(updated)
        logger.info("Payment marked as overdue: %s", updated.invoice_code)
        return updated

    def list_payments(
        self,
        *,
        status: Optional[PaymentStatus] = None,
        method: Optional[PaymentMethod] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[PaymentRecord]:
        filters: List[Any] = []
        if status is not None:
            filters.append(where("status", Op.EQ, status.value))
        if method is not None:
            filters.append(where("method", Op.EQ, method.value))
        if start is not None:
            filters.append(where("created_at_utc", Op.GTE, to_iso_utc(start, name="start")))
        if end is not None:
            filters.append(where("created_at_utc", Op.LT, to_iso_utc(end, name="end")))
        return self._payments.list_payments(filters, limit=limit)

    def payment_stats(self) -> PaymentStats:
        counts = {
            status.value: self._payments.count_payments([where("status", Op.EQ, status.value)])
            for status in PaymentStatus
        }
        return PaymentStats(
            total_payments=self._payments.count_payments(),
            counts=counts,
            total_amount=self._payments.sum_field([], "amount"),
            paid_amount=self._payments.sum_field([], "paid_amount"),
        )


__all__ = ["PaymentService", "PaymentStats", "transaction_ref_for"]
