"""
Domain: Payment records and the settlement state machine.

States:
- pending:  paid_amount == 0
- partial:  0 < paid_amount < amount
- paid:     paid_amount >= amount
- overdue:  administrative override, set from any state by mark_overdue

paid_amount only ever grows. There is no transition out of `paid` other than
the blind overdue override.

Transitions return new instances; records are never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .errors import InvalidAmount
from .money import ZERO, percentage, round_money
from .sale import CustomerSnapshot, PaymentMethod
from .time import require_utc_timestamp


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


def status_for(paid_amount: Decimal, amount: Decimal) -> PaymentStatus:
    """Derive the settlement status from the paid and owed amounts."""

    if paid_amount >= amount:
        return PaymentStatus.PAID
    if paid_amount > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def append_note(existing: str, note: Optional[str]) -> str:
    if not note:
        return existing
    if not existing:
        return note
    return f"{existing}\n{note}"


@dataclass(frozen=True, slots=True)
class PaymentRecord:
    payment_id: str
    invoice_code: str
    amount: Decimal
    paid_amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    created_at: datetime
    customer: CustomerSnapshot = field(default_factory=CustomerSnapshot)
    due_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    transaction_ref: str = ""
    notes: str = ""

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.due_date is not None:
            require_utc_timestamp("due_date", self.due_date)
        if self.paid_date is not None:
            require_utc_timestamp("paid_date", self.paid_date)
        if self.amount < 0:
            raise ValueError("amount cannot be negative")
        if self.paid_amount < 0:
            raise ValueError("paid_amount cannot be negative")

    @property
    def balance(self) -> Decimal:
        """Outstanding amount; overpayment never shows as a negative balance."""

        return max(self.amount - self.paid_amount, ZERO)

    @property
    def progress(self) -> int:
        if self.amount <= 0:
            return 0
        return round_money(percentage(self.paid_amount, self.amount))

    @property
    def is_settled(self) -> bool:
        return self.status is PaymentStatus.PAID

    def is_overdue_at(self, now: datetime) -> bool:
        """Not paid and past its due date, regardless of the stored status."""

        return (
            self.status is not PaymentStatus.PAID
            and self.due_date is not None
            and self.due_date < now
        )

    def apply_payment(
        self,
        amount: Decimal,
        *,
        at: datetime,
        method: Optional[PaymentMethod] = None,
        transaction_ref: Optional[str] = None,
        note: Optional[str] = None,
    ) -> "PaymentRecord":
        """Return the record after receiving `amount` more."""

        if amount <= 0:
            raise InvalidAmount(amount)
        require_utc_timestamp("at", at)

        paid_amount = self.paid_amount + amount
        status = status_for(paid_amount, self.amount)
        paid_date = self.paid_date
        if status is PaymentStatus.PAID and self.status is not PaymentStatus.PAID:
            paid_date = at

        return replace(
            self,
            paid_amount=paid_amount,
            status=status,
            paid_date=paid_date,
            method=method or self.method,
            transaction_ref=transaction_ref or self.transaction_ref,
            notes=append_note(self.notes, note),
        )

    def marked_overdue(self) -> "PaymentRecord":
        return replace(self, status=PaymentStatus.OVERDUE)
