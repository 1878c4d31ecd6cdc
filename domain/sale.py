"""
Domain: Sale documents.

A Sale is created exactly once, fully priced, by the sale service. After
creation it is immutable except for the status transitions
completed -> cancelled and completed -> refunded.

Customer and product details are snapshotted onto the sale so historical
invoices are unaffected by later catalog or customer edits.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Tuple

from .errors import InvalidTransition
from .money import money_sum
from .time import require_utc_timestamp

WALK_IN_CUSTOMER = "Walk-in Customer"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    CREDIT = "credit"

    @property
    def settles_immediately(self) -> bool:
        """Cash, card and UPI are collected at the counter; credit is deferred."""

        return self is not PaymentMethod.CREDIT


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


_ALLOWED_SALE_TRANSITIONS = {
    SaleStatus.COMPLETED: {SaleStatus.CANCELLED, SaleStatus.REFUNDED},
}


@dataclass(frozen=True, slots=True)
class CustomerSnapshot:
    name: str = WALK_IN_CUSTOMER
    phone: str = ""
    email: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "phone": self.phone, "email": self.email}


@dataclass(frozen=True, slots=True)
class SaleLineItem:
    product_id: str
    name: str
    price: Decimal
    cost_basis: Decimal
    quantity: int
    discount: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def profit(self) -> Decimal:
        return (self.price - self.cost_basis) * self.quantity


@dataclass(frozen=True, slots=True)
class Sale:
    """
    Immutable, fully priced sale.

    Invariants (checked on construction):
    - subtotal == sum(price * quantity) over items
    - total == subtotal + tax - discount
    - at least one line item
    """

    sale_id: str
    invoice_code: str
    items: Tuple[SaleLineItem, ...]
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    payment_method: PaymentMethod
    created_at: datetime
    status: SaleStatus = SaleStatus.COMPLETED
    customer: CustomerSnapshot = field(default_factory=CustomerSnapshot)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if not self.items:
            raise ValueError("a sale needs at least one line item")
        if self.subtotal != money_sum(item.line_total for item in self.items):
            raise ValueError("subtotal does not match line items")
        if self.total != self.subtotal + self.tax - self.discount:
            raise ValueError("total must equal subtotal + tax - discount")

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def profit(self) -> Decimal:
        return money_sum(item.profit for item in self.items)

    def with_status(self, status: SaleStatus) -> "Sale":
        """Return a new Sale in `status`, enforcing the allowed transitions."""

        if status not in _ALLOWED_SALE_TRANSITIONS.get(self.status, set()):
            raise InvalidTransition("sale", self.status.value, status.value)
        return replace(self, status=status)
