"""
Domain: Product as seen by the settlement engine.

Products are created and edited by catalog management elsewhere. The engine
reads them for pricing and mutates exactly one field, `stock`, and only
through the stock ledger's conditional decrement.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

# Cost basis policy when a product carries no purchase price.
DEFAULT_COST_RATIO = Decimal("0.7")

# Products at or below this stock count are "critical" in dashboards.
CRITICAL_STOCK_LEVEL = 5


def default_cost_basis(price: Decimal) -> Decimal:
    return price * DEFAULT_COST_RATIO


@dataclass(frozen=True, slots=True)
class Product:
    """
    Immutable snapshot of a catalog product.

    Invariants:
    - stock >= 0
    - price >= 0
    """

    product_id: str
    name: str
    price: Decimal
    stock: int
    purchase_price: Optional[Decimal] = None
    low_stock_threshold: int = 10
    category: Optional[str] = None
    unit: str = "pcs"

    def __post_init__(self) -> None:
        if self.stock < 0:
            raise ValueError("stock cannot be negative")
        if self.price < 0:
            raise ValueError("price cannot be negative")
        if self.purchase_price is not None and self.purchase_price < 0:
            raise ValueError("purchase_price cannot be negative")

    @property
    def cost_basis(self) -> Decimal:
        """Explicit purchase price, or 70% of the unit price when absent/zero."""

        if self.purchase_price:
            return self.purchase_price
        return default_cost_basis(self.price)

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    @property
    def is_critical_stock(self) -> bool:
        return self.stock <= CRITICAL_STOCK_LEVEL

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock == 0

    def with_stock(self, stock: int) -> "Product":
        return replace(self, stock=stock)
