"""
Stock ledger: the only writer of product stock.

`reserve()` checks availability and decrements stock as one atomic step per
product:

1. A per-product lock (striped, see `services/locks.py`) serializes callers
   inside this process.
2. The write itself is a conditional update (`stock: expected -> expected -
   quantity`) that only lands if nobody else changed the row since it was
   read. A lost race re-reads and re-checks, up to `max_attempts` times.

Either layer alone prevents overselling from this service; together they also
hold when another writer touches the same table.

The returned reservation carries the price and cost-basis snapshot the sale
line is built from.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from domain.errors import InsufficientStock, ProductNotFound, StorageError, ValidationError
from repositories.product_repository import ProductRepository
from services.locks import LockStripes

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StockReservation:
    product_id: str
    name: str
    price: Decimal
    cost_basis: Decimal
    quantity: int
    remaining_stock: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
        }


class StockLedger:
    def __init__(self, products: ProductRepository, *, max_attempts: int = 5) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._products = products
        self._max_attempts = max_attempts
        self._locks = LockStripes()

    def _lock_for(self, product_id: str) -> threading.Lock:
        return self._locks.for_key(product_id)

    def reserve(self, product_id: str, quantity: int) -> StockReservation:
        """
        Decrement `product_id` stock by `quantity` and snapshot its pricing.

        Raises:
            ValidationError: quantity < 1
            ProductNotFound: no such product
            InsufficientStock: quantity exceeds current stock
            StorageError: store failure, or the conditional update kept losing
        """

        if quantity < 1:
            raise ValidationError("quantity must be at least 1", field="quantity")
        product_id = str(product_id)

        with self._lock_for(product_id):
            for attempt in range(1, self._max_attempts + 1):
                product = self._products.get_product_by_id(product_id)
                if product is None:
                    raise ProductNotFound(product_id)
                if quantity > product.stock:
                    logger.warning(
                        "Insufficient stock for %s (%s): requested %d, available %d",
                        product.name,
                        product_id,
                        quantity,
                        product.stock,
                    )
                    raise InsufficientStock(product_id, product.name, quantity, product.stock)

                if self._products.decrement_stock_if_unchanged(product_id, product.stock, quantity):
                    remaining = product.stock - quantity
                    logger.info("Stock updated for %s: %d -> %d", product.name, product.stock, remaining)
                    return StockReservation(
                        product_id=product_id,
                        name=product.name,
                        price=product.price,
                        cost_basis=product.cost_basis,
                        quantity=quantity,
                        remaining_stock=remaining,
                    )

                logger.warning(
                    "Stock for %s changed concurrently (attempt %d/%d)", product_id, attempt, self._max_attempts
                )

        raise StorageError(f"Could not reserve stock for {product_id}: too much contention")

    def release(self, reservation: StockReservation) -> None:
        """Put a reservation's quantity back (compensation for a failed sale)."""

        product_id = reservation.product_id
        with self._lock_for(product_id):
            for _ in range(self._max_attempts):
                product = self._products.get_product_by_id(product_id)
                if product is None:
                    raise ProductNotFound(product_id)
                if self._products.increment_stock_if_unchanged(product_id, product.stock, reservation.quantity):
                    logger.warning(
                        "Released %d of %s back to stock (%d -> %d)",
                        reservation.quantity,
                        product.name,
                        product.stock,
                        product.stock + reservation.quantity,
                    )
                    return
        raise StorageError(f"Could not release stock for {product_id}: too much contention")


__all__ = ["StockLedger", "StockReservation"]
