"""
Domain: error kinds raised by the settlement engine.

Every error carries a stable machine-readable `code` and renders to a
JSON-safe payload through `to_dict()`. Transport layers map error classes to
status codes; the domain never knows about HTTP.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional


class POSError(Exception):
    """Base class for all engine errors."""

    code: str = "POS_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        payload.update(self.details)
        return payload


class ValidationError(POSError):
    """Missing or malformed request fields."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any) -> None:
        if field is not None:
            details["field"] = field
        super().__init__(message, **details)
        self.field = field


class ProductNotFound(POSError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}", product_id=product_id)
        self.product_id = product_id


class InsufficientStock(POSError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, product_name: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for {product_name}: requested {requested}, available {available}",
            product_id=product_id,
            product_name=product_name,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class SaleNotFound(POSError):
    code = "SALE_NOT_FOUND"

    def __init__(self, sale_id: str) -> None:
        super().__init__(f"Sale not found: {sale_id}", sale_id=sale_id)
        self.sale_id = sale_id


class PaymentNotFound(POSError):
    code = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str) -> None:
        super().__init__(f"Payment not found: {payment_id}", payment_id=payment_id)
        self.payment_id = payment_id


class InvalidAmount(POSError):
    code = "INVALID_AMOUNT"

    def __init__(self, amount: Any) -> None:
        super().__init__("Amount must be greater than 0", amount=str(amount))
        self.amount = amount


class InvalidTransition(POSError):
    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move {entity} from {current} to {target}",
            current_status=current,
            target_status=target,
        )


class StorageError(POSError):
    """Underlying record store failure. Details are logged, never returned."""

    code = "STORAGE_ERROR"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": "Internal storage error"}


class SaleLineError(POSError):
    """
    A sale line failed after zero or more earlier lines were reserved.

    Stock already decremented for `reserved_lines` is not restored unless
    compensation is enabled; `stock_released` says which happened so an
    operator can reconcile.
    """

    def __init__(
        self,
        *,
        line_index: int,
        cause: POSError,
        reserved_lines: List[Mapping[str, Any]],
        stock_released: bool,
    ) -> None:
        super().__init__(
            f"Sale line {line_index + 1} failed: {cause.message}",
            line_index=line_index,
            reason=cause.code,
            reserved_lines=[dict(line) for line in reserved_lines],
            stock_released=stock_released,
            **cause.details,
        )
        self.code = cause.code
        self.line_index = line_index
        self.cause = cause


__all__ = [
    "POSError",
    "ValidationError",
    "ProductNotFound",
    "InsufficientStock",
    "SaleNotFound",
    "PaymentNotFound",
    "InvalidAmount",
    "InvalidTransition",
    "StorageError",
    "SaleLineError",
]
