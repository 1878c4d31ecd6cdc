"""
Explicit request validation for the sale and payment services.

Nothing relies on the store rejecting malformed writes: every input is
checked here first and failures come back as structured ValidationErrors
naming the offending field.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from domain.errors import InvalidAmount, ValidationError
from domain.money import ZERO, to_decimal
from domain.sale import WALK_IN_CUSTOMER, CustomerSnapshot, PaymentMethod


@dataclass(frozen=True, slots=True)
class SaleLineRequest:
    product_id: str
    quantity: int


def validate_lines(lines: Optional[Iterable[Any]]) -> List[SaleLineRequest]:
    """
    Accept SaleLineRequest objects or mappings with productId/product_id and quantity.
    """

    if lines is None:
        raise ValidationError("Products required", field="products")

    validated: List[SaleLineRequest] = []
    for index, line in enumerate(lines):
        if isinstance(line, SaleLineRequest):
            product_id, quantity = line.product_id, line.quantity
        elif isinstance(line, Mapping):
            product_id = line.get("product_id", line.get("productId"))
            quantity = line.get("quantity")
        else:
            raise ValidationError(f"Line {index + 1} is malformed", field="products", line_index=index)

        if not product_id:
            raise ValidationError(f"Line {index + 1} has no product id", field="products", line_index=index)
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError(
                f"Line {index + 1} quantity must be a whole number", field="quantity", line_index=index
            )
        if quantity < 1:
            raise ValidationError(f"Line {index + 1} quantity must be at least 1", field="quantity", line_index=index)
        validated.append(SaleLineRequest(product_id=str(product_id), quantity=quantity))

    if not validated:
        raise ValidationError("Products required", field="products")
    return validated


def validate_payment_method(method: Any, *, default: Optional[PaymentMethod] = None) -> PaymentMethod:
    if method is None or method == "":
        if default is None:
            raise ValidationError("Payment method required", field="payment_method")
        return default
    if isinstance(method, PaymentMethod):
        return method
    try:
        return PaymentMethod(str(method).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(
            f"Invalid payment method {method!r}; expected one of {allowed}", field="payment_method"
        ) from None


def validate_non_negative(value: Any, *, field: str) -> Decimal:
    try:
        amount = to_decimal(value, name=field)
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc), field=field) from None
    if amount < ZERO:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return amount


def validate_optional_non_negative(value: Any, *, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    return validate_non_negative(value, field=field)


def validate_positive_amount(value: Any) -> Decimal:
    try:
        amount = to_decimal(value, name="amount")
    except (TypeError, ValueError):
        raise InvalidAmount(value) from None
    if amount <= ZERO:
        raise InvalidAmount(value)
    return amount


def validate_customer(customer: Any) -> CustomerSnapshot:
    if customer is None:
        return CustomerSnapshot()
    if isinstance(customer, CustomerSnapshot):
        return customer
    if not isinstance(customer, Mapping):
        raise ValidationError("customer must be an object", field="customer")
    return CustomerSnapshot(
        name=str(customer.get("name") or WALK_IN_CUSTOMER).strip(),
        phone=str(customer.get("phone") or "").strip(),
        email=str(customer.get("email") or "").strip().lower(),
    )


__all__ = [
    "SaleLineRequest",
    "validate_lines",
    "validate_payment_method",
    "validate_non_negative",
    "validate_optional_non_negative",
    "validate_positive_amount",
    "validate_customer",
]
