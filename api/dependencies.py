"""
FastAPI dependencies.

The engine is built once in `create_app()` and parked on `app.state`; these
helpers hand its services to route functions.
"""

from typing import Optional

from fastapi import Depends, Request

from domain.errors import ValidationError
from services.aggregation_service import AggregationService
from services.engine import SettlementEngine
from services.payment_service import PaymentService
from services.sale_service import SaleService


def get_engine(request: Request) -> SettlementEngine:
    return request.app.state.engine


def get_sale_service(engine: SettlementEngine = Depends(get_engine)) -> SaleService:
    return engine.sales


def get_payment_service(engine: SettlementEngine = Depends(get_engine)) -> PaymentService:
    return engine.payments


def get_aggregation_service(engine: SettlementEngine = Depends(get_engine)) -> AggregationService:
    return engine.reports


def parse_enum_query(enum_type, value: Optional[str], name: str):
    """Case-insensitive enum query parameter; unknown values are a 400."""

    if value is None:
        return None
    try:
        return enum_type(value.strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"Invalid {name} {value!r}; expected one of {allowed}", field=name) from None
