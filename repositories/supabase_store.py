"""
Supabase-backed record store.

Implements the `RecordStore` interface on top of a PostgREST table through
supabase-py. Every failure coming out of the client (PostgREST `APIError`,
an `error` attribute on the response, or a transport error) is logged and
re-raised as `StorageError` so internals never leak to API callers.

Dotted field names ("customer.name") are translated to PostgREST JSON path
syntax ("customer->>name") for filtering on jsonb columns.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from postgrest.exceptions import APIError

from domain.errors import StorageError
from domain.money import ZERO, to_decimal
from repositories.record_store import AnyOf, Condition, Filter, Op

logger = logging.getLogger(__name__)


def _column(field: str) -> str:
    if "." not in field:
        return field
    head, *rest = field.split(".")
    return head + "".join(f"->{part}" for part in rest[:-1]) + f"->>{rest[-1]}"


def _apply_condition(query: Any, condition: Condition) -> Any:
    column = _column(condition.field)
    value = condition.value
    op = condition.op

    if op is Op.EQ:
        return query.eq(column, value)
    if op is Op.NEQ:
        return query.neq(column, value)
    if op is Op.IN:
        return query.in_(column, list(value))
    if op is Op.GT:
        return query.gt(column, value)
    if op is Op.GTE:
        return query.gte(column, value)
    if op is Op.LT:
        return query.lt(column, value)
    if op is Op.LTE:
        return query.lte(column, value)
    if op is Op.PREFIX:
        return query.like(column, f"{value}%")
    if op is Op.ICONTAINS:
        return query.ilike(column, f"%{value}%")
    raise ValueError(f"Unsupported operator: {op!r}")


# Characters PostgREST reads as syntax inside an or=(...) list.
_OR_RESERVED = frozenset(',.:()"\\')


def _or_value(value: Any) -> str:
    """Double-quote a value that would otherwise break out of its clause."""

    text = str(value)
    if not any(ch in _OR_RESERVED for ch in text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _or_clause(condition: Condition) -> str:
    """Render one condition in PostgREST `or=(...)` syntax."""

    column = _column(condition.field)
    if condition.op is Op.ICONTAINS:
        return f"{column}.ilike.{_or_value(f'*{condition.value}*')}"
    if condition.op is Op.PREFIX:
        return f"{column}.like.{_or_value(f'{condition.value}*')}"
    if condition.op is Op.IN:
        return f"{column}.in.({','.join(_or_value(v) for v in condition.value)})"
    return f"{column}.{condition.op.value}.{_or_value(condition.value)}"


def apply_filters(query: Any, filters: Filter) -> Any:
    for clause in filters:
        if isinstance(clause, AnyOf):
            query = query.or_(",".join(_or_clause(c) for c in clause.conditions))
        else:
            query = _apply_condition(query, clause)
    return query


class SupabaseRecordStore:
    """One PostgREST table exposed through the generic record-store interface."""

    def __init__(self, client: Any, table: str, id_field: str) -> None:
        self._client = client
        self.table = table
        self.id_field = id_field

    def _execute(self, action: str, build: Callable[[], Any]) -> Any:
        try:
            response = build().execute()
        except APIError as exc:
            logger.error("Supabase %s on %s failed: %s", action, self.table, exc)
            raise StorageError(f"Failed to {action} {self.table}") from exc
        except Exception as exc:
            logger.exception("Supabase %s on %s raised", action, self.table)
            raise StorageError(f"Failed to {action} {self.table}") from exc

        error = getattr(response, "error", None)
        if error:
            logger.error("Supabase %s on %s returned error: %s", action, self.table, error)
            raise StorageError(f"Failed to {action} {self.table}")
        return response

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        response = self._execute(
            "get",
            lambda: self._client.table(self.table)
            .select("*")
            .eq(self.id_field, str(record_id))
            .limit(1),
        )
        rows = getattr(response, "data", None) or []
        return rows[0] if rows else None

    def find_many(
        self,
        filters: Filter = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        def build() -> Any:
            query = apply_filters(self._client.table(self.table).select("*"), filters)
            if order_by is not None:
                query = query.order(_column(order_by), desc=descending)
            if limit is not None:
                query = query.limit(limit)
            return query

        response = self._execute("list", build)
        return list(getattr(response, "data", None) or [])

    def count_where(self, filters: Filter = ()) -> int:
        response = self._execute(
            "count",
            lambda: apply_filters(
                self._client.table(self.table).select(self.id_field, count="exact"), filters
            ),
        )
        return getattr(response, "count", 0) or 0

    def save(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        if row.get(self.id_field) is None:
            raise StorageError(f"{self.table}: row is missing {self.id_field}")
        response = self._execute(
            "save",
            lambda: self._client.table(self.table).upsert(dict(row), on_conflict=self.id_field),
        )
        rows = getattr(response, "data", None) or []
        return rows[0] if rows else dict(row)

    def aggregate_sum(self, filters: Filter, field: str) -> Decimal:
        # PostgREST aggregates are often disabled; fetch one column and fold here.
        response = self._execute(
            "sum",
            lambda: apply_filters(self._client.table(self.table).select(_column(field)), filters),
        )
        rows = getattr(response, "data", None) or []
        return sum((to_decimal(r.get(field), name=field) for r in rows), ZERO)

    def compare_and_set(self, record_id: str, field: str, expected: Any, new: Any) -> bool:
        response = self._execute(
            "update",
            lambda: self._client.table(self.table)
            .update({field: new})
            .eq(self.id_field, str(record_id))
            .eq(field, expected),
        )
        rows = getattr(response, "data", None) or []
        return len(rows) == 1


__all__ = ["SupabaseRecordStore", "apply_filters"]
