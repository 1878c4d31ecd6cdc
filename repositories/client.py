"""
Record store construction.

Builds the three entity tables exactly once at startup, either on Supabase or
in memory, depending on `Settings.store_backend`. Nothing here is created at
import time; the engine factory calls `create_stores()` and injects the
result.

Environment variables (read through config.settings):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from config.settings import Settings
from repositories.record_store import InMemoryRecordStore, RecordStore

logger = logging.getLogger(__name__)

# Table names and id columns. Keep these aligned with your database schema.
PRODUCTS_TABLE: str = "products"
SALES_TABLE: str = "sales"
PAYMENTS_TABLE: str = "payments"

PRODUCT_ID: str = "product_id"
SALE_ID: str = "sale_id"
PAYMENT_ID: str = "payment_id"


@dataclass(frozen=True, slots=True)
class Stores:
    products: RecordStore
    sales: RecordStore
    payments: RecordStore


def create_memory_stores() -> Stores:
    return Stores(
        products=InMemoryRecordStore(PRODUCTS_TABLE, PRODUCT_ID),
        sales=InMemoryRecordStore(SALES_TABLE, SALE_ID),
        payments=InMemoryRecordStore(PAYMENTS_TABLE, PAYMENT_ID),
    )


def create_supabase_stores(settings: Settings) -> Stores:
    # The dependency is `supabase` (supabase-py). If your editor can't resolve it,
    # install it in your environment: `pip install supabase`.
    from supabase import create_client  # type: ignore[import-not-found]

    from repositories.supabase_store import SupabaseRecordStore

    if not settings.supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )
    if not settings.supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    client = create_client(settings.supabase_url, settings.supabase_key)
    return Stores(
        products=SupabaseRecordStore(client, PRODUCTS_TABLE, PRODUCT_ID),
        sales=SupabaseRecordStore(client, SALES_TABLE, SALE_ID),
        payments=SupabaseRecordStore(client, PAYMENTS_TABLE, PAYMENT_ID),
    )


def create_stores(settings: Settings) -> Stores:
    logger.info("Using %s record store", settings.store_backend)
    if settings.store_backend == "supabase":
        return create_supabase_stores(settings)
    return create_memory_stores()


__all__ = ["Stores", "create_stores", "create_memory_stores", "create_supabase_stores"]
