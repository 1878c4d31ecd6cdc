"""
Seed a small demo catalog for testing and demos.

Products are keyed by fixed ids so re-running the script updates rather than
duplicates them. Stock is only set for products that do not exist yet; stock
of existing products belongs to the stock ledger.

Needs POS_STORE_BACKEND=supabase: the in-memory store does not outlive the
script, so seeding it would do nothing.
"""

import sys
from decimal import Decimal
from pathlib import Path
from typing import Optional

# Add parent directory to path so we can import from repositories
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Settings, load_settings
from domain.product import Product
from repositories.client import create_stores
from repositories.product_repository import ProductRepository

DEMO_PRODUCTS = [
    Product("demo-rice-5kg", "Basmati Rice 5kg", Decimal("650"), 40, Decimal("520"), category="Grains", unit="pack"),
    Product("demo-dal-1kg", "Toor Dal 1kg", Decimal("160"), 60, Decimal("128"), category="Pulses", unit="pack"),
    Product("demo-oil-1l", "Sunflower Oil 1L", Decimal("185"), 8, None, category="Oils", unit="l"),
    Product("demo-sugar-1kg", "Sugar 1kg", Decimal("48"), 3, Decimal("41"), category="Essentials", unit="kg"),
    Product("demo-tea-250g", "Assam Tea 250g", Decimal("140"), 0, Decimal("105"), category="Beverages", unit="pack"),
]


def seed_demo_products(settings: Optional[Settings] = None) -> int:
    """Create or update the demo products. Returns the process exit code."""

    settings = settings or load_settings()
    if settings.store_backend == "memory":
        print("[ERROR] POS_STORE_BACKEND is 'memory'; nothing would be saved. Set it to 'supabase'.", file=sys.stderr)
        return 1

    products = ProductRepository(create_stores(settings).products)

    for demo in DEMO_PRODUCTS:
        existing = products.get_product_by_id(demo.product_id)
        if existing is not None:
            products.save_product(demo.with_stock(existing.stock))
            print(f"Updated {demo.name} (stock kept at {existing.stock})")
        else:
            products.save_product(demo)
            print(f"[SUCCESS] Created {demo.name} with stock {demo.stock}")
    return 0


if __name__ == "__main__":
    sys.exit(seed_demo_products())
