"""
Check inventory status - stock valuation and low-stock products.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Settings, load_settings
from domain.money import round_money
from services.engine import build_engine


def check_inventory_status(show_all: bool = False, settings: Optional[Settings] = None) -> int:
    """Print the inventory valuation block and the products needing restock. Returns the exit code."""

    settings = settings or load_settings()
    if settings.store_backend == "memory":
        print("[ERROR] POS_STORE_BACKEND is 'memory'; there is no catalog to check. Set it to 'supabase'.", file=sys.stderr)
        return 1

    engine = build_engine(settings)
    valuation = engine.reports.inventory_valuation()

    print("=" * 50)
    print("INVENTORY STATUS")
    print("=" * 50)
    print(f"Total products:            {valuation.total_products}")
    print(f"Low stock:                 {valuation.low_stock}")
    print(f"Critical (<= 5 units):     {valuation.critical_stock}")
    print(f"Out of stock:              {valuation.out_of_stock}")
    print(f"Retail value:              {round_money(valuation.retail_value)}")
    print(f"Cost value:                {round_money(valuation.cost_value)}")
    print(f"Potential profit:          {round_money(valuation.potential_profit)}")
    print("=" * 50)

    products = engine.products.list_products()
    listed = products if show_all else [p for p in products if p.is_low_stock]

    print("\nAll products:" if show_all else "\nProducts at or below their low-stock threshold:")
    print("-" * 50)
    for product in listed:
        print(f"{product.name}: {product.stock} {product.unit} (threshold {product.low_stock_threshold})")
    if not listed:
        print("None")
    print("-" * 50)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print stock valuation and low-stock products")
    parser.add_argument("--all", action="store_true", help="list every product, not only low stock")
    args = parser.parse_args()
    sys.exit(check_inventory_status(show_all=args.all))
