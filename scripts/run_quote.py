#!/usr/bin/env python
"""
run_quote.py - Save a single-product quote

Usage:
    python scripts/run_quote.py --customer <id> --product <id> --width 2 --height 1
    python scripts/run_quote.py --mock --customer demo --product lona --quantity 3

Options:
    --mock      in-memory store (no Supabase calls)
    --distance  road distance in km; adds the logistics fee as install fee
"""

import sys
import argparse
import asyncio
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.logging_config import setup_logging
from config.settings import get_settings
from src.api.supabase_client import get_store
from src.core.config import CalculatorConfig
from src.core.exceptions import PrintShopError
from src.domain.cart import QuoteAggregator
from src.domain.dispatch import ModeDispatcher, StandardRequest
from src.domain.logic import compute_cost_per_hour
from src.domain.models import Customer, Product


def parse_args():
    parser = argparse.ArgumentParser(description="Save a quote for one catalog product")
    parser.add_argument("--mock", action="store_true", help="use the in-memory store")
    parser.add_argument("--customer", required=True, help="customer id")
    parser.add_argument("--product", required=True, help="product id")
    parser.add_argument("--quantity", type=float, default=1)
    parser.add_argument("--width", type=float, default=1.0, help="meters")
    parser.add_argument("--height", type=float, default=1.0, help="meters")
    parser.add_argument("--distance", type=float, default=None, help="road distance (km)")
    parser.add_argument("--deadline", type=int, default=5, help="business days")
    return parser.parse_args()


def seed_mock(store, customer_id: str, product_id: str):
    store.add_customer(Customer(id=customer_id, name="Cliente demo"))
    store.save_product(Product(
        id=product_id, name="Lona 440g", category="Lonas",
        unit_type="m2", cost_price=18.0, sale_price=45.0,
    ))


async def main() -> int:
    args = parse_args()
    settings = get_settings()
    logger = setup_logging(level=settings.log_level)

    store = get_store(use_mock=args.mock)
    if args.mock:
        seed_mock(store, args.customer, args.product)

    product = store.get_product(args.product)
    if product is None:
        logger.error(f"Product {args.product} not found")
        return 1

    financial = store.get_financial_config()
    hourly = compute_cost_per_hour(
        store.list_fixed_costs(), store.list_fixed_assets(), financial.productive_hours_per_month
    )
    financial = financial.with_hourly_rate(hourly)

    config = CalculatorConfig.from_settings(settings)
    cart = QuoteAggregator(store=store, config=config, financial=financial)
    try:
        line = ModeDispatcher(config).build_line(
            product, StandardRequest(quantity=args.quantity, width=args.width, height=args.height)
        )
        cart.add_item(product, line)
        if args.distance is not None:
            cart.apply_logistics_fee(args.distance, financial)
        quote = await cart.finalize(args.customer, args.deadline)
    except PrintShopError as e:
        logger.error(str(e))
        return 1

    print("=" * 60)
    print(f"Quote {quote.id}")
    print(f"  Total:        R$ {quote.total_amount:,.2f}")
    print(f"  Down payment: R$ {quote.down_payment:,.2f}")
    print(f"  Approval:     {settings.approval_base_url}/{quote.id}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
