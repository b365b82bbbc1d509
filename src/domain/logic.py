"""
logic.py - Catalog pricing (v1.2 ProductPricingCalculator)

Pure Python, no I/O:
- margin-inversion sale price (price back-solved from the target margin)
- cost per productive hour from fixed costs and depreciation
- composite product cost from its components
- logistics (install/delivery) fee from road distance

The price is set so that after deducting tax %, commission % and margin %
from revenue, what remains exactly covers the production cost.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .models import FinancialConfig, FixedAsset, FixedCost, Product
from ..core.config import CalculatorConfig, DEFAULT_CONFIG
from ..core.logging import setup_logger

logger = setup_logger(__name__)


@dataclass
class SalePriceBreakdown:
    """Sale price and the numbers behind it"""
    cost_with_waste: float          # cost x (1 + waste%)
    operational_cost: float         # machine/labour minutes at cost per hour
    production_cost: float          # the two above
    divisor: float                  # 1 - (margin + tax + commission) / 100
    sale_price: float
    used_fallback: bool             # flat markup applied instead of the division


def compute_cost_per_hour(
    fixed_costs: Iterable[FixedCost],
    fixed_assets: Iterable[FixedAsset],
    productive_hours_per_month: float,
) -> float:
    """(sum of fixed costs + sum of monthly depreciation) / productive hours.

    Returns 0 when there are no productive hours.
    """
    if productive_hours_per_month <= 0:
        return 0.0
    monthly_total = sum(c.value for c in fixed_costs) + sum(a.monthly_depreciation for a in fixed_assets)
    return monthly_total / productive_hours_per_month


class ProductPricingCalculator:
    """Catalog sale price calculator"""

    def __init__(self, config: Optional[CalculatorConfig] = None):
        """
        Args:
            config: calculator constants. Defaults to DEFAULT_CONFIG.
        """
        self.config = config or DEFAULT_CONFIG

    def calculate(
        self,
        cost_price: float,
        production_time_minutes: float,
        waste_percent: float,
        cost_per_hour: float,
        financial: FinancialConfig,
    ) -> SalePriceBreakdown:
        """Run the margin-inversion formula

        Args:
            cost_price: material cost per unit
            production_time_minutes: time spent per unit
            waste_percent: material waste allowance (%)
            cost_per_hour: shop cost per productive hour
            financial: tax / commission / margin stack

        Returns:
            SalePriceBreakdown
        """
        cost_with_waste = cost_price * (1 + waste_percent / 100)
        operational_cost = (production_time_minutes / 60) * cost_per_hour
        production_cost = cost_with_waste + operational_cost

        divisor = (100 - financial.percentage_stack) / 100

        if divisor > self.config.min_divisor:
            sale_price = production_cost / divisor
            used_fallback = False
        else:
            # Percentage stack of ~100% or more: flat markup instead of dividing by ~0
            sale_price = production_cost * self.config.fallback_markup
            used_fallback = True
            logger.warning(
                f"Percentage stack {financial.percentage_stack:.1f}% leaves divisor {divisor:.4f}; "
                f"using {self.config.fallback_markup}x markup"
            )

        return SalePriceBreakdown(
            cost_with_waste=cost_with_waste,
            operational_cost=operational_cost,
            production_cost=production_cost,
            divisor=divisor,
            sale_price=sale_price,
            used_fallback=used_fallback,
        )

    def compute_sale_price(
        self,
        cost_price: float,
        production_time_minutes: float,
        waste_percent: float,
        cost_per_hour: float,
        financial: FinancialConfig,
    ) -> float:
        return self.calculate(
            cost_price, production_time_minutes, waste_percent, cost_per_hour, financial
        ).sale_price

    def composite_cost(self, product: Product, catalog: Dict[str, Product]) -> float:
        """Cost of a composite product: sum of component cost x quantity.

        Components missing from the catalog contribute nothing.
        Non-composite products return their own cost price.
        """
        if not product.is_composite:
            return product.cost_price

        total = 0.0
        for component in product.composition:
            material = catalog.get(component.product_id)
            if material is None:
                logger.warning(f"Component {component.product_id} of {product.id} not in catalog")
                continue
            total += material.cost_price * component.quantity
        return total

    def price_product(
        self,
        product: Product,
        cost_per_hour: float,
        financial: FinancialConfig,
        catalog: Optional[Dict[str, Product]] = None,
    ) -> float:
        """Sale price for a catalog product (composite cost resolved through catalog)"""
        cost = self.composite_cost(product, catalog or {}) if product.is_composite else product.cost_price
        return self.compute_sale_price(
            cost,
            product.production_time_minutes,
            product.waste_percent,
            cost_per_hour,
            financial,
        )


def compute_logistics_fee(
    distance_km: float,
    financial: FinancialConfig,
    config: Optional[CalculatorConfig] = None,
) -> int:
    """Install/delivery fee: ceil(distance x price per km + fixed logistics fee)"""
    config = config or DEFAULT_CONFIG
    price_per_km = financial.price_per_km or config.default_price_per_km
    return math.ceil(max(0.0, distance_km) * price_per_km + financial.fixed_logistics_fee)


def compute_sale_price(
    cost_price: float,
    production_time_minutes: float,
    waste_percent: float,
    cost_per_hour: float,
    config: FinancialConfig,
) -> float:
    """Module-level shortcut for ProductPricingCalculator().compute_sale_price"""
    return ProductPricingCalculator().compute_sale_price(
        cost_price, production_time_minutes, waste_percent, cost_per_hour, config
    )
