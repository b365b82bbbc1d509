"""
indicators.py - Financial indicators (v1.2)

Two read-only views over quotes:
- FinancialIndicatorEngine: live panel for the cart being built
- ProfitabilityReport: roll-up over persisted, confirmed quotes

Both are estimates for the operator; nothing here feeds back into pricing.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional

from .models import FinancialConfig, Quote, QuoteItem, QuoteStatus
from ..core.config import CalculatorConfig, DEFAULT_CONFIG


# Quotes that count as revenue in the profitability roll-up
REALIZED_STATUSES = (QuoteStatus.CONFIRMED, QuoteStatus.FINISHED, QuoteStatus.DELIVERED)


@dataclass
class IndicatorPanel:
    """Cart indicators (R$ unless noted)"""
    total: float
    material_cost: float            # estimate: share of each subtotal
    labor_cost: float               # production time x hourly rate
    taxes: float
    commission: float
    profit: float                   # target margin applied to total
    contribution_margin: float      # VMC: total - taxes - commission
    effective_margin: float         # % after material, labor, taxes, commission

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class FinancialIndicatorEngine:
    """Live indicator panel for the cart"""

    def __init__(self, config: Optional[CalculatorConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def labor_cost(self, item: QuoteItem, hourly_rate: Optional[float]) -> float:
        minutes = item.production_time or self.config.default_production_minutes
        cost = (minutes / 60) * (hourly_rate or 0)
        if cost <= 0:
            return item.subtotal * self.config.labor_fallback_ratio
        return cost

    def calculate(
        self,
        items: Iterable[QuoteItem],
        total: float,
        financial: FinancialConfig,
    ) -> IndicatorPanel:
        """Indicators for a cart

        Args:
            items: cart lines
            total: cart total (items + fees, after discount)
            financial: tax / commission / margin and hourly rate

        Returns:
            IndicatorPanel
        """
        items = list(items)
        material = sum(i.subtotal * self.config.material_cost_ratio for i in items)
        labor = sum(self.labor_cost(i, financial.hourly_rate) for i in items)

        taxes = total * financial.tax_percent / 100
        commission = total * financial.commission_percent / 100
        profit = total * financial.target_profit_margin / 100

        if total > 0:
            effective_margin = (total - (material + labor) - taxes - commission) / total * 100
        else:
            effective_margin = 0.0

        return IndicatorPanel(
            total=total,
            material_cost=material,
            labor_cost=labor,
            taxes=taxes,
            commission=commission,
            profit=profit,
            contribution_margin=total - taxes - commission,
            effective_margin=effective_margin,
        )


def compute_indicators(cart, financial: FinancialConfig) -> IndicatorPanel:
    """Indicators for a QuoteAggregator"""
    return FinancialIndicatorEngine(cart.config).calculate(cart.items, cart.total(), financial)


# ============================================================
# Profitability roll-up
# ============================================================

@dataclass
class ProfitabilityReport:
    """Realized profitability over confirmed quotes"""
    quote_count: int
    revenue: float
    material_cost: float
    labor_cost: float
    taxes: float
    commissions: float
    total_costs: float
    real_profit: float
    margin_percent: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_profitability(
    quotes: Iterable[Quote],
    financial: FinancialConfig,
    config: Optional[CalculatorConfig] = None,
) -> ProfitabilityReport:
    """Revenue minus estimated costs for quotes that were actually sold.

    Material uses the unit cost snapshot taken at quote time (or a share of
    the unit price for older quotes without one). Labor uses the production
    time snapshot when the shop has an hourly rate.
    """
    config = config or DEFAULT_CONFIG
    realized: List[Quote] = [q for q in quotes if q.status in REALIZED_STATUSES]

    revenue = material = labor = taxes = commissions = 0.0
    for quote in realized:
        revenue += quote.total_amount
        for item in quote.items:
            unit_cost = item.unit_cost if item.unit_cost is not None else item.unit_price * config.snapshot_cost_ratio
            material += unit_cost * item.quantity
            if item.production_time and financial.hourly_rate:
                labor += item.production_time / 60 * financial.hourly_rate
            else:
                labor += item.subtotal * config.labor_fallback_ratio

        # Commission % snapshot on the quote wins over the current setting
        commission_percent = (
            quote.commission_percent if quote.commission_percent is not None
            else financial.commission_percent
        )
        taxes += quote.total_amount * financial.tax_percent / 100
        commissions += quote.total_amount * commission_percent / 100

    total_costs = material + labor + taxes + commissions
    real_profit = revenue - total_costs

    return ProfitabilityReport(
        quote_count=len(realized),
        revenue=revenue,
        material_cost=material,
        labor_cost=labor,
        taxes=taxes,
        commissions=commissions,
        total_costs=total_costs,
        real_profit=real_profit,
        margin_percent=real_profit / revenue * 100 if revenue > 0 else 0.0,
    )


# ============================================================
# Commission balances (per salesperson)
# ============================================================

@dataclass
class CommissionBalance:
    user_id: str
    total_commission: float
    quote_count: int
    pending_count: int              # sold but not yet delivered

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_commission_balances(
    quotes: Iterable[Quote],
    financial: FinancialConfig,
) -> List[CommissionBalance]:
    """Commission owed per user over sold quotes, highest first.

    Quotes without a user_id are not attributed to anyone.
    """
    balances: Dict[str, CommissionBalance] = {}
    for quote in quotes:
        if quote.status not in REALIZED_STATUSES or not quote.user_id:
            continue
        percent = (
            quote.commission_percent if quote.commission_percent is not None
            else financial.commission_percent
        )
        balance = balances.setdefault(quote.user_id, CommissionBalance(quote.user_id, 0.0, 0, 0))
        balance.total_commission += quote.total_amount * percent / 100
        balance.quote_count += 1
        if quote.status != QuoteStatus.DELIVERED:
            balance.pending_count += 1

    return sorted(balances.values(), key=lambda b: b.total_commission, reverse=True)
