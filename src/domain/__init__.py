"""Domain module (v1.2) - pure pricing and quoting logic"""
from .models import (
    CalculatorMode,
    UnitType,
    YieldMode,
    LaserMode,
    QuoteStatus,
    Product,
    ProductComponent,
    Customer,
    FixedCost,
    FixedAsset,
    FinancialConfig,
    StickerLabel,
    WrapLabel,
    LaserLabel,
    label_from_dict,
    LineItemResult,
    QuoteItem,
    Quote,
)
from .logic import (
    ProductPricingCalculator,
    SalePriceBreakdown,
    compute_cost_per_hour,
    compute_sale_price,
    compute_logistics_fee,
)
from .calculators import (
    StandardItemCalculator,
    AreaYieldCalculator,
    AreaYieldResult,
    MachineTimeCostCalculator,
    MachineCostResult,
    CutPathQuote,
    VehiclePanelPricingCalculator,
    VehiclePriceResult,
    PanelDimensions,
    compute_area_yield,
    compute_machine_cost,
    compute_vehicle_price,
)
from .dispatch import (
    ModeDispatcher,
    resolve_mode,
    StandardRequest,
    StickerRequest,
    LaserRequest,
    WrapRequest,
)
from .cart import QuoteAggregator, to_plain_data
from .indicators import (
    CommissionBalance,
    FinancialIndicatorEngine,
    IndicatorPanel,
    ProfitabilityReport,
    compute_indicators,
    compute_commission_balances,
    compute_profitability,
)
from .workflow import BOARD_COLUMNS, change_status, group_by_status

__all__ = [
    # models
    "CalculatorMode",
    "UnitType",
    "YieldMode",
    "LaserMode",
    "QuoteStatus",
    "Product",
    "ProductComponent",
    "Customer",
    "FixedCost",
    "FixedAsset",
    "FinancialConfig",
    "StickerLabel",
    "WrapLabel",
    "LaserLabel",
    "label_from_dict",
    "LineItemResult",
    "QuoteItem",
    "Quote",
    # pricing
    "ProductPricingCalculator",
    "SalePriceBreakdown",
    "compute_cost_per_hour",
    "compute_sale_price",
    "compute_logistics_fee",
    # calculators
    "StandardItemCalculator",
    "AreaYieldCalculator",
    "AreaYieldResult",
    "MachineTimeCostCalculator",
    "MachineCostResult",
    "CutPathQuote",
    "VehiclePanelPricingCalculator",
    "VehiclePriceResult",
    "PanelDimensions",
    "compute_area_yield",
    "compute_machine_cost",
    "compute_vehicle_price",
    # dispatch
    "ModeDispatcher",
    "resolve_mode",
    "StandardRequest",
    "StickerRequest",
    "LaserRequest",
    "WrapRequest",
    # cart / indicators / workflow
    "QuoteAggregator",
    "to_plain_data",
    "CommissionBalance",
    "FinancialIndicatorEngine",
    "IndicatorPanel",
    "ProfitabilityReport",
    "compute_indicators",
    "compute_commission_balances",
    "compute_profitability",
    "BOARD_COLUMNS",
    "change_status",
    "group_by_status",
]
