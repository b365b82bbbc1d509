"""
dispatch.py - Calculator mode dispatch (v1.2)

Precedence: explicit override > product.calculator_mode > category table > STANDARD.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from .models import (
    CalculatorMode,
    LaserMode,
    LineItemResult,
    Product,
    UnitType,
    YieldMode,
)
from .calculators import (
    AreaYieldCalculator,
    MachineTimeCostCalculator,
    PanelBreakdown,
    StandardItemCalculator,
    VehiclePanelPricingCalculator,
)
from ..core.config import CalculatorConfig, DEFAULT_CONFIG
from ..core.exceptions import ValidationError
from ..core.logging import setup_logger

logger = setup_logger(__name__)


# Catalog category (case-insensitive, exact) -> calculator
CATEGORY_MODES: Dict[str, CalculatorMode] = {
    "envelopamento": CalculatorMode.AUTOMOTIVE,
    "corte laser": CalculatorMode.LASER,
    "laser": CalculatorMode.LASER,
    "cnc": CalculatorMode.LASER,
    "rígido": CalculatorMode.LASER,
    "rígidos": CalculatorMode.LASER,
    "adesivo": CalculatorMode.STICKER,
    "adesivos": CalculatorMode.STICKER,
    "rótulo": CalculatorMode.STICKER,
    "rótulos": CalculatorMode.STICKER,
    "etiqueta": CalculatorMode.STICKER,
    "etiquetas": CalculatorMode.STICKER,
    "flex": CalculatorMode.STICKER,
}


def resolve_mode(product: Product, override: Optional[CalculatorMode] = None) -> CalculatorMode:
    """Pick the calculator for a product.

    Category-inferred sticker mode only applies to products sold per unit;
    sticker material sold by area is priced as a standard item.
    """
    if override is not None:
        return override
    if product.calculator_mode is not None:
        return product.calculator_mode

    mode = CATEGORY_MODES.get(product.category.strip().lower(), CalculatorMode.STANDARD)
    if mode == CalculatorMode.STICKER and product.unit_type != UnitType.UN:
        return CalculatorMode.STANDARD
    return mode


# ============================================================
# Requests (one per mode)
# ============================================================

@dataclass
class StandardRequest:
    quantity: float = 1
    width: float = 1.0
    height: float = 1.0


@dataclass
class StickerRequest:
    width_cm: float
    height_cm: float
    gap_mm: float = 3.0
    mode: YieldMode = YieldMode.QUANTITY
    target_quantity: int = 0
    target_area_width_m: float = 0.0
    target_area_height_m: float = 0.0
    roll_width_m: Optional[float] = None        # default: product's first roll


@dataclass
class LaserRequest:
    mode: LaserMode
    machine_time_minutes: float
    setup_fee: float = 0.0
    area_width_m: float = 0.0
    area_height_m: float = 0.0
    price_per_m2: Optional[float] = None        # default: product sale price
    quantity: int = 1
    promo_product_id: Optional[str] = None
    supply_product: bool = True
    thickness: str = ""


@dataclass
class WrapRequest:
    vehicle: str
    breakdown: PanelBreakdown
    selected: List[str]
    complexity: Optional[str] = None
    material_level: Optional[str] = None
    part_complexities: Mapping[str, str] = field(default_factory=dict)
    extras: List[str] = field(default_factory=list)


ItemRequest = Union[StandardRequest, StickerRequest, LaserRequest, WrapRequest]

_REQUEST_MODES = {
    StandardRequest: CalculatorMode.STANDARD,
    StickerRequest: CalculatorMode.STICKER,
    LaserRequest: CalculatorMode.LASER,
    WrapRequest: CalculatorMode.AUTOMOTIVE,
}


class ModeDispatcher:
    """Routes a product + request to its calculator and returns a cart line"""

    def __init__(self, config: Optional[CalculatorConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.standard = StandardItemCalculator()
        self.sticker = AreaYieldCalculator(self.config)
        self.laser = MachineTimeCostCalculator(self.config)
        self.wrap = VehiclePanelPricingCalculator(self.config)

    def build_line(
        self,
        product: Product,
        request: ItemRequest,
        override: Optional[CalculatorMode] = None,
    ) -> LineItemResult:
        """Price one item

        Raises:
            ValidationError: request does not match the resolved mode,
                or the result must not be confirmed (nothing fits, no panels)
        """
        mode = resolve_mode(product, override)
        expected = _REQUEST_MODES.get(type(request))
        if expected != mode:
            raise ValidationError(
                f"Product {product.name} is priced in {mode.value} mode",
                field="mode",
                value=expected.value if expected else type(request).__name__,
            )

        logger.debug(f"Pricing {product.id} in {mode.value} mode")

        if mode == CalculatorMode.STICKER:
            return self._sticker_line(product, request)
        if mode == CalculatorMode.LASER:
            return self._laser_line(product, request)
        if mode == CalculatorMode.AUTOMOTIVE:
            return self._wrap_line(product, request)
        return self.standard.calculate(product, request.quantity, request.width, request.height)

    def _sticker_line(self, product: Product, req: StickerRequest) -> LineItemResult:
        roll_width = (
            self.sticker.resolve_roll_width(product) if req.roll_width_m is None else req.roll_width_m
        )
        if roll_width <= 0:
            raise ValidationError("Roll width must be greater than zero", field="roll_width_m", value=roll_width)

        result = self.sticker.calculate(
            req.width_cm, req.height_cm, req.gap_mm, roll_width, product.sale_price,
            req.mode, req.target_quantity, req.target_area_width_m, req.target_area_height_m,
        )
        if not result.feasible:
            raise ValidationError(
                "No labels fit with these dimensions",
                field="total_labels",
                value=result.total_labels,
            )
        return self.sticker.to_line_item(
            result, req.width_cm, req.height_cm, req.gap_mm,
            req.target_area_width_m, req.target_area_height_m,
        )

    def _laser_line(self, product: Product, req: LaserRequest) -> LineItemResult:
        price_per_m2 = product.sale_price if req.price_per_m2 is None else req.price_per_m2
        result = self.laser.calculate(
            req.mode,
            req.machine_time_minutes,
            setup_fee=req.setup_fee,
            area_width_m=req.area_width_m,
            area_height_m=req.area_height_m,
            price_per_m2=price_per_m2,
            quantity=req.quantity,
            promo_product_id=req.promo_product_id,
            supply_product=req.supply_product,
        )
        return self.laser.to_line_item(result, product.name, req.thickness, req.promo_product_id)

    def _wrap_line(self, product: Product, req: WrapRequest) -> LineItemResult:
        result = self.wrap.calculate(
            req.breakdown,
            req.selected,
            product.sale_price,
            req.complexity,
            req.material_level,
            part_complexities=req.part_complexities,
            extras=req.extras,
        )
        if not result.selected_panels:
            raise ValidationError("Select at least one panel", field="selected", value=req.selected)
        return self.wrap.to_line_item(
            result, req.vehicle, req.complexity, req.material_level,
            req.part_complexities, req.extras,
        )
