"""
calculators.py - Category calculators (v1.2)

Each calculator turns physical/production inputs into a line-item price:

- StandardItemCalculator: area x price x qty (or price x qty for unit goods)
- AreaYieldCalculator: how many labels fit on a roll (sticker mode)
- MachineTimeCostCalculator: machine time + material + setup (laser/CNC)
- VehiclePanelPricingCalculator: selected panels x complexity x material (wrap)

All of them are pure and never raise for degenerate inputs (zero fits,
zero area). They return zero results and leave gating to the caller.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .models import (
    LaserLabel,
    LaserMode,
    LineItemResult,
    Product,
    StickerLabel,
    UnitType,
    WrapLabel,
    YieldMode,
)
from ..core.config import (
    AREA_CATEGORIES,
    COMPLEXITY_FACTORS,
    MATERIAL_FACTORS,
    PROMO_PRODUCTS,
    VEHICLE_EXTRAS,
    CalculatorConfig,
    DEFAULT_CONFIG,
)
from ..core.exceptions import ValidationError

# Absorbs binary representation error before flooring (e.g. 10.6 / 5.3)
_FLOOR_EPSILON = 1e-9


def _floor(value: float) -> int:
    return max(0, math.floor(value + _FLOOR_EPSILON))


# ============================================================
# Standard mode
# ============================================================

class StandardItemCalculator:
    """Plain catalog item"""

    @staticmethod
    def is_area_based(product: Product) -> bool:
        """m2 products, and area categories unless sold per unit"""
        if product.unit_type == UnitType.M2:
            return True
        in_area_category = any(c in product.category for c in AREA_CATEGORIES)
        return in_area_category and product.unit_type != UnitType.UN

    def calculate(
        self,
        product: Product,
        quantity: float,
        width: float = 1.0,
        height: float = 1.0,
        unit_price: Optional[float] = None,
    ) -> LineItemResult:
        price = product.sale_price if unit_price is None else unit_price
        unit_area = width * height if self.is_area_based(product) else 1.0
        return LineItemResult(
            quantity=quantity,
            width=width,
            height=height,
            unit_price=price,
            subtotal=unit_area * price * quantity,
        )


# ============================================================
# Sticker mode
# ============================================================

@dataclass
class AreaYieldResult:
    """Roll nesting result"""
    mode: YieldMode
    cols_per_row: int               # labels across the roll
    rows_needed: int                # quantity mode only
    linear_meters: float            # roll length consumed (quantity mode)
    area_m2: float                  # billable area
    total_labels: int
    roll_width_m: float
    price_per_m2: float
    subtotal: float

    @property
    def feasible(self) -> bool:
        """False when nothing fits; confirming such a result must be blocked"""
        return self.total_labels > 0


class AreaYieldCalculator:
    """Sticker / label yield calculator"""

    def __init__(self, config: Optional[CalculatorConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def resolve_roll_width(self, product: Optional[Product] = None) -> float:
        """First roll width listed on the product, else the shop default"""
        if product is not None and product.default_roll_width:
            return product.default_roll_width
        return self.config.default_roll_width_m

    def calculate(
        self,
        width_cm: float,
        height_cm: float,
        gap_mm: float,
        roll_width_m: float,
        price_per_m2: float,
        mode: YieldMode = YieldMode.QUANTITY,
        target_quantity: int = 0,
        target_area_width_m: float = 0.0,
        target_area_height_m: float = 0.0,
    ) -> AreaYieldResult:
        """Nest width x height labels (plus gap) across a roll

        Args:
            width_cm, height_cm: single label size (cm)
            gap_mm: spacing between labels (mm)
            roll_width_m: roll width (m)
            price_per_m2: rate stored on the cart line
            mode: QUANTITY solves roll length, AREA solves label count
            target_quantity: labels wanted (QUANTITY)
            target_area_width_m, target_area_height_m: rectangle to fill (AREA)

        Returns:
            AreaYieldResult
        """
        w_cm = width_cm + gap_mm / 10
        h_cm = height_cm + gap_mm / 10
        roll_width_cm = roll_width_m * 100

        cols_per_row = _floor(roll_width_cm / w_cm) if w_cm > 0 and roll_width_cm > 0 else 0

        rows_needed = 0
        linear_meters = 0.0
        area_m2 = 0.0
        total_labels = 0

        if cols_per_row > 0:
            if mode == YieldMode.QUANTITY:
                target = max(0, int(target_quantity))
                rows_needed = math.ceil(target / cols_per_row)
                linear_meters = rows_needed * h_cm / 100
                area_m2 = linear_meters * roll_width_m
                total_labels = target
            else:
                cols_in_area = _floor(target_area_width_m * 100 / w_cm)
                rows_in_area = _floor(target_area_height_m * 100 / h_cm) if h_cm > 0 else 0
                total_labels = cols_in_area * rows_in_area
                area_m2 = max(0.0, target_area_width_m) * max(0.0, target_area_height_m)

        return AreaYieldResult(
            mode=mode,
            cols_per_row=cols_per_row,
            rows_needed=rows_needed,
            linear_meters=linear_meters,
            area_m2=area_m2,
            total_labels=total_labels,
            roll_width_m=roll_width_m,
            price_per_m2=price_per_m2,
            subtotal=price_per_m2 * area_m2,
        )

    def to_line_item(
        self,
        result: AreaYieldResult,
        width_cm: float,
        height_cm: float,
        gap_mm: float,
        target_area_width_m: float = 0.0,
        target_area_height_m: float = 0.0,
    ) -> LineItemResult:
        """Cart line: rate per m2 billed over the final area (quantity 1)"""
        if result.mode == YieldMode.QUANTITY:
            width, height = result.roll_width_m, result.linear_meters
        else:
            width, height = target_area_width_m, target_area_height_m

        label = StickerLabel(
            mode=result.mode,
            single_width=width_cm,
            single_height=height_cm,
            gap_mm=gap_mm,
            total_labels=result.total_labels,
            area_m2=result.area_m2,
            roll_width=result.roll_width_m,
        )
        return LineItemResult(
            quantity=1,
            width=width,
            height=height,
            unit_price=result.price_per_m2,
            subtotal=result.subtotal,
            label_data=label,
        )


# ============================================================
# Laser / CNC mode
# ============================================================

@dataclass
class MachineCostResult:
    """Laser / CNC price"""
    mode: LaserMode
    time_cost: float                # engraving/cutting time (per unit in promotional mode)
    material_cost: float            # cut/engrave only
    unit_product_cost: float        # promotional only
    setup_fee: float
    quantity: int
    total: float


@dataclass
class CutPathQuote:
    """Price from a cut path length (DXF statistics supplied by the caller)"""
    time_minutes: float
    machine_cost: float
    material_cost: float
    total: float


class MachineTimeCostCalculator:
    """Laser / CNC cost calculator"""

    def __init__(self, config: Optional[CalculatorConfig] = None):
        self.config = config or DEFAULT_CONFIG

    @property
    def rate_per_minute(self) -> float:
        return self.config.machine_hour_rate / 60

    def calculate(
        self,
        mode: LaserMode,
        machine_time_minutes: float,
        setup_fee: float = 0.0,
        area_width_m: float = 0.0,
        area_height_m: float = 0.0,
        price_per_m2: float = 0.0,
        quantity: int = 1,
        promo_product_id: Optional[str] = None,
        supply_product: bool = True,
    ) -> MachineCostResult:
        """Price a laser job

        cut / engrave: time cost + material area x rate + setup
        promotional:   (supplied product cost + engraving time cost) x qty + setup

        Args:
            mode: CUT, ENGRAVE or PROMOTIONAL
            machine_time_minutes: machine time (per unit in promotional mode)
            setup_fee: flat setup charge, applied once
            area_width_m, area_height_m, price_per_m2: material (cut/engrave)
            quantity: promotional units
            promo_product_id: key into PROMO_PRODUCTS
            supply_product: shop supplies the blank (promotional)

        Returns:
            MachineCostResult
        """
        time_cost = machine_time_minutes * self.rate_per_minute

        if mode == LaserMode.PROMOTIONAL:
            unit_product_cost = 0.0
            if supply_product:
                promo = PROMO_PRODUCTS.get(promo_product_id)
                if promo is None:
                    raise ValidationError(
                        f"Unknown promotional product: {promo_product_id}",
                        field="promo_product_id",
                        value=promo_product_id,
                    )
                unit_product_cost = promo.cost * promo.suggested_markup
            total = (unit_product_cost + time_cost) * quantity + setup_fee
            return MachineCostResult(
                mode=mode,
                time_cost=time_cost,
                material_cost=0.0,
                unit_product_cost=unit_product_cost,
                setup_fee=setup_fee,
                quantity=quantity,
                total=total,
            )

        material_cost = (area_width_m * area_height_m) * price_per_m2
        return MachineCostResult(
            mode=mode,
            time_cost=time_cost,
            material_cost=material_cost,
            unit_product_cost=0.0,
            setup_fee=setup_fee,
            quantity=1,
            total=time_cost + material_cost + setup_fee,
        )

    def price_cut_path(
        self,
        cut_length_mm: float,
        speed_mm_per_sec: float = 15.0,
        machine_cost_per_minute: float = 2.0,
        margin_percent: float = 100.0,
        material: Optional[Product] = None,
        area_m2: float = 0.0,
    ) -> CutPathQuote:
        """(machine cost + material cost) x (1 + margin%)

        Area-priced materials bill area_m2 x sale price; unit materials bill
        one sale price. A non-positive length or speed prices nothing.
        """
        if cut_length_mm <= 0 or speed_mm_per_sec <= 0:
            return CutPathQuote(0.0, 0.0, 0.0, 0.0)

        time_minutes = cut_length_mm / speed_mm_per_sec / 60
        machine_cost = time_minutes * machine_cost_per_minute

        material_cost = 0.0
        if material is not None:
            if material.unit_type == UnitType.M2:
                material_cost = area_m2 * material.sale_price
            else:
                material_cost = material.sale_price

        total = (machine_cost + material_cost) * (1 + margin_percent / 100)
        return CutPathQuote(time_minutes, machine_cost, material_cost, total)

    def to_line_item(
        self,
        result: MachineCostResult,
        material: str = "",
        thickness: str = "",
        promo_product_id: Optional[str] = None,
    ) -> LineItemResult:
        """Cart line: laser jobs are fixed-price, quantity 1"""
        label = LaserLabel(
            mode=result.mode,
            material=material,
            machine_time=result.time_cost / self.rate_per_minute if self.rate_per_minute else 0.0,
            setup_fee=result.setup_fee,
            thickness=thickness,
            quantity=result.quantity,
            promo_product=(
                PROMO_PRODUCTS[promo_product_id].name
                if result.mode == LaserMode.PROMOTIONAL and promo_product_id in PROMO_PRODUCTS
                else None
            ),
        )
        return LineItemResult(
            quantity=1,
            width=1,
            height=1,
            unit_price=result.total,
            subtotal=result.total,
            label_data=label,
        )


# ============================================================
# Vehicle wrap mode
# ============================================================

@dataclass(frozen=True)
class PanelDimensions:
    """Panel size in meters (bleed already included upstream)"""
    w: float
    h: float

    @property
    def area(self) -> float:
        """0 unless both sides are positive"""
        if self.w <= 0 or self.h <= 0:
            return 0.0
        return self.w * self.h

    @classmethod
    def from_value(cls, value: Union["PanelDimensions", Mapping[str, Any]]) -> "PanelDimensions":
        if isinstance(value, PanelDimensions):
            return value
        return cls(w=float(value.get("w") or 0), h=float(value.get("h") or 0))


PanelBreakdown = Mapping[str, Union[PanelDimensions, Mapping[str, Any]]]


@dataclass
class VehiclePriceResult:
    """Wrap price"""
    selected_panels: List[str]      # sorted, positive-area panels actually billed
    selected_area_m2: float
    rate_multiplier: float          # complexity x material (global tiers)
    effective_rate: float           # base rate x multiplier
    panels_total: float
    extras_total: float
    total: float
    panel_prices: Dict[str, float] = field(default_factory=dict)


class VehiclePanelPricingCalculator:
    """Vehicle wrap calculator"""

    def __init__(self, config: Optional[CalculatorConfig] = None):
        self.config = config or DEFAULT_CONFIG

    @staticmethod
    def selectable_panels(breakdown: PanelBreakdown) -> List[str]:
        """Panels that can be offered for selection (area > 0), in breakdown order"""
        return [
            name for name, dims in breakdown.items()
            if PanelDimensions.from_value(dims).area > 0
        ]

    @staticmethod
    def _factor(table: Dict[str, float], tier: str, field_name: str) -> float:
        try:
            return table[tier]
        except KeyError:
            raise ValidationError(f"Unknown {field_name} tier: {tier}", field=field_name, value=tier)

    def calculate(
        self,
        breakdown: PanelBreakdown,
        selected: Iterable[str],
        base_rate_per_m2: float,
        complexity: Optional[str] = None,
        material_level: Optional[str] = None,
        part_complexities: Optional[Mapping[str, str]] = None,
        extras: Iterable[str] = (),
    ) -> VehiclePriceResult:
        """Price the selected panels

        Args:
            breakdown: panel name -> {w, h} in meters
            selected: panel names chosen by the operator
            base_rate_per_m2: product sale price per m2
            complexity: global complexity tier (default 'Média')
            material_level: material tier (default 'Standard')
            part_complexities: per-panel tier overrides
            extras: flat services from VEHICLE_EXTRAS

        Returns:
            VehiclePriceResult
        """
        complexity = complexity or self.config.default_complexity
        material_level = material_level or self.config.default_material
        part_complexities = dict(part_complexities or {})

        complexity_factor = self._factor(COMPLEXITY_FACTORS, complexity, "complexity")
        material_factor = self._factor(MATERIAL_FACTORS, material_level, "material_level")
        rate_multiplier = complexity_factor * material_factor
        effective_rate = base_rate_per_m2 * rate_multiplier

        # Sorted so the sum does not depend on selection order
        panels: List[str] = []
        area = 0.0
        for name in sorted(set(selected)):
            if name not in breakdown:
                continue
            panel_area = PanelDimensions.from_value(breakdown[name]).area
            if panel_area <= 0:
                continue
            panels.append(name)
            area += panel_area

        panel_prices: Dict[str, float] = {}
        if any(part_complexities.get(p, complexity) != complexity for p in panels):
            for name in panels:
                tier = part_complexities.get(name, complexity)
                factor = self._factor(COMPLEXITY_FACTORS, tier, "complexity")
                panel_prices[name] = (
                    PanelDimensions.from_value(breakdown[name]).area
                    * base_rate_per_m2 * material_factor * factor
                )
            panels_total = sum(panel_prices[name] for name in panels)
        else:
            for name in panels:
                panel_prices[name] = PanelDimensions.from_value(breakdown[name]).area * effective_rate
            panels_total = effective_rate * area

        extras_total = 0.0
        if panels:
            for extra in sorted(set(extras)):
                extras_total += self._factor(VEHICLE_EXTRAS, extra, "extra")

        return VehiclePriceResult(
            selected_panels=panels,
            selected_area_m2=area,
            rate_multiplier=rate_multiplier,
            effective_rate=effective_rate,
            panels_total=panels_total,
            extras_total=extras_total,
            total=panels_total + extras_total,
            panel_prices=panel_prices,
        )

    def to_line_item(
        self,
        result: VehiclePriceResult,
        vehicle: str,
        complexity: Optional[str] = None,
        material_level: Optional[str] = None,
        part_complexities: Optional[Mapping[str, str]] = None,
        extras: Iterable[str] = (),
    ) -> LineItemResult:
        """Cart line: blended rate billed over the selected area"""
        area = result.selected_area_m2
        label = WrapLabel(
            vehicle=vehicle,
            parts=list(result.selected_panels),
            complexity=complexity or self.config.default_complexity,
            material_level=material_level or self.config.default_material,
            area_m2=area,
            part_complexities={
                k: v for k, v in (part_complexities or {}).items() if k in result.selected_panels
            },
            extras=sorted(set(extras)) if result.selected_panels else [],
        )
        return LineItemResult(
            quantity=1,
            width=area,
            height=1,
            unit_price=result.total / area if area > 0 else 0.0,
            subtotal=result.total,
            label_data=label,
        )


# ============================================================
# Module-level shortcuts
# ============================================================

def compute_area_yield(
    width_cm: float,
    height_cm: float,
    gap_mm: float,
    roll_width_m: float,
    price_per_m2: float,
    mode: YieldMode = YieldMode.QUANTITY,
    target_quantity: int = 0,
    target_area_width_m: float = 0.0,
    target_area_height_m: float = 0.0,
) -> AreaYieldResult:
    return AreaYieldCalculator().calculate(
        width_cm, height_cm, gap_mm, roll_width_m, price_per_m2,
        mode, target_quantity, target_area_width_m, target_area_height_m,
    )


def compute_machine_cost(mode: LaserMode, machine_time_minutes: float, **kwargs) -> MachineCostResult:
    return MachineTimeCostCalculator().calculate(mode, machine_time_minutes, **kwargs)


def compute_vehicle_price(
    breakdown: PanelBreakdown,
    selected: Iterable[str],
    base_rate_per_m2: float,
    complexity: Optional[str] = None,
    material_level: Optional[str] = None,
    **kwargs,
) -> VehiclePriceResult:
    return VehiclePanelPricingCalculator().calculate(
        breakdown, selected, base_rate_per_m2, complexity, material_level, **kwargs
    )
