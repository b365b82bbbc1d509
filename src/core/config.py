"""
config.py - Pricing constants (v1.2)

Every constant the calculators read, kept in one place.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class PromoProduct:
    """Promotional blank the shop can supply for engraving"""
    id: str
    name: str
    cost: float                     # purchase cost per unit (R$)
    suggested_markup: float         # resale multiplier on cost


# Promotional catalog offered in laser "promotional" mode
PROMO_PRODUCTS: Dict[str, PromoProduct] = {
    "caneta-metal": PromoProduct("caneta-metal", "Caneta Metálica", 4.50, 2.0),
    "chaveiro-acrilico": PromoProduct("chaveiro-acrilico", "Chaveiro Acrílico", 1.80, 2.5),
    "garrafa-termica": PromoProduct("garrafa-termica", "Garrafa Térmica", 35.00, 1.8),
    "agenda-couro": PromoProduct("agenda-couro", "Agenda Couro", 22.00, 1.9),
}

# Vehicle wrap multipliers
COMPLEXITY_FACTORS: Dict[str, float] = {
    "Baixa": 1.0,       # flat panels
    "Média": 1.25,
    "Alta": 1.6,
    "Extrema": 2.0,     # heavily styled bumpers
}

MATERIAL_FACTORS: Dict[str, float] = {
    "Standard": 1.0,
    "Performance": 1.4,
    "Premium": 2.2,
}

# Flat-priced wrap services (R$)
VEHICLE_EXTRAS: Dict[str, float] = {
    "disassembly": 250.0,   # technical disassembly
    "wash": 80.0,           # detailed wash
    "removal": 350.0,       # old film removal
}

# Categories billed by area unless the product is sold per unit
AREA_CATEGORIES: Tuple[str, ...] = ("Adesivos", "Lonas", "Banners")


@dataclass(frozen=True)
class CalculatorConfig:
    """Calculator-wide constants (v1.2)"""
    # Laser / CNC
    machine_hour_rate: float = 120.0        # R$/h

    # Sticker
    default_roll_width_m: float = 1.20      # when a product lists no roll widths

    # Margin inversion
    min_divisor: float = 0.01               # below this the fallback markup applies
    fallback_markup: float = 2.0            # flat multiplier on production cost

    # Quote
    down_payment_ratio: float = 0.5         # 50% upfront
    save_timeout_seconds: float = 30.0      # finalize() persistence race

    # Indicators
    default_production_minutes: float = 15.0
    material_cost_ratio: float = 0.4        # share of subtotal assumed to be material
    labor_fallback_ratio: float = 0.2       # share of subtotal when no hourly rate
    snapshot_cost_ratio: float = 0.3        # unit cost guess when no snapshot exists

    # Logistics
    default_price_per_km: float = 2.0

    # Wrap
    default_complexity: str = "Média"
    default_material: str = "Standard"

    @classmethod
    def from_settings(cls, settings) -> "CalculatorConfig":
        """Override the environment-tunable constants from AppSettings"""
        return cls(
            machine_hour_rate=settings.machine_hour_rate,
            default_roll_width_m=settings.default_roll_width_m,
            save_timeout_seconds=settings.quote_save_timeout_seconds,
            default_price_per_km=settings.price_per_km,
        )


# Default instance
DEFAULT_CONFIG = CalculatorConfig()
