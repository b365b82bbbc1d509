"""
models.py - Domain models (v1.2)

Plain Python dataclasses with no external dependencies.
Row dictionaries use the camelCase column names of the backend tables.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union
from enum import Enum


class CalculatorMode(Enum):
    """Which calculator prices a product"""
    STANDARD = "standard"       # area x price x qty (or price x qty)
    STICKER = "sticker"         # roll nesting / yield
    LASER = "laser"             # machine time + material + setup
    AUTOMOTIVE = "automotive"   # vehicle panel wrap


class UnitType(Enum):
    """Catalog unit of sale"""
    M2 = "m2"
    UN = "un"
    ML = "ml"


class YieldMode(Enum):
    """Sticker sub-mode"""
    QUANTITY = "quantity"       # solve roll length for a target count
    AREA = "area"               # solve count for a target rectangle


class LaserMode(Enum):
    """Laser / CNC sub-mode"""
    CUT = "cut"
    ENGRAVE = "engrave"
    PROMOTIONAL = "promotional"


class QuoteStatus(Enum):
    """Quote workflow state"""
    DRAFT = "draft"
    SENT = "sent"
    NEGOTIATING = "negotiating"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    PRE_PRINT = "pre_print"
    PRODUCTION = "production"
    PRINTING_CUT_ELECTRONIC = "printing_cut_electronic"
    PRINTING_CUT_MANUAL = "printing_cut_manual"
    PRINTING_LAMINATION = "printing_lamination"
    PRINTING_FINISHING = "printing_finishing"
    FINISHED = "finished"
    DELIVERED = "delivered"


def _unit_type(value: Union[str, UnitType, None]) -> UnitType:
    if isinstance(value, UnitType):
        return value
    normalized = (value or "un").lower().replace("²", "2")
    try:
        return UnitType(normalized)
    except ValueError:
        return UnitType.UN


# ============================================================
# Catalog
# ============================================================

@dataclass
class ProductComponent:
    """One material/service inside a composite product"""
    product_id: str
    quantity: float


@dataclass
class Product:
    """Catalog entry"""
    id: str
    name: str
    category: str                           # free text, drives mode inference
    unit_type: UnitType = UnitType.UN
    cost_price: float = 0.0
    production_time_minutes: float = 0.0
    waste_percent: float = 0.0
    sale_price: float = 0.0                 # derived, may be hand-overridden
    stock: float = 0.0
    available_roll_widths: List[float] = field(default_factory=list)  # meters, first is default
    calculator_mode: Optional[CalculatorMode] = None    # explicit tag beats category lookup
    composition: List[ProductComponent] = field(default_factory=list)

    def __post_init__(self):
        self.unit_type = _unit_type(self.unit_type)
        if isinstance(self.calculator_mode, str):
            self.calculator_mode = CalculatorMode(self.calculator_mode)

    @property
    def is_composite(self) -> bool:
        return bool(self.composition)

    @property
    def default_roll_width(self) -> Optional[float]:
        return self.available_roll_widths[0] if self.available_roll_widths else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unitType": self.unit_type.value,
            "costPrice": self.cost_price,
            "productionTimeMinutes": self.production_time_minutes,
            "wastePercent": self.waste_percent,
            "salePrice": self.sale_price,
            "stock": self.stock,
            "availableRollWidths": list(self.available_roll_widths),
            "calculatorMode": self.calculator_mode.value if self.calculator_mode else None,
            "isComposite": self.is_composite,
            "composition": [
                {"productId": c.product_id, "quantity": c.quantity} for c in self.composition
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            category=data.get("category", ""),
            unit_type=data.get("unitType", "un"),
            cost_price=float(data.get("costPrice") or 0),
            production_time_minutes=float(data.get("productionTimeMinutes") or 0),
            waste_percent=float(data.get("wastePercent") or 0),
            sale_price=float(data.get("salePrice") or 0),
            stock=float(data.get("stock") or 0),
            available_roll_widths=[float(w) for w in data.get("availableRollWidths") or []],
            calculator_mode=data.get("calculatorMode"),
            composition=[
                ProductComponent(str(c["productId"]), float(c.get("quantity", 1)))
                for c in data.get("composition") or []
            ],
        )


@dataclass
class Customer:
    """Customer record (display data only)"""
    id: str
    name: str
    phone: str = ""
    email: str = ""
    address: str = ""
    document: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "document": self.document,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Customer":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            phone=data.get("phone") or "",
            email=data.get("email") or "",
            address=data.get("address") or "",
            document=data.get("document"),
        )


# ============================================================
# Financial
# ============================================================

@dataclass
class FixedCost:
    """Recurring monthly cost (rent, salaries, ...)"""
    id: str
    name: str
    value: float                    # R$/month

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FixedCost":
        return cls(id=str(data["id"]), name=data.get("name", ""), value=float(data.get("value") or 0))


@dataclass
class FixedAsset:
    """Equipment depreciated linearly"""
    id: str
    name: str
    value: float                    # purchase value (R$)
    useful_life_years: float

    @property
    def monthly_depreciation(self) -> float:
        if self.useful_life_years <= 0:
            return 0.0
        return self.value / self.useful_life_years / 12

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "usefulLifeYears": self.useful_life_years,
            "monthlyDepreciation": self.monthly_depreciation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FixedAsset":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            value=float(data.get("value") or 0),
            useful_life_years=float(data.get("usefulLifeYears") or 0),
        )


@dataclass(frozen=True)
class FinancialConfig:
    """Shop-wide financial parameters, passed explicitly to every calculator.

    margin + tax + commission must stay below 100 for the margin-inversion
    formula to be well defined; the pricing calculator falls back to a flat
    markup otherwise.
    """
    productive_hours_per_month: float = 160.0
    tax_percent: float = 0.0
    commission_percent: float = 0.0
    target_profit_margin: float = 0.0
    hourly_rate: Optional[float] = None         # cached cost per hour
    price_per_km: Optional[float] = None        # logistics
    fixed_logistics_fee: float = 0.0

    @property
    def percentage_stack(self) -> float:
        return self.target_profit_margin + self.tax_percent + self.commission_percent

    def with_hourly_rate(self, hourly_rate: float) -> "FinancialConfig":
        return replace(self, hourly_rate=hourly_rate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productiveHoursPerMonth": self.productive_hours_per_month,
            "taxPercent": self.tax_percent,
            "commissionPercent": self.commission_percent,
            "targetProfitMargin": self.target_profit_margin,
            "hourlyRate": self.hourly_rate,
            "pricePerKm": self.price_per_km,
            "fixedLogisticsFee": self.fixed_logistics_fee,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinancialConfig":
        hours = data.get("productiveHoursPerMonth")
        hourly = data.get("hourlyRate")
        per_km = data.get("pricePerKm")
        return cls(
            # A stored 0 is kept: cost per hour is then 0
            productive_hours_per_month=float(hours) if hours is not None else 160.0,
            tax_percent=float(data.get("taxPercent") or 0),
            commission_percent=float(data.get("commissionPercent") or 0),
            target_profit_margin=float(data.get("targetProfitMargin") or 0),
            hourly_rate=float(hourly) if hourly is not None else None,
            price_per_km=float(per_km) if per_km is not None else None,
            fixed_logistics_fee=float(data.get("fixedLogisticsFee") or 0),
        )


# ============================================================
# Calculator payloads (labelData)
# ============================================================

@dataclass
class StickerLabel:
    """Sticker nesting payload"""
    mode: YieldMode
    single_width: float             # cm
    single_height: float            # cm
    gap_mm: float
    total_labels: int
    area_m2: float
    roll_width: float               # m
    type: str = field(default="sticker", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "mode": self.mode.value,
            "singleWidth": self.single_width,
            "singleHeight": self.single_height,
            "gapMm": self.gap_mm,
            "totalLabels": self.total_labels,
            "areaM2": self.area_m2,
            "rollWidth": self.roll_width,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StickerLabel":
        return cls(
            mode=YieldMode(data.get("mode", "quantity")),
            single_width=float(data.get("singleWidth") or 0),
            single_height=float(data.get("singleHeight") or 0),
            gap_mm=float(data.get("gapMm") or 0),
            total_labels=int(data.get("totalLabels") or 0),
            area_m2=float(data.get("areaM2") or 0),
            roll_width=float(data.get("rollWidth") or 0),
        )


@dataclass
class WrapLabel:
    """Vehicle wrap payload"""
    vehicle: str
    parts: List[str]
    complexity: str
    material_level: str
    area_m2: float
    part_complexities: Dict[str, str] = field(default_factory=dict)
    extras: List[str] = field(default_factory=list)
    type: str = field(default="automotive", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "vehicle": self.vehicle,
            "parts": list(self.parts),
            "complexity": self.complexity,
            "materialLevel": self.material_level,
            "areaM2": self.area_m2,
            "partComplexities": dict(self.part_complexities),
            "extras": list(self.extras),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WrapLabel":
        return cls(
            vehicle=data.get("vehicle", ""),
            parts=list(data.get("parts") or []),
            complexity=data.get("complexity", "Média"),
            material_level=data.get("materialLevel", "Standard"),
            area_m2=float(data.get("areaM2") or 0),
            part_complexities=dict(data.get("partComplexities") or {}),
            extras=list(data.get("extras") or []),
        )


@dataclass
class LaserLabel:
    """Laser / CNC payload"""
    mode: LaserMode
    material: str
    machine_time: float             # minutes
    setup_fee: float
    thickness: str = ""
    quantity: int = 1               # promotional units
    promo_product: Optional[str] = None
    type: str = field(default="laser", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "mode": self.mode.value,
            "material": self.material,
            "thickness": self.thickness,
            "machineTime": self.machine_time,
            "setupFee": self.setup_fee,
            "quantity": self.quantity,
            "promoProduct": self.promo_product,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LaserLabel":
        quantity = data.get("quantity")
        return cls(
            mode=LaserMode(data.get("mode", "cut")),
            material=data.get("material", ""),
            machine_time=float(data.get("machineTime") or 0),
            setup_fee=float(data.get("setupFee") or 0),
            thickness=data.get("thickness") or "",
            quantity=int(quantity) if quantity is not None else 1,
            promo_product=data.get("promoProduct"),
        )


LabelData = Union[StickerLabel, WrapLabel, LaserLabel]

LABEL_TYPES = {
    "sticker": StickerLabel,
    "automotive": WrapLabel,
    "laser": LaserLabel,
}


def label_from_dict(data: Optional[Dict[str, Any]]) -> Optional[LabelData]:
    """Rebuild a typed payload from a stored row (None when absent)"""
    if not data:
        return None
    label_cls = LABEL_TYPES.get(data.get("type"))
    if label_cls is None:
        raise ValueError(f"Unknown labelData type: {data.get('type')!r}")
    return label_cls.from_dict(data)


# ============================================================
# Quote
# ============================================================

@dataclass
class LineItemResult:
    """Uniform output of every calculator, ready for the cart"""
    quantity: float
    width: float
    height: float
    unit_price: float
    subtotal: float
    label_data: Optional[LabelData] = None


@dataclass
class QuoteItem:
    """One cart / quote line"""
    product_id: str
    product_name: str
    quantity: float
    width: float
    height: float
    unit_price: float
    subtotal: float
    label_data: Optional[LabelData] = None
    requirements: Dict[str, Any] = field(default_factory=dict)   # checklist answers
    manual_price: Optional[float] = None                         # overrides subtotal
    production_time: Optional[float] = None                      # minutes snapshot
    unit_cost: Optional[float] = None                            # cost snapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "width": self.width,
            "height": self.height,
            "unitPrice": self.unit_price,
            "subtotal": self.subtotal,
            "labelData": self.label_data.to_dict() if self.label_data else None,
            "requirements": self.requirements,
            "manualPrice": self.manual_price,
            "productionTime": self.production_time,
            "unitCost": self.unit_cost,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuoteItem":
        return cls(
            product_id=str(data.get("productId", "")),
            product_name=data.get("productName", ""),
            quantity=float(data.get("quantity") or 0),
            width=float(data.get("width") or 0),
            height=float(data.get("height") or 0),
            unit_price=float(data.get("unitPrice") or 0),
            subtotal=float(data.get("subtotal") or 0),
            label_data=label_from_dict(data.get("labelData")),
            requirements=dict(data.get("requirements") or {}),
            manual_price=data.get("manualPrice"),
            production_time=data.get("productionTime"),
            unit_cost=data.get("unitCost"),
        )


@dataclass
class Quote:
    """Persisted quote; total_amount is always the sum of its parts"""
    id: str
    date: str                       # ISO-8601
    customer_id: str
    items: List[QuoteItem]
    total_amount: float
    down_payment: float
    design_fee: float = 0.0
    install_fee: float = 0.0
    status: QuoteStatus = QuoteStatus.DRAFT
    deadline_days: int = 0
    discount: float = 0.0           # percent
    notes: str = ""
    payment_method: Optional[str] = None
    down_payment_method: Optional[str] = None
    user_id: Optional[str] = None
    commission_percent: Optional[float] = None  # snapshot at creation

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = QuoteStatus(self.status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "customerId": self.customer_id,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": self.total_amount,
            "downPayment": self.down_payment,
            "designFee": self.design_fee,
            "installFee": self.install_fee,
            "status": self.status.value,
            "deadlineDays": self.deadline_days,
            "discount": self.discount,
            "notes": self.notes,
            "paymentMethod": self.payment_method,
            "downPaymentMethod": self.down_payment_method,
            "userId": self.user_id,
            "commissionPercent": self.commission_percent,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quote":
        return cls(
            id=str(data["id"]),
            date=data.get("date", ""),
            customer_id=str(data.get("customerId", "")),
            items=[QuoteItem.from_dict(i) for i in data.get("items") or []],
            total_amount=float(data.get("totalAmount") or 0),
            down_payment=float(data.get("downPayment") or 0),
            design_fee=float(data.get("designFee") or 0),
            install_fee=float(data.get("installFee") or 0),
            status=data.get("status", "draft"),
            deadline_days=int(data.get("deadlineDays") or 0),
            discount=float(data.get("discount") or 0),
            notes=data.get("notes") or "",
            payment_method=data.get("paymentMethod"),
            down_payment_method=data.get("downPaymentMethod"),
            user_id=data.get("userId"),
            commission_percent=data.get("commissionPercent"),
        )
