"""
test_calculators.py - Category calculator tests

Sticker yield, laser / CNC cost, vehicle wrap and standard items.
"""

import itertools

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.domain.models import LaserLabel, LaserMode, Product, StickerLabel, WrapLabel, YieldMode, label_from_dict
from src.domain.calculators import (
    AreaYieldCalculator,
    MachineTimeCostCalculator,
    PanelDimensions,
    StandardItemCalculator,
    VehiclePanelPricingCalculator,
    compute_area_yield,
    compute_machine_cost,
    compute_vehicle_price,
)
from src.core.config import CalculatorConfig
from src.core.exceptions import ValidationError


class TestStandardItem:
    """Area x price x qty, or price x qty"""

    def setup_method(self):
        self.calculator = StandardItemCalculator()

    def test_area_product(self):
        """m2 product bills width x height"""
        lona = Product(id="lona", name="Lona", category="Lonas", unit_type="m2", sale_price=45)
        line = self.calculator.calculate(lona, 2, 2.0, 1.5)
        assert line.subtotal == pytest.approx(2 * 3.0 * 45)
        assert line.label_data is None

    def test_unit_product(self):
        """unit product ignores dimensions"""
        caneca = Product(id="c", name="Caneca", category="Brindes", unit_type="un", sale_price=30)
        assert self.calculator.calculate(caneca, 3, 2.0, 2.0).subtotal == 90

    def test_area_category_sold_by_unit(self):
        """area category with unit type 'un' is not area based"""
        placa = Product(id="p", name="Placa", category="Banners", unit_type="un", sale_price=10)
        assert not self.calculator.is_area_based(placa)

    def test_area_category_sold_by_linear_meter(self):
        """area category with unit type 'ml' is area based"""
        adesivo = Product(id="a", name="Adesivo", category="Adesivos", unit_type="ml", sale_price=10)
        assert self.calculator.is_area_based(adesivo)

    def test_unit_type_normalization(self):
        """'m²' is read as m2"""
        product = Product(id="x", name="X", category="Outros", unit_type="m²")
        assert self.calculator.is_area_based(product)


class TestAreaYield:
    """Sticker nesting"""

    def setup_method(self):
        self.calculator = AreaYieldCalculator()

    def test_quantity_mode_scenario(self):
        """5x5cm, gap 3mm, roll 1.20m, 100 labels"""
        result = self.calculator.calculate(5, 5, 3, 1.20, 80, YieldMode.QUANTITY, target_quantity=100)

        assert result.cols_per_row == 22
        assert result.rows_needed == 5
        assert result.linear_meters == pytest.approx(0.265)
        assert result.area_m2 == pytest.approx(0.318)
        assert result.total_labels == 100
        assert result.subtotal == pytest.approx(0.318 * 80)
        assert result.feasible

    def test_nothing_fits(self):
        """label wider than the roll -> zero, no exception"""
        result = self.calculator.calculate(119, 5, 20, 1.20, 80, YieldMode.QUANTITY, target_quantity=10)
        assert result.cols_per_row == 0
        assert result.total_labels == 0
        assert result.subtotal == 0
        assert not result.feasible

    def test_zero_roll_width(self):
        """zero roll width yields nothing instead of dividing by zero"""
        result = self.calculator.calculate(5, 5, 3, 0, 80, YieldMode.QUANTITY, target_quantity=10)
        assert result.cols_per_row == 0
        assert result.total_labels == 0

    def test_zero_label_size(self):
        """zero-size label with zero gap yields nothing"""
        result = self.calculator.calculate(0, 0, 0, 1.2, 80, YieldMode.QUANTITY, target_quantity=10)
        assert result.total_labels == 0

    @pytest.mark.parametrize("width,height,gap,roll,qty", [
        (5, 5, 3, 1.2, 100),
        (7.5, 3, 2, 0.6, 1),
        (10, 10, 0, 0.3, 7),
        (3.3, 2.1, 1.5, 1.07, 999),
        (50, 20, 5, 0.55, 3),
    ])
    def test_never_under_provisions(self, width, height, gap, roll, qty):
        """rows x cols covers the requested quantity"""
        result = compute_area_yield(width, height, gap, roll, 10, YieldMode.QUANTITY, target_quantity=qty)
        assert result.cols_per_row > 0
        assert result.rows_needed * result.cols_per_row >= qty

    def test_exact_fit_is_not_floored_away(self):
        """2 x 5.3cm on a 10.6cm roll fits 2 across"""
        result = self.calculator.calculate(5, 5, 3, 0.106, 10, YieldMode.QUANTITY, target_quantity=4)
        assert result.cols_per_row == 2
        assert result.rows_needed == 2

    def test_area_mode(self):
        """labels that fit inside 1.0 x 0.5 m"""
        result = self.calculator.calculate(
            5, 5, 3, 1.2, 80, YieldMode.AREA, target_area_width_m=1.0, target_area_height_m=0.5
        )
        assert result.total_labels == 18 * 9
        assert result.area_m2 == pytest.approx(0.5)
        assert result.subtotal == pytest.approx(40.0)

    def test_roll_width_resolution(self):
        """first listed roll, else the configured default"""
        product = Product(id="r", name="Rótulo", category="Rótulos", available_roll_widths=[0.6, 1.2])
        assert self.calculator.resolve_roll_width(product) == 0.6
        assert self.calculator.resolve_roll_width(None) == 1.20
        assert AreaYieldCalculator(CalculatorConfig(default_roll_width_m=1.5)).resolve_roll_width() == 1.5

    def test_line_item_quantity_mode(self):
        """roll width x linear meters, quantity 1, sticker payload"""
        result = self.calculator.calculate(5, 5, 3, 1.20, 80, YieldMode.QUANTITY, target_quantity=100)
        line = self.calculator.to_line_item(result, 5, 5, 3)

        assert line.quantity == 1
        assert line.width == 1.20
        assert line.height == pytest.approx(0.265)
        assert line.unit_price == 80
        assert line.subtotal == pytest.approx(result.subtotal)
        assert isinstance(line.label_data, StickerLabel)
        assert line.label_data.total_labels == 100
        assert line.label_data.to_dict()["type"] == "sticker"


class TestMachineCost:
    """Laser / CNC"""

    def setup_method(self):
        self.calculator = MachineTimeCostCalculator()

    def test_cut_scenario(self):
        """10 min at 120/h + 1 x 0.5 m at 50/m2 + setup 20 = 65"""
        result = self.calculator.calculate(
            LaserMode.CUT, 10, setup_fee=20, area_width_m=1.0, area_height_m=0.5, price_per_m2=50
        )
        assert result.time_cost == pytest.approx(20)
        assert result.material_cost == pytest.approx(25)
        assert result.total == pytest.approx(65)

    def test_engrave_without_material(self):
        """engraving only: time + setup"""
        result = compute_machine_cost(LaserMode.ENGRAVE, 30, setup_fee=10)
        assert result.total == pytest.approx(70)

    def test_machine_rate_from_config(self):
        """rate per minute follows the machine hour rate"""
        calculator = MachineTimeCostCalculator(CalculatorConfig(machine_hour_rate=90))
        assert calculator.rate_per_minute == 1.5

    def test_promotional(self):
        """(product cost x markup + engraving) x qty + setup"""
        result = self.calculator.calculate(
            LaserMode.PROMOTIONAL, 2, setup_fee=15, quantity=10, promo_product_id="caneta-metal"
        )
        assert result.unit_product_cost == pytest.approx(9.0)
        assert result.total == pytest.approx((9.0 + 4.0) * 10 + 15)

    def test_promotional_customer_supplies_product(self):
        """customer brings the blanks: engraving only"""
        result = self.calculator.calculate(
            LaserMode.PROMOTIONAL, 2, quantity=10, promo_product_id="caneta-metal", supply_product=False
        )
        assert result.total == pytest.approx(40)

    def test_promotional_unknown_product(self):
        """supplied blank must be in the catalog"""
        with pytest.raises(ValidationError) as exc:
            self.calculator.calculate(LaserMode.PROMOTIONAL, 2, quantity=10, promo_product_id="typo")
        assert exc.value.field == "promo_product_id"

    def test_promotional_missing_product(self):
        with pytest.raises(ValidationError):
            self.calculator.calculate(LaserMode.PROMOTIONAL, 2, quantity=10)

    def test_label_round_trip_keeps_zero_quantity(self):
        """stored quantity 0 is not replaced by the default"""
        label = LaserLabel(LaserMode.PROMOTIONAL, "Acrílico", 2, 0, quantity=0)
        assert label_from_dict(label.to_dict()).quantity == 0
        assert LaserLabel.from_dict({"mode": "cut"}).quantity == 1

    def test_line_item(self):
        """fixed-price line with laser payload"""
        result = self.calculator.calculate(
            LaserMode.PROMOTIONAL, 2, quantity=10, promo_product_id="chaveiro-acrilico"
        )
        line = self.calculator.to_line_item(result, "Acrílico", "3mm", "chaveiro-acrilico")
        assert line.quantity == 1
        assert line.unit_price == line.subtotal == pytest.approx(result.total)
        assert isinstance(line.label_data, LaserLabel)
        assert line.label_data.promo_product == "Chaveiro Acrílico"
        assert line.label_data.machine_time == pytest.approx(2)


class TestCutPath:
    """Price from cut length"""

    def setup_method(self):
        self.calculator = MachineTimeCostCalculator()

    def test_machine_only(self):
        """9000mm at 15mm/s = 10 min; 2/min; 100% margin"""
        quote = self.calculator.price_cut_path(9000)
        assert quote.time_minutes == pytest.approx(10)
        assert quote.machine_cost == pytest.approx(20)
        assert quote.total == pytest.approx(40)

    def test_area_material(self):
        """m2 material billed over the part area"""
        mdf = Product(id="mdf", name="MDF", category="Rígidos", unit_type="m2", sale_price=50)
        quote = self.calculator.price_cut_path(9000, material=mdf, area_m2=0.5)
        assert quote.material_cost == pytest.approx(25)
        assert quote.total == pytest.approx(90)

    def test_unit_material(self):
        """unit material billed once"""
        chapa = Product(id="c", name="Chapa", category="Rígidos", unit_type="un", sale_price=12)
        quote = self.calculator.price_cut_path(9000, margin_percent=0, material=chapa)
        assert quote.total == pytest.approx(32)

    def test_zero_speed(self):
        """non-positive speed prices nothing"""
        assert self.calculator.price_cut_path(9000, speed_mm_per_sec=0).total == 0


class TestVehicleWrap:
    """Panel selection pricing"""

    def setup_method(self):
        self.calculator = VehiclePanelPricingCalculator()
        self.breakdown = {
            "capo": {"w": 1.35, "h": 0.95},
            "teto": {"w": 1.0, "h": 0.6},
            "portas_traseiras": {"w": 0, "h": 0},
            "porta_malas": PanelDimensions(1.1, 0.6),
        }

    def test_wrap_scenario(self):
        """two panels, Média x Performance at 80/m2 -> ~263.55"""
        result = self.calculator.calculate(self.breakdown, ["capo", "teto"], 80, "Média", "Performance")
        assert result.selected_area_m2 == pytest.approx(1.8825)
        assert result.rate_multiplier == pytest.approx(1.75)
        assert result.effective_rate == pytest.approx(140)
        assert result.total == pytest.approx(263.55)

    def test_defaults(self):
        """no tiers given -> Média x Standard"""
        result = compute_vehicle_price(self.breakdown, ["teto"], 100)
        assert result.rate_multiplier == pytest.approx(1.25)
        assert result.total == pytest.approx(75)

    def test_selection_order_does_not_matter(self):
        """every permutation of the selection prices the same"""
        panels = ["capo", "teto", "porta_malas"]
        results = [
            self.calculator.calculate(self.breakdown, list(p), 80, "Alta", "Premium")
            for p in itertools.permutations(panels)
        ]
        assert len({r.selected_area_m2 for r in results}) == 1
        assert len({r.total for r in results}) == 1

    def test_adding_a_panel_never_decreases_total(self):
        """monotonic in the selection"""
        selection = []
        previous = 0.0
        for panel in ["teto", "porta_malas", "portas_traseiras", "capo"]:
            selection.append(panel)
            total = self.calculator.calculate(self.breakdown, selection, 80, "Média", "Standard").total
            assert total >= previous
            previous = total

    def test_zero_area_and_unknown_panels_skipped(self):
        """zero-area and unknown names are not billed"""
        result = self.calculator.calculate(self.breakdown, ["portas_traseiras", "spoiler", "teto"], 80)
        assert result.selected_panels == ["teto"]

    def test_negative_dimensions_not_selectable(self):
        """two negative sides do not make a billable panel"""
        breakdown = {"capo": {"w": -1, "h": -2}, "teto": {"w": 1.0, "h": 0.6}}
        assert self.calculator.selectable_panels(breakdown) == ["teto"]
        result = self.calculator.calculate(breakdown, ["capo", "teto"], 80)
        assert result.selected_panels == ["teto"]
        assert PanelDimensions(-1, -2).area == 0.0

    def test_selectable_panels(self):
        """zero-area panels are not offered"""
        assert self.calculator.selectable_panels(self.breakdown) == ["capo", "teto", "porta_malas"]

    def test_empty_selection(self):
        """nothing selected -> zero total, extras not charged"""
        result = self.calculator.calculate(self.breakdown, [], 80, extras=["wash"])
        assert result.total == 0
        assert result.selected_panels == []

    def test_extras(self):
        """flat extras added once"""
        base = self.calculator.calculate(self.breakdown, ["teto"], 80).total
        with_extras = self.calculator.calculate(self.breakdown, ["teto"], 80, extras=["wash", "removal", "wash"])
        assert with_extras.extras_total == 430
        assert with_extras.total == pytest.approx(base + 430)

    def test_per_panel_complexity(self):
        """panel override beats the global tier"""
        result = self.calculator.calculate(
            self.breakdown, ["capo", "teto"], 80, "Média", "Performance",
            part_complexities={"capo": "Alta"},
        )
        assert result.panel_prices["capo"] == pytest.approx(1.2825 * 80 * 1.4 * 1.6)
        assert result.panel_prices["teto"] == pytest.approx(0.6 * 80 * 1.4 * 1.25)
        assert result.total == pytest.approx(229.824 + 84)

    def test_unknown_tier(self):
        """unknown tier is an input error"""
        with pytest.raises(ValidationError):
            self.calculator.calculate(self.breakdown, ["teto"], 80, "Impossível")

    def test_line_item(self):
        """blended rate over the selected area"""
        result = self.calculator.calculate(self.breakdown, ["capo", "teto"], 80, "Média", "Performance")
        line = self.calculator.to_line_item(result, "VW Saveiro 1993", "Média", "Performance")
        assert line.width == pytest.approx(1.8825)
        assert line.height == 1
        assert line.unit_price * line.width == pytest.approx(line.subtotal)
        assert isinstance(line.label_data, WrapLabel)
        assert line.label_data.parts == ["capo", "teto"]
