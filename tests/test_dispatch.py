"""Calculator mode dispatch tests"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.domain.models import CalculatorMode, LaserMode, Product
from src.domain.dispatch import (
    LaserRequest,
    ModeDispatcher,
    StandardRequest,
    StickerRequest,
    WrapRequest,
    resolve_mode,
)
from src.core.exceptions import ValidationError


class TestResolveMode:
    """Override > product tag > category table > standard"""

    def test_category_table(self):
        """exact category match, case-insensitive"""
        assert resolve_mode(Product(id="1", name="x", category="Envelopamento")) == CalculatorMode.AUTOMOTIVE
        assert resolve_mode(Product(id="2", name="x", category="CNC")) == CalculatorMode.LASER
        assert resolve_mode(Product(id="3", name="x", category="Etiquetas", unit_type="un")) == CalculatorMode.STICKER

    @pytest.mark.parametrize("category,expected", [
        ("Adesivo", CalculatorMode.STICKER),
        ("Rótulo", CalculatorMode.STICKER),
        ("Etiqueta", CalculatorMode.STICKER),
        ("Flex", CalculatorMode.STICKER),
        ("Rígido", CalculatorMode.LASER),
    ])
    def test_singular_and_flex_categories(self, category, expected):
        """singular names and flex labels use the same calculators"""
        product = Product(id="1", name="x", category=category, unit_type="un")
        assert resolve_mode(product) == expected

    def test_no_substring_matching(self):
        """a name mentioning laser does not make it a laser product"""
        product = Product(id="1", name="Placa gravada a laser", category="Placas")
        assert resolve_mode(product) == CalculatorMode.STANDARD

    def test_sticker_category_sold_by_area(self):
        """sticker category sold by m2 is a standard item"""
        product = Product(id="1", name="Vinil", category="Adesivos", unit_type="m2")
        assert resolve_mode(product) == CalculatorMode.STANDARD

    def test_product_tag_beats_category(self):
        """explicit tag wins over the table"""
        product = Product(id="1", name="x", category="Lonas", calculator_mode="laser")
        assert resolve_mode(product) == CalculatorMode.LASER

    def test_override_beats_everything(self):
        """caller override wins"""
        product = Product(id="1", name="x", category="Envelopamento", calculator_mode=CalculatorMode.LASER)
        assert resolve_mode(product, CalculatorMode.STANDARD) == CalculatorMode.STANDARD


class TestModeDispatcher:
    """Request routing"""

    def setup_method(self):
        self.dispatcher = ModeDispatcher()
        self.rotulo = Product(id="r", name="Rótulo", category="Rótulos", unit_type="un", sale_price=80)
        self.mdf = Product(id="m", name="MDF 3mm", category="Corte Laser", sale_price=50)
        self.wrap = Product(id="w", name="Envelopamento", category="Envelopamento", sale_price=80)
        self.lona = Product(id="l", name="Lona", category="Lonas", unit_type="m2", sale_price=45)

    def test_standard(self):
        line = self.dispatcher.build_line(self.lona, StandardRequest(quantity=1, width=2, height=1))
        assert line.subtotal == pytest.approx(90)

    def test_sticker_uses_product_roll(self):
        """default roll comes from the product"""
        line = self.dispatcher.build_line(self.rotulo, StickerRequest(width_cm=5, height_cm=5, target_quantity=100))
        assert line.label_data.roll_width == 1.20
        assert line.subtotal == pytest.approx(0.318 * 80)

    def test_sticker_zero_roll_width(self):
        """explicit zero roll width is rejected"""
        with pytest.raises(ValidationError):
            self.dispatcher.build_line(
                self.rotulo, StickerRequest(width_cm=5, height_cm=5, target_quantity=10, roll_width_m=0)
            )

    def test_sticker_nothing_fits(self):
        """zero-label result cannot become a cart line"""
        with pytest.raises(ValidationError):
            self.dispatcher.build_line(self.rotulo, StickerRequest(width_cm=200, height_cm=5, target_quantity=10))

    def test_laser_material_rate_defaults_to_sale_price(self):
        """material priced at the product sale price"""
        request = LaserRequest(
            mode=LaserMode.CUT, machine_time_minutes=10, setup_fee=20, area_width_m=1, area_height_m=0.5
        )
        line = self.dispatcher.build_line(self.mdf, request)
        assert line.subtotal == pytest.approx(65)
        assert line.label_data.material == "MDF 3mm"

    def test_wrap(self):
        request = WrapRequest(
            vehicle="VW Saveiro 1993",
            breakdown={"capo": {"w": 1.35, "h": 0.95}, "teto": {"w": 1.0, "h": 0.6}},
            selected=["teto", "capo"],
            complexity="Média",
            material_level="Performance",
        )
        line = self.dispatcher.build_line(self.wrap, request)
        assert line.subtotal == pytest.approx(263.55)
        assert line.label_data.vehicle == "VW Saveiro 1993"

    def test_wrap_empty_selection(self):
        """no panel selected blocks the line"""
        request = WrapRequest(vehicle="Gol", breakdown={"capo": {"w": 1, "h": 1}}, selected=[])
        with pytest.raises(ValidationError):
            self.dispatcher.build_line(self.wrap, request)

    def test_request_mode_mismatch(self):
        """a standard request for a laser product is rejected"""
        with pytest.raises(ValidationError) as exc:
            self.dispatcher.build_line(self.mdf, StandardRequest())
        assert exc.value.field == "mode"

    def test_override_routes_to_standard(self):
        """override lets a laser product be sold as a plain item"""
        line = self.dispatcher.build_line(self.mdf, StandardRequest(quantity=2), CalculatorMode.STANDARD)
        assert line.subtotal == pytest.approx(100)
