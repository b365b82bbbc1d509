"""
CLI command module

Command line front-end for the quoting core:
- subcommands per calculator (price, sticker, laser, cutpath, wrap)
- logistics fee and indicator panel
- demo: full quote flow against the in-memory store
- colored output
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Any, List, Optional

from config.settings import get_settings
from src.analyzers.gemini_analyzer import MockSalesPitchGenerator, create_estimator
from src.api.supabase_client import get_store
from src.core.error_handler import ErrorHandler
from src.core.exceptions import PrintShopError
from src.domain.calculators import (
    AreaYieldCalculator,
    MachineTimeCostCalculator,
    VehiclePanelPricingCalculator,
)
from src.domain.cart import QuoteAggregator
from src.domain.dispatch import (
    LaserRequest,
    ModeDispatcher,
    StandardRequest,
    StickerRequest,
    WrapRequest,
)
from src.domain.indicators import FinancialIndicatorEngine, compute_indicators
from src.domain.logic import ProductPricingCalculator, compute_logistics_fee
from src.domain.models import (
    Customer,
    FinancialConfig,
    LaserMode,
    Product,
    QuoteItem,
    YieldMode,
)


@dataclass
class CLIConfig:
    verbose: bool = False
    no_color: bool = False


class ColorOutput:
    """ANSI styling, active only on a terminal"""

    COLORS = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
    }
    RESET = "\033[0m"
    ROLES = {"success": "green", "error": "red", "warning": "yellow", "info": "cyan", "bold": "bold"}

    def __init__(self, enabled: bool = True):
        self.enabled = enabled and sys.stdout.isatty()

    def colorize(self, text: str, color: str) -> str:
        code = self.COLORS.get(color)
        return f"{code}{text}{self.RESET}" if self.enabled and code else text

    def __getattr__(self, role: str):
        if role not in ColorOutput.ROLES:
            raise AttributeError(role)
        return lambda text: self.colorize(text, ColorOutput.ROLES[role])


class CLI:
    """Print shop quoter CLI"""

    VERSION = "1.2.0"
    RULE = "=" * 60

    def __init__(self, config: CLIConfig = None):
        self.config = config or CLIConfig()
        self.color = ColorOutput(enabled=not self.config.no_color)
        self.errors = ErrorHandler()

    def print_header(self, title: str):
        rule = self.color.bold(self.RULE)
        print(f"\n{rule}\n  {self.color.info(title)}\n{rule}\n")

    def print_result(self, key: str, value: Any, indent: int = 2):
        print(" " * indent + f"{key}: {self.color.bold(str(value))}")

    def print_money(self, key: str, value: float, indent: int = 2):
        self.print_result(key, f"R$ {value:,.2f}", indent)

    def print_success(self, message: str):
        print("\n✅ " + self.color.success(message))

    def print_error(self, message: str):
        print("\n❌ " + self.color.error(message), file=sys.stderr)

    def print_warning(self, message: str):
        print("\n⚠️ " + self.color.warning(message))

    def fail(self, error: Exception) -> int:
        """Report an error the way the operator should see it"""
        self.errors.handle(error)
        self.print_error(self.errors.user_message(error))
        if self.config.verbose and isinstance(error, PrintShopError):
            print(f"  {error}", file=sys.stderr)
        return 1


def financial_from_args(args) -> FinancialConfig:
    return FinancialConfig(
        tax_percent=args.tax,
        commission_percent=args.commission,
        target_profit_margin=args.margin,
        hourly_rate=getattr(args, "hourly_rate", None),
    )


def parse_panel(value: str):
    """'capo=1.35x0.95' -> ('capo', {'w': 1.35, 'h': 0.95})"""
    try:
        name, dims = value.split("=", 1)
        w, h = dims.lower().split("x")
        return name.strip(), {"w": float(w), "h": float(h)}
    except ValueError:
        raise argparse.ArgumentTypeError(f"Panel must look like name=WxH, got {value!r}")


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser"""
    parser = argparse.ArgumentParser(
        prog="print-shop-quoter",
        description="Print shop quoting engine v1.2",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s price --cost 10 --waste 5 --time 10 --cost-per-hour 20 --margin 20 --tax 6 --commission 3
  %(prog)s sticker --width 5 --height 5 --gap 3 --roll 1.2 --quantity 100 --rate 80
  %(prog)s laser --mode cut --time 10 --area 1x0.5 --rate 50 --setup 20
  %(prog)s wrap --panel capo=1.35x0.95 --panel teto=1.0x0.6 --rate 80 --complexity Média --material Performance
  %(prog)s demo
"""
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose output")
    parser.add_argument("--no-color", action="store_true", help="disable colors")
    parser.add_argument("--version", action="version", version=f"%(prog)s {CLI.VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    def add_financial(p):
        p.add_argument("--margin", type=float, default=0.0, help="target profit margin %%")
        p.add_argument("--tax", type=float, default=0.0, help="tax %%")
        p.add_argument("--commission", type=float, default=0.0, help="commission %%")

    price_parser = subparsers.add_parser("price", help="catalog sale price (margin inversion)")
    price_parser.add_argument("--cost", type=float, required=True, help="material cost per unit")
    price_parser.add_argument("--waste", type=float, default=0.0, help="waste %%")
    price_parser.add_argument("--time", type=float, default=0.0, help="production minutes per unit")
    price_parser.add_argument("--cost-per-hour", type=float, default=0.0, help="shop cost per hour")
    add_financial(price_parser)

    sticker_parser = subparsers.add_parser("sticker", help="labels per roll")
    sticker_parser.add_argument("--width", type=float, required=True, help="label width (cm)")
    sticker_parser.add_argument("--height", type=float, required=True, help="label height (cm)")
    sticker_parser.add_argument("--gap", type=float, default=3.0, help="gap (mm)")
    sticker_parser.add_argument("--roll", type=float, default=None, help="roll width (m)")
    sticker_parser.add_argument("--rate", type=float, default=0.0, help="price per m2")
    sticker_parser.add_argument("--quantity", type=int, default=None, help="labels wanted (quantity mode)")
    sticker_parser.add_argument("--area", type=str, default=None, help="target area WxH in meters (area mode)")

    laser_parser = subparsers.add_parser("laser", help="laser / CNC job")
    laser_parser.add_argument("--mode", choices=[m.value for m in LaserMode], default="cut")
    laser_parser.add_argument("--time", type=float, required=True, help="machine minutes")
    laser_parser.add_argument("--area", type=str, default="0x0", help="material WxH in meters")
    laser_parser.add_argument("--rate", type=float, default=0.0, help="material price per m2")
    laser_parser.add_argument("--setup", type=float, default=0.0, help="setup fee")
    laser_parser.add_argument("--quantity", type=int, default=1, help="promotional units")
    laser_parser.add_argument("--promo", type=str, default=None, help="promotional product id")

    cutpath_parser = subparsers.add_parser("cutpath", help="price from cut path length")
    cutpath_parser.add_argument("--length", type=float, required=True, help="cut length (mm)")
    cutpath_parser.add_argument("--speed", type=float, default=15.0, help="cut speed (mm/s)")
    cutpath_parser.add_argument("--cost-per-minute", type=float, default=2.0, help="machine cost per minute")
    cutpath_parser.add_argument("--margin", type=float, default=100.0, help="margin %%")

    wrap_parser = subparsers.add_parser("wrap", help="vehicle wrap")
    wrap_parser.add_argument("--panel", type=parse_panel, action="append", default=[], help="name=WxH (repeatable)")
    wrap_parser.add_argument("--vehicle", type=str, default=None, help="estimate panels for 'make model year'")
    wrap_parser.add_argument("--select", type=str, nargs="*", default=None, help="panels to wrap (default: all)")
    wrap_parser.add_argument("--rate", type=float, required=True, help="base price per m2")
    wrap_parser.add_argument("--complexity", type=str, default=None)
    wrap_parser.add_argument("--material", type=str, default=None)
    wrap_parser.add_argument("--extra", type=str, action="append", default=[], help="disassembly / wash / removal")

    logistics_parser = subparsers.add_parser("logistics", help="install / delivery fee")
    logistics_parser.add_argument("--km", type=float, required=True, help="road distance (km)")
    logistics_parser.add_argument("--price-per-km", type=float, default=None)
    logistics_parser.add_argument("--fixed", type=float, default=0.0, help="fixed logistics fee")

    indicators_parser = subparsers.add_parser("indicators", help="indicator panel for a list of line subtotals")
    indicators_parser.add_argument("--subtotal", type=float, action="append", required=True, help="line subtotal (repeatable)")
    indicators_parser.add_argument("--hourly-rate", type=float, default=None)
    add_financial(indicators_parser)

    demo_parser = subparsers.add_parser("demo", help="end-to-end quote with the in-memory store")
    demo_parser.add_argument("--customer", default="Padaria Central", help="demo customer name")

    return parser


def parse_area(value: Optional[str]) -> tuple:
    """'1x0.5' -> (1.0, 0.5); invalid input -> (0, 0)"""
    if not value:
        return (0.0, 0.0)
    try:
        w, h = value.lower().replace(" ", "").split("x")
        return (float(w), float(h))
    except ValueError:
        return (0.0, 0.0)


def cmd_price(args, cli: CLI) -> int:
    cli.print_header("💰 Sale price")
    breakdown = ProductPricingCalculator().calculate(
        args.cost, args.time, args.waste, args.cost_per_hour, financial_from_args(args)
    )
    cli.print_money("Cost with waste", breakdown.cost_with_waste)
    cli.print_money("Operational cost", breakdown.operational_cost)
    cli.print_money("Production cost", breakdown.production_cost)
    cli.print_result("Divisor", f"{breakdown.divisor:.4f}")
    cli.print_money("Sale price", breakdown.sale_price)
    if breakdown.used_fallback:
        cli.print_warning("Percentage stack too high: 2x markup applied")
    return 0


def cmd_sticker(args, cli: CLI) -> int:
    cli.print_header("🏷️ Label yield")
    calc = AreaYieldCalculator()
    roll = calc.resolve_roll_width() if args.roll is None else args.roll
    if roll <= 0:
        cli.print_error("Roll width must be greater than zero")
        return 1

    area_w, area_h = parse_area(args.area)
    mode = YieldMode.AREA if args.area and args.quantity is None else YieldMode.QUANTITY
    result = calc.calculate(
        args.width, args.height, args.gap, roll, args.rate,
        mode, args.quantity or 0, area_w, area_h,
    )
    cli.print_result("Labels per row", result.cols_per_row)
    if mode == YieldMode.QUANTITY:
        cli.print_result("Rows", result.rows_needed)
        cli.print_result("Linear meters", f"{result.linear_meters:.3f}")
    cli.print_result("Area (m²)", f"{result.area_m2:.3f}")
    cli.print_result("Labels", result.total_labels)
    cli.print_money("Subtotal", result.subtotal)

    if not result.feasible:
        cli.print_warning("No labels fit with these dimensions")
        return 1
    return 0


def cmd_laser(args, cli: CLI) -> int:
    cli.print_header("🔦 Laser / CNC")
    area_w, area_h = parse_area(args.area)
    try:
        result = MachineTimeCostCalculator().calculate(
            LaserMode(args.mode),
            args.time,
            setup_fee=args.setup,
            area_width_m=area_w,
            area_height_m=area_h,
            price_per_m2=args.rate,
            quantity=args.quantity,
            promo_product_id=args.promo,
        )
    except PrintShopError as e:
        return cli.fail(e)
    cli.print_money("Machine time", result.time_cost)
    if result.mode == LaserMode.PROMOTIONAL:
        cli.print_money("Product (unit)", result.unit_product_cost)
        cli.print_result("Quantity", result.quantity)
    else:
        cli.print_money("Material", result.material_cost)
    cli.print_money("Setup", result.setup_fee)
    cli.print_money("Total", result.total)
    return 0


def cmd_cutpath(args, cli: CLI) -> int:
    cli.print_header("📐 Cut path")
    quote = MachineTimeCostCalculator().price_cut_path(
        args.length, args.speed, args.cost_per_minute, args.margin
    )
    cli.print_result("Time (min)", f"{quote.time_minutes:.2f}")
    cli.print_money("Machine cost", quote.machine_cost)
    cli.print_money("Total", quote.total)
    return 0


def cmd_wrap(args, cli: CLI) -> int:
    cli.print_header("🚗 Vehicle wrap")
    breakdown = dict(args.panel)

    if not breakdown and args.vehicle:
        parts = args.vehicle.split()
        make, model, year = (parts + ["", "", ""])[:3]
        panels = create_estimator(use_mock=not get_settings().gemini_api_key).estimate(make, model, year)
        if not panels:
            cli.print_error("Could not estimate measurements. Try again.")
            return 1
        breakdown = panels

    calc = VehiclePanelPricingCalculator()
    selected = args.select if args.select is not None else calc.selectable_panels(breakdown)
    try:
        result = calc.calculate(
            breakdown, selected, args.rate, args.complexity, args.material, extras=args.extra
        )
    except PrintShopError as e:
        return cli.fail(e)

    if not result.selected_panels:
        cli.print_warning("Select at least one panel")
        return 1

    for name in result.selected_panels:
        cli.print_money(name, result.panel_prices[name], 4)
    cli.print_result("Area (m²)", f"{result.selected_area_m2:.4f}")
    cli.print_result("Multiplier", f"{result.rate_multiplier:.2f}")
    cli.print_money("Effective rate", result.effective_rate)
    if result.extras_total:
        cli.print_money("Extras", result.extras_total)
    cli.print_money("Total", result.total)
    return 0


def cmd_logistics(args, cli: CLI) -> int:
    cli.print_header("🚚 Logistics fee")
    financial = FinancialConfig(price_per_km=args.price_per_km, fixed_logistics_fee=args.fixed)
    cli.print_money("Fee", compute_logistics_fee(args.km, financial))
    return 0


def print_indicators(cli: CLI, panel):
    cli.print_money("Total", panel.total)
    cli.print_money("Material (est.)", panel.material_cost)
    cli.print_money("Labor", panel.labor_cost)
    cli.print_money("Taxes", panel.taxes)
    cli.print_money("Commission", panel.commission)
    cli.print_money("Profit (target)", panel.profit)
    cli.print_money("Contribution margin", panel.contribution_margin)
    cli.print_result("Effective margin", f"{panel.effective_margin:.1f}%")


def cmd_indicators(args, cli: CLI) -> int:
    cli.print_header("📊 Indicators")
    items = [
        QuoteItem(product_id=f"line-{i}", product_name=f"Line {i}", quantity=1,
                  width=1, height=1, unit_price=s, subtotal=s)
        for i, s in enumerate(args.subtotal, 1)
    ]
    panel = FinancialIndicatorEngine().calculate(items, sum(args.subtotal), financial_from_args(args))
    print_indicators(cli, panel)
    return 0


def demo_catalog() -> List[Product]:
    return [
        Product(id="lona", name="Lona 440g", category="Lonas", unit_type="m2", sale_price=45.0,
                cost_price=18.0, production_time_minutes=10),
        Product(id="rotulo", name="Rótulo vinil", category="Rótulos", unit_type="un", sale_price=80.0,
                cost_price=30.0, available_roll_widths=[1.2, 0.6]),
        Product(id="mdf", name="MDF 3mm", category="Corte Laser", sale_price=50.0, cost_price=22.0),
        Product(id="wrap", name="Envelopamento", category="Envelopamento", unit_type="m2", sale_price=80.0),
    ]


def cmd_demo(args, cli: CLI) -> int:
    cli.print_header(f"🧾 Demo quote v{CLI.VERSION}")
    store = get_store(use_mock=True)
    for product in demo_catalog():
        store.save_product(product)
    customer = Customer(id="demo-customer", name=args.customer)
    store.add_customer(customer)
    financial = FinancialConfig(tax_percent=6, commission_percent=3, target_profit_margin=20, hourly_rate=40)
    store.save_financial_config(financial)

    dispatcher = ModeDispatcher()
    cart = QuoteAggregator(store=store, financial=financial)
    lines = [
        ("lona", StandardRequest(quantity=2, width=2.0, height=1.0)),
        ("rotulo", StickerRequest(width_cm=5, height_cm=5, gap_mm=3, target_quantity=100)),
        ("mdf", LaserRequest(mode=LaserMode.CUT, machine_time_minutes=10, setup_fee=20,
                             area_width_m=1.0, area_height_m=0.5)),
        ("wrap", WrapRequest(
            vehicle="VW Saveiro 1993",
            breakdown={"capo": {"w": 1.35, "h": 0.95}, "teto": {"w": 1.0, "h": 0.6}},
            selected=["capo", "teto"],
            complexity="Média",
            material_level="Performance",
        )),
    ]
    try:
        for product_id, request in lines:
            product = store.get_product(product_id)
            item = cart.add_item(product, dispatcher.build_line(product, request))
            cli.print_money(item.product_name, item.subtotal)

        cart.design_fee = 50.0
        cart.customer_id = customer.id
        cart.deadline_days = 5
        quote = asyncio.run(cart.finalize())
    except PrintShopError as e:
        return cli.fail(e)

    cli.print_money("Total", quote.total_amount)
    cli.print_money("Down payment", quote.down_payment)
    cli.print_success(f"Quote {quote.id} saved as {quote.status.value}")

    print()
    print_indicators(cli, compute_indicators(cart, financial))

    pitch = MockSalesPitchGenerator().generate(
        customer, quote.items, quote.total_amount, quote.design_fee, quote.install_fee,
        quote.deadline_days, "Ana", f"{get_settings().approval_base_url}/{quote.id}",
    )
    print(f"\n{pitch}")
    return 0


COMMANDS = {
    "price": cmd_price,
    "sticker": cmd_sticker,
    "laser": cmd_laser,
    "cutpath": cmd_cutpath,
    "wrap": cmd_wrap,
    "logistics": cmd_logistics,
    "indicators": cmd_indicators,
    "demo": cmd_demo,
}


def run_cli(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    cli = CLI(CLIConfig(verbose=args.verbose, no_color=args.no_color))

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 0
    return command(args, cli)


if __name__ == "__main__":
    sys.exit(run_cli())
