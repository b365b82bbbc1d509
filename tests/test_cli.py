"""CLI module tests"""

import argparse
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.cli.commands import (
    CLI,
    CLIConfig,
    ColorOutput,
    create_parser,
    parse_area,
    parse_panel,
    run_cli,
)


class TestCLIConfig:
    """CLIConfig"""

    def test_default_config(self):
        config = CLIConfig()
        assert config.verbose is False
        assert config.no_color is False


class TestColorOutput:
    """ColorOutput"""

    def test_disabled(self):
        color = ColorOutput(enabled=False)
        assert color.success("ok") == "ok"
        assert color.error("x") == "x"

    def test_unknown_color(self):
        color = ColorOutput(enabled=False)
        color.enabled = True
        assert color.colorize("text", "purple") == "text"
        assert color.colorize("text", "red").startswith("\033[91m")


class TestArgumentHelpers:
    """Argument parsing helpers"""

    def test_parse_panel(self):
        assert parse_panel("capo=1.35x0.95") == ("capo", {"w": 1.35, "h": 0.95})
        assert parse_panel("teto=1X0.6") == ("teto", {"w": 1.0, "h": 0.6})

    @pytest.mark.parametrize("value", ["capo", "capo=1.35", "capo=ax1"])
    def test_parse_panel_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_panel(value)

    def test_parse_area(self):
        assert parse_area("1x0.5") == (1.0, 0.5)
        assert parse_area(None) == (0.0, 0.0)
        assert parse_area("big") == (0.0, 0.0)

    def test_parser_commands(self):
        parser = create_parser()
        args = parser.parse_args(["logistics", "--km", "12.3"])
        assert args.command == "logistics"
        assert args.km == 12.3


class TestCommands:
    """Subcommands end to end"""

    def test_price(self, capsys):
        code = run_cli([
            "price", "--cost", "10", "--waste", "5", "--time", "10", "--cost-per-hour", "20",
            "--margin", "20", "--tax", "6", "--commission", "3",
        ])
        out = capsys.readouterr().out
        assert code == 0
        assert "R$ 19.48" in out
        assert "markup" not in out

    def test_price_fallback(self, capsys):
        code = run_cli(["price", "--cost", "10", "--margin", "90", "--tax", "6", "--commission", "3"])
        out = capsys.readouterr().out
        assert code == 0
        assert "R$ 20.00" in out
        assert "2x markup" in out

    def test_sticker(self, capsys):
        code = run_cli([
            "sticker", "--width", "5", "--height", "5", "--gap", "3", "--roll", "1.2",
            "--quantity", "100", "--rate", "80",
        ])
        assert code == 0
        assert "R$ 25.44" in capsys.readouterr().out

    def test_sticker_nothing_fits(self, capsys):
        code = run_cli(["sticker", "--width", "200", "--height", "5", "--roll", "1.2", "--quantity", "10"])
        assert code == 1
        assert "No labels fit" in capsys.readouterr().out

    def test_sticker_explicit_zero_roll(self, capsys):
        """--roll 0 is rejected, not replaced by the default width"""
        code = run_cli(["sticker", "--width", "5", "--height", "5", "--roll", "0", "--quantity", "10"])
        assert code == 1
        assert "Roll width must be greater than zero" in capsys.readouterr().err

    def test_laser_unknown_promo_product(self, capsys):
        code = run_cli(["laser", "--mode", "promotional", "--time", "2", "--quantity", "10", "--promo", "typo"])
        assert code == 1
        assert "Dados inválidos" in capsys.readouterr().err

    def test_laser(self, capsys):
        code = run_cli(["laser", "--mode", "cut", "--time", "10", "--area", "1x0.5", "--rate", "50", "--setup", "20"])
        assert code == 0
        assert "R$ 65.00" in capsys.readouterr().out

    def test_cutpath(self, capsys):
        """900 mm at 15 mm/s = 1 min; 2/min + 100% margin"""
        code = run_cli(["cutpath", "--length", "900", "--speed", "15", "--cost-per-minute", "2"])
        assert code == 0
        assert "R$ 4.00" in capsys.readouterr().out

    def test_wrap(self, capsys):
        code = run_cli([
            "wrap", "--panel", "capo=1.35x0.95", "--panel", "teto=1.0x0.6", "--rate", "80",
            "--complexity", "Média", "--material", "Performance",
        ])
        assert code == 0
        assert "R$ 263.55" in capsys.readouterr().out

    def test_wrap_unknown_tier(self, capsys):
        code = run_cli(["--no-color", "wrap", "--panel", "capo=1x1", "--rate", "80", "--complexity", "Extrema"])
        assert code == 1
        assert "Dados inválidos" in capsys.readouterr().err

    def test_wrap_empty_selection(self, capsys):
        code = run_cli(["wrap", "--panel", "capo=1x1", "--rate", "80", "--select"])
        assert code == 1
        assert "Select at least one panel" in capsys.readouterr().out

    def test_logistics(self, capsys):
        code = run_cli(["logistics", "--km", "12.3", "--price-per-km", "2", "--fixed", "10"])
        assert code == 0
        assert "R$ 35.00" in capsys.readouterr().out

    def test_indicators(self, capsys):
        code = run_cli([
            "indicators", "--subtotal", "100", "--subtotal", "50", "--hourly-rate", "40",
            "--margin", "20", "--tax", "6", "--commission", "3",
        ])
        out = capsys.readouterr().out
        assert code == 0
        assert "R$ 136.50" in out
        assert "37.7%" in out

    def test_demo(self, capsys):
        """full flow on the in-memory store"""
        code = run_cli(["demo", "--customer", "Gráfica Teste"])
        out = capsys.readouterr().out
        assert code == 0
        assert "saved as draft" in out
        assert "Olá *Gráfica Teste*" in out

    def test_no_command_prints_help(self, capsys):
        assert run_cli([]) == 0
        assert "print-shop-quoter" in capsys.readouterr().out


class TestCLIFail:
    """Operator-facing error output"""

    def test_fail_uses_user_message(self, capsys):
        from src.core.exceptions import NoCustomerSelectedError

        cli = CLI(CLIConfig(verbose=True, no_color=True))
        assert cli.fail(NoCustomerSelectedError()) == 1
        err = capsys.readouterr().err
        assert "Selecione um cliente" in err
        assert "PSQ_NO_CUSTOMER_SELECTED" in err
