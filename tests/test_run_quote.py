"""run_quote.py script tests (in-memory store)"""

import importlib.util
import logging

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.api.supabase_client import MockSupabaseStore
from src.domain.models import Customer, Product

SCRIPT = Path(__file__).parent.parent / "scripts" / "run_quote.py"


def load_script():
    spec = importlib.util.spec_from_file_location("run_quote", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestRunQuote:
    """Single-product quote from the command line"""

    def setup_method(self):
        self.script = load_script()
        self.store = MockSupabaseStore()

    def run(self, monkeypatch, *argv):
        monkeypatch.setattr(self.script, "get_store", lambda use_mock=False: self.store)
        monkeypatch.setattr(sys, "argv", ["run_quote.py", "--mock", *argv])

    @pytest.mark.asyncio
    async def test_saves_standard_quote(self, monkeypatch, capsys):
        self.run(monkeypatch, "--customer", "c1", "--product", "lona", "--width", "2")
        assert await self.script.main() == 0
        assert len(self.store.quotes) == 1
        assert "R$ 90.00" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_product_in_other_mode_reports_error(self, monkeypatch, caplog):
        """a wrap product cannot be quoted as a standard item: logged, nothing saved"""
        def seed_wrap(store, customer_id, product_id):
            store.add_customer(Customer(id=customer_id, name="Cliente"))
            store.save_product(Product(
                id=product_id, name="Envelopamento", category="Envelopamento", sale_price=80.0,
            ))

        monkeypatch.setattr(self.script, "seed_mock", seed_wrap)
        self.run(monkeypatch, "--customer", "c1", "--product", "wrap")

        with caplog.at_level(logging.ERROR):
            assert await self.script.main() == 1
        assert self.store.create_calls == 0
        assert any("automotive mode" in r.getMessage() for r in caplog.records)
