"""
test_supabase_store.py - persistence layer tests

1. MockSupabaseStore (in-memory surface used by the demo and the cart tests)
2. SupabaseStore against a mocked supabase client
"""

from unittest.mock import MagicMock

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.api.supabase_client import MockSupabaseStore, SupabaseStore, get_store
from src.core.exceptions import ConfigurationError, SupabaseError
from src.domain.models import (
    Customer,
    FinancialConfig,
    FixedAsset,
    FixedCost,
    Product,
    Quote,
    QuoteItem,
    QuoteStatus,
    WrapLabel,
)


def make_quote(qid: str = "q1") -> Quote:
    label = WrapLabel(vehicle="Fiat Uno", parts=["capo"], complexity="Média", material_level="Standard", area_m2=1.5)
    item = QuoteItem(
        product_id="w", product_name="Envelopamento", quantity=1, width=1.5, height=1,
        unit_price=120, subtotal=120, label_data=label, requirements={"cor": "preto"},
    )
    return Quote(id=qid, date="2026-01-10", customer_id="c1", items=[item], total_amount=120, down_payment=60)


class TestMockStore:
    """In-memory store"""

    def setup_method(self):
        self.store = MockSupabaseStore()

    def test_products(self):
        self.store.save_product(Product(id="p1", name="Lona", category="Lonas", stock=10))
        assert [p.id for p in self.store.list_products()] == ["p1"]
        assert self.store.get_product("p1").name == "Lona"
        assert self.store.get_product("nope") is None

    def test_update_stock(self):
        self.store.save_product(Product(id="p1", name="Lona", category="Lonas", stock=10))
        assert self.store.update_stock("p1", 2.5) == 7.5

    def test_update_stock_unknown_product(self):
        with pytest.raises(SupabaseError):
            self.store.update_stock("ghost", 1)

    def test_customers(self):
        self.store.add_customer(Customer(id="c1", name="Padaria"))
        assert self.store.get_customer("c1").name == "Padaria"
        assert len(self.store.list_customers()) == 1

    def test_quote_stored_as_row_data(self):
        """stored quote is rebuilt from its row, not the same object"""
        quote = make_quote()
        self.store.create_quote(quote)

        stored = self.store.list_quotes()[0]
        assert stored is not quote
        assert stored == quote
        assert self.store.create_calls == 1

    def test_update_quote_status(self):
        self.store.create_quote(make_quote())
        self.store.update_quote_status("q1", QuoteStatus.CONFIRMED)
        assert self.store.list_quotes()[0].status == QuoteStatus.CONFIRMED

    def test_update_unknown_quote(self):
        with pytest.raises(SupabaseError) as exc:
            self.store.update_quote_status("ghost", QuoteStatus.SENT)
        assert exc.value.table == "quotes"

    def test_financial_and_costs(self):
        self.store.save_financial_config(FinancialConfig(tax_percent=6))
        self.store.save_fixed_cost(FixedCost("f1", "Aluguel", 2000))
        self.store.save_fixed_asset(FixedAsset("a1", "Plotter", 60000, 5))

        assert self.store.get_financial_config().tax_percent == 6
        assert self.store.list_fixed_costs()[0].value == 2000
        assert self.store.list_fixed_assets()[0].name == "Plotter"

    def test_vehicle_cache(self):
        self.store.save_vehicle_measurements("Fiat", "Uno", "2010", {"capo": {"w": 1.2, "h": 0.9}})
        assert self.store.get_vehicle_measurements("Fiat", "Uno", "2010") == {"capo": {"w": 1.2, "h": 0.9}}
        assert self.store.get_vehicle_measurements("Fiat", "Uno", "2011") is None

    def test_get_store_mock(self):
        assert isinstance(get_store(use_mock=True), MockSupabaseStore)


class TestSupabaseStore:
    """Real store over a mocked client"""

    def setup_method(self):
        self.client = MagicMock()
        self.table = self.client.table.return_value
        self.store = SupabaseStore(url="https://x.supabase.co", key="k", client=self.client)

    def test_connect_requires_credentials(self):
        store = SupabaseStore(url="", key="")
        store.url = ""
        store.key = ""
        with pytest.raises(ConfigurationError):
            store.connect()

    def test_list_products(self):
        self.table.select.return_value.execute.return_value.data = [
            {"id": "p1", "name": "Lona", "category": "Lonas", "unitType": "m²", "salePrice": 45},
        ]
        products = self.store.list_products()

        self.client.table.assert_called_with("products")
        assert products[0].name == "Lona"
        assert products[0].sale_price == 45.0

    def test_create_quote_inserts_row(self):
        self.store.create_quote(make_quote())

        self.client.table.assert_called_with("quotes")
        row = self.table.insert.call_args[0][0]
        assert row["customerId"] == "c1"
        assert row["items"][0]["labelData"]["type"] == "automotive"

    def test_financial_config_missing_row(self):
        """missing row -> defaults"""
        self.table.select.return_value.limit.return_value.execute.return_value.data = []
        assert self.store.get_financial_config() == FinancialConfig()

    def test_financial_config_row(self):
        self.table.select.return_value.limit.return_value.execute.return_value.data = [
            {"id": "default", "taxPercent": 6, "commissionPercent": 3, "hourlyRate": 42.5},
        ]
        config = self.store.get_financial_config()
        assert config.tax_percent == 6
        assert config.hourly_rate == 42.5

    def test_save_financial_config_uses_default_row(self):
        self.store.save_financial_config(FinancialConfig(tax_percent=6))
        row = self.table.upsert.call_args[0][0]
        assert row["id"] == "default"
        assert row["taxPercent"] == 6

    def test_failure_wrapped(self):
        """client errors surface as SupabaseError"""
        self.table.insert.return_value.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(SupabaseError) as exc:
            self.store.create_quote(make_quote())
        assert exc.value.table == "quotes"
        assert exc.value.operation == "insert"
        assert isinstance(exc.value.cause, RuntimeError)

    def test_vehicle_cache_lookup(self):
        query = self.table.select.return_value.eq.return_value.eq.return_value.eq.return_value
        query.execute.return_value.data = [{"dimensions": {"teto": {"w": 1, "h": 1}}}]
        assert self.store.get_vehicle_measurements("Fiat", "Uno", "2010") == {"teto": {"w": 1, "h": 1}}
