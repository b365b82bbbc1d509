"""
supabase_client.py - Supabase persistence (v1.2)

Tables:
1. products / customers        catalog + customer lookups
2. quotes                      persisted quotes (finalize target)
3. financial_config            single row, id 'default'
4. fixed_assets / fixed_costs  cost-per-hour inputs
5. vehicle_measurements_cache  estimator results keyed by make/model/year

Every failed call raises SupabaseError; callers decide how to surface it.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from supabase import Client, create_client

from config.settings import get_settings
from ..core.exceptions import ConfigurationError, SupabaseError
from ..core.logging import setup_logger
from ..domain.models import (
    Customer,
    FinancialConfig,
    FixedAsset,
    FixedCost,
    Product,
    Quote,
    QuoteStatus,
)

logger = setup_logger(__name__)


class SupabaseStore:
    """Supabase-backed stores for the quoting core"""

    TABLE_PRODUCTS = "products"
    TABLE_CUSTOMERS = "customers"
    TABLE_QUOTES = "quotes"
    TABLE_FINANCIAL = "financial_config"
    TABLE_ASSETS = "fixed_assets"
    TABLE_COSTS = "fixed_costs"
    TABLE_VEHICLE_CACHE = "vehicle_measurements_cache"

    FINANCIAL_ROW_ID = "default"

    def __init__(self, url: str = None, key: str = None, client: Optional[Client] = None):
        """
        Args:
            url: Supabase URL (env SUPABASE_URL)
            key: Supabase API key (env SUPABASE_KEY)
            client: pre-built client (tests)
        """
        settings = get_settings()
        self.url = url or settings.supabase_url
        self.key = key or settings.supabase_key
        self.client: Optional[Client] = client

    def connect(self) -> "SupabaseStore":
        if self.client is not None:
            return self
        if not self.url or not self.key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_KEY must be set",
                config_key="SUPABASE_URL",
            )
        self.client = create_client(self.url, self.key)
        logger.info("Supabase client connected")
        return self

    def is_connected(self) -> bool:
        return self.client is not None

    def _run(self, table: str, operation: str, build: Callable[[Any], Any]) -> Any:
        """Execute a query built on table(table) and return its data"""
        self.connect()
        try:
            result = build(self.client.table(table)).execute()
        except Exception as e:
            logger.error(f"Supabase {operation} on {table} failed: {e}")
            raise SupabaseError(
                f"{operation} on {table} failed: {e}",
                table=table,
                operation=operation,
                cause=e,
            ) from e
        return result.data

    # --- Products ---

    def list_products(self) -> List[Product]:
        rows = self._run(self.TABLE_PRODUCTS, "select", lambda t: t.select("*"))
        return [Product.from_dict(r) for r in rows or []]

    def get_product(self, product_id: str) -> Optional[Product]:
        rows = self._run(self.TABLE_PRODUCTS, "select", lambda t: t.select("*").eq("id", product_id))
        return Product.from_dict(rows[0]) if rows else None

    def save_product(self, product: Product):
        row = product.to_dict()
        row.pop("isComposite", None)
        self._run(self.TABLE_PRODUCTS, "upsert", lambda t: t.upsert(row))

    def update_stock(self, product_id: str, quantity_to_remove: float) -> float:
        product = self.get_product(product_id)
        if product is None:
            raise SupabaseError(f"Product {product_id} not found", table=self.TABLE_PRODUCTS, operation="update")
        new_stock = product.stock - quantity_to_remove
        self._run(
            self.TABLE_PRODUCTS, "update",
            lambda t: t.update({"stock": new_stock}).eq("id", product_id),
        )
        return new_stock

    # --- Customers ---

    def list_customers(self) -> List[Customer]:
        rows = self._run(self.TABLE_CUSTOMERS, "select", lambda t: t.select("*"))
        return [Customer.from_dict(r) for r in rows or []]

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        rows = self._run(self.TABLE_CUSTOMERS, "select", lambda t: t.select("*").eq("id", customer_id))
        return Customer.from_dict(rows[0]) if rows else None

    # --- Quotes ---

    def create_quote(self, quote: Quote):
        self._run(self.TABLE_QUOTES, "insert", lambda t: t.insert(quote.to_dict()))
        logger.info(f"Quote {quote.id} inserted")

    def list_quotes(self) -> List[Quote]:
        rows = self._run(self.TABLE_QUOTES, "select", lambda t: t.select("*"))
        return [Quote.from_dict(r) for r in rows or []]

    def update_quote_status(self, quote_id: str, status: QuoteStatus):
        self._run(
            self.TABLE_QUOTES, "update",
            lambda t: t.update({"status": status.value}).eq("id", quote_id),
        )

    # --- Financial ---

    def get_financial_config(self) -> FinancialConfig:
        """Stored config, or defaults when the row does not exist yet"""
        rows = self._run(self.TABLE_FINANCIAL, "select", lambda t: t.select("*").limit(1))
        if not rows:
            logger.warning("financial_config row missing; using defaults")
            return FinancialConfig()
        return FinancialConfig.from_dict(rows[0])

    def save_financial_config(self, config: FinancialConfig):
        row = {"id": self.FINANCIAL_ROW_ID, **config.to_dict()}
        self._run(self.TABLE_FINANCIAL, "upsert", lambda t: t.upsert(row))

    def list_fixed_assets(self) -> List[FixedAsset]:
        rows = self._run(self.TABLE_ASSETS, "select", lambda t: t.select("*"))
        return [FixedAsset.from_dict(r) for r in rows or []]

    def save_fixed_asset(self, asset: FixedAsset):
        row = asset.to_dict()
        row.pop("monthlyDepreciation", None)
        self._run(self.TABLE_ASSETS, "upsert", lambda t: t.upsert(row))

    def list_fixed_costs(self) -> List[FixedCost]:
        rows = self._run(self.TABLE_COSTS, "select", lambda t: t.select("*"))
        return [FixedCost.from_dict(r) for r in rows or []]

    def save_fixed_cost(self, cost: FixedCost):
        self._run(self.TABLE_COSTS, "upsert", lambda t: t.upsert(cost.to_dict()))

    # --- Vehicle measurement cache ---

    def get_vehicle_measurements(self, make: str, model: str, year: str) -> Optional[Dict[str, Any]]:
        rows = self._run(
            self.TABLE_VEHICLE_CACHE, "select",
            lambda t: t.select("dimensions").eq("make", make).eq("model", model).eq("year", year),
        )
        return rows[0].get("dimensions") if rows else None

    def save_vehicle_measurements(self, make: str, model: str, year: str, dimensions: Dict[str, Any]):
        row = {
            "make": make,
            "model": model,
            "year": year,
            "dimensions": dimensions,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self._run(self.TABLE_VEHICLE_CACHE, "insert", lambda t: t.insert(row))


# --- Mock store (tests / offline demo) ---
class MockSupabaseStore(SupabaseStore):
    """In-memory store with the same surface"""

    def __init__(self):
        super().__init__(url="mock://", key="mock")
        self.products: Dict[str, Product] = {}
        self.customers: Dict[str, Customer] = {}
        self.quotes: List[Quote] = []
        self.financial = FinancialConfig()
        self.fixed_assets: Dict[str, FixedAsset] = {}
        self.fixed_costs: Dict[str, FixedCost] = {}
        self.vehicle_cache: Dict[tuple, Dict[str, Any]] = {}
        self.create_calls = 0

    def connect(self) -> "MockSupabaseStore":
        return self

    def is_connected(self) -> bool:
        return True

    def list_products(self) -> List[Product]:
        return list(self.products.values())

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    def save_product(self, product: Product):
        self.products[product.id] = product

    def update_stock(self, product_id: str, quantity_to_remove: float) -> float:
        product = self.products.get(product_id)
        if product is None:
            raise SupabaseError(f"Product {product_id} not found", table=self.TABLE_PRODUCTS, operation="update")
        product.stock -= quantity_to_remove
        return product.stock

    def list_customers(self) -> List[Customer]:
        return list(self.customers.values())

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self.customers.get(customer_id)

    def add_customer(self, customer: Customer):
        self.customers[customer.id] = customer

    def create_quote(self, quote: Quote):
        self.create_calls += 1
        # Stored as row data, like the real table
        self.quotes.append(Quote.from_dict(quote.to_dict()))

    def list_quotes(self) -> List[Quote]:
        return list(self.quotes)

    def update_quote_status(self, quote_id: str, status: QuoteStatus):
        for quote in self.quotes:
            if quote.id == quote_id:
                quote.status = status
                return
        raise SupabaseError(f"Quote {quote_id} not found", table=self.TABLE_QUOTES, operation="update")

    def get_financial_config(self) -> FinancialConfig:
        return self.financial

    def save_financial_config(self, config: FinancialConfig):
        self.financial = config

    def list_fixed_assets(self) -> List[FixedAsset]:
        return list(self.fixed_assets.values())

    def save_fixed_asset(self, asset: FixedAsset):
        self.fixed_assets[asset.id] = asset

    def list_fixed_costs(self) -> List[FixedCost]:
        return list(self.fixed_costs.values())

    def save_fixed_cost(self, cost: FixedCost):
        self.fixed_costs[cost.id] = cost

    def get_vehicle_measurements(self, make: str, model: str, year: str) -> Optional[Dict[str, Any]]:
        return self.vehicle_cache.get((make, model, year))

    def save_vehicle_measurements(self, make: str, model: str, year: str, dimensions: Dict[str, Any]):
        self.vehicle_cache[(make, model, year)] = dict(dimensions)


# --- Factory ---
def get_store(use_mock: bool = False) -> SupabaseStore:
    """Store for the current environment"""
    if use_mock:
        return MockSupabaseStore()
    return SupabaseStore().connect()


if __name__ == "__main__":
    store = get_store(use_mock=True)
    store.save_product(Product(id="p1", name="Lona 440g", category="Lonas", unit_type="m2", sale_price=45.0))
    store.add_customer(Customer(id="c1", name="Padaria Central"))
    print(f"Products: {[p.name for p in store.list_products()]}")
    print(f"Customers: {[c.name for c in store.list_customers()]}")
    print(f"Financial: {store.get_financial_config().to_dict()}")
