"""
cart.py - Quote aggregation (v1.2 QuoteAggregator)

Owns the in-progress cart:
- accepts lines from any calculator in one uniform shape
- keeps a running total (items + design fee + install fee, minus discount)
- finalize() snapshots every line and persists a draft Quote

finalize() is the only operation with an external effect. It refuses to run
twice concurrently, requires a customer, validates snapshots before touching
the store and races the store call against a wall-clock timeout.
"""

import asyncio
import inspect
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from config.logging_config import PerformanceLogger

from .models import (
    FinancialConfig,
    LineItemResult,
    Product,
    Quote,
    QuoteItem,
    QuoteStatus,
    label_from_dict,
)
from .logic import compute_logistics_fee
from ..core.config import CalculatorConfig, DEFAULT_CONFIG
from ..core.exceptions import (
    DuplicateSubmissionError,
    NoCustomerSelectedError,
    QuoteTimeoutError,
    SerializationError,
    ValidationError,
)
from ..core.logging import setup_logger

logger = setup_logger(__name__)


def to_plain_data(value: Any, path: str = "$") -> Any:
    """Deep-copy value as JSON-compatible data or raise SerializationError.

    Accepted: None, bool, int, finite float, str, list/tuple and dicts with
    string keys. Anything else (objects, sets, bytes, enums, NaN) is rejected.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(f"Non-finite number at {path}", path=path)
        return value
    if isinstance(value, (list, tuple)):
        return [to_plain_data(v, f"{path}[{i}]") for i, v in enumerate(value)]
    if isinstance(value, dict):
        plain = {}
        for key, v in value.items():
            if not isinstance(key, str):
                raise SerializationError(f"Non-string key {key!r} at {path}", path=path)
            plain[key] = to_plain_data(v, f"{path}.{key}")
        return plain
    raise SerializationError(
        f"Value of type {type(value).__name__} at {path} is not plain data",
        path=path,
    )


class QuoteAggregator:
    """In-progress cart for one operator session"""

    def __init__(
        self,
        store: Any = None,
        config: Optional[CalculatorConfig] = None,
        financial: Optional[FinancialConfig] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            store: quote store exposing create_quote(quote) (sync or async)
            config: calculator constants (save timeout, down payment ratio)
            financial: snapshot source for the commission percent
            id_factory: quote id generator (default: uuid4)
        """
        self.store = store
        self.config = config or DEFAULT_CONFIG
        self.financial = financial
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.perf = PerformanceLogger(logger)

        self.items: List[QuoteItem] = []
        self.customer_id: Optional[str] = None
        self.design_fee: float = 0.0
        self.install_fee: float = 0.0
        self.discount_percent: float = 0.0
        self.deadline_days: int = 0
        self.notes: str = ""
        self.payment_method: Optional[str] = None
        self.down_payment_method: Optional[str] = "Pix"
        self.user_id: Optional[str] = None

        self.is_saving = False

    # --------------------------------------------------------
    # Cart editing
    # --------------------------------------------------------

    def add_item(
        self,
        product: Product,
        line: LineItemResult,
        requirements: Optional[Dict[str, Any]] = None,
    ) -> QuoteItem:
        """Append a calculator result; insertion order is display order"""
        item = QuoteItem(
            product_id=product.id,
            product_name=product.name,
            quantity=line.quantity,
            width=line.width,
            height=line.height,
            unit_price=line.unit_price,
            subtotal=line.subtotal,
            label_data=line.label_data,
            requirements=dict(requirements or {}),
            production_time=product.production_time_minutes,
            unit_cost=product.cost_price,
        )
        self.items.append(item)
        logger.debug(f"Cart +{product.id} subtotal={line.subtotal:.2f} ({len(self.items)} items)")
        return item

    def remove_item(self, index: int) -> QuoteItem:
        self._check_index(index)
        return self.items.pop(index)

    def override_item_price(self, index: int, price: float) -> QuoteItem:
        """Lock a line at a manual price (promo / negotiated)"""
        self._check_index(index)
        if price < 0:
            raise ValidationError("Manual price cannot be negative", field="manual_price", value=price)
        item = self.items[index]
        item.manual_price = price
        item.subtotal = price
        return item

    def set_discount(self, percent: float):
        if not 0 <= percent <= 100:
            raise ValidationError("Discount must be between 0 and 100%", field="discount", value=percent)
        self.discount_percent = percent

    def apply_logistics_fee(self, distance_km: float, financial: FinancialConfig) -> int:
        """Set install_fee from the road distance to the customer"""
        fee = compute_logistics_fee(distance_km, financial, self.config)
        self.install_fee = float(fee)
        return fee

    def clear(self):
        self.items.clear()
        self.customer_id = None
        self.design_fee = 0.0
        self.install_fee = 0.0
        self.discount_percent = 0.0
        self.notes = ""

    def _check_index(self, index: int):
        if not 0 <= index < len(self.items):
            raise ValidationError("No cart item at this position", field="index", value=index)

    # --------------------------------------------------------
    # Totals
    # --------------------------------------------------------

    def items_total(self) -> float:
        return sum(item.subtotal for item in self.items)

    def subtotal(self) -> float:
        """Items plus design and install fees, before discount"""
        return self.items_total() + self.design_fee + self.install_fee

    def discount_amount(self) -> float:
        return self.subtotal() * (self.discount_percent / 100)

    def total(self) -> float:
        if not self.discount_percent:
            return self.subtotal()
        return self.subtotal() * (1 - self.discount_percent / 100)

    def down_payment(self) -> float:
        return self.total() * self.config.down_payment_ratio

    # --------------------------------------------------------
    # Finalize
    # --------------------------------------------------------

    def snapshot_items(self) -> List[QuoteItem]:
        """Structural copies of every line; raises on non plain-data payloads"""
        snapshots = []
        for index, item in enumerate(self.items):
            try:
                label = to_plain_data(
                    item.label_data.to_dict() if item.label_data else None, "labelData"
                )
                requirements = to_plain_data(item.requirements, "requirements")
            except SerializationError as e:
                raise SerializationError(
                    f"Item {index + 1} ({item.product_name}): {e.message}",
                    item_index=index,
                    path=e.path,
                    cause=e,
                ) from e

            snapshots.append(QuoteItem(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                width=item.width,
                height=item.height,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
                label_data=label_from_dict(label),
                requirements=requirements,
                manual_price=item.manual_price,
                production_time=item.production_time,
                unit_cost=item.unit_cost,
            ))
        return snapshots

    def build_quote(self, customer_id: str, deadline_days: Optional[int] = None) -> Quote:
        items = self.snapshot_items()
        total = self.total()
        return Quote(
            id=self.id_factory(),
            date=datetime.now(timezone.utc).isoformat(),
            customer_id=customer_id,
            items=items,
            total_amount=total,
            down_payment=total * self.config.down_payment_ratio,
            design_fee=self.design_fee,
            install_fee=self.install_fee,
            status=QuoteStatus.DRAFT,
            deadline_days=self.deadline_days if deadline_days is None else deadline_days,
            discount=self.discount_percent,
            notes=self.notes,
            payment_method=self.payment_method,
            down_payment_method=self.down_payment_method,
            user_id=self.user_id,
            commission_percent=self.financial.commission_percent if self.financial else None,
        )

    async def finalize(
        self,
        customer_id: Optional[str] = None,
        deadline_days: Optional[int] = None,
    ) -> Quote:
        """Persist the cart as a draft Quote

        Args:
            customer_id: customer (default: the cart's selected customer)
            deadline_days: production deadline in business days

        Returns:
            the persisted Quote

        Raises:
            DuplicateSubmissionError: a finalize is already in flight
            NoCustomerSelectedError: no customer; nothing is persisted
            SerializationError: a line carries non plain-data; nothing is persisted
            QuoteTimeoutError: the store did not answer within the save timeout
        """
        if self.is_saving:
            raise DuplicateSubmissionError("Quote is already being saved")

        customer_id = customer_id or self.customer_id
        if not customer_id:
            raise NoCustomerSelectedError()

        self.is_saving = True
        try:
            quote = self.build_quote(customer_id, deadline_days)
            timeout = self.config.save_timeout_seconds

            with self.perf.track("finalize quote", quote_id=quote.id, customer_id=customer_id):
                try:
                    await asyncio.wait_for(self._persist(quote), timeout=timeout)
                except asyncio.TimeoutError:
                    raise QuoteTimeoutError(
                        f"Quote store did not respond within {timeout:g}s",
                        timeout_seconds=timeout,
                        details={"quote_id": quote.id},
                    ) from None

            logger.info(f"Quote {quote.id} saved: {len(quote.items)} items, total R$ {quote.total_amount:.2f}")
            return quote
        finally:
            self.is_saving = False

    async def _persist(self, quote: Quote):
        if self.store is None:
            raise ValidationError("No quote store configured", field="store", value=None)
        create = self.store.create_quote
        if inspect.iscoroutinefunction(create):
            await create(quote)
        else:
            await asyncio.to_thread(create, quote)
