"""
Transaction - the cart a cashier builds up before payment.

Holds the configuring-stage state: cart lines, discount, customer,
priority service and payment. Lines are only ever added through the cart
item builder. Once payment is confirmed the cart is locked and any
mutation raises ``CART_LOCKED``.
"""
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from ..config.settings import get_settings, Settings
from ..engine.cart_item_builder import build_cart_item
from ..engine.errors import CommitError, CART_LOCKED, EMPTY_CART, INVALID_ITEM, INVALID_PAYMENT
from ..engine.models import CartItem, PricingMode, Product
from ..engine.pricing_engine import PricingEngine
from ..engine.raw_input import RawInput, normalize_call
from .order_finalizer import CustomerSnapshot, OrderFinalizer, check_amount, order_totals

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    CART = "CART"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    POST_PAYMENT = "POST_PAYMENT"


class Priority(str, Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    URGENT = "URGENT"


# Service products for the priority fee lines
PRIORITY_SERVICES = {
    Priority.EXPRESS: ("SERVICE_EXPRESS", "Priority Service (Express)"),
    Priority.URGENT: ("SERVICE_URGENT", "Rush Service (Urgent)"),
}


class Transaction:
    """One POS transaction from first cart line to committed order."""

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[PricingEngine] = None):
        self.settings = settings or get_settings()
        self.engine = engine or PricingEngine(self.settings)
        self.finalizer = OrderFinalizer()
        self.reset()

    def reset(self):
        """Discard everything and start a fresh cart."""
        self.stage = Stage.CART
        self._items: list[CartItem] = []
        self.discount = 0.0
        self.customer: Optional[CustomerSnapshot] = None
        self.priority = Priority.STANDARD
        self.target_date: Optional[datetime] = None
        self.paid = 0.0
        self.payment_method = "CASH"
        self.is_tempo = False

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    @property
    def is_locked(self) -> bool:
        return self.stage is Stage.POST_PAYMENT

    def _ensure_editable(self):
        if self.is_locked:
            raise CommitError(CART_LOCKED, "Cart is locked after payment", field="stage", value=self.stage.value)

    # --- cart ---

    def add_item(self, payload: Union[RawInput, Mapping[str, Any]]) -> CartItem:
        """Normalize, validate and price a configurator payload into a new line."""
        self._ensure_editable()
        raw = payload if isinstance(payload, RawInput) else normalize_call(payload)
        item = build_cart_item(raw, engine=self.engine)
        self._items.append(item)
        return item

    def remove_item(self, item_id: str) -> bool:
        self._ensure_editable()
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        return len(self._items) < before

    def clear(self):
        self._ensure_editable()
        self._items = []
        self.priority = Priority.STANDARD

    def set_discount(self, amount: float):
        self._ensure_editable()
        self.discount = check_amount(amount, "discount", "Discount")

    def set_customer(self, customer: Any):
        self._ensure_editable()
        self.customer = CustomerSnapshot.from_value(customer)

    def calculate_total(self) -> tuple[float, float, float]:
        """(subtotal, discount, final amount); the discount never exceeds the subtotal."""
        return order_totals(self._items, self.discount)

    # --- priority ---

    def set_priority(self, priority: Union[Priority, str], now: Optional[datetime] = None) -> datetime:
        """
        Switch the production priority and return the new target date.

        Express finishes by the cutoff hour today when that is still ahead,
        otherwise a few hours from now. At most one fee line is in the cart.
        """
        self._ensure_editable()
        priority = Priority(priority)
        now = now or datetime.now()

        self._items = [item for item in self._items if item.product_id not in _FEE_PRODUCT_IDS]

        if priority is Priority.EXPRESS:
            cutoff = now.replace(hour=self.settings.express_cutoff_hour, minute=0, second=0, microsecond=0)
            target = cutoff if cutoff > now else now + timedelta(hours=self.settings.express_hours)
            fee = self.settings.express_fee
        elif priority is Priority.URGENT:
            target = now + timedelta(hours=self.settings.urgent_hours)
            fee = self.settings.urgent_fee
        else:
            target = now + timedelta(hours=self.settings.standard_hours)
            fee = 0.0

        if fee > 0:
            product_id, name = PRIORITY_SERVICES[priority]
            raw = RawInput(
                product=Product(id=product_id, name=name, pricing_mode=PricingMode.MANUAL),
                qty=1,
                manual_price=fee,
            )
            self._items.append(build_cart_item(raw, engine=self.engine))

        self.priority = priority
        self.target_date = target
        logger.debug("Priority set to %s, target %s", priority.value, target.isoformat())
        return target

    # --- payment ---

    def begin_payment(self):
        """Move to payment; the cart must be non-empty and hold no zero-priced line."""
        self._ensure_editable()
        if not self._items:
            raise CommitError(EMPTY_CART, "Cart is empty", field="items")
        for i, item in enumerate(self._items):
            if item.total_price <= 0:
                raise CommitError(INVALID_ITEM, f"Item {item.name} has a zero price", field=f"items[{i}].total_price")
        self.stage = Stage.AWAITING_PAYMENT

    def confirm_payment(self, amount: float = 0.0, method: str = "CASH", is_tempo: bool = False):
        """Record the payment and lock the cart. Cash payments must be above 0 unless on tempo."""
        self._ensure_editable()
        amount = check_amount(amount, "paid", "Paid amount")
        if not is_tempo and method == "CASH" and amount <= 0:
            raise CommitError(INVALID_PAYMENT, "Cash payment must be greater than 0", field="paid", value=amount)
        if self.stage is not Stage.AWAITING_PAYMENT:
            self.begin_payment()

        self.paid = amount
        self.payment_method = method
        self.is_tempo = is_tempo
        self.stage = Stage.POST_PAYMENT

    def finalize(self, operator: Any, create_order: Callable[[Any], Any]) -> Any:
        """Validate the whole cart and hand the order to ``create_order``."""
        return self.finalizer.finalize(
            create_order,
            self._items,
            self.customer,
            operator,
            discount=self.discount,
            paid=self.paid,
            payment_method=self.payment_method,
            is_tempo=self.is_tempo,
            target_date=self.target_date.isoformat(timespec='minutes') if self.target_date else None,
        )


_FEE_PRODUCT_IDS = {product_id for product_id, _ in PRIORITY_SERVICES.values()}
