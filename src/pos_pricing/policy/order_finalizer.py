"""
Order Finalization Validator - re-validates a whole cart before commit.

A single invalid item, a missing customer or a missing operator aborts the
commit: partial orders are never produced. On success the finalizer hands
an immutable ``OrderPayload`` to the persistence collaborator; it never
persists anything itself.
"""
import logging
import math
import uuid
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

from ..engine.errors import (
    CommitError,
    EMPTY_CART,
    INVALID_ITEM,
    INVALID_PAYMENT,
    MISSING_CUSTOMER,
    MISSING_OPERATOR,
    PERSISTENCE_FAILED,
)
from ..engine.models import CartItem

logger = logging.getLogger(__name__)


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    UNPAID = "UNPAID"


@dataclass(frozen=True)
class CustomerSnapshot:
    """Customer details as they stood when the order was taken."""
    name: str
    phone: str = ""
    address: str = ""
    id: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional['CustomerSnapshot']:
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, Mapping):
            return cls(
                name=str(value.get('name') or ""),
                phone=str(value.get('phone') or value.get('whatsapp') or ""),
                address=str(value.get('address') or ""),
                id=value.get('id'),
            )
        raise CommitError(MISSING_CUSTOMER, "Unsupported customer value", field="customer", value=repr(value))


@dataclass(frozen=True)
class Operator:
    """The cashier or CS attributed with the order."""
    name: str
    id: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional['Operator']:
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, Mapping):
            return cls(name=str(value.get('name') or ""), id=value.get('id'))
        raise CommitError(MISSING_OPERATOR, "Unsupported operator value", field="operator", value=repr(value))


@dataclass(frozen=True)
class OrderPayload:
    """Immutable order handed to the persistence collaborator."""
    items: tuple[Mapping[str, Any], ...]
    subtotal: float
    discount: float
    total: float
    paid: float
    remaining: float
    payment_status: PaymentStatus
    payment_method: str
    is_tempo: bool
    customer: CustomerSnapshot
    received_by: str
    meta: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    target_date: Optional[str] = None
    source: str = "OFFLINE"
    created_at: str = ""

    def to_dict(self) -> dict:
        """Plain, mutable copy for serialization."""
        data = {f.name: _thaw(getattr(self, f.name)) for f in fields(self)}
        data['customer'] = asdict(self.customer)
        data['payment_status'] = self.payment_status.value
        return data


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def check_amount(value: Any, field_name: str, label: str) -> float:
    """A money amount that is a finite, non-negative number; bools and strings are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise CommitError(INVALID_PAYMENT, f"{label} must be a non-negative number", field=field_name, value=value)
    return float(value)


def derive_payment_status(total: float, paid: float, is_tempo: bool = False) -> PaymentStatus:
    """PAID when paid covers total, PARTIAL when something was paid. Tempo is always UNPAID."""
    if is_tempo:
        return PaymentStatus.UNPAID
    if paid >= total:
        return PaymentStatus.PAID
    if paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def order_totals(items: Iterable[CartItem], discount: float = 0.0) -> tuple[float, float, float]:
    """(subtotal, applied discount, final amount) with the discount clamped to [0, subtotal]."""
    subtotal = sum(item.total_price for item in items)
    safe_discount = min(max(discount or 0.0, 0.0), subtotal)
    return subtotal, safe_discount, max(0.0, subtotal - safe_discount)


def _line(item: CartItem, index: int) -> dict:
    dimensions = asdict(item.dimensions) if item.dimensions is not None else {}
    return {
        "product_id": item.product_id or f"MANUAL_{index}",
        "product_name": item.name,
        "quantity": item.qty,
        "price": item.unit_price,
        "subtotal": item.total_price,
        "metadata": {
            "original_name": item.name,
            "description": item.description,
            "pricing_mode": item.pricing_mode.value,
            "specs_json": dimensions,
            "finishing_list": [f.to_dict() for f in item.finishings],
            "notes": item.notes or "",
            "variant_label": item.variant_label,
            "category_id": item.category_id,
            "financials": item.meta,
        },
    }


class OrderFinalizer:
    """Validates a cart plus order metadata and builds the commit payload."""

    def validate(
        self,
        items: Iterable[CartItem],
        customer: Optional[CustomerSnapshot],
        operator: Optional[Operator],
    ) -> list[CartItem]:
        items = list(items or [])

        if not items:
            raise CommitError(EMPTY_CART, "Cart is empty", field="items")
        if operator is None or not operator.name.strip():
            raise CommitError(MISSING_OPERATOR, "Operator is required for audit attribution", field="operator")
        if customer is None or not customer.name.strip():
            raise CommitError(MISSING_CUSTOMER, "Customer name is required", field="customer.name")

        for i, item in enumerate(items):
            if not isinstance(item, CartItem):
                raise CommitError(INVALID_ITEM, f"Item {i} is not a built cart item", field=f"items[{i}]", value=repr(item))
            if not item.name or not item.name.strip():
                raise CommitError(INVALID_ITEM, f"Item {i} has no name", field=f"items[{i}].name")
            if not item.description or not item.description.strip():
                raise CommitError(INVALID_ITEM, f"Item {i} has no description", field=f"items[{i}].description")
            if not isinstance(item.total_price, (int, float)) or not math.isfinite(item.total_price) or item.total_price <= 0:
                raise CommitError(
                    INVALID_ITEM,
                    f"Item {i} ({item.name}) has an invalid total",
                    field=f"items[{i}].total_price",
                    value=item.total_price,
                )
        return items

    def build_payload(
        self,
        items: Iterable[CartItem],
        customer: Any,
        operator: Any,
        discount: float = 0.0,
        paid: float = 0.0,
        payment_method: str = "CASH",
        is_tempo: bool = False,
        target_date: Optional[str] = None,
        source: str = "OFFLINE",
        now: Optional[datetime] = None,
    ) -> OrderPayload:
        """Validate everything, then derive totals and payment status."""
        customer = CustomerSnapshot.from_value(customer)
        operator = Operator.from_value(operator)
        items = self.validate(items, customer, operator)

        discount = check_amount(discount, "discount", "Discount")
        paid = check_amount(paid, "paid", "Paid amount")

        subtotal, safe_discount, total = order_totals(items, discount)
        if is_tempo:
            paid = 0.0

        return OrderPayload(
            items=tuple(_freeze(_line(item, i)) for i, item in enumerate(items)),
            subtotal=subtotal,
            discount=safe_discount,
            total=total,
            paid=paid,
            remaining=max(0.0, total - paid),
            payment_status=derive_payment_status(total, paid, is_tempo),
            payment_method=payment_method or "CASH",
            is_tempo=is_tempo,
            customer=CustomerSnapshot(
                name=customer.name.strip(),
                phone=customer.phone or "-",
                address=customer.address or "-",
                id=customer.id,
            ),
            received_by=operator.name,
            meta=_freeze({"created_by": operator.name, "operator_id": operator.id, "temp_id": str(uuid.uuid4())}),
            target_date=target_date,
            source=source,
            created_at=(now or datetime.now()).isoformat(),
        )

    def finalize(self, create_order: Callable[[OrderPayload], Any], *args, **kwargs) -> Any:
        """Build the payload and hand it to ``create_order``. A None response is a failed commit."""
        payload = self.build_payload(*args, **kwargs)
        logger.info(
            "Committing order %s: %d items, total %s, %s",
            payload.meta["temp_id"], len(payload.items), payload.total, payload.payment_status.value,
        )
        order = create_order(payload)
        if order is None:
            raise CommitError(PERSISTENCE_FAILED, "Order creation returned no order", field="order")
        return order
