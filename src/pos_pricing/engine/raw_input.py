"""
Canonical cart item input and the adapter that produces it.

Configurators hand over items in two incompatible shapes:

- modern: a nested ``product`` record plus ``qty``, ``dimensions``,
  ``finishings`` and ``manualPrice``;
- legacy: flat ``productId`` / ``productName`` / ``basePrice`` fields with
  ``quantity``, ``specs`` and ``priceInput``.

``normalize_call`` folds both into one frozen ``RawInput`` so the cart item
builder never needs to know where an item came from.
"""
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .dimensions import parse_number
from .errors import InputError, INVALID_PRODUCT
from .models import FinishingSelection, PricingMode, Product

# Fields the advanced product form sends at the root of its payload
_PRECOMPUTED_FIELDS = ('total_price', 'unit_price_final', 'revenue_print', 'revenue_finish', 'detail_options')


@dataclass(frozen=True)
class RawInput:
    """Normalized input contract of the cart item builder."""
    product: Optional[Product]
    qty: Any
    dimensions: Any = field(default_factory=dict)
    finishings: tuple[FinishingSelection, ...] = ()
    manual_price: Any = None
    notes: str = ""
    meta: Optional[dict] = None


def normalize_call(payload: Mapping[str, Any]) -> RawInput:
    """Fold a modern or legacy configurator payload into a ``RawInput``."""
    product_value = payload.get('product')
    if isinstance(product_value, (Product, Mapping)):
        return _from_modern(payload, product_value)
    if payload.get('productId') or payload.get('product_id'):
        return _from_legacy(payload)

    # No usable product; the builder rejects it with a field-level error
    return RawInput(
        product=None,
        qty=payload.get('qty', payload.get('quantity')),
        dimensions=dict(payload.get('dimensions') or {}),
        finishings=_finishings(payload),
        manual_price=_manual_price(payload),
        notes=_notes(payload, {}),
    )


def _from_modern(payload: Mapping[str, Any], product_value: Any) -> RawInput:
    if isinstance(product_value, Product):
        product = product_value
    else:
        mode_hint = _mode_hint(payload)
        record = dict(product_value)
        if mode_hint and not any(k in record for k in ('pricing_mode', 'pricingMode', 'pricing_model', 'calc_engine')):
            record['pricing_mode'] = mode_hint
        try:
            product = Product.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            raise InputError(INVALID_PRODUCT, f"Product record is malformed: {e}", field="product") from e

    dimensions = dict(payload.get('dimensions') or {})
    if product.pricing_mode is PricingMode.ADVANCED:
        dimensions = _merge_precomputed(payload, dimensions)

    return RawInput(
        product=product,
        qty=payload.get('qty', 1),
        dimensions=dimensions,
        finishings=_finishings(payload),
        manual_price=_manual_price(payload),
        notes=_notes(payload, dimensions),
        meta=dict(payload['meta']) if payload.get('meta') else None,
    )


def _from_legacy(payload: Mapping[str, Any]) -> RawInput:
    manual_price = _manual_price(payload)
    mode_hint = _mode_hint(payload)
    if not mode_hint:
        mode_hint = PricingMode.MANUAL if manual_price not in (None, "") else PricingMode.UNIT

    base_price = payload.get('basePrice') or payload.get('unitPrice') or 0
    product = Product(
        id=str(payload.get('productId') or payload.get('product_id') or ""),
        name=str(payload.get('productName') or payload.get('product_name') or ""),
        base_price=parse_number(base_price, 'basePrice', INVALID_PRODUCT),
        pricing_mode=PricingMode.parse(mode_hint),
    )
    dimensions = dict(payload.get('specs') or payload.get('dimensions') or {})

    return RawInput(
        product=product,
        qty=payload.get('quantity', payload.get('qty', 1)),
        dimensions=dimensions,
        finishings=_finishings(payload),
        manual_price=manual_price,
        notes=_notes(payload, dimensions),
    )


def _mode_hint(payload: Mapping[str, Any]) -> Optional[str]:
    return payload.get('pricing_mode') or payload.get('pricingType') or payload.get('logic_type')


def _manual_price(payload: Mapping[str, Any]) -> Any:
    for key in ('manual_price', 'manualPrice', 'priceInput'):
        if payload.get(key) not in (None, ""):
            return payload[key]
    return None


def _finishings(payload: Mapping[str, Any]) -> tuple[FinishingSelection, ...]:
    values = payload.get('finishings') or payload.get('selectedFinishings') or []
    return tuple(FinishingSelection.from_value(v) for v in values)


def _notes(payload: Mapping[str, Any], dimensions: Mapping[str, Any]) -> str:
    details = payload.get('selected_details') or {}
    return str(payload.get('notes') or details.get('notes') or dimensions.get('notes') or "")


def _merge_precomputed(payload: Mapping[str, Any], dimensions: dict) -> dict:
    """Pull the advanced form's totals into the dimensions payload."""
    merged = dict(dimensions)
    for key in _PRECOMPUTED_FIELDS:
        if key not in merged and payload.get(key) is not None:
            merged[key] = payload[key]
    detail = merged.get('detail_options') or {}
    if 'unit_price_final' not in merged and detail.get('unit_price_final') is not None:
        merged['unit_price_final'] = detail['unit_price_final']
    return merged
