"""
Cart Item Builder - the validation gate in front of every cart line.

``build_cart_item`` is the only place a ``CartItem`` is constructed. Each
step is fatal on failure:

1. product present with a non-empty id and name
2. qty parses to a positive integer within limits
3. mode-specific dimensions parse into their typed payload
4. the mode's calculation resolves a finite price
5. total and unit price are finite and greater than 0
6. the description contains the product name
"""
import logging
import math
import uuid
from typing import Optional

from ..config.settings import Settings
from .description import build_item_description, extract_finishing_names
from .dimensions import parse_dimensions, parse_quantity
from .errors import CalculationError, PricingError, INVALID_DESCRIPTION, INVALID_TOTAL
from .models import CartItem, PricingMode
from .pricing_engine import PricingEngine, require_product
from .raw_input import RawInput

logger = logging.getLogger(__name__)


def build_cart_item(
    raw: RawInput,
    settings: Optional[Settings] = None,
    engine: Optional[PricingEngine] = None,
) -> CartItem:
    """Validate and price a normalized input into a cart line."""
    engine = engine or PricingEngine(settings)
    try:
        return _build(raw, engine)
    except PricingError as e:
        logger.warning("Cart item rejected: %s (field=%s, value=%r)", e, e.field, e.value)
        raise


def _build(raw: RawInput, engine: PricingEngine) -> CartItem:
    product = require_product(raw.product)
    mode = product.pricing_mode
    qty = parse_quantity(raw.qty, engine.settings, product.min_order)
    dimensions = parse_dimensions(mode, raw.dimensions, engine.settings)

    result = engine.price(product, mode, qty, dimensions, raw.finishings, raw.manual_price)

    for name, value in (("total_price", result.subtotal), ("unit_price", result.unit_price)):
        if not math.isfinite(value) or value <= 0:
            raise CalculationError(
                INVALID_TOTAL,
                f"{product.name}: {name} must be greater than 0",
                field=name,
                value=value,
            )

    description = build_item_description(product.name, dimensions, extract_finishing_names(raw.finishings))
    if product.name.strip() not in description:
        raise CalculationError(
            INVALID_DESCRIPTION,
            "Description must contain the product name",
            field="description",
            value=description,
        )

    meta = dict(raw.meta or {})
    if mode is PricingMode.ADVANCED:
        meta.update(result.meta)
        meta["notes"] = raw.notes

    return CartItem(
        id=str(uuid.uuid4()),
        product_id=str(product.id),
        name=product.name.strip(),
        description=description,
        pricing_mode=mode,
        qty=qty,
        dimensions=dimensions,
        finishings=tuple(raw.finishings),
        unit_price=result.unit_price,
        total_price=result.subtotal,
        notes=raw.notes,
        category_id=product.category_id,
        variant_label=getattr(dimensions, 'variant_label', None) or getattr(dimensions, 'size_key', None),
        breakdown=result.breakdown,
        meta=meta or None,
    )
