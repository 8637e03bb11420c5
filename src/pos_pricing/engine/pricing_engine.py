"""
Pricing Engine - unified dispatcher over the nine pricing modes.

One calculation core, two call modes:

- strict: every unresolvable input or price raises a typed ``PricingError``;
  this is what the cart item builder uses.
- preview: the same calculation, but any rejection degrades to a zero
  result so a live price display never throws mid-configuration.

Each mode has a handler that resolves catalog prices for the product
(variants, matrix tables, print modes, wholesale tiers), composes finishing
under the mode's accrual rule and calls the matching pure calculator.
"""
import logging
import math
from typing import Any, Callable, Iterable, Optional

from ..config.settings import get_settings, Settings
from . import calculators
from .dimensions import (
    AreaDimensions,
    BookletDimensions,
    Dimensions,
    LinearDimensions,
    ManualDimensions,
    MatrixDimensions,
    PrecomputedPrice,
    SheetDimensions,
    UnitDimensions,
    parse_dimensions,
    parse_number,
    parse_quantity,
)
from .errors import (
    CalculationError,
    InputError,
    PricingError,
    INVALID_MANUAL_PRICE,
    INVALID_PRODUCT,
    INVALID_TOTAL,
    UNRESOLVED_PRICE,
)
from .finishing import compose_finishing_cost
from .models import CalcContext, FinishingSelection, PriceResult, PricingMode, Product
from .raw_input import RawInput

logger = logging.getLogger(__name__)


def require_product(product: Any) -> Product:
    """A product must be present with a non-empty id and name."""
    if not isinstance(product, Product):
        raise InputError(INVALID_PRODUCT, "Product data is missing or invalid", field="product", value=repr(product))
    if not product.id or not str(product.id).strip():
        raise InputError(INVALID_PRODUCT, "Product id is required", field="product.id", value=product.id)
    if not product.name or not product.name.strip():
        raise InputError(INVALID_PRODUCT, "Product name is required", field="product.name", value=product.name)
    return product


def _unresolved(product: Product, field: str, value: Any, reason: str) -> CalculationError:
    return CalculationError(UNRESOLVED_PRICE, f"{product.name}: {reason}", field=field, value=value)


def _variant_price(product: Product, label: Optional[str]) -> Optional[float]:
    variant = product.find_variant(label)
    if variant is not None and variant.price:
        return variant.price
    return None


def _price_area(product, qty, dims: AreaDimensions, finishings, manual_price, settings) -> PriceResult:
    unit_area_price = _variant_price(product, dims.variant_label) or product.base_price
    if not unit_area_price or unit_area_price <= 0:
        raise _unresolved(product, "base_price", unit_area_price, "no price per square meter")

    result = calculators.calculate_area_price(dims.length, dims.width, unit_area_price, qty)
    if finishings:
        # Area finishing is never charged, whatever the selection says
        result.add_trace("Finishing", "Not charged for area pricing", "0")
    result.finishing_cost = compose_finishing_cost(PricingMode.AREA, finishings)
    return result


def _price_linear(product, qty, dims: LinearDimensions, finishings, manual_price, settings) -> PriceResult:
    finishing = compose_finishing_cost(PricingMode.LINEAR, finishings, length=dims.length)
    variant = product.find_variant(dims.variant_label)

    if variant is not None and variant.price_per_meter:
        # Rolled goods: the variant's per-meter price, width plays no part
        result = calculators.calculate_linear_price(dims.length, variant.price_per_meter, qty, finishing)
        result.add_trace("Rolled Goods", f"Variant {variant.label}", calculators.format_amount(variant.price_per_meter))
        return result

    unit_length_price = (variant.price if variant is not None and variant.price else None) or product.base_price
    if not unit_length_price or unit_length_price <= 0:
        raise _unresolved(product, "base_price", unit_length_price, "no price per meter")
    return calculators.calculate_linear_price(dims.length, unit_length_price, qty, finishing)


def _price_matrix(product, qty, dims: MatrixDimensions, finishings, manual_price, settings) -> PriceResult:
    price = None
    variant = product.find_variant_for_size(dims.size_key)
    if variant is not None and variant.price_list and dims.material:
        price = calculators.resolve_matrix_price({dims.size_key: variant.price_list}, dims.size_key, dims.material)
    if price is None:
        price = calculators.resolve_matrix_price(product.matrix_prices, dims.size_key, dims.material)
    if price is None:
        label = f"{dims.size_key} / {dims.material}" if dims.material else dims.size_key
        raise _unresolved(product, "size_key", dims.size_key, f"no matrix price for {label}")

    finishing = compose_finishing_cost(PricingMode.MATRIX, finishings)
    return calculators.calculate_matrix_price(dims.size_key, price, qty, finishing)


def _price_booklet(product, qty, dims: BookletDimensions, finishings, manual_price, settings) -> PriceResult:
    paper_price = _variant_price(product, dims.variant_label) or product.base_price or 0.0

    print_price = 0.0
    if dims.print_mode_id:
        print_mode = product.find_print_mode(dims.print_mode_id)
        if print_mode is None:
            raise _unresolved(product, "print_mode_id", dims.print_mode_id, f"unknown print mode {dims.print_mode_id}")
        print_price = print_mode.price

    finishing = compose_finishing_cost(PricingMode.BOOKLET, finishings, sheets_per_book=dims.sheets_per_book)
    return calculators.calculate_booklet_price(paper_price, print_price, dims.sheets_per_book, finishing, qty)


def _price_unit(product, qty, dims: UnitDimensions, finishings, manual_price, settings) -> PriceResult:
    base_price = _variant_price(product, dims.variant_label) or product.base_price
    finishing = compose_finishing_cost(PricingMode.UNIT, finishings)
    return calculators.calculate_unit_price(base_price, finishing, qty)


def _price_tiered(product, qty, dims: UnitDimensions, finishings, manual_price, settings) -> PriceResult:
    finishing = compose_finishing_cost(PricingMode.TIERED, finishings)
    return calculators.calculate_tiered_price(qty, product.wholesale_rules, product.base_price, finishing)


def _price_unit_sheet(product, qty, dims: SheetDimensions, finishings, manual_price, settings) -> PriceResult:
    base_price = _variant_price(product, dims.variant_label) or product.base_price
    finishing = compose_finishing_cost(PricingMode.UNIT_SHEET, finishings)
    return calculators.calculate_unit_sheet_price(base_price, dims.cutting_cost, finishing, qty)


def _price_manual(product, qty, dims: ManualDimensions, finishings, manual_price, settings) -> PriceResult:
    price = parse_number(manual_price, "manual_price", INVALID_MANUAL_PRICE)
    finishing = compose_finishing_cost(PricingMode.MANUAL, finishings)
    return calculators.calculate_manual_price(price, finishing, qty)


def _price_advanced(product, qty, dims: PrecomputedPrice, finishings, manual_price, settings) -> PriceResult:
    result = calculators.calculate_advanced_price(dims.total_price, dims.unit_price, qty, settings.price_tolerance)
    result.meta = {
        "revenue_print": dims.revenue_print,
        "revenue_finish": dims.revenue_finish,
        "detail_options": dims.detail_options,
    }
    return result


Handler = Callable[..., PriceResult]

_HANDLERS: dict[PricingMode, Handler] = {
    PricingMode.AREA: _price_area,
    PricingMode.LINEAR: _price_linear,
    PricingMode.MATRIX: _price_matrix,
    PricingMode.BOOKLET: _price_booklet,
    PricingMode.UNIT: _price_unit,
    PricingMode.TIERED: _price_tiered,
    PricingMode.UNIT_SHEET: _price_unit_sheet,
    PricingMode.MANUAL: _price_manual,
    PricingMode.ADVANCED: _price_advanced,
}

_unhandled = set(PricingMode) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"No pricing handler for modes: {sorted(m.value for m in _unhandled)}")


class PricingEngine:
    """
    Core pricing engine shared by live preview and the cart item builder.

    Resolution order for a raw input:
    1. Product present with id and name
    2. Pricing mode from the product
    3. Quantity parsed to a positive integer within limits
    4. Dimensions parsed into the mode's typed payload
    5. Mode handler: catalog price lookup, finishing, calculator
    6. Subtotal and unit price must be finite
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def calculate(self, raw: RawInput, context: CalcContext = CalcContext.STRICT) -> PriceResult:
        """Price a raw input under the given error policy."""
        if context is CalcContext.PREVIEW:
            try:
                return self._calculate(raw)
            except PricingError as e:
                logger.warning("Preview degraded to zero: %s", e)
                result = PriceResult.zero()
                result.add_trace("Rejected", e.message, e.code)
                return result
        return self._calculate(raw)

    def preview(self, raw: RawInput) -> PriceResult:
        """Live price for a configuration in progress; never raises."""
        return self.calculate(raw, CalcContext.PREVIEW)

    def _calculate(self, raw: RawInput) -> PriceResult:
        product = require_product(raw.product)
        mode = product.pricing_mode
        qty = parse_quantity(raw.qty, self.settings, product.min_order)
        dimensions = parse_dimensions(mode, raw.dimensions, self.settings)
        return self.price(product, mode, qty, dimensions, raw.finishings, raw.manual_price)

    def price(
        self,
        product: Product,
        mode: PricingMode,
        qty: int,
        dimensions: Dimensions,
        finishings: Iterable[FinishingSelection] = (),
        manual_price: Any = None,
    ) -> PriceResult:
        """Price already-parsed inputs. Always strict."""
        finishings = list(finishings or [])
        result = _HANDLERS[mode](product, qty, dimensions, finishings, manual_price, self.settings)

        if not math.isfinite(result.subtotal) or not math.isfinite(result.unit_price):
            raise CalculationError(
                INVALID_TOTAL,
                f"{product.name}: calculation did not produce a finite price",
                field="total_price",
                value=result.subtotal,
            )

        logger.debug(
            "Priced %s (%s) qty=%s subtotal=%s unit=%s",
            product.id, mode.value, qty, result.subtotal, result.unit_price,
        )
        return result
