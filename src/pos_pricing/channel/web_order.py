"""
Web Order Adapter - translates web channel orders into the core's input.

The web catalog describes a product by its form type (CALCULATOR, UNIT,
MATRIX) rather than a pricing mode, and sends loosely typed spec snapshots.
This adapter:

1. derives the pricing mode from the form type and display config
2. normalizes the snapshot into the dimensions shape the builder expects
3. lifts finishing selections into canonical ``FinishingSelection``s
4. checks required fields and declared numeric ranges
5. produces a ``RawInput`` with the product built from the descriptor

It depends on the pricing mode vocabulary only, never on the builder.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config.settings import get_settings, Settings
from ..engine.errors import (
    ChannelValidationError,
    ABOVE_MAXIMUM,
    BELOW_MINIMUM,
    INVALID_FIELD,
    MISSING_FIELD,
)
from ..engine.models import FinishingGroup, FinishingSelection, PriceMode, PricingMode, Product
from ..engine.raw_input import RawInput

logger = logging.getLogger(__name__)


class DisplayConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    fixed_width: bool = False
    show_price_tiers: bool = False


class FieldConstraint(BaseModel):
    """Declared numeric range for one channel input."""
    model_config = ConfigDict(extra="allow")

    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = None


class InputOption(BaseModel):
    model_config = ConfigDict(extra="allow")

    value: str
    label: Optional[str] = None


class CatalogDescriptor(BaseModel):
    """How the web catalog presents one POS product."""
    model_config = ConfigDict(extra="allow")

    form_type: str = "UNIT"
    display_config: DisplayConfig = Field(default_factory=DisplayConfig)
    # Explicit pricing mode of the mapped POS product, overrides derivation
    pricing_mode: Optional[str] = None

    pos_product_id: Optional[str] = None
    web_display_name: Optional[str] = None
    master_price: float = 0.0
    category_id: Optional[str] = None
    fixed_width: Optional[float] = None

    required_inputs: list[str] = Field(default_factory=list)
    validation_rules: dict[str, FieldConstraint] = Field(default_factory=dict)
    input_options: dict[str, list[InputOption]] = Field(default_factory=dict)

    wholesale_rules: list[dict] = Field(default_factory=list)
    finishing_groups: list[dict] = Field(default_factory=list)
    variants: list[dict] = Field(default_factory=list)
    matrix_prices: dict[str, Any] = Field(default_factory=dict)
    print_modes: list[dict] = Field(default_factory=list)

    def default_option(self, name: str) -> Optional[str]:
        """First declared option for an input, used when the customer left it blank."""
        options = self.input_options.get(name) or []
        return options[0].value if options else None


class WebOrder(BaseModel):
    """An order as received from the web channel."""
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    product_code: Optional[str] = None
    specs_snapshot: dict[str, Any] = Field(default_factory=dict)
    notes_customer: Optional[str] = None
    quoted_amount: float = 0.0


@dataclass
class NormalizedSpecs:
    """Channel specs after coercion, in the builder's dimensions shape."""
    dimensions: dict
    qty: Any
    summary: str
    manual_price: Any = None
    # channel-named values, for required and range checks
    inputs: dict = field(default_factory=dict)


def _validation_error(e: ValidationError, what: str) -> ChannelValidationError:
    first = e.errors()[0]
    location = ".".join(str(part) for part in first.get('loc', ())) or what
    return ChannelValidationError(INVALID_FIELD, f"{what}: {first.get('msg')}", field=location, value=first.get('input'))


def load_descriptor(value: Union[CatalogDescriptor, Mapping[str, Any]]) -> CatalogDescriptor:
    if isinstance(value, CatalogDescriptor):
        return value
    try:
        return CatalogDescriptor.model_validate(dict(value or {}))
    except ValidationError as e:
        raise _validation_error(e, "catalog descriptor") from e


def load_web_order(value: Union[WebOrder, Mapping[str, Any]]) -> WebOrder:
    if isinstance(value, WebOrder):
        return value
    try:
        return WebOrder.model_validate(dict(value or {}))
    except ValidationError as e:
        raise _validation_error(e, "web order") from e


def derive_mode(form_type: Optional[str], display_config: Any = None) -> PricingMode:
    """Map a web form type to a pricing mode; unknown forms price as UNIT."""
    if isinstance(display_config, DisplayConfig):
        config = display_config.model_dump()
    else:
        config = dict(display_config or {})

    if form_type == "CALCULATOR":
        return PricingMode.LINEAR if config.get('fixed_width') is True else PricingMode.AREA
    if form_type == "UNIT":
        return PricingMode.TIERED if config.get('show_price_tiers') is True else PricingMode.UNIT
    if form_type == "MATRIX":
        return PricingMode.MATRIX
    return PricingMode.UNIT


def resolve_mode(descriptor: CatalogDescriptor) -> PricingMode:
    if descriptor.pricing_mode:
        return PricingMode.parse(descriptor.pricing_mode)
    return derive_mode(descriptor.form_type, descriptor.display_config)


# --- value coercion ---

def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _number(inputs: Mapping[str, Any], name: str) -> Optional[float]:
    """Channel number or None when absent. Unparsable values are rejected."""
    value = inputs.get(name)
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise ChannelValidationError(INVALID_FIELD, f"{name} must be a number", field=name, value=value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ChannelValidationError(INVALID_FIELD, f"{name} must be a number", field=name, value=value) from None
    if not math.isfinite(number):
        raise ChannelValidationError(INVALID_FIELD, f"{name} must be a finite number", field=name, value=value)
    return number


def _choice(inputs: Mapping[str, Any], name: str, descriptor: CatalogDescriptor, *aliases: str) -> Optional[str]:
    for key in (name,) + aliases:
        if not _blank(inputs.get(key)):
            return str(inputs[key]).strip()
    return descriptor.default_option(name)


def _qty(inputs: Mapping[str, Any], *names: str, default: Any = 1) -> Any:
    for name in names:
        if not _blank(inputs.get(name)):
            return inputs[name]
    return default


def _fmt(value: Optional[float]) -> str:
    return "?" if value is None else f"{value:g}"


# --- per-mode normalizers ---

def _normalize_area(inputs, descriptor, settings) -> NormalizedSpecs:
    length, width = _number(inputs, 'length'), _number(inputs, 'width')
    material = _choice(inputs, 'material', descriptor)
    area = (length or 0) * (width or 0)
    return NormalizedSpecs(
        dimensions={"length": length, "width": width, "material": material, "variant_label": material},
        qty=_qty(inputs, 'qty'),
        summary=f"{_fmt(length)}m × {_fmt(width)}m ({area:.2f}m²) • {material or 'Material TBD'}",
        inputs={"length": length, "width": width, "area": area, "material": material},
    )


def _normalize_linear(inputs, descriptor, settings) -> NormalizedSpecs:
    length = _number(inputs, 'length')
    # Rolls have a fixed width; whatever the customer typed is ignored
    width = descriptor.fixed_width or settings.default_roll_width
    material = _choice(inputs, 'material', descriptor)
    return NormalizedSpecs(
        dimensions={"length": length, "width": width, "material": material, "variant_label": material},
        qty=_qty(inputs, 'qty'),
        summary=f"{_fmt(length)}m • {material or 'Material TBD'} • width {width:g}m",
        inputs={"length": length, "width": width, "material": material},
    )


def _normalize_matrix(inputs, descriptor, settings) -> NormalizedSpecs:
    size = _choice(inputs, 'size', descriptor, 'size_key')
    material = _choice(inputs, 'material', descriptor)
    qty = _qty(inputs, 'qty')
    return NormalizedSpecs(
        dimensions={"size_key": size, "material": material},
        qty=qty,
        summary=f"{size or 'Size TBD'} • {material or 'Material TBD'}",
        inputs={"size": size, "material": material, "qty": qty},
    )


def _normalize_booklet(inputs, descriptor, settings) -> NormalizedSpecs:
    sheets = _number(inputs, 'sheets')
    paper_type = _choice(inputs, 'paper_type', descriptor)
    print_mode = _choice(inputs, 'print_mode', descriptor)
    qty_books = _qty(inputs, 'qty_books', 'qty')
    return NormalizedSpecs(
        dimensions={"sheets_per_book": sheets, "variant_label": paper_type, "print_mode_id": print_mode},
        qty=qty_books,
        summary=f"{_fmt(sheets)} sheets • {paper_type} • {print_mode} • {qty_books} books",
        inputs={"sheets": sheets, "paper_type": paper_type, "print_mode": print_mode, "qty_books": qty_books},
    )


def _normalize_unit(inputs, descriptor, settings) -> NormalizedSpecs:
    variant = _choice(inputs, 'variant', descriptor)
    qty = _qty(inputs, 'qty')
    return NormalizedSpecs(
        dimensions={"variant_label": variant},
        qty=qty,
        summary=f"{variant or descriptor.web_display_name or ''} × {qty} pcs",
        inputs={"variant": variant, "qty": qty},
    )


def _normalize_tiered(inputs, descriptor, settings) -> NormalizedSpecs:
    # Tier lookup needs a real quantity, so there is no default
    qty = _qty(inputs, 'qty', default=None)
    variant = _choice(inputs, 'paper_type', descriptor, 'variant')
    return NormalizedSpecs(
        dimensions={"variant_label": variant},
        qty=qty,
        summary=f"{qty} pcs" + (f" • {variant}" if variant else ""),
        inputs={"qty": qty, "variant": variant},
    )


def _normalize_unit_sheet(inputs, descriptor, settings) -> NormalizedSpecs:
    sheet_size = _choice(inputs, 'sheet_size', descriptor)
    cutting_type = _choice(inputs, 'cutting_type', descriptor) or "KISS_CUT"
    cutting_cost = _number(inputs, 'cutting_cost') or 0.0
    qty = _qty(inputs, 'qty')
    return NormalizedSpecs(
        dimensions={"sheet_size": sheet_size, "cutting_type": cutting_type, "cutting_cost": cutting_cost},
        qty=qty,
        summary=f"{qty} sheets {sheet_size} • {cutting_type}",
        inputs={"sheet_size": sheet_size, "qty": qty, "cutting_type": cutting_type, "cutting_cost": cutting_cost},
    )


def _normalize_manual(inputs, descriptor, settings) -> NormalizedSpecs:
    description = _choice(inputs, 'description', descriptor) or descriptor.web_display_name
    manual_price = _number(inputs, 'manual_price')
    qty = _qty(inputs, 'qty')
    return NormalizedSpecs(
        dimensions={"description": description},
        qty=qty,
        summary=description or "",
        manual_price=manual_price,
        inputs={"description": description, "qty": qty, "manual_price": manual_price},
    )


def _normalize_advanced(inputs, descriptor, settings) -> NormalizedSpecs:
    total = _number(inputs, 'total_price')
    unit = _number(inputs, 'unit_price_final') or _number(inputs, 'unit_price')
    qty = _qty(inputs, 'qty')
    return NormalizedSpecs(
        dimensions={
            "total_price": total,
            "unit_price_final": unit,
            "revenue_print": _number(inputs, 'revenue_print') or 0.0,
            "revenue_finish": _number(inputs, 'revenue_finish') or 0.0,
            "detail_options": inputs.get('detail_options'),
        },
        qty=qty,
        summary=f"Precomputed total {_fmt(total)}",
        inputs={"total_price": total, "unit_price_final": unit, "qty": qty},
    )


Normalizer = Callable[[Mapping[str, Any], CatalogDescriptor, Settings], NormalizedSpecs]

_NORMALIZERS: dict[PricingMode, Normalizer] = {
    PricingMode.AREA: _normalize_area,
    PricingMode.LINEAR: _normalize_linear,
    PricingMode.MATRIX: _normalize_matrix,
    PricingMode.BOOKLET: _normalize_booklet,
    PricingMode.UNIT: _normalize_unit,
    PricingMode.TIERED: _normalize_tiered,
    PricingMode.UNIT_SHEET: _normalize_unit_sheet,
    PricingMode.MANUAL: _normalize_manual,
    PricingMode.ADVANCED: _normalize_advanced,
}

_unhandled = set(PricingMode) - set(_NORMALIZERS)
if _unhandled:
    raise RuntimeError(f"No channel normalizer for modes: {sorted(m.value for m in _unhandled)}")


def normalize_specs(
    mode: PricingMode,
    raw: Optional[Mapping[str, Any]],
    descriptor: Union[CatalogDescriptor, Mapping[str, Any]],
    settings: Optional[Settings] = None,
) -> NormalizedSpecs:
    """Coerce a channel spec snapshot into the builder's dimensions for ``mode``."""
    descriptor = load_descriptor(descriptor)
    return _NORMALIZERS[mode](dict(raw or {}), descriptor, settings or get_settings())


def lift_finishings(
    raw: Any,
    descriptor: Optional[Union[CatalogDescriptor, Mapping[str, Any]]] = None,
) -> tuple[FinishingSelection, ...]:
    """
    Canonicalize channel finishing selections.

    Objects keep their own price and mode. Bare ids are resolved against the
    descriptor's finishing groups; unknown ids are carried at price 0.
    """
    if not isinstance(raw, (list, tuple)):
        return ()

    groups = []
    if descriptor is not None:
        groups = [FinishingGroup.from_dict(g) for g in load_descriptor(descriptor).finishing_groups]

    lifted = []
    for value in raw:
        if isinstance(value, Mapping) and value.get('id'):
            lifted.append(FinishingSelection.from_value(dict(value)))
        elif isinstance(value, str) and value.strip():
            lifted.append(_resolve_finishing_id(value.strip(), groups))
        else:
            logger.debug("Dropping unrecognized finishing entry %r", value)
    return tuple(lifted)


def _resolve_finishing_id(finishing_id: str, groups: list[FinishingGroup]) -> FinishingSelection:
    for group in groups:
        option = group.find_option(finishing_id)
        if option is not None:
            return FinishingSelection(id=finishing_id, name=option.label, price=option.price, price_mode=group.price_mode)
    return FinishingSelection(id=finishing_id, name=finishing_id, price=0.0, price_mode=PriceMode.PER_UNIT)


def validate_specs(specs: NormalizedSpecs, descriptor: Union[CatalogDescriptor, Mapping[str, Any]]) -> None:
    """Required inputs present, numeric inputs inside their declared ranges."""
    descriptor = load_descriptor(descriptor)
    values = {**specs.dimensions, **specs.inputs}

    for name in descriptor.required_inputs:
        if _blank(values.get(name)):
            raise ChannelValidationError(MISSING_FIELD, f"Required field missing: {name}", field=name)

    for name, constraint in descriptor.validation_rules.items():
        value = values.get(name)
        if _blank(value) or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue

        unit = f" {constraint.unit}" if constraint.unit else ""
        if constraint.min is not None and number < constraint.min:
            raise ChannelValidationError(
                BELOW_MINIMUM,
                f"{name} below minimum: {constraint.min:g}{unit}",
                field=name,
                value=value,
                constraint=f"min {constraint.min:g}{unit}",
            )
        if constraint.max is not None and number > constraint.max:
            raise ChannelValidationError(
                ABOVE_MAXIMUM,
                f"{name} exceeds maximum: {constraint.max:g}{unit}",
                field=name,
                value=value,
                constraint=f"max {constraint.max:g}{unit}",
            )


def build_product(descriptor: CatalogDescriptor, mode: PricingMode) -> Product:
    """The POS product behind a catalog descriptor, priced under ``mode``."""
    if _blank(descriptor.pos_product_id):
        raise ChannelValidationError(MISSING_FIELD, "Catalog descriptor has no pos_product_id", field="pos_product_id")
    try:
        return Product.from_dict({
            "id": descriptor.pos_product_id,
            "name": descriptor.web_display_name or "",
            "base_price": descriptor.master_price,
            "pricing_mode": mode,
            "category_id": descriptor.category_id,
            "variants": descriptor.variants,
            "wholesale_rules": descriptor.wholesale_rules,
            "matrix_prices": descriptor.matrix_prices,
            "print_modes": descriptor.print_modes,
            "finishing_groups": descriptor.finishing_groups,
        })
    except (KeyError, TypeError, ValueError) as e:
        raise ChannelValidationError(INVALID_FIELD, f"Catalog descriptor is malformed: {e}", field="descriptor") from e


def to_raw_input(
    web_order: Union[WebOrder, Mapping[str, Any]],
    descriptor: Union[CatalogDescriptor, Mapping[str, Any]],
    settings: Optional[Settings] = None,
) -> RawInput:
    """Derive, normalize, lift and validate a web order into the builder's input."""
    order = load_web_order(web_order)
    descriptor = load_descriptor(descriptor)

    mode = resolve_mode(descriptor)
    specs = normalize_specs(mode, order.specs_snapshot, descriptor, settings)
    finishings = lift_finishings(order.specs_snapshot.get('finishing'), descriptor)
    validate_specs(specs, descriptor)
    product = build_product(descriptor, mode)

    logger.debug("Web order %s normalized as %s: %s", order.id, mode.value, specs.summary)
    return RawInput(
        product=product,
        qty=specs.qty,
        dimensions=specs.dimensions,
        finishings=finishings,
        manual_price=specs.manual_price,
        notes=order.notes_customer or "Web Order",
        meta={
            "source": "WEB",
            "web_order_id": order.id,
            "product_code": order.product_code,
            "summary": specs.summary,
            "web_estimate": order.quoted_amount,
        },
    )
