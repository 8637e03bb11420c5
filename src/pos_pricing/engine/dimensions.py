"""
Mode-specific dimension payloads and their parsers.

Dimensions are never validated generically: each pricing mode has its own
payload and its own required fields. Raw operator input arrives as a loose
dict in either camelCase or snake_case; ``parse_dimensions`` turns it into
the typed payload for the mode or raises an ``InputError`` naming the field.
"""
import math
from dataclasses import dataclass, asdict
from typing import Any, Mapping, Optional, Union

from ..config.settings import Settings
from .errors import InputError, INVALID_DIMENSION, INVALID_QTY
from .models import PricingMode


@dataclass(frozen=True)
class AreaDimensions:
    length: float
    width: float
    variant_label: Optional[str] = None
    material: Optional[str] = None


@dataclass(frozen=True)
class LinearDimensions:
    length: float
    width: Optional[float] = None
    variant_label: Optional[str] = None
    material: Optional[str] = None


@dataclass(frozen=True)
class MatrixDimensions:
    size_key: str
    material: Optional[str] = None


@dataclass(frozen=True)
class BookletDimensions:
    sheets_per_book: int
    print_mode_id: Optional[str] = None
    variant_label: Optional[str] = None


@dataclass(frozen=True)
class UnitDimensions:
    variant_label: Optional[str] = None


@dataclass(frozen=True)
class SheetDimensions:
    cutting_cost: float = 0.0
    cutting_type: Optional[str] = None
    sheet_size: Optional[str] = None
    variant_label: Optional[str] = None


@dataclass(frozen=True)
class ManualDimensions:
    description: Optional[str] = None


@dataclass(frozen=True)
class PrecomputedPrice:
    """Totals computed upstream by the advanced product form."""
    total_price: float
    unit_price: float
    revenue_print: float = 0.0
    revenue_finish: float = 0.0
    detail_options: Optional[dict] = None


Dimensions = Union[
    AreaDimensions,
    LinearDimensions,
    MatrixDimensions,
    BookletDimensions,
    UnitDimensions,
    SheetDimensions,
    ManualDimensions,
    PrecomputedPrice,
]


def _pick(raw: Mapping[str, Any], *names: str) -> Any:
    """First non-empty value among the given spellings."""
    for name in names:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_number(value: Any, field: str, code: str = INVALID_DIMENSION) -> float:
    """Parse a finite number, rejecting booleans and blanks."""
    if value is None or value == "" or isinstance(value, bool):
        raise InputError(code, f"{field} is required", field=field, value=value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InputError(code, f"{field} must be a number", field=field, value=value) from None
    if not math.isfinite(number):
        raise InputError(code, f"{field} must be a finite number", field=field, value=value)
    return number


def parse_positive_number(
    value: Any,
    field: str,
    maximum: Optional[float] = None,
    code: str = INVALID_DIMENSION,
) -> float:
    number = parse_number(value, field, code)
    if number <= 0:
        raise InputError(code, f"{field} must be greater than 0", field=field, value=value)
    if maximum is not None and number > maximum:
        raise InputError(code, f"{field} exceeds maximum of {maximum}", field=field, value=value)
    return number


def parse_quantity(value: Any, settings: Settings, min_order: int = 1) -> int:
    """Parse a positive integer quantity within the configured limits."""
    number = parse_number(value, "qty", INVALID_QTY)
    if not number.is_integer():
        raise InputError(INVALID_QTY, "qty must be a whole number", field="qty", value=value)
    qty = int(number)
    if qty < max(settings.min_quantity, 1):
        raise InputError(INVALID_QTY, "qty must be greater than 0", field="qty", value=value)
    if qty > settings.max_quantity:
        raise InputError(
            INVALID_QTY,
            f"qty exceeds maximum of {settings.max_quantity}",
            field="qty",
            value=value,
        )
    if qty < min_order:
        raise InputError(
            INVALID_QTY,
            f"qty is below the minimum order of {min_order}",
            field="qty",
            value=value,
        )
    return qty


def _parse_area(raw: Mapping[str, Any], settings: Settings) -> AreaDimensions:
    return AreaDimensions(
        length=parse_positive_number(_pick(raw, 'length'), 'length', settings.max_dimension),
        width=parse_positive_number(_pick(raw, 'width'), 'width', settings.max_dimension),
        variant_label=_text(_pick(raw, 'variant_label', 'variantLabel')),
        material=_text(_pick(raw, 'material')),
    )


def _parse_linear(raw: Mapping[str, Any], settings: Settings) -> LinearDimensions:
    width = _pick(raw, 'width')
    return LinearDimensions(
        length=parse_positive_number(_pick(raw, 'length'), 'length', settings.max_dimension),
        width=parse_positive_number(width, 'width', settings.max_dimension) if width is not None else None,
        variant_label=_text(_pick(raw, 'variant_label', 'variantLabel', 'selected_variant')),
        material=_text(_pick(raw, 'material')),
    )


def _parse_matrix(raw: Mapping[str, Any], settings: Settings) -> MatrixDimensions:
    size_key = _text(_pick(raw, 'size_key', 'sizeKey', 'size'))
    if size_key is None:
        raise InputError(INVALID_DIMENSION, "size_key is required", field="size_key", value=None)
    return MatrixDimensions(size_key=size_key, material=_text(_pick(raw, 'material')))


def _parse_booklet(raw: Mapping[str, Any], settings: Settings) -> BookletDimensions:
    value = _pick(raw, 'sheets_per_book', 'sheetsPerBook', 'sheets')
    sheets = parse_positive_number(value, 'sheets_per_book')
    if not sheets.is_integer():
        raise InputError(INVALID_DIMENSION, "sheets_per_book must be a whole number", field="sheets_per_book", value=value)
    return BookletDimensions(
        sheets_per_book=int(sheets),
        print_mode_id=_text(_pick(raw, 'print_mode_id', 'printModeId', 'print_mode')),
        variant_label=_text(_pick(raw, 'variant_label', 'variantLabel', 'paper_type')),
    )


def _parse_unit(raw: Mapping[str, Any], settings: Settings) -> UnitDimensions:
    return UnitDimensions(variant_label=_text(_pick(raw, 'variant_label', 'variantLabel', 'variant')))


def _parse_sheet(raw: Mapping[str, Any], settings: Settings) -> SheetDimensions:
    cutting = _pick(raw, 'cutting_cost', 'cuttingCost')
    cutting_cost = parse_number(cutting, 'cutting_cost') if cutting is not None else 0.0
    if cutting_cost < 0:
        raise InputError(INVALID_DIMENSION, "cutting_cost cannot be negative", field="cutting_cost", value=cutting)
    return SheetDimensions(
        cutting_cost=cutting_cost,
        cutting_type=_text(_pick(raw, 'cutting_type', 'cuttingType')),
        sheet_size=_text(_pick(raw, 'sheet_size', 'sheetSize')),
        variant_label=_text(_pick(raw, 'variant_label', 'variantLabel')),
    )


def _parse_manual(raw: Mapping[str, Any], settings: Settings) -> ManualDimensions:
    return ManualDimensions(description=_text(_pick(raw, 'description')))


def _parse_precomputed(raw: Mapping[str, Any], settings: Settings) -> PrecomputedPrice:
    total = parse_number(_pick(raw, 'total_price', 'totalPrice'), 'total_price')
    unit = parse_number(_pick(raw, 'unit_price_final', 'unit_price', 'unitPrice'), 'unit_price')
    detail = raw.get('detail_options')
    return PrecomputedPrice(
        total_price=total,
        unit_price=unit,
        revenue_print=parse_number(raw.get('revenue_print') or 0, 'revenue_print'),
        revenue_finish=parse_number(raw.get('revenue_finish') or 0, 'revenue_finish'),
        detail_options=dict(detail) if detail else None,
    )


_PARSERS = {
    PricingMode.AREA: _parse_area,
    PricingMode.LINEAR: _parse_linear,
    PricingMode.MATRIX: _parse_matrix,
    PricingMode.BOOKLET: _parse_booklet,
    PricingMode.UNIT: _parse_unit,
    PricingMode.TIERED: _parse_unit,
    PricingMode.UNIT_SHEET: _parse_sheet,
    PricingMode.MANUAL: _parse_manual,
    PricingMode.ADVANCED: _parse_precomputed,
}

_PAYLOAD_TYPES = {
    PricingMode.AREA: AreaDimensions,
    PricingMode.LINEAR: LinearDimensions,
    PricingMode.MATRIX: MatrixDimensions,
    PricingMode.BOOKLET: BookletDimensions,
    PricingMode.UNIT: UnitDimensions,
    PricingMode.TIERED: UnitDimensions,
    PricingMode.UNIT_SHEET: SheetDimensions,
    PricingMode.MANUAL: ManualDimensions,
    PricingMode.ADVANCED: PrecomputedPrice,
}

_missing = (set(PricingMode) - set(_PARSERS)) | (set(PricingMode) - set(_PAYLOAD_TYPES))
if _missing:
    raise RuntimeError(f"No dimension parser for modes: {sorted(m.value for m in _missing)}")


def parse_dimensions(mode: PricingMode, raw: Any, settings: Settings) -> Dimensions:
    """Parse raw operator dimensions into the typed payload for ``mode``."""
    if isinstance(raw, tuple(set(_PAYLOAD_TYPES.values()))):
        if not isinstance(raw, _PAYLOAD_TYPES[mode]):
            raise InputError(
                INVALID_DIMENSION,
                f"{type(raw).__name__} does not apply to {mode.value} pricing",
                field="dimensions",
                value=type(raw).__name__,
            )
        # typed payloads go through the same field checks as raw input
        raw = asdict(raw)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise InputError(INVALID_DIMENSION, "dimensions must be an object", field="dimensions", value=repr(raw))
    return _PARSERS[mode](raw, settings)
