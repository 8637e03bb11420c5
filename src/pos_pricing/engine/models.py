"""
Data models for the pricing core.

Uses dataclasses for structured, type-safe data representation. Catalog
records arrive with several historical field spellings; the ``from_dict``
constructors absorb them so the rest of the core sees one shape.
"""
import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional

from .errors import InputError, INVALID_FINISHING, UNKNOWN_MODE


class PricingMode(str, Enum):
    """The nine pricing models a product can be sold under."""
    AREA = "AREA"
    LINEAR = "LINEAR"
    MATRIX = "MATRIX"
    BOOKLET = "BOOKLET"
    UNIT = "UNIT"
    TIERED = "TIERED"
    UNIT_SHEET = "UNIT_SHEET"
    MANUAL = "MANUAL"
    ADVANCED = "ADVANCED"

    @classmethod
    def parse(cls, value: Any) -> 'PricingMode':
        """Resolve a mode tag, including the legacy engine names."""
        if isinstance(value, cls):
            return value
        tag = str(value or "").strip().upper()
        tag = _MODE_ALIASES.get(tag, tag)
        try:
            return cls(tag)
        except ValueError:
            raise InputError(
                UNKNOWN_MODE,
                f"Unknown pricing mode: {value!r}",
                field="pricing_mode",
                value=value,
            ) from None


_MODE_ALIASES = {
    "ROLLS": "LINEAR",
    "HYBRID": "AREA",
    "MATRIX_FIXED": "MATRIX",
    "SHEET": "UNIT_SHEET",
}


class PriceMode(str, Enum):
    """Accrual rule for a finishing charge."""
    PER_UNIT = "PER_UNIT"
    PER_JOB = "PER_JOB"
    PER_METER = "PER_METER"

    @classmethod
    def parse(cls, value: Any) -> 'PriceMode':
        if isinstance(value, cls):
            return value
        if not value:
            return cls.PER_UNIT
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InputError(
                INVALID_FINISHING,
                f"Unknown finishing price mode: {value!r}",
                field="price_mode",
                value=value,
            ) from None


class CalcContext(str, Enum):
    """Error policy for a calculation call."""
    STRICT = "strict"
    PREVIEW = "preview"


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


def _to_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class FinishingSelection:
    """A selected finishing with its resolved price."""
    id: str
    name: str
    price: float = 0.0
    price_mode: PriceMode = PriceMode.PER_UNIT

    @classmethod
    def from_value(cls, value: Any) -> 'FinishingSelection':
        """Accept a bare id, a dict in any stored spelling, or an instance."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if not value.strip():
                raise InputError(INVALID_FINISHING, "Finishing id is empty", field="finishings", value=value)
            return cls(id=value, name=value)
        if isinstance(value, dict):
            fin_id = value.get('id')
            if not fin_id:
                raise InputError(INVALID_FINISHING, "Finishing is missing an id", field="finishings", value=str(value))
            try:
                price = _to_float(value.get('price'))
            except (TypeError, ValueError):
                raise InputError(
                    INVALID_FINISHING,
                    f"Finishing {fin_id} has an invalid price",
                    field="finishings",
                    value=value.get('price'),
                ) from None
            if not math.isfinite(price):
                raise InputError(INVALID_FINISHING, f"Finishing {fin_id} has an invalid price", field="finishings", value=price)
            return cls(
                id=str(fin_id),
                name=str(value.get('name') or value.get('label') or fin_id),
                price=price,
                price_mode=PriceMode.parse(value.get('price_mode') or value.get('priceMode')),
            )
        raise InputError(INVALID_FINISHING, "Unsupported finishing value", field="finishings", value=repr(value))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "price_mode": self.price_mode.value,
        }


@dataclass(frozen=True)
class WholesaleRule:
    """A quantity range mapped to a unit price."""
    min: int
    max: int
    price: float

    @classmethod
    def from_dict(cls, data: dict) -> 'WholesaleRule':
        return cls(min=int(data['min']), max=int(data['max']), price=float(data['price']))

    def matches(self, qty: int) -> bool:
        return self.min <= qty <= self.max


@dataclass
class Variant:
    """A product variant: a paper, a roll material or a size row."""
    label: str
    id: Optional[str] = None
    price: Optional[float] = None
    width: Optional[float] = None
    price_per_meter: Optional[float] = None
    # material -> price, for the variant-keyed matrix format
    price_list: Optional[dict[str, float]] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Variant':
        price_list = data.get('price_list') or data.get('priceList')
        return cls(
            label=str(data.get('label', '')),
            id=data.get('id'),
            price=_to_optional_float(data.get('price')),
            width=_to_optional_float(data.get('width')),
            price_per_meter=_to_optional_float(data.get('price_per_meter')),
            price_list={str(k): float(v) for k, v in price_list.items()} if price_list else None,
        )


@dataclass
class PrintMode:
    """A print mode (e.g. one-sided, two-sided) with a per-sheet price."""
    id: str
    label: str
    price: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> 'PrintMode':
        return cls(
            id=str(data['id']),
            label=str(data.get('label') or data['id']),
            price=_to_float(data.get('price')),
        )


@dataclass
class FinishingOption:
    """One choosable option inside a finishing group."""
    label: str
    price: float = 0.0
    id: Optional[str] = None
    min_qty: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'FinishingOption':
        return cls(
            label=str(data.get('label') or data.get('name') or data.get('id', '')),
            price=_to_float(data.get('price')),
            id=data.get('id'),
            min_qty=int(data['min_qty']) if data.get('min_qty') else None,
        )


@dataclass
class FinishingGroup:
    """A finishing question shown to the operator (radio, checkbox or text)."""
    id: str
    title: str
    type: str = "checkbox"  # radio | checkbox | textInput
    price_mode: PriceMode = PriceMode.PER_UNIT
    options: list[FinishingOption] = field(default_factory=list)
    required: bool = False
    price_add: float = 0.0  # textInput groups charge a flat add-on

    @classmethod
    def from_dict(cls, data: dict) -> 'FinishingGroup':
        return cls(
            id=str(data.get('id') or data.get('title', '')),
            title=str(data.get('title', '')),
            type=str(data.get('type', 'checkbox')),
            price_mode=PriceMode.parse(data.get('price_mode') or data.get('priceMode')),
            options=[FinishingOption.from_dict(o) for o in data.get('options', [])],
            required=bool(data.get('required', False)),
            price_add=_to_float(data.get('price_add')),
        )

    def find_option(self, option_id: str) -> Optional[FinishingOption]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


@dataclass
class Product:
    """A sellable product and everything needed to price it."""
    id: str
    name: str
    base_price: float = 0.0
    pricing_mode: PricingMode = PricingMode.UNIT
    variants: list[Variant] = field(default_factory=list)
    # size -> price (legacy) or size -> {material -> price}
    matrix_prices: dict[str, Any] = field(default_factory=dict)
    wholesale_rules: list[WholesaleRule] = field(default_factory=list)
    finishing_groups: list[FinishingGroup] = field(default_factory=list)
    print_modes: list[PrintMode] = field(default_factory=list)
    min_order: int = 1
    category_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Product':
        """Build a product from a stored record in any of its spellings."""
        advanced = data.get('advanced_features') or {}
        mode_tag = (
            data.get('pricing_mode')
            or data.get('pricingMode')
            or data.get('pricing_model')
            or data.get('calc_engine')
            or data.get('input_mode')
            or PricingMode.UNIT
        )
        base_price = data.get('base_price')
        if base_price in (None, ""):
            base_price = data.get('basePrice', data.get('price'))

        rules = data.get('wholesale_rules') or advanced.get('wholesale_rules') or []
        groups = data.get('finishing_groups') or advanced.get('finishing_groups') or []
        matrix = data.get('matrix_prices') or data.get('matrixPrices') or data.get('prices') or {}

        return cls(
            id=str(data.get('id') or ""),
            name=str(data.get('name') or ""),
            base_price=_to_float(base_price),
            pricing_mode=PricingMode.parse(mode_tag),
            variants=[v if isinstance(v, Variant) else Variant.from_dict(v) for v in data.get('variants') or []],
            matrix_prices=dict(matrix),
            wholesale_rules=[r if isinstance(r, WholesaleRule) else WholesaleRule.from_dict(r) for r in rules],
            finishing_groups=[g if isinstance(g, FinishingGroup) else FinishingGroup.from_dict(g) for g in groups],
            print_modes=[
                m if isinstance(m, PrintMode) else PrintMode.from_dict(m)
                for m in data.get('print_modes') or data.get('printModes') or []
            ],
            min_order=int(data.get('min_order') or data.get('minOrder') or 1),
            category_id=data.get('category_id') or data.get('categoryId'),
        )

    def find_variant(self, label: Optional[str]) -> Optional[Variant]:
        """Exact label match."""
        if not label:
            return None
        for variant in self.variants:
            if variant.label == label:
                return variant
        return None

    def find_variant_for_size(self, size_key: str) -> Optional[Variant]:
        """First variant whose label mentions the size key (e.g. "A2 (42 x 60 cm)")."""
        for variant in self.variants:
            if size_key and size_key in variant.label:
                return variant
        return None

    def find_print_mode(self, mode_id: Optional[str]) -> Optional[PrintMode]:
        if not mode_id:
            return None
        for mode in self.print_modes:
            if mode.id == mode_id:
                return mode
        return None


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class PriceResult:
    """Outcome of one pricing calculation."""
    subtotal: float
    unit_price: float
    breakdown: str = ""
    finishing_cost: float = 0.0
    trace: list[TraceStep] = field(default_factory=list)
    meta: dict = field(default_factory=dict)

    @classmethod
    def zero(cls) -> 'PriceResult':
        """The preview fallback for an unresolvable calculation: 0 with an empty breakdown."""
        return cls(subtotal=0.0, unit_price=0.0)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this calculation."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass(frozen=True)
class CartItem:
    """
    A priced, validated line item.

    Only the cart item builder constructs these. Changing a priced field
    means building a new item.
    """
    id: str
    product_id: str
    name: str
    description: str
    pricing_mode: PricingMode
    qty: int
    dimensions: Any
    finishings: tuple[FinishingSelection, ...]
    unit_price: float
    total_price: float
    notes: str = ""
    category_id: Optional[str] = None
    variant_label: Optional[str] = None
    breakdown: str = ""
    meta: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "pricing_mode": self.pricing_mode.value,
            "qty": self.qty,
            "dimensions": asdict(self.dimensions) if self.dimensions is not None else {},
            "finishings": [f.to_dict() for f in self.finishings],
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "notes": self.notes,
            "category_id": self.category_id,
            "variant_label": self.variant_label,
            "breakdown": self.breakdown,
            "meta": self.meta,
        }
