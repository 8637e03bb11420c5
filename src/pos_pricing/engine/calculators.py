"""
Calculators for the nine pricing modes.

Pure functions for price calculation: numbers in, ``PriceResult`` out, no
catalog lookups and no state. Finishing arrives already composed for one
unit (see ``finishing.compose_finishing_cost``).
"""
import math
from typing import Any, Iterable, Mapping, Optional

from .errors import CalculationError, InputError, INVALID_MANUAL_PRICE, INVALID_TOTAL, PRICE_MISMATCH, UNRESOLVED_PRICE
from .models import PriceResult, WholesaleRule
from .wholesale import resolve_tier_price


def format_amount(value: float) -> str:
    """Thousands-separated amount, without decimals when whole."""
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def billable_area(length: float, width: float) -> int:
    """Area rounded up to whole square meters, never below 1."""
    # round first so 1.2 x 2.5 does not bill as 4
    raw_area = round(length * width, 9)
    return max(1, math.ceil(raw_area))


# 1. AREA
def calculate_area_price(length: float, width: float, unit_area_price: float, qty: int) -> PriceResult:
    """Banner/sticker pricing: billable whole square meters times price."""
    raw_area = length * width
    area = billable_area(length, width)
    subtotal = area * unit_area_price * qty

    result = PriceResult(
        subtotal=subtotal,
        unit_price=subtotal / qty,
        breakdown=f"{length}x{width}m = {raw_area:.2f}m² (Billable: {area}m²)",
    )
    result.add_trace("Area", f"{length}m × {width}m", f"{raw_area:.2f}m²")
    result.add_trace("Billable Area", "Rounded up, minimum 1m²", f"{area}m²")
    result.add_trace("Extension", f"{area}m² × {format_amount(unit_area_price)} × {qty}", format_amount(subtotal))
    return result


# 2. LINEAR
def calculate_linear_price(
    length: float,
    unit_length_price: float,
    qty: int,
    finishing_cost: float = 0.0,
) -> PriceResult:
    """Length-based pricing. Width never enters the formula."""
    per_unit = length * unit_length_price + finishing_cost
    subtotal = per_unit * qty

    result = PriceResult(
        subtotal=subtotal,
        unit_price=per_unit,
        breakdown=f"{length}m x {format_amount(unit_length_price)}",
        finishing_cost=finishing_cost,
    )
    result.add_trace("Length", f"{length}m × {format_amount(unit_length_price)}/m", format_amount(length * unit_length_price))
    if finishing_cost:
        result.add_trace("Finishing", "Per meter of length", format_amount(finishing_cost))
    result.add_trace("Extension", f"Quantity {qty} × {format_amount(per_unit)}", format_amount(subtotal))
    return result


# 3. MATRIX
def resolve_matrix_price(
    price_table: Optional[Mapping[str, Any]],
    size_key: str,
    material: Optional[str] = None,
) -> Optional[float]:
    """
    Look up a size (and material) in a price table.

    Accepts the legacy flat map ``{size: price}`` and the variant-keyed map
    ``{size: {material: price}}``. Returns None when unresolvable.
    """
    if not price_table or size_key not in price_table:
        return None
    entry = price_table[size_key]
    if isinstance(entry, Mapping):
        if material is None or material not in entry:
            return None
        entry = entry[material]
    try:
        price = float(entry)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def calculate_matrix_price(
    size_key: str,
    unit_price: float,
    qty: int,
    finishing_cost: float = 0.0,
) -> PriceResult:
    """Poster pricing from a resolved size/material price."""
    per_unit = unit_price + finishing_cost
    subtotal = per_unit * qty

    result = PriceResult(
        subtotal=subtotal,
        unit_price=per_unit,
        breakdown=f"Size {size_key} @ {format_amount(unit_price)}",
        finishing_cost=finishing_cost,
    )
    result.add_trace("Matrix Lookup", f"Size {size_key}", format_amount(unit_price))
    if finishing_cost:
        result.add_trace("Finishing", "Per unit", format_amount(finishing_cost))
    result.add_trace("Extension", f"Quantity {qty} × {format_amount(per_unit)}", format_amount(subtotal))
    return result


# 4. BOOKLET
def calculate_booklet_price(
    paper_price: float,
    print_mode_price: float,
    sheets_per_book: int,
    finishing_per_book: float,
    qty: int,
) -> PriceResult:
    """Books and magazines: content cost per book plus finishing per book."""
    content_cost = (paper_price + print_mode_price) * sheets_per_book
    per_book = content_cost + finishing_per_book
    subtotal = per_book * qty

    result = PriceResult(
        subtotal=subtotal,
        unit_price=per_book,
        breakdown=(
            f"({format_amount(paper_price)} + {format_amount(print_mode_price)}) × {sheets_per_book} sheets"
            f" + Fin {format_amount(finishing_per_book)}"
        ),
        finishing_cost=finishing_per_book,
    )
    result.add_trace("Content", f"(Paper + Print) × {sheets_per_book} sheets", format_amount(content_cost))
    result.add_trace("Finishing", "Per book", format_amount(finishing_per_book))
    result.add_trace("Extension", f"{qty} books × {format_amount(per_book)}", format_amount(subtotal))
    return result


# 5. UNIT
def calculate_unit_price(base_price: float, finishing_cost: float, qty: int) -> PriceResult:
    """Merchandise/office pricing: base plus finishing per piece."""
    per_unit = base_price + finishing_cost
    subtotal = per_unit * qty

    result = PriceResult(
        subtotal=subtotal,
        unit_price=per_unit,
        breakdown=f"(Base {format_amount(base_price)} + Fin {format_amount(finishing_cost)})",
        finishing_cost=finishing_cost,
    )
    result.add_trace("Extension", f"Quantity {qty} × {format_amount(per_unit)}", format_amount(subtotal))
    return result


# 6. TIERED
def calculate_tiered_price(
    qty: int,
    rules: Optional[Iterable[WholesaleRule]],
    base_price: float,
    finishing_cost: float = 0.0,
) -> PriceResult:
    """Wholesale pricing: the tier matching qty, else the base price."""
    tier_price = resolve_tier_price(qty, rules)
    unit_base = tier_price if tier_price is not None else base_price
    if not unit_base or unit_base <= 0:
        raise CalculationError(
            UNRESOLVED_PRICE,
            f"No wholesale tier matches qty {qty} and no base price is set",
            field="wholesale_rules",
            value=qty,
        )

    per_unit = unit_base + finishing_cost
    subtotal = per_unit * qty
    source = "Tier" if tier_price is not None else "Base"

    result = PriceResult(
        subtotal=subtotal,
        unit_price=per_unit,
        breakdown=f"{source} {format_amount(unit_base)} + Fin {format_amount(finishing_cost)}",
        finishing_cost=finishing_cost,
    )
    if tier_price is not None:
        result.add_trace("Tier Resolution", f"Wholesale tier for qty {qty}", format_amount(tier_price))
    else:
        result.add_trace("Tier Resolution", "No tier matched, using base price", format_amount(base_price))
    result.add_trace("Extension", f"Quantity {qty} × {format_amount(per_unit)}", format_amount(subtotal))
    return result


# 7. UNIT_SHEET
def calculate_unit_sheet_price(
    base_price: float,
    cutting_cost: float,
    finishing_cost: float,
    qty: int,
) -> PriceResult:
    """A3+ sheets: print plus cutting plus finishing per sheet."""
    per_unit = base_price + cutting_cost + finishing_cost
    subtotal = per_unit * qty

    result = PriceResult(
        subtotal=subtotal,
        unit_price=per_unit,
        breakdown=(
            f"(Print {format_amount(base_price)} + Cut {format_amount(cutting_cost)}"
            f" + Fin {format_amount(finishing_cost)})"
        ),
        finishing_cost=finishing_cost,
    )
    result.add_trace("Extension", f"{qty} sheets × {format_amount(per_unit)}", format_amount(subtotal))
    return result


# 8. MANUAL
def calculate_manual_price(manual_price: float, finishing_cost: float, qty: int) -> PriceResult:
    """Operator-entered price. Trusted, but still has to be positive."""
    if manual_price is None or not math.isfinite(manual_price) or manual_price <= 0:
        raise InputError(
            INVALID_MANUAL_PRICE,
            "Manual price must be greater than 0",
            field="manual_price",
            value=manual_price,
        )
    per_unit = manual_price + finishing_cost
    subtotal = per_unit * qty

    result = PriceResult(
        subtotal=subtotal,
        unit_price=per_unit,
        breakdown="Manual Price",
        finishing_cost=finishing_cost,
    )
    result.add_trace("Manual Price", "Entered by operator", format_amount(manual_price))
    result.add_trace("Extension", f"Quantity {qty} × {format_amount(per_unit)}", format_amount(subtotal))
    return result


# 9. ADVANCED
def calculate_advanced_price(
    total_price: float,
    unit_price: float,
    qty: int,
    tolerance: float = 0.01,
) -> PriceResult:
    """
    Validate totals computed upstream by the advanced product form.

    Nothing is recomputed: the totals pass through once they are finite,
    positive and consistent with the quantity.
    """
    for name, value in (("total_price", total_price), ("unit_price", unit_price)):
        if not math.isfinite(value) or value <= 0:
            raise CalculationError(INVALID_TOTAL, f"Precomputed {name} must be greater than 0", field=name, value=value)
    if not math.isclose(unit_price * qty, total_price, rel_tol=1e-9, abs_tol=tolerance):
        raise CalculationError(
            PRICE_MISMATCH,
            f"Precomputed unit price {format_amount(unit_price)} × {qty} does not match total {format_amount(total_price)}",
            field="total_price",
            value=total_price,
        )

    result = PriceResult(subtotal=total_price, unit_price=unit_price, breakdown="Precomputed Price")
    result.add_trace("Precomputed", "Total supplied by the product form", format_amount(total_price))
    return result
