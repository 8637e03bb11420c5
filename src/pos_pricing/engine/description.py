"""
Description builder for cart items.

Format: ``<Product Name> <variant/specs> + <finishing>, <finishing>``.
The product name is mandatory; there is no placeholder fallback.
"""
import logging
from typing import Iterable, Optional

from .dimensions import (
    AreaDimensions,
    BookletDimensions,
    Dimensions,
    LinearDimensions,
    MatrixDimensions,
    SheetDimensions,
    UnitDimensions,
)
from .errors import CalculationError, INVALID_DESCRIPTION
from .models import FinishingSelection

logger = logging.getLogger(__name__)


def _metres(value: float) -> str:
    return f"{value:g}m"


def _variant_part(dimensions: Optional[Dimensions]) -> str:
    if isinstance(dimensions, AreaDimensions):
        area = f"({_metres(dimensions.length)} x {_metres(dimensions.width)})"
        return f"{dimensions.variant_label} {area}" if dimensions.variant_label else area

    if isinstance(dimensions, LinearDimensions):
        run = f"({_metres(dimensions.length)})"
        return f"{dimensions.variant_label} {run}" if dimensions.variant_label else run

    if isinstance(dimensions, MatrixDimensions):
        if dimensions.material:
            # "A2 (42 x 60 cm)" -> "A2"
            size_only = dimensions.size_key.split(" (")[0]
            return f"{size_only} - {dimensions.material}"
        return f"({dimensions.size_key})"

    if isinstance(dimensions, BookletDimensions):
        sheets = f"({dimensions.sheets_per_book} sheets)"
        return f"{dimensions.variant_label} {sheets}" if dimensions.variant_label else sheets

    if isinstance(dimensions, (UnitDimensions, SheetDimensions)):
        return dimensions.variant_label or ""

    # MANUAL and ADVANCED carry no variant text
    return ""


def build_item_description(
    product_name: Optional[str],
    dimensions: Optional[Dimensions] = None,
    finishing_names: Optional[Iterable[str]] = None,
) -> str:
    """Build the human-readable line description."""
    if not product_name or not product_name.strip():
        raise CalculationError(INVALID_DESCRIPTION, "Product name is required for the description", field="name")

    description = product_name.strip()
    variant = _variant_part(dimensions)
    if variant:
        description += f" {variant}"

    names = [n for n in (finishing_names or []) if n]
    if names:
        description += f" + {', '.join(names)}"

    logger.debug("Built description %r", description)
    return description


def extract_finishing_names(finishings: Optional[Iterable[FinishingSelection]]) -> list[str]:
    return [f.name for f in finishings or [] if f.name]
